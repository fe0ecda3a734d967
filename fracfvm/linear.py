"""
fracfvm/linear.py
-----------------
Sparse linear solves for the Newton system.

    'ilu'    : incomplete LU + GMRES
    'jacobi' : diagonal scaling + GMRES
    'direct' : SuperLU

Every failure is reported as LinearSolveError; the caller decides whether
to retry with another preconditioner.
"""
import logging

import numpy as np
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import spilu, splu, gmres, LinearOperator

from fraccore.errors import LinearSolveError

logger = logging.getLogger(__name__)


class LinearSolver:
    def __init__(self, rtol=1e-10, max_iter=500, restart=50, drop_tol=1e-5, fill_factor=10):
        self.rtol = rtol
        self.max_iter = max_iter
        self.restart = restart
        self.drop_tol = drop_tol
        self.fill_factor = fill_factor
        self.matrix = None
        self.rhs = None

    def assemble(self, system):
        """ Builds the CSC matrix from COO triplets (duplicates are summed). """
        self.matrix = csc_matrix((system.values, (system.rows, system.cols)), shape=system.shape)
        self.rhs = np.asarray(system.rhs, dtype=np.float64)
        return self.matrix

    def solve(self, preconditioner="ilu"):
        """ Returns dx solving J dx = -R. """
        if self.matrix is None:
            raise LinearSolveError("No system assembled.", preconditioner)

        try:
            if preconditioner == "direct":
                x = splu(self.matrix).solve(self.rhs)
            elif preconditioner == "ilu":
                ilu = spilu(self.matrix, drop_tol=self.drop_tol, fill_factor=self.fill_factor)
                x = self._gmres(LinearOperator(self.matrix.shape, matvec=ilu.solve), preconditioner)
            elif preconditioner == "jacobi":
                diag = self.matrix.diagonal()
                if np.any(diag == 0.0):
                    raise LinearSolveError("Zero on the diagonal.", preconditioner)
                inv = 1.0 / diag
                x = self._gmres(LinearOperator(self.matrix.shape, matvec=lambda v: inv * v), preconditioner)
            else:
                raise LinearSolveError(f"Unknown preconditioner '{preconditioner}'.", preconditioner)
        except LinearSolveError:
            raise
        except (RuntimeError, ValueError, ArithmeticError) as exc:
            # SuperLU reports singular factors as RuntimeError
            raise LinearSolveError(f"{preconditioner}: {exc}", preconditioner) from exc

        if not np.all(np.isfinite(x)):
            raise LinearSolveError(f"{preconditioner}: non-finite solution.", preconditioner)
        return x

    def _gmres(self, M, name):
        x, info = gmres(self.matrix, self.rhs, M=M, rtol=self.rtol, atol=0.0,
                        restart=self.restart, maxiter=self.max_iter)
        if info != 0:
            raise LinearSolveError(f"{name}: GMRES did not converge (info={info}).", name)
        return x
