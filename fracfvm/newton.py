"""
fracfvm/newton.py
-----------------
Newton-Raphson iteration for one time step.

Failures inside a step (iteration cap, every preconditioner failing, a
non-finite residual, a cell stuck on its bounds) are reported through
NewtonResult.status so the time-step controller can retry with a smaller
step. Nothing here raises for a recoverable failure.
"""
import logging
from enum import Enum

import attrs
import numpy as np

from fraccore.config import NewtonOptions
from fraccore.errors import LinearSolveError
from .assembly import LocalAssembler, GlobalAssembler
from .linear import LinearSolver

logger = logging.getLogger(__name__)


class NewtonStatus(Enum):
    IDLE = 0
    ITERATING = 1
    CONVERGED = 2
    EXHAUSTED = 3


@attrs.frozen
class NewtonResult:
    status: NewtonStatus
    iterations: int
    metric: float
    clamped: tuple = ()
    """Cells clamped during the last iteration."""
    reason: str = ""
    cell: object = None
    """Cell responsible for the failure, when one can be named."""

    @property
    def converged(self):
        return self.status is NewtonStatus.CONVERGED


class NewtonDriver:
    def __init__(self, mesh, model, options=None, workers=1, linear_solver=None):
        self.mesh = mesh
        self.model = model
        self.options = options if options is not None else NewtonOptions()
        self.local = LocalAssembler(mesh, model, workers=workers)
        self.glob = GlobalAssembler(mesh, model.num_variables)
        self.linear = linear_solver if linear_solver is not None else LinearSolver()
        self.status = NewtonStatus.IDLE

    def close(self):
        """ Releases the assembly worker threads. """
        self.local.close()

    def _assemble(self, ctx):
        blocks = self.local.assemble(ctx)
        system = self.glob.assemble(blocks)
        self.linear.assemble(system)
        return system

    def _solve_linear(self):
        """ Tries each preconditioner in turn. None when all of them fail. """
        chain = self.options.preconditioners
        for i, name in enumerate(chain):
            try:
                return self.linear.solve(name)
            except LinearSolveError as exc:
                if i + 1 < len(chain):
                    logger.warning("Linear solve failed (%s); retrying with '%s'", exc, chain[i + 1])
                else:
                    logger.warning("Linear solve failed (%s); no preconditioner left", exc)
        return None

    def _metric(self, system, dx, avg_change):
        crit = self.options.criterion
        if crit == "residual":
            return system.residual_norm
        if crit == "increment":
            return float(np.max(np.abs(dx))) if dx is not None and len(dx) else 0.0
        return avg_change

    def _finish(self, status, iterations, metric, clamped=(), reason="", cell=None):
        self.status = status
        if status is NewtonStatus.EXHAUSTED:
            logger.debug("Newton exhausted after %d iteration(s): %s", iterations, reason)
        return NewtonResult(status, iterations, metric, tuple(clamped), reason, cell)

    def solve(self, state, ctx):
        """
        Iterates on state.next until convergence or exhaustion.

        Returns:
            NewtonResult
        """
        opts = self.options
        self.status = NewtonStatus.ITERATING
        state.begin_iteration()

        system = self._assemble(ctx)
        if not np.all(np.isfinite(system.rhs)):
            return self._finish(NewtonStatus.EXHAUSTED, 0, np.inf, reason="non-finite residual")
        if opts.criterion == "residual" and system.residual_norm < opts.tolerance:
            return self._finish(NewtonStatus.CONVERGED, 0, system.residual_norm)

        streak = {}
        avg = state.average(0)
        metric = np.inf
        clamped = []
        for it in range(1, opts.max_iterations + 1):
            dx = self._solve_linear()
            if dx is None:
                return self._finish(NewtonStatus.EXHAUSTED, it, metric, clamped,
                                    reason="linear solve failed")

            clamped = state.apply_increment(dx, self.model.bounds, opts.damping)
            if clamped:
                logger.warning("Iteration %d clamped %d cell(s) to bounds", it, len(clamped))
            streak = {c: streak.get(c, 0) + 1 for c in clamped}
            stuck = [c for c, n in streak.items() if n > opts.max_clamps]
            if stuck:
                return self._finish(NewtonStatus.EXHAUSTED, it, metric, clamped,
                                    reason=f"cell {stuck[0]} clamped in {streak[stuck[0]]} "
                                           "consecutive iterations",
                                    cell=stuck[0])

            state.begin_iteration()
            system = self._assemble(ctx)
            if not np.all(np.isfinite(system.rhs)):
                bad = int(np.flatnonzero(~np.isfinite(system.rhs))[0]) // self.model.num_variables
                return self._finish(NewtonStatus.EXHAUSTED, it, np.inf, clamped,
                                    reason="non-finite residual", cell=bad)

            new_avg = state.average(0)
            metric = self._metric(system, dx, abs(new_avg - avg))
            avg = new_avg
            logger.debug("Newton iteration %d: %s = %.3e", it, opts.criterion, metric)

            if metric < opts.tolerance:
                return self._finish(NewtonStatus.CONVERGED, it, metric, clamped)

        return self._finish(NewtonStatus.EXHAUSTED, opts.max_iterations, metric, clamped,
                            reason=f"no convergence in {opts.max_iterations} iterations")
