"""
fracfvm/assembly.py
-------------------
Local (per cell) and global (sparse) assembly of the Newton system.

LocalAssembler seeds dual numbers on a cell's stencil and reads the local
Jacobian off the gradients. GlobalAssembler scatters the local blocks into
a fixed sparsity pattern computed once from the mesh.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

import attrs
import numpy as np

from .ad import seed, value, gradient

logger = logging.getLogger(__name__)


@attrs.frozen(eq=False)
class LocalBlock:
    cell_id: int
    stencil: tuple
    residual: np.ndarray
    """Shape (n_vars,)."""
    jacobian: np.ndarray
    """Shape (n_vars, n_vars * len(stencil))."""


@attrs.frozen(eq=False)
class SparseSystem:
    """COO triplets of the Jacobian plus the right-hand side -R."""

    rows: np.ndarray
    cols: np.ndarray
    values: np.ndarray
    rhs: np.ndarray
    shape: tuple

    @property
    def residual_norm(self):
        return float(np.max(np.abs(self.rhs))) if len(self.rhs) else 0.0


class LocalAssembler:
    def __init__(self, mesh, model, workers=1):
        """
        Args:
            mesh (Mesh): Cell graph; read only during assembly.
            model (FlowModel): Residual provider.
            workers (int): Threads for the per-cell pass. 1 runs inline.
        """
        self.mesh = mesh
        self.model = model
        self.workers = int(workers)
        self.n_vars = model.num_variables
        self.stencils = [tuple(mesh.stencil(cell)) for cell in mesh.cells]
        self._pool = None

    def evaluate(self, cell, ctx):
        """ Residual and local Jacobian of one cell at the `next` layer. """
        n = self.n_vars
        stencil = self.stencils[cell.id]
        local = ctx.state.next[list(stencil)]
        duals = seed(local.ravel())
        x = [duals[k * n:(k + 1) * n] for k in range(len(stencil))]

        rows = self.model.build_residual(cell, x, ctx)
        if len(rows) != n:
            raise ValueError(f"Cell {cell.id}: expected {n} residual rows, got {len(rows)}.")

        size = n * len(stencil)
        residual = np.array([value(r) for r in rows], dtype=np.float64)
        jacobian = np.array([gradient(r, size) for r in rows], dtype=np.float64)
        return LocalBlock(cell.id, stencil, residual, jacobian)

    def assemble(self, ctx):
        """ One LocalBlock per cell, in cell order. """
        cells = self.mesh.cells
        if self.workers > 1:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self.workers)
            return list(self._pool.map(lambda c: self.evaluate(c, ctx), cells))
        return [self.evaluate(c, ctx) for c in cells]

    def close(self):
        """ Shuts the worker pool down; the next assemble() starts a new one. """
        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None


class GlobalAssembler:
    def __init__(self, mesh, n_vars):
        self.n_vars = int(n_vars)
        self.n_cells = len(mesh.cells)
        self.size = self.n_cells * self.n_vars
        n = self.n_vars

        # --- 1. Raw (row, col) of every local Jacobian entry, in block order ---
        raw_rows = []
        raw_cols = []
        for cell in mesh.cells:
            stencil = np.asarray(mesh.stencil(cell), dtype=np.int64)
            L = len(stencil)
            cols = (stencil[:, None] * n + np.arange(n)).ravel()
            raw_rows.append(np.repeat(cell.id * n + np.arange(n), n * L))
            raw_cols.append(np.tile(cols, n))
        raw_rows = np.concatenate(raw_rows)
        raw_cols = np.concatenate(raw_cols)

        # --- 2. Unique Pattern + Scatter Index ---
        keys = raw_rows * self.size + raw_cols
        unique, self.scatter = np.unique(keys, return_inverse=True)
        self.scatter = self.scatter.ravel()
        self.rows = unique // self.size
        self.cols = unique % self.size
        logger.debug("Sparsity pattern: %d unknowns, %d nonzeros (%d raw)",
                     self.size, len(unique), len(keys))

    @property
    def nnz(self):
        return len(self.rows)

    def assemble(self, blocks):
        """
        Sums every block into the fixed pattern. Needs the complete list of
        blocks for all cells.
        """
        if len(blocks) != self.n_cells:
            raise ValueError(f"Expected {self.n_cells} blocks, got {len(blocks)}.")
        blocks = sorted(blocks, key=lambda b: b.cell_id)

        flat = np.concatenate([b.jacobian.ravel() for b in blocks])
        values = np.zeros(len(self.rows))
        np.add.at(values, self.scatter, flat)

        rhs = -np.concatenate([b.residual for b in blocks])
        return SparseSystem(self.rows, self.cols, values, rhs, (self.size, self.size))
