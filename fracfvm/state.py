"""
fracfvm/state.py
----------------
Per-cell solution storage with three time layers.

    previous : converged solution at the start of the step
    iterate  : Newton iterate the upwind directions are taken from
    next     : current Newton guess, updated in place by each increment
"""
import logging

import attrs
import numpy as np

logger = logging.getLogger(__name__)


@attrs.frozen
class CellSnapshot:
    """One cell of an exported state."""

    id: int
    type: str
    centroid: tuple
    volume: float
    values: tuple


class StateStore:
    def __init__(self, n_cells, n_vars):
        self.n_cells = int(n_cells)
        self.n_vars = int(n_vars)
        shape = (self.n_cells, self.n_vars)
        self.previous = np.zeros(shape)
        self.iterate = np.zeros(shape)
        self.next = np.zeros(shape)

    @property
    def size(self):
        """ Length of the flattened unknown vector. """
        return self.n_cells * self.n_vars

    def fill(self, cell_ids, values):
        """ Sets all three layers of the given cells to `values`. """
        ids = np.atleast_1d(np.asarray(cell_ids, dtype=int))
        vals = np.broadcast_to(np.asarray(values, dtype=np.float64), (len(ids), self.n_vars))
        for layer in (self.previous, self.iterate, self.next):
            layer[ids] = vals

    def begin_iteration(self):
        self.iterate[:] = self.next

    def commit(self):
        self.previous[:] = self.next
        self.iterate[:] = self.next

    def rollback(self):
        self.next[:] = self.previous
        self.iterate[:] = self.previous

    def apply_increment(self, dx, bounds, damping=1.0):
        """
        Adds damping * dx to the `next` layer and clamps bounded variables.

        Args:
            dx (np.ndarray): Flat increment, index = cell * n_vars + field.
            bounds (list of (lo, hi)): Per-field bounds; +-inf means unbounded.
            damping (float): Step fraction in (0, 1].

        Returns:
            list of int: Sorted ids of cells where any variable was clamped.
        """
        self.next += damping * np.asarray(dx).reshape(self.n_cells, self.n_vars)

        clamped = np.zeros(self.n_cells, dtype=bool)
        for field, (lo, hi) in enumerate(bounds):
            col = self.next[:, field]
            low = col < lo
            high = col > hi
            if low.any() or high.any():
                clamped |= low | high
                np.clip(col, lo, hi, out=col)

        ids = np.flatnonzero(clamped).tolist()
        if ids:
            logger.debug("Clamped %d cell(s) to variable bounds: %s", len(ids), ids[:10])
        return ids

    def average(self, field=0, cell_ids=None, layer="next"):
        data = getattr(self, layer)[:, field]
        if cell_ids is not None:
            data = data[np.asarray(cell_ids, dtype=int)]
        return float(np.mean(data)) if len(data) else 0.0

    def export(self, mesh):
        """ Yields a CellSnapshot of the `next` layer for every cell. """
        for cell in mesh.cells:
            yield CellSnapshot(
                id=cell.id,
                type=cell.type.name,
                centroid=tuple(float(c) for c in cell.centroid),
                volume=cell.volume,
                values=tuple(float(v) for v in self.next[cell.id]),
            )

    def __repr__(self):
        return f"StateStore(cells={self.n_cells}, vars={self.n_vars})"
