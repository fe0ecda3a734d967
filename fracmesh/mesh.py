import numpy as np

from .elements import CellType, RegularCell, BorderCell, WellAggregate


# --- The Mesh Class ---
class Mesh:
    """
    Cell graph consumed by the flow models.

    Cells live in one list indexed by id, in three contiguous ranges:
    triangles [0, inner_count), border cells [inner_count, inner_count +
    border_count), then the well aggregate (well_id) when there is one.
    Unknown layout: index = cell_id * n_vars + field.
    """
    def __init__(self, height=1.0):
        self.cells = []
        self.inner_count = 0
        self.border_count = 0
        self.well_id = None
        self.well_volume = 0.0
        self.well_links = []
        self.vertices = np.zeros((0, 2))
        self.volume = 0.0
        self.height = float(height)
        self.absorbed = []

    def __len__(self):
        return len(self.cells)

    def __getitem__(self, cid):
        return self.cells[cid]

    def __iter__(self):
        return iter(self.cells)

    @property
    def well_cell(self):
        if self.well_id is None:
            return None
        return self.cells[self.well_id]

    def regular_cells(self):
        return self.cells[:self.inner_count]

    def border_cells(self):
        return self.cells[self.inner_count:self.inner_count + self.border_count]

    def stencil(self, cell):
        """ Ordered cell ids of the unknown blocks a cell's residual reads. """
        if isinstance(cell, WellAggregate):
            return [cell.id] + [link.cell_id for link in cell.links]
        if isinstance(cell, BorderCell):
            return [cell.id, cell.parent]
        if cell.type is CellType.WELL:
            return [cell.id, self.well_id]
        return [cell.id] + list(cell.neighbors)

    def assign_depth(self, depth, dip=0.0):
        """
        Sets every cell's depth from a reference depth and a dip angle
        (degrees), measured along y.
        """
        slope = np.sin(np.radians(dip))
        for cell in self.cells:
            cell.depth = depth + slope * cell.centroid[1]

    def add_regular(self, centroid, volume, points=()):
        """ Appends a triangle. Only valid before border cells are added. """
        if self.border_count or self.well_id is not None:
            raise RuntimeError("Regular cells must precede border and well cells.")
        cell = RegularCell(len(self.cells), centroid, volume, points)
        self.cells.append(cell)
        self.inner_count += 1
        return cell

    def add_border(self, parent, face, centroid, length, points=()):
        """ Appends a border cell and links it both ways with its parent face. """
        if self.well_id is not None:
            raise RuntimeError("Border cells must precede the well cell.")
        cell = BorderCell(len(self.cells), centroid, length, parent.id, points)
        parent.neighbors[face] = cell.id
        self.cells.append(cell)
        self.border_count += 1
        return cell

    def add_well(self, centroid):
        cell = WellAggregate(len(self.cells), centroid)
        self.cells.append(cell)
        self.well_id = cell.id
        return cell

    def summary(self):
        counts = {t: 0 for t in CellType}
        for cell in self.cells:
            counts[cell.type] += 1
        return counts

    def __repr__(self):
        return (f"Mesh(inner={self.inner_count}, border={self.border_count}, "
                f"well={self.well_id}, links={len(self.well_links)})")
