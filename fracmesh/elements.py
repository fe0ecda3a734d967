from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

# Tolerance for degenerate areas and coincident points
GEOM_TOL = 1e-12

# Faces per triangle and size of the local stencil (self + faces)
FACES = 3
STENCIL = FACES + 1


class CellType(Enum):
    INTERIOR = 1
    BORDER = 2
    FRACTURE = 3
    WELL = 4


class WellLink:
    ''' Association between a regular cell and the lumped well.

    Attributes:
        cell_id (int): Regular cell whose face slot now points at the well.
        face (int): Index of that face on the regular cell (0..2).
        face_length (float): Length of the face shared with the absorbed cell.
        distance (float): Distance from the well point to the face midpoint.
    '''
    __slots__ = ['cell_id', 'face', 'face_length', 'distance']

    def __init__(self, cell_id, face, face_length, distance):
        self.cell_id = int(cell_id)
        self.face = int(face)
        self.face_length = float(face_length)
        self.distance = float(distance)

    def __repr__(self):
        return (f'WellLink(cell={self.cell_id}, face={self.face}, '
                f'L={self.face_length:.4g}, d={self.distance:.4g})')


class Cell(ABC):
    ''' Common data for every control volume of the flow graph.

    Cells are created once by the topology builder and never renumbered, so
    `id` doubles as the block index in the Newton unknown vector.

    Attributes:
        id (int): Dense index, stable for identical input.
        type (CellType): Classification used by the flow models.
        centroid (np.ndarray): (x, y) of the control point.
        volume (float): Area * height, edge length for border cells.
        points (tuple): Local vertex indices into Mesh.vertices.
        depth (float): Depth of the control point (see Mesh.assign_depth).
    '''
    __slots__ = ['id', 'type', 'centroid', 'volume', 'points', 'depth']

    def __init__(self, cid, ctype, centroid, volume=0.0, points=()):
        self.id = int(cid)
        self.type = ctype
        self.centroid = np.asarray(centroid, dtype=np.float64)
        self.volume = float(volume)
        self.points = tuple(points)
        self.depth = 0.0

    @abstractmethod
    def distance_to(self, other_id, face=None):
        ''' Distance from this cell's control point to the face it shares
            with `other_id`. `face` is the face index on the regular cell
            that owns the shared face; only the well aggregate needs it. '''
        pass

    def __repr__(self):
        return (f'{type(self).__name__}(id={self.id}, type={self.type.name}, '
                f'c=({self.centroid[0]:.4f}, {self.centroid[1]:.4f}), V={self.volume:.4g})')


class RegularCell(Cell):
    ''' A triangle of the triangulation (INTERIOR or FRACTURE).

    Slot `i` describes the edge opposite local vertex `i`. Once the cell is
    absorbed into the well its type becomes WELL; its slots are kept as they
    were and no longer take part in flux computation.
    '''
    __slots__ = ['neighbors', 'lengths', 'dists']

    def __init__(self, cid, centroid, volume, points=()):
        super().__init__(cid, CellType.INTERIOR, centroid, volume, points)
        self.neighbors = [-1] * FACES
        self.lengths = [0.0] * FACES
        self.dists = [0.0] * FACES

    @property
    def absorbed(self):
        return self.type is CellType.WELL

    def face_of(self, other_id):
        ''' Index of the first slot pointing at `other_id`. '''
        for i, nebr in enumerate(self.neighbors):
            if nebr == other_id:
                return i
        raise KeyError(f'Cell {self.id} has no face towards cell {other_id}.')

    def distance_to(self, other_id, face=None):
        return self.dists[self.face_of(other_id)]


class BorderCell(Cell):
    ''' Half-face boundary site on an infinite edge of the triangulation.
        The centroid sits on the edge midpoint, so its distance to the
        shared face is zero. '''
    __slots__ = ['parent']

    def __init__(self, cid, centroid, length, parent, points=()):
        super().__init__(cid, CellType.BORDER, centroid, length, points)
        self.parent = int(parent)

    def distance_to(self, other_id, face=None):
        if other_id != self.parent:
            raise KeyError(f'Border cell {self.id} only borders cell {self.parent}.')
        return 0.0


class WellAggregate(Cell):
    ''' The single lumped well sink.

    It has no geometric faces. Flux geometry comes from its WellLink table,
    keyed by (regular cell id, face index) so that a cell touching the well
    through two faces keeps both distances apart.
    '''
    __slots__ = ['links', '_by_face']

    def __init__(self, cid, centroid):
        super().__init__(cid, CellType.WELL, centroid, 0.0)
        self.links = []
        self._by_face = {}

    def add_link(self, link):
        self._by_face[(link.cell_id, link.face)] = link
        self.links.append(link)

    def link(self, cell_id, face):
        return self._by_face[(cell_id, face)]

    def distance_to(self, other_id, face=None):
        if face is None:
            for link in self.links:
                if link.cell_id == other_id:
                    return link.distance
            raise KeyError(f'Cell {other_id} is not linked to the well.')
        return self.link(other_id, face).distance
