''' triangulation.py
    ----------------
    Point placement and the Delaunay adapter.

    The adapter is the only place that talks to scipy.spatial. The topology
    builder sees faces (triangles), vertex handles and neighbor queries, with
    triangles outside the body reported as infinite.
'''
import logging

import numpy as np
from scipy.spatial import Delaunay

from fraccore.errors import GeometryError

logger = logging.getLogger(__name__)

# Lattice points closer than this fraction of h to a fixed point are dropped
MIN_SPACING = 0.45
# Ring of points placed around the well, radius in units of r_w
WELL_RING = 2.0
# Lattice exclusion radius around the well, in units of r_w
WELL_CLEARANCE = 3.0


def _too_close(candidates, fixed, radius):
    """ Mask of candidates within `radius` of any fixed point. """
    if len(fixed) == 0 or len(candidates) == 0:
        return np.zeros(len(candidates), dtype=bool)
    d2 = ((candidates[:, None, :] - fixed[None, :, :]) ** 2).sum(axis=2)
    return (d2 < radius * radius).any(axis=1)


def generate_points(task):
    """
    Places the triangulation vertices for a task. Fully deterministic.

    Order: body boundary loops, fracture edges, well point and its ring,
    then the background lattice.

    Returns:
        np.ndarray: (N, 2) point array.
    """
    h = task.spatial_step
    fixed = []

    for body in task.bodies:
        # --- 1. Boundary Loops ---
        fixed.extend(body.outer.boundary_points(h))
        for hole in body.inner:
            fixed.extend(hole.boundary_points(h))

        # --- 2. Fracture Edges ---
        for p1, p2 in body.constraint:
            seg_len = np.linalg.norm(p2 - p1)
            n_seg = max(1, int(round(seg_len / h)))
            for k in range(n_seg):
                t = k / n_seg
                fixed.append(p1 * (1 - t) + p2 * t)

        # --- 3. Well and Ring ---
        fixed.append(body.well.copy())
        rho = WELL_RING * body.r_w
        for theta in np.arange(4) * 0.5 * np.pi:
            fixed.append(body.well + rho * np.array([np.cos(theta), np.sin(theta)]))

    fixed = np.array(fixed)
    # Constraint edges share endpoints; keep the first copy of each point
    _, first = np.unique(np.round(fixed, 12), axis=0, return_index=True)
    fixed = fixed[np.sort(first)]

    # --- 4. Background Lattice ---
    lattice = []
    for body in task.bodies:
        x_min, y_min, x_max, y_max = body.outer.bounds
        xs = np.arange(x_min, x_max, h)
        ys = np.arange(y_min, y_max, h)
        xx, yy = np.meshgrid(xs, ys)
        cand = np.vstack([xx.ravel(), yy.ravel()]).T

        keep = body.contains(cand)
        keep &= ~_too_close(cand, fixed, MIN_SPACING * h)
        keep &= np.linalg.norm(cand - body.well, axis=1) >= WELL_CLEARANCE * body.r_w
        lattice.append(cand[keep])

    points = np.vstack([fixed] + lattice)
    logger.debug("Generated %d points (%d fixed)", len(points), len(fixed))
    return points


class DelaunayAdapter:
    """
    Read-only view of a Delaunay triangulation restricted to the task domain.

    Face handles are simplex indices of the underlying scipy triangulation.
    Triangles whose centroid lies outside the body (or inside a cavity) are
    infinite, as are the hull sides.
    """
    def __init__(self, points, inside=None):
        """
        Args:
            points (np.ndarray): (N, 2) vertex coordinates.
            inside (callable, optional): Maps an (M, 2) array of centroids
                to a bool mask. Defaults to keeping every triangle.
        """
        self.points = np.asarray(points, dtype=np.float64)
        if len(self.points) < 3:
            raise GeometryError("At least 3 points are needed to triangulate.")

        self._tri = Delaunay(self.points)
        simplices = self._tri.simplices

        centroids = self.points[simplices].mean(axis=1)
        if inside is None:
            self._finite = np.ones(len(simplices), dtype=bool)
        else:
            self._finite = np.asarray(inside(centroids), dtype=bool)

        if not self._finite.any():
            raise GeometryError("Triangulation has no faces inside the domain.")

    @classmethod
    def from_task(cls, task):
        return cls(generate_points(task), inside=task.body.contains)

    def finite_faces(self):
        """ Handles of all finite faces, in triangulation order. """
        return [int(f) for f in np.flatnonzero(self._finite)]

    def is_infinite(self, face):
        return face < 0 or not self._finite[face]

    def vertex(self, face, i):
        """ Vertex handle i (0..2) of a face. """
        return int(self._tri.simplices[face, i])

    def point(self, v):
        return self.points[v]

    def triangle(self, face):
        """ (3, 2) array of the face's corner coordinates. """
        return self.points[self._tri.simplices[face]]

    def neighbor(self, face, i):
        """ Face across the edge opposite vertex i, or None if infinite. """
        nebr = int(self._tri.neighbors[face, i])
        if self.is_infinite(nebr):
            return None
        return nebr

    def __len__(self):
        return int(self._finite.sum())

    def __repr__(self):
        return f"DelaunayAdapter(points={len(self.points)}, faces={len(self)})"
