''' geometry.py
    -----------
    Closed polygons and line segments describing the task domain.
    Used by the point generator, the Delaunay adapter and the fracture
    classification in the topology builder.
'''
import numpy as np
import matplotlib.path as mpath

from fraccore.errors import GeometryError
from .elements import GEOM_TOL


def _orientation(a, b, c):
    ''' Sign of the cross product (b - a) x (c - a). '''
    val = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
    if abs(val) <= GEOM_TOL:
        return 0
    return 1 if val > 0 else -1


def _on_segment(a, b, p):
    return (min(a[0], b[0]) - GEOM_TOL <= p[0] <= max(a[0], b[0]) + GEOM_TOL and
            min(a[1], b[1]) - GEOM_TOL <= p[1] <= max(a[1], b[1]) + GEOM_TOL)


class LineSegment:
    """
    A straight line connecting two points (p1, p2).
    """
    def __init__(self, p1, p2):
        self.p1 = np.array(p1, dtype=np.float64)
        self.p2 = np.array(p2, dtype=np.float64)

        self.vec = self.p2 - self.p1
        self.len_sq = np.dot(self.vec, self.vec)

        if self.len_sq == 0:
            raise GeometryError("LineSegment cannot be zero length.")

    @property
    def length(self):
        return float(np.sqrt(self.len_sq))

    @property
    def midpoint(self):
        return 0.5 * (self.p1 + self.p2)

    def evaluate(self, t):
        """ Returns point at t (0.0 = p1, 1.0 = p2). """
        return self.p1 + t * self.vec

    def intersects(self, other, touching=True):
        """
        Segment intersection test.

        Args:
            other (LineSegment): Segment to test against.
            touching (bool): When False, a shared endpoint does not count.
        """
        a, b, c, d = self.p1, self.p2, other.p1, other.p2
        if not touching:
            for p in (a, b):
                for q in (c, d):
                    if np.allclose(p, q, atol=GEOM_TOL):
                        return False

        o1 = _orientation(a, b, c)
        o2 = _orientation(a, b, d)
        o3 = _orientation(c, d, a)
        o4 = _orientation(c, d, b)

        if o1 != o2 and o3 != o4:
            return True

        # Collinear overlaps
        if o1 == 0 and _on_segment(a, b, c): return True
        if o2 == 0 and _on_segment(a, b, d): return True
        if o3 == 0 and _on_segment(c, d, a): return True
        if o4 == 0 and _on_segment(c, d, b): return True
        return False

    def distance(self, points):
        """ Distance from each point in an (N, 2) array to the segment. """
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        t = np.clip((pts - self.p1) @ self.vec / self.len_sq, 0.0, 1.0)
        closest = self.p1 + t[:, None] * self.vec
        return np.linalg.norm(pts - closest, axis=1)

    def __repr__(self):
        return f"LineSegment(p1={self.p1}, p2={self.p2})"


class Polygon:
    """
    A simple closed polygon given by its vertices (closing edge implied).

    Raises:
        GeometryError: fewer than 3 vertices, zero area or self-intersection.
    """
    def __init__(self, vertices, name="polygon"):
        pts = np.asarray(vertices, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[0] < 3 or pts.shape[1] != 2:
            raise GeometryError(f"{name}: a polygon must have at least 3 (x, y) vertices.")

        self.name = name
        self.vertices = pts

        # --- 1. Build Edges ---
        n = len(pts)
        self.segments = [LineSegment(pts[i], pts[(i + 1) % n]) for i in range(n)]

        # --- 2. Validate ---
        if abs(self.signed_area) <= GEOM_TOL:
            raise GeometryError(f"{name}: polygon has zero area.")

        for i in range(n):
            for j in range(i + 1, n):
                # Adjacent edges share a vertex by construction
                if j == i + 1 or (i == 0 and j == n - 1):
                    continue
                if self.segments[i].intersects(self.segments[j]):
                    raise GeometryError(f"{name}: edges {i} and {j} intersect.")

        self._path = mpath.Path(np.vstack([pts, pts[:1]]), closed=True)

    @property
    def signed_area(self):
        """ Shoelace formula. Positive for counter-clockwise loops. """
        x, y = self.vertices[:, 0], self.vertices[:, 1]
        return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))

    @property
    def area(self):
        return abs(self.signed_area)

    @property
    def bounds(self):
        """ (xmin, ymin, xmax, ymax) """
        lo = self.vertices.min(axis=0)
        hi = self.vertices.max(axis=0)
        return lo[0], lo[1], hi[0], hi[1]

    def distance(self, points):
        """ Distance from each point to the polygon boundary. """
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        return np.min([seg.distance(pts) for seg in self.segments], axis=0)

    def contains(self, points, tol=1e-9):
        """
        Point-in-polygon test. Points within `tol` of the boundary count as inside.

        Returns:
            np.ndarray of bool, one entry per point.
        """
        pts = np.atleast_2d(np.asarray(points, dtype=np.float64))
        inside = self._path.contains_points(pts)
        return inside | (self.distance(pts) <= tol)

    def boundary_points(self, h):
        """
        Resamples the boundary at spacing ~h. Each edge gets
        max(1, round(L / h)) segments; polygon vertices are always kept.
        """
        out = []
        for seg in self.segments:
            n_seg = max(1, int(round(seg.length / h)))
            for k in range(n_seg):
                out.append(seg.evaluate(k / n_seg))
        return np.array(out)

    def __len__(self):
        return len(self.vertices)

    def __repr__(self):
        return f"Polygon({self.name}, n={len(self.vertices)}, area={self.area:.4g})"
