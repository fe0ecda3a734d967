''' task.py
    -------
    Task description: domain bodies, the well and the fracture constraint.

    A task is plain geometry. JSON layout:

        {
          "spatial_step": 0.2,
          "bodies": [{
              "outer": [[0, 0], [1, 0], [1, 1], [0, 1]],
              "inner": [],
              "well": [0.5, 0.5],
              "r_w": 0.05,
              "constraint": [[[0.3, 0.3], [0.7, 0.3]], ...]
          }]
        }
'''
import json
import logging
import typing

import attrs
import numpy as np

from fraccore.errors import GeometryError
from .geometry import Polygon

logger = logging.getLogger(__name__)


def _to_polygon(value):
    if isinstance(value, Polygon):
        return value
    return Polygon(value, name="outer")


def _to_polygons(value):
    return [v if isinstance(v, Polygon) else Polygon(v, name=f"inner[{i}]")
            for i, v in enumerate(value)]


def _to_point(value):
    pt = np.asarray(value, dtype=np.float64)
    if pt.shape != (2,):
        raise GeometryError(f"Expected an (x, y) point, got {value!r}.")
    return pt


def _to_edges(value):
    edges = []
    for e in value:
        arr = np.asarray(e, dtype=np.float64)
        if arr.shape != (2, 2):
            raise GeometryError(f"Constraint edge must be two (x, y) points, got {e!r}.")
        edges.append(arr)
    return edges


@attrs.define
class Body:
    """
    One simulation body.

    Attributes:
        outer (Polygon): External boundary.
        inner (list of Polygon): Cavities, excluded from the mesh.
        well (np.ndarray): Well point.
        r_w (float): Well radius. Fracture cells closer than this are lumped.
        constraint (list of np.ndarray): Fracture edges, each a (2, 2) array.
    """
    outer: Polygon = attrs.field(converter=_to_polygon)
    well: np.ndarray = attrs.field(converter=_to_point)
    r_w: float = attrs.field(converter=float, validator=attrs.validators.gt(0.0))
    inner: typing.List[Polygon] = attrs.field(factory=list, converter=_to_polygons)
    constraint: typing.List[np.ndarray] = attrs.field(factory=list, converter=_to_edges)

    def __attrs_post_init__(self):
        if not self.contains(self.well)[0]:
            raise GeometryError(f"Well point {tuple(self.well)} is outside the body.")

    def contains(self, points, tol=1e-9):
        """ Inside the outer loop and not strictly inside any cavity. """
        mask = self.outer.contains(points, tol=tol)
        for hole in self.inner:
            mask &= ~(hole.contains(points, tol=0.0) & (hole.distance(points) > tol))
        return mask

    @property
    def fracture(self):
        """ Fracture polygon: the first point of each constraint edge, in order. """
        if len(self.constraint) < 3:
            raise GeometryError("A fracture needs at least 3 constraint edges.")
        return Polygon([e[0] for e in self.constraint], name="fracture")


@attrs.define
class Task:
    spatial_step: float = attrs.field(converter=float, validator=attrs.validators.gt(0.0))
    bodies: typing.List[Body] = attrs.field(factory=list)

    def __attrs_post_init__(self):
        if not self.bodies:
            raise GeometryError("A task needs at least one body.")

    @property
    def body(self):
        """ The simulated body. Only a single lumped well per domain is supported. """
        return self.bodies[0]

    @classmethod
    def from_dict(cls, data):
        bodies = []
        for b in data.get("bodies", []):
            bodies.append(Body(
                outer=b["outer"],
                well=b["well"],
                r_w=b["r_w"],
                inner=b.get("inner", []),
                constraint=b.get("constraint", []),
            ))
        return cls(spatial_step=data["spatial_step"], bodies=bodies)


def load_task(path):
    """ Reads a Task from a JSON file. """
    with open(path, "r") as f:
        data = json.load(f)
    logger.debug("Loaded task from %s", path)
    return Task.from_dict(data)
