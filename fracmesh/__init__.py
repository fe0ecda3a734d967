# fracmesh/__init__.py

__version__ = "0.1.0"

# Import Primitives
from .elements import CellType, RegularCell, BorderCell, WellAggregate, WellLink, STENCIL, FACES

# Import the Mesh class
from .mesh import Mesh

# Import Geometry and Task input
from .geometry import LineSegment, Polygon
from .task import Body, Task, load_task

# Triangulation and topology
from .triangulation import DelaunayAdapter, generate_points
from .topology import build_mesh, mesh_from_task
from .quality import MeshQuality
