"""
fracfvm: Fully implicit finite volume flow solver.
"""
from .ad import Dual, seed
from .state import StateStore, CellSnapshot
from .assembly import LocalAssembler, GlobalAssembler, LocalBlock, SparseSystem
from .linear import LinearSolver
from .newton import NewtonDriver, NewtonResult, NewtonStatus
from .timestep import BoundaryMode, Period, WellControls, TimeStepController
from .physics import FlowModel, StepContext, Skeleton, Fluid, CoreyRelPerm, OilModel, WaterOilModel
from .solver import Simulation, StepRecord

__version__ = "0.1.0"
