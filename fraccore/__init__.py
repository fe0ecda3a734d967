''' fraccore: Shared utilities for the fracsim tools.

- Console display for simulation progress (display.py)
- Error taxonomy shared by fracmesh and fracfvm (errors.py)
- Run configuration objects (config.py)

Versioning follows Major.Minor.Patch:

    Major (1.x.x): API change. Old scripts might not run.

    Minor (x.2.x): New feature (e.g., a new flow model) but old scripts still work.

    Patch (x.x.5): Bug fix.
'''
from .errors import (
    FracsimError,
    GeometryError,
    ConfigurationError,
    SimulationError,
    LinearSolveError,
    NonConvergenceError,
)
from .config import NewtonOptions, TimeStepOptions, SimulationConfig, load_config
from .display import SimulationDisplay, Display

__version__ = "0.1.0"
