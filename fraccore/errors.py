"""
fraccore/errors.py
------------------
Error taxonomy shared by the mesh builder and the solver.

Geometry and configuration problems are fatal and raised before any time
step runs. Linear-solve failures are recoverable and handled inside the
Newton driver. Non-convergence becomes fatal only when the time step
cannot be reduced any further.
"""


class FracsimError(Exception):
    """Base class for all fracsim errors."""

    pass


class GeometryError(FracsimError, ValueError):
    """Raised for degenerate or self-intersecting input and zero-area cells."""

    pass


class ConfigurationError(FracsimError, ValueError):
    """Raised when a schedule or solver option fails validation."""

    pass


class SimulationError(FracsimError):
    """Base class for errors raised while time stepping."""

    pass


class LinearSolveError(SimulationError):
    """Raised by the linear solver adapter when a solve fails."""

    def __init__(self, message, preconditioner=None):
        super().__init__(message)
        self.preconditioner = preconditioner


class NonConvergenceError(SimulationError):
    """
    Fatal non-convergence: the step size is already at its lower bound.

    Attributes:
        period (int): Index of the active period.
        time (float): Simulation time at the start of the failed step.
        cell (int, optional): Cell that triggered the failure, if known.
        reason (str): Short description of the last Newton failure.
    """

    def __init__(self, period, time, reason, cell=None):
        self.period = period
        self.time = time
        self.reason = reason
        self.cell = cell
        where = f" (cell {cell})" if cell is not None else ""
        super().__init__(
            f"Newton failed to converge in period {period} at t = {time:.6g}{where}: {reason}"
        )
