"""
fraccore/config.py
------------------
Run configuration for the nonlinear solver and the time-step controller.

All options are immutable `attrs` classes. Values are non-dimensional, in
the same units the property callbacks use.
"""
import json
import typing

import attrs

from .errors import ConfigurationError

__all__ = ["NewtonOptions", "TimeStepOptions", "SimulationConfig", "load_config"]

CRITERIA = ("residual", "increment", "average")
PRECONDITIONERS = ("ilu", "jacobi", "direct")


def _check_preconditioners(instance, attribute, value):
    if not value:
        raise ConfigurationError("At least one preconditioner is required.")
    for name in value:
        if name not in PRECONDITIONERS:
            raise ConfigurationError(
                f"Unknown preconditioner '{name}'. Choose from {PRECONDITIONERS}."
            )


@attrs.frozen
class NewtonOptions:
    """Newton-Raphson iteration controls."""

    tolerance: float = attrs.field(default=1e-4, validator=attrs.validators.gt(0.0))
    """Convergence threshold on the selected metric."""
    max_iterations: int = attrs.field(default=20, validator=attrs.validators.ge(1))
    """Iteration cap. Reaching it marks the step as exhausted (recoverable)."""
    criterion: str = attrs.field(default="residual", validator=attrs.validators.in_(CRITERIA))
    """
    Convergence metric.

    'residual'  -> max |R| after the update
    'increment' -> max |dx| of the last update
    'average'   -> change of the mean of the first field between iterations
    """
    preconditioners: typing.Tuple[str, ...] = attrs.field(
        default=("ilu", "direct"), converter=tuple, validator=_check_preconditioners
    )
    """Preconditioners tried in order when a linear solve fails."""
    damping: float = attrs.field(
        default=1.0,
        validator=attrs.validators.and_(attrs.validators.gt(0.0), attrs.validators.le(1.0)),
    )
    """Fraction of the Newton increment applied each iteration."""
    max_clamps: int = attrs.field(default=3, validator=attrs.validators.ge(1))
    """A cell clamped in more consecutive iterations than this fails the step."""


@attrs.frozen
class TimeStepOptions:
    """Adaptive step-size limits and heuristic constants."""

    ht: float = attrs.field(default=0.01, validator=attrs.validators.gt(0.0))
    ht_min: float = attrs.field(default=0.001, validator=attrs.validators.gt(0.0))
    ht_max: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))
    growth: float = attrs.field(default=1.5, validator=attrs.validators.gt(1.0))
    """Factor applied on fast convergence (and its inverse on slow convergence)."""
    iteration_threshold: int = attrs.field(default=6, validator=attrs.validators.ge(1))
    """Newton iteration count separating 'fast' from 'slow' steps."""

    def __attrs_post_init__(self):
        if 2.0 * self.ht_min > self.ht_max:
            raise ConfigurationError(
                f"ht_max ({self.ht_max}) must be at least twice ht_min ({self.ht_min})."
            )
        if not (self.ht_min <= self.ht <= self.ht_max):
            raise ConfigurationError(
                f"Initial step {self.ht} outside [{self.ht_min}, {self.ht_max}]."
            )


@attrs.frozen
class SimulationConfig:
    """Top level run configuration."""

    newton: NewtonOptions = attrs.field(factory=NewtonOptions)
    timestep: TimeStepOptions = attrs.field(factory=TimeStepOptions)
    workers: int = attrs.field(default=1, validator=attrs.validators.ge(1))
    """Threads used for the per-cell local assembly pass."""
    height: float = attrs.field(default=1.0, validator=attrs.validators.gt(0.0))
    """Formation thickness used to turn triangle areas into volumes."""

    @classmethod
    def from_dict(cls, data):
        """Builds a config from nested dicts, e.g. parsed JSON."""
        data = dict(data)
        try:
            newton = NewtonOptions(**data.pop("newton", {}))
            timestep = TimeStepOptions(**data.pop("timestep", {}))
            return cls(newton=newton, timestep=timestep, **data)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_config(path):
    """Reads a SimulationConfig from a JSON file."""
    with open(path, "r") as f:
        return SimulationConfig.from_dict(json.load(f))
