"""
fracfvm/timestep.py
-------------------
Production schedule and adaptive time stepping.

A schedule is a list of periods, each ending at `end_time` and imposing
either a total well rate or a bottom-hole pressure. The controller owns the
clock: which period is active, the step size, and the well controls handed
to the flow model.
"""
import logging
import typing
from enum import Enum

import attrs
import numpy as np

from fraccore.config import TimeStepOptions
from fraccore.errors import ConfigurationError, NonConvergenceError

logger = logging.getLogger(__name__)

# Times closer than this are the same instant
TIME_EPS = 1e-12


class BoundaryMode(Enum):
    RATE = 1
    BHP = 2


def _one_control(instance, attribute, value):
    if (instance.rate is None) == (instance.pwf is None):
        raise ConfigurationError("A period needs exactly one of 'rate' or 'pwf'.")


@attrs.frozen
class Period:
    end_time: float = attrs.field(converter=float)
    rate: typing.Optional[float] = attrs.field(default=None, validator=_one_control)
    pwf: typing.Optional[float] = None

    @property
    def mode(self):
        return BoundaryMode.RATE if self.rate is not None else BoundaryMode.BHP

    @property
    def value(self):
        return self.rate if self.rate is not None else self.pwf


@attrs.frozen
class WellControls:
    """Boundary values of the well for the active period."""

    mode: BoundaryMode
    q_sum: float = 0.0
    pwf: typing.Optional[float] = None
    rates: typing.Tuple[float, ...] = ()
    """Share of q_sum per well link, in mesh.well_links order."""


class TimeStepController:
    def __init__(self, periods, options=None, links=()):
        """
        Args:
            periods (list of Period): Schedule, strictly increasing end times.
            options (TimeStepOptions): Step limits; defaults if None.
            links (list of WellLink): Used to split rates across the well faces.

        Raises:
            ConfigurationError: empty schedule, non-increasing end times, or a
                period shorter than ht_min.
        """
        self.options = options if options is not None else TimeStepOptions()
        self.periods = list(periods)
        self.lengths = np.array([link.face_length for link in links], dtype=np.float64)
        self._validate()

        self.period_index = 0
        self.time = 0.0
        self.ht = self.options.ht
        self.step = None
        self.controls = None
        self._retrying = False
        self.set_period(0)

    def _validate(self):
        if not self.periods:
            raise ConfigurationError("The schedule has no periods.")
        start = 0.0
        for i, period in enumerate(self.periods):
            if period.end_time - start < self.options.ht_min:
                raise ConfigurationError(
                    f"Period {i} ends at {period.end_time}; periods must be increasing "
                    f"and at least ht_min = {self.options.ht_min} long."
                )
            start = period.end_time

    @property
    def period(self):
        return self.periods[self.period_index]

    @property
    def finished(self):
        last = len(self.periods) - 1
        return self.period_index == last and self.time >= self.periods[last].end_time - TIME_EPS

    def set_period(self, index):
        """ Switches the well controls to period `index`. """
        period = self.periods[index]
        prev = self.controls

        if period.mode is BoundaryMode.RATE:
            q = float(period.rate)
            fresh = prev is None or prev.mode is BoundaryMode.BHP or abs(prev.q_sum) < TIME_EPS
            if fresh:
                total = self.lengths.sum()
                shares = q * self.lengths / total if total > 0 else np.zeros(0)
            else:
                shares = np.asarray(prev.rates) * (q / prev.q_sum)
            self.controls = WellControls(BoundaryMode.RATE, q, None, tuple(float(s) for s in shares))
        else:
            self.controls = WellControls(BoundaryMode.BHP, 0.0, float(period.pwf),
                                         tuple(0.0 for _ in self.lengths))

        self.period_index = index
        logger.info("Period %d starts at t = %.6g: %s = %.6g",
                    index, self.time, period.mode.name, period.value)
        return self.controls

    def begin_step(self):
        """
        Picks the next step size. Advances the period when its end has been
        reached, and never steps past a period end. A retry after reject()
        never merges the leftover, so the retried step is always shorter.
        """
        opts = self.options
        end = self.period.end_time
        if self.time >= end - TIME_EPS and self.period_index < len(self.periods) - 1:
            self.ht = opts.ht_min
            self.set_period(self.period_index + 1)
            end = self.period.end_time

        remaining = end - self.time
        step = min(self.ht, remaining)

        # Never leave a sliver shorter than ht_min before the period end
        leftover = remaining - step
        if TIME_EPS < leftover < opts.ht_min and not self._retrying:
            step = remaining if remaining <= opts.ht_max else remaining - opts.ht_min

        self.step = step
        self.ht = step
        return step

    def accept(self, iterations):
        """ Advances time by the last step and adapts ht to the Newton effort. """
        opts = self.options
        self._retrying = False
        self.time += self.step
        end = self.period.end_time
        if abs(self.time - end) < TIME_EPS:
            self.time = end

        if iterations < opts.iteration_threshold and self.ht < opts.ht_max:
            self.ht = min(self.ht * opts.growth, opts.ht_max)
        elif iterations > opts.iteration_threshold:
            self.ht = max(self.ht / opts.growth, opts.ht_min)

    def reject(self, reason, cell=None):
        """
        Halves the step for a retry of the same interval.

        Raises:
            NonConvergenceError: the failed step was already at ht_min.
        """
        opts = self.options
        tried = self.step if self.step is not None else self.ht
        if tried <= opts.ht_min * (1.0 + 1e-9):
            raise NonConvergenceError(self.period_index, self.time, reason, cell)
        self.ht = max(0.5 * tried, opts.ht_min)
        self._retrying = True
        logger.warning("Step rejected at t = %.6g (%s); retrying with ht = %.6g",
                       self.time, reason, self.ht)

    def __repr__(self):
        return (f"TimeStepController(period={self.period_index}, t={self.time:.6g}, "
                f"ht={self.ht:.6g})")
