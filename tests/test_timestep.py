import pytest

from fraccore import TimeStepOptions
from fraccore.errors import ConfigurationError, NonConvergenceError
from fracfvm import BoundaryMode, Period, TimeStepController, WellControls
from fracmesh import WellLink


def _links(*lengths):
    return [WellLink(i, 0, L, 0.1) for i, L in enumerate(lengths)]


def test_period_needs_exactly_one_control():
    with pytest.raises(ConfigurationError):
        Period(1.0)
    with pytest.raises(ConfigurationError):
        Period(1.0, rate=1.0, pwf=2.0)
    assert Period(1.0, rate=1.0).mode is BoundaryMode.RATE
    assert Period(1.0, pwf=2.0).mode is BoundaryMode.BHP


def test_step_limits_are_validated():
    with pytest.raises(ConfigurationError):
        TimeStepOptions(ht=0.7, ht_min=0.6, ht_max=1.0)
    with pytest.raises(ConfigurationError):
        TimeStepOptions(ht=2.0, ht_min=0.1, ht_max=1.0)


def test_schedule_is_validated():
    with pytest.raises(ConfigurationError):
        TimeStepController([Period(0.2, rate=1.0), Period(0.1, rate=1.0)])
    with pytest.raises(ConfigurationError):
        TimeStepController([Period(0.1, rate=1.0), Period(0.1005, rate=1.0)])
    with pytest.raises(ConfigurationError):
        TimeStepController([])


def test_steps_never_pass_the_period_end():
    opts = TimeStepOptions(ht=0.04, ht_min=0.001, ht_max=1.0)
    ctl = TimeStepController([Period(0.05, rate=1.0)], opts)
    assert ctl.begin_step() == pytest.approx(0.04)
    ctl.accept(2)
    assert ctl.ht == pytest.approx(0.06)
    assert ctl.begin_step() == pytest.approx(0.01)
    ctl.accept(2)
    assert ctl.time == 0.05
    assert ctl.finished


def test_short_remainder_is_merged_into_the_step():
    opts = TimeStepOptions(ht=0.1, ht_min=0.001, ht_max=1.0)
    ctl = TimeStepController([Period(0.1005, rate=1.0)], opts)
    assert ctl.begin_step() == pytest.approx(0.1005)


def test_short_remainder_is_split_when_merge_exceeds_ht_max():
    opts = TimeStepOptions(ht=1.0, ht_min=0.01, ht_max=1.0)
    ctl = TimeStepController([Period(1.005, rate=1.0)], opts)
    assert ctl.begin_step() == pytest.approx(0.995)
    ctl.accept(1)
    assert ctl.begin_step() == pytest.approx(0.01)


def test_step_size_adapts_to_newton_effort():
    opts = TimeStepOptions(ht=0.1, ht_min=0.01, ht_max=0.2)
    ctl = TimeStepController([Period(100.0, rate=1.0)], opts)

    ctl.begin_step()
    ctl.accept(6)
    assert ctl.ht == pytest.approx(0.1)

    ctl.begin_step()
    ctl.accept(2)
    assert ctl.ht == pytest.approx(0.15)

    ctl.begin_step()
    ctl.accept(2)
    assert ctl.ht == pytest.approx(0.2)

    ctl.begin_step()
    ctl.accept(12)
    assert ctl.ht == pytest.approx(0.2 / 1.5)
    assert opts.ht_min <= ctl.ht <= opts.ht_max


def test_reject_halves_then_fails_at_ht_min():
    opts = TimeStepOptions(ht=0.04, ht_min=0.01, ht_max=1.0)
    ctl = TimeStepController([Period(1.0, rate=1.0)], opts)
    ctl.begin_step()
    ctl.reject("slow")
    assert ctl.ht == pytest.approx(0.02)
    assert ctl.time == 0.0
    ctl.begin_step()
    ctl.reject("slow")
    assert ctl.ht == pytest.approx(0.01)
    ctl.begin_step()
    with pytest.raises(NonConvergenceError) as info:
        ctl.reject("slow", cell=7)
    err = info.value
    assert err.period == 0
    assert err.time == 0.0
    assert err.cell == 7
    assert "slow" in str(err)


def _advance_to_next_period(ctl):
    start = ctl.period_index
    while ctl.period_index == start:
        ctl.begin_step()
        if ctl.period_index == start:
            ctl.accept(1)


def test_period_transitions_redistribute_rates():
    opts = TimeStepOptions(ht=0.01, ht_min=0.001, ht_max=0.05)
    schedule = [
        Period(0.1, rate=1.0),
        Period(0.2, rate=2.0),
        Period(0.3, pwf=0.5),
        Period(0.4, rate=1.0),
    ]
    ctl = TimeStepController(schedule, opts, _links(1.0, 3.0))

    c = ctl.controls
    assert c.mode is BoundaryMode.RATE
    assert c.q_sum == 1.0
    assert c.rates == pytest.approx((0.25, 0.75))

    _advance_to_next_period(ctl)
    assert ctl.period_index == 1
    assert ctl.time == pytest.approx(0.1)
    assert ctl.ht == opts.ht_min
    assert ctl.controls.rates == pytest.approx((0.5, 1.5))

    _advance_to_next_period(ctl)
    c = ctl.controls
    assert c.mode is BoundaryMode.BHP
    assert c.pwf == 0.5
    assert c.q_sum == 0.0
    assert c.rates == (0.0, 0.0)

    _advance_to_next_period(ctl)
    assert ctl.controls.rates == pytest.approx((0.25, 0.75))


def test_rescaling_keeps_custom_split():
    ctl = TimeStepController([Period(0.1, rate=1.0), Period(0.2, rate=3.0)], links=_links(1.0, 1.0))
    ctl.controls = WellControls(BoundaryMode.RATE, 1.0, None, (0.9, 0.1))
    ctl.set_period(1)
    assert ctl.controls.rates == pytest.approx((2.7, 0.3))


def test_zero_rate_period_restarts_proportional_split():
    ctl = TimeStepController([Period(0.1, rate=0.0), Period(0.2, rate=2.0)], links=_links(1.0, 1.0))
    assert ctl.controls.rates == (0.0, 0.0)
    ctl.set_period(1)
    assert ctl.controls.rates == pytest.approx((1.0, 1.0))


def test_retry_near_period_end_never_regrows_the_step():
    opts = TimeStepOptions(ht=0.0015, ht_min=0.001, ht_max=0.01)
    ctl = TimeStepController([Period(0.0015, rate=1.0)], opts)
    tried = []
    with pytest.raises(NonConvergenceError):
        for _ in range(50):
            tried.append(ctl.begin_step())
            ctl.reject("slow")
    assert tried == pytest.approx([0.0015, 0.001])


def test_retry_leaves_short_remainder_for_the_next_step():
    opts = TimeStepOptions(ht=0.0015, ht_min=0.001, ht_max=0.01)
    ctl = TimeStepController([Period(0.0015, rate=1.0)], opts)
    ctl.begin_step()
    ctl.reject("slow")
    assert ctl.begin_step() == pytest.approx(0.001)
    ctl.accept(1)
    assert ctl.begin_step() == pytest.approx(0.0005)
    ctl.accept(1)
    assert ctl.finished
