import pytest

from delay_element import Timing
from tdc import Tdc, TdcConfigError, DebugTaps


@pytest.mark.parametrize("kwargs", [
    {"n_delay": 2},
    {"n_delay": -1},
    {"n_ctr": 0},
    {"n_start_del": 0},
    {"n_stop_del": 0},
])
def test_configuration_errors(kwargs):
    with pytest.raises(TdcConfigError):
        Tdc(**kwargs)


def test_config_error_is_value_error():
    assert issubclass(TdcConfigError, ValueError)


def test_defaults():
    tdc = Tdc()
    assert tdc.n_delay == 64
    assert tdc.n_ctr == 8
    assert tdc.n_start_del == 16
    assert tdc.n_stop_del == 8
    assert tdc.interleaved
    assert tdc.debug is None
    assert tdc.period == 65
    assert tdc.snapshot is None
    assert tdc.result_ring == 0
    assert tdc.result_ctr == 0


def test_debug_taps():
    tdc = Tdc(n_delay=4, n_ctr=2, interleaved=False, debug=True)
    assert tdc.debug == DebugTaps(False, True, 0, 0)
    tdc.start(0)
    tdc.run_until(5)
    assert tdc.debug == DebugTaps(True, True, 0, 0)
    tdc.stop(100)
    tdc.run_until(102)
    taps = tdc.debug
    assert taps.delay_stop_n
    assert taps.ctr == 3
    assert taps.ring == tdc.ring.bits()
    tdc.run_until(120)
    assert not tdc.debug.delay_stop_n


def test_debug_has_no_effect_on_results():
    results = []
    for debug in (False, True):
        tdc = Tdc(n_delay=12, debug=debug)
        results.append(tdc.measure(3, 211.75))
    assert results[0] == results[1]


def test_reference_scenario():
    tdc = Tdc(n_delay=4, n_ctr=2, interleaved=False, trace=True)
    tdc.start(0)
    tdc.stop(100)
    tdc.run_until(130)

    assert tdc.start_pulse.transitions() == [(0, True), (16, False)]
    assert tdc.delay_stop_n.transitions() == [(108, False)]
    assert tdc.period == 8

    first_wrap = 17
    assert tdc.result_ctr == ((100 - first_wrap) // 8 + 1) % 4 == 3
    # phase at 100: stage 0 rose at 97, stages 1..3 followed one unit apart
    assert tdc.result_ring == 0b1111


def test_deterministic():
    snapshots = []
    for _ in range(2):
        tdc = Tdc(trace=True)
        tdc.pulse_start(3, 40)
        tdc.pulse_stop(517.25, 5)
        tdc.pulse_start(700, 40)
        tdc.pulse_stop(1333.5, 5)
        tdc.run_until(1500)
        snapshots.append(tdc.snapshots)
    assert snapshots[0] == snapshots[1]
    assert len(snapshots[0]) == 2


@pytest.mark.parametrize("interleaved", [False, True])
def test_minimum_ring(interleaved):
    tdc = Tdc(n_delay=3, n_ctr=2, interleaved=interleaved)
    snapshot = tdc.measure(0, 61.5)
    assert len(snapshot.ring) == 3
    assert 0 <= snapshot.counter < 4
    assert tdc.period == (5 if interleaved else 6)


def test_counter_overflow_is_silent():
    tdc = Tdc(n_delay=3, n_ctr=3, interleaved=False)
    snapshot = tdc.measure(0, 1000.5)
    # stage 0 rises at 17 + 6k, 164 times up to 1000.5
    assert snapshot.counter == 164 % 8 == 4
    assert not snapshot.race


def test_measure_rejects_reversed_edges():
    with pytest.raises(ValueError):
        Tdc(n_delay=4).measure(10, 5)


def test_custom_timing_changes_period():
    tdc = Tdc(n_delay=4, interleaved=False,
              timing=Timing(inv=1.0, nand2=1.0, nor2=1.0))
    assert tdc.period == 2 * (1 + 3 * 2)
