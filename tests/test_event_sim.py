import pytest

from event_sim import Scheduler, SchedulerError, Wire, HOLD, RING, COUNTER, CAPTURE


def test_orders_by_time_then_priority_then_insertion():
    sim = Scheduler()
    seen = []
    sim.schedule(2, RING, lambda: seen.append("ring@2"))
    sim.schedule(1, CAPTURE, lambda: seen.append("capture@1"))
    sim.schedule(1, COUNTER, lambda: seen.append("counter@1"))
    sim.schedule(1, RING, lambda: seen.append("ring@1a"))
    sim.schedule(1, HOLD, lambda: seen.append("hold@1"))
    sim.schedule(1, RING, lambda: seen.append("ring@1b"))
    sim.run_until(5)
    assert seen == ["hold@1", "ring@1a", "ring@1b", "counter@1",
                    "capture@1", "ring@2"]
    assert sim.now == 5


def test_same_instant_events_scheduled_while_running():
    sim = Scheduler()
    seen = []

    def first():
        seen.append("first")
        sim.schedule(sim.now, CAPTURE, lambda: seen.append("late capture"))
        sim.schedule(sim.now, RING, lambda: seen.append("late ring"))

    sim.schedule(3, HOLD, first)
    sim.schedule(3, COUNTER, lambda: seen.append("counter"))
    sim.run_until(3)
    assert seen == ["first", "late ring", "counter", "late capture"]


def test_run_until_leaves_future_events():
    sim = Scheduler()
    seen = []
    sim.schedule(1, RING, lambda: seen.append(1))
    sim.schedule(4, RING, lambda: seen.append(4))
    sim.run_until(2)
    assert seen == [1]
    assert sim.pending == 1
    assert sim.peek() == 4


def test_rejects_past_events():
    sim = Scheduler()
    sim.run_until(10)
    with pytest.raises(SchedulerError):
        sim.schedule(5, RING, lambda: None)
    with pytest.raises(SchedulerError):
        sim.run_until(9)


def test_event_limit():
    sim = Scheduler(max_events=3)

    def again():
        sim.schedule(sim.now + 1, RING, again)

    sim.schedule(0, RING, again)
    with pytest.raises(SchedulerError):
        sim.run_until(10)


def test_wire_ignores_non_edges():
    sim = Scheduler()
    w = Wire(sim, "w", trace=True)
    edges = []
    w.listen(lambda wire, value: edges.append((sim.now, value)))
    w.drive(1, False)
    w.drive(2, True)
    w.drive(3, True)
    w.drive(4, False)
    sim.run_until(10)
    assert edges == [(2, True), (4, False)]
    assert w.transitions() == [(2, True), (4, False)]
    assert w.last_change == 4


def test_untraced_wire_has_no_transitions():
    sim = Scheduler()
    w = Wire(sim, "w")
    with pytest.raises(SchedulerError):
        w.transitions()


def test_event_limit_keeps_the_refused_event():
    sim = Scheduler(max_events=2)
    seen = []
    for t in (1, 2, 3):
        sim.schedule(t, RING, lambda t=t: seen.append(t))
    with pytest.raises(SchedulerError):
        sim.run_until(10)
    assert seen == [1, 2]
    assert sim.processed == 2
    assert sim.pending == 1
    assert sim.peek() == 3
    sim.max_events = None
    sim.run_until(10)
    assert seen == [1, 2, 3]
