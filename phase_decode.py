import logging

from tdc import Tdc

logger = logging.getLogger(__name__)


def _value_at(wire, t):
    value = wire.history[0][1]
    for when, v in wire.history:
        if when > t:
            break
        value = v
    return value


class PhaseTable:
    """Maps captured ring vectors to time.

    Built by free-running a fresh converter with the same configuration and
    recording every ring state of one steady-state period, keyed by its
    offset from the stage 0 rising edge that clocks the wrap counter.

    A snapshot decodes to

        launch + (counter - 1) * period + phase

    where ``launch`` is the delay from the start edge to the first wrap.
    The coarse range is 2**n_ctr periods; longer intervals alias. A decoded
    time is early by less than the gap to the next ring state, at most
    ``max_step``.
    """

    def __init__(self, phases, period, launch, n_ctr):
        self.phases = phases
        self.period = period
        self.launch = launch
        self.n_ctr = n_ctr

    def __len__(self):
        return len(self.phases)

    @classmethod
    def calibrate(cls, periods=3, **kwargs):
        kwargs["trace"] = True
        tdc = Tdc(**kwargs)
        period = tdc.period
        tdc.start(0)
        tdc.run_until(tdc.start_line.width + (periods + 2) * period)

        rises = [t for t, v in tdc.ring.stage0.transitions() if v]
        if len(rises) < periods:
            raise RuntimeError("ring did not oscillate during calibration")
        launch = rises[0]
        origin = rises[periods - 1]

        times = set()
        for wire in tdc.ring.r:
            for t, _ in wire.transitions(since=origin):
                if t < origin + period:
                    times.add(t)

        phases = {}
        for t in sorted(times):
            vector = tuple(_value_at(wire, t) for wire in tdc.ring.r)
            if vector in phases:
                logger.debug("ring state %r repeats at offset %s",
                             vector, t - origin)
                continue
            phases[vector] = t - origin

        logger.debug("calibrated %d phases, period %s, launch %s",
                     len(phases), period, launch)
        return cls(phases, period, launch, tdc.n_ctr)

    def steps(self):
        offsets = sorted(self.phases.values())
        gaps = [b - a for a, b in zip(offsets, offsets[1:])]
        gaps.append(self.period - offsets[-1] + offsets[0])
        return gaps

    @property
    def resolution(self):
        return min(self.steps())

    @property
    def max_step(self):
        return max(self.steps())

    def phase(self, snapshot):
        return self.phases[tuple(snapshot.ring)]

    def decode(self, snapshot):
        if snapshot.counter == 0:
            raise ValueError("no wrap counted, interval below launch delay")
        return (self.launch + (snapshot.counter - 1) * self.period
                + self.phase(snapshot))
