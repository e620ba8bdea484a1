import logging

from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out
from amaranth.sim import *

from event_sim import CAPTURE

logger = logging.getLogger(__name__)


class CaptureSnapshot:
    """Ring phase vector and wrap count read at one logical instant.

    ``race`` is set when a ring stage or the counter moved at exactly the
    capture time; the values are then the post-update ones.
    """

    def __init__(self, ring, counter, time, race=False):
        self.ring = tuple(bool(b) for b in ring)
        self.counter = counter
        self.time = time
        self.race = race

    def __repr__(self):
        return "CaptureSnapshot(ring={}, counter={}, time={}{})".format(
            "".join("1" if b else "0" for b in self.ring), self.counter,
            self.time, ", race" if self.race else "")

    def __eq__(self, other):
        if not isinstance(other, CaptureSnapshot):
            return NotImplemented
        return (self.ring, self.counter, self.time, self.race) == \
            (other.ring, other.counter, other.time, other.race)

    def __hash__(self):
        return hash((self.ring, self.counter, self.time, self.race))

    def same_result(self, other):
        return self.ring == other.ring and self.counter == other.counter

    def ring_bits(self):
        return sum(1 << i for i, b in enumerate(self.ring) if b)


class CaptureUnit:
    """Snapshots ring and counter on each rising edge of the raw stop input.

    The read is a ``CAPTURE`` event, the last to run at its timestamp, so
    it always sees the hold line, ring and counter after their updates for
    that instant.

    Only the latest snapshot is kept unless ``history`` is set, in which
    case ``snapshots`` lists every capture in order.
    """

    def __init__(self, sim, ring, counter, stop, history=False):
        self.sim = sim
        self.ring = ring
        self.counter = counter
        self.snapshot = None
        self.snapshots = [] if history else None
        self.races = 0

        stop.listen(self._on_stop)

    def _on_stop(self, wire, value):
        if value:
            self.sim.schedule(self.sim.now, CAPTURE, self.capture)

    def capture(self):
        now = self.sim.now
        race = self.ring.changed_at(now) or self.counter.clocked_at == now
        snapshot = CaptureSnapshot(self.ring.vector(), self.counter.value,
                                   now, race=race)
        if race:
            self.races += 1
            logger.warning("capture at %s coincides with a ring/counter "
                           "transition, using post-update values: %r",
                           now, snapshot)
        self.snapshot = snapshot
        if self.snapshots is not None:
            self.snapshots.append(snapshot)
        return snapshot


class CaptureRegisterRtl(wiring.Component):
    """Synchronous twin of ``CaptureUnit``: latches on every ``sync`` edge."""

    def __init__(self, n_delay=64, n_ctr=8):
        self.n_delay = n_delay
        self.n_ctr = n_ctr
        super().__init__({
            "ring": In(n_delay),
            "ctr": In(n_ctr),
            "result_ring": Out(n_delay),
            "result_ctr": Out(n_ctr),
        })

    def elaborate(self, platform):
        m = Module()

        m.d.sync += [
            self.result_ring.eq(self.ring),
            self.result_ctr.eq(self.ctr)
        ]

        return m


def replay_rtl(snapshots, n_delay, n_ctr):
    """Latch each snapshot's values through ``CaptureRegisterRtl``.

    Returns ``(result_ring, result_ctr)`` after every edge.
    """
    dut = CaptureRegisterRtl(n_delay=n_delay, n_ctr=n_ctr)
    results = []

    async def bench(ctx):
        for snapshot in snapshots:
            ctx.set(dut.ring, snapshot.ring_bits())
            ctx.set(dut.ctr, snapshot.counter)
            await ctx.tick()
            results.append((ctx.get(dut.result_ring),
                            ctx.get(dut.result_ctr)))

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(bench)
    sim.run()
    return results


if __name__ == "__main__":
    dut = CaptureRegisterRtl(n_delay=4, n_ctr=2)
    sim = Simulator(dut)

    async def bench(ctx):
        ctx.set(dut.ring, 0b0111)
        ctx.set(dut.ctr, 3)
        assert ctx.get(dut.result_ring) == 0
        await ctx.tick()
        assert ctx.get(dut.result_ring) == 0b0111
        assert ctx.get(dut.result_ctr) == 3
        ctx.set(dut.ring, 0b0001)
        assert ctx.get(dut.result_ring) == 0b0111

    sim.add_clock(1e-6)
    sim.add_testbench(bench)
    with sim.write_vcd("capture.vcd", "capture.gtkw"):
        sim.run()
