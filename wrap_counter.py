from amaranth import *
from amaranth.lib import wiring
from amaranth.lib.wiring import In, Out
from amaranth.sim import *

from event_sim import COUNTER

# Counts ring wraps. Clocked by the rising edges of
#   trigger = ring_start | start_pulse
# At every clock:
#   start_pulse high or ring_start low  -> count = 0
#   otherwise                           -> count = count + 1 (mod 2**bits)
# Overflow wraps silently.


class WrapCounter:
    def __init__(self, sim, bits, ring_start, start_pulse, history=False):
        if bits < 1:
            raise ValueError("counter needs at least one bit")
        self.sim = sim
        self.bits = bits
        self.ring_start = ring_start
        self.start_pulse = start_pulse

        self.value = 0
        self.clocked_at = None
        self.history = [] if history else None

        ring_start.listen(self._on_edge)
        start_pulse.listen(self._on_edge)

    @property
    def modulus(self):
        return 1 << self.bits

    def _on_edge(self, wire, value):
        if value:
            self.sim.schedule(self.sim.now, COUNTER, self.clock)

    def clock(self):
        ring_start = self.ring_start.value
        start = self.start_pulse.value
        if start or not ring_start:
            self.value = 0
        else:
            self.value = (self.value + 1) % self.modulus
        self.clocked_at = self.sim.now
        if self.history is not None:
            self.history.append((self.sim.now, ring_start, start, self.value))


class WrapCounterRtl(wiring.Component):
    """Synchronous twin of ``WrapCounter`` for co-simulation.

    One ``sync`` edge per trigger edge of the event model, with
    ``ring_start`` and ``start`` holding the levels seen at that edge.
    """

    def __init__(self, bits=8):
        self.bits = bits
        super().__init__({
            "ring_start": In(1),
            "start": In(1),
            "count": Out(bits),
        })

    def elaborate(self, platform):
        m = Module()

        with m.If((self.start == 1) | (self.ring_start == 0)):
            m.d.sync += self.count.eq(0)
        with m.Else():
            m.d.sync += self.count.eq(self.count + 1)

        return m


def replay_rtl(history, bits):
    """Run ``WrapCounterRtl`` over a ``WrapCounter`` history.

    Returns the counter values after every edge.
    """
    dut = WrapCounterRtl(bits=bits)
    values = []

    async def bench(ctx):
        for _, ring_start, start, _ in history:
            ctx.set(dut.ring_start, ring_start)
            ctx.set(dut.start, start)
            await ctx.tick()
            values.append(ctx.get(dut.count))

    sim = Simulator(dut)
    sim.add_clock(1e-6)
    sim.add_testbench(bench)
    sim.run()
    return values


if __name__ == "__main__":
    dut = WrapCounterRtl(bits=2)
    sim = Simulator(dut)

    async def bench(ctx):
        ctx.set(dut.start, 1)
        await ctx.tick()
        assert ctx.get(dut.count) == 0
        ctx.set(dut.start, 0)
        ctx.set(dut.ring_start, 1)
        for i in range(6):
            await ctx.tick()
            assert ctx.get(dut.count) == (i + 1) % 4
        ctx.set(dut.ring_start, 0)
        await ctx.tick()
        assert ctx.get(dut.count) == 0

    sim.add_clock(1e-6)
    sim.add_testbench(bench)
    with sim.write_vcd("wrap_counter.vcd", "wrap_counter.gtkw"):
        sim.run()
