from delay_element import DelayElement, Function
from event_sim import Wire, RING

# Ring topologies, N stages, stage outputs r0 .. r(N-1).
#
# Plain:
#
#   r0 = NOR2(r[N-1], start_pulse)
#   ri = INV(NAND2(hold, r[i-1]))            i = 1 .. N-1
#
#   One inversion per pass (stage 0), period 2 * (nor2 + (N-1)*(nand2+inv)).
#
# Interleaved, every stage is fed by both of its predecessors:
#
#   vi = NAND2(hold, r[i-2])                 +2 link, inverted
#   ri = NAND2(r[i-1], vi)                   +1 link, i = 2 .. N-1
#
#   Node polarity alternates along the ring. v[i] carries the same edge as
#   r[i-1] and reaches the output gate at the same instant, so each stage
#   switches one nand2 after its neighbour instead of nand2 + inv.
#
#   The wraparound taps N-2 -> 0, N-1 -> 0 and N-1 -> 1 cross the start
#   point. Stage 0 takes both through gates enabled by en = INV(start_pulse),
#   and the N-1 -> 1 tap is padded with inverters to arrive together with r0
#   (when inv == nand2):
#
#     N even, taps twisted (one extra inversion closes the ring):
#       u0 = NAND2(en, r[N-1])
#       v0 = NAND2(en, NAND2(hold, r[N-2]))
#       v1 = NAND2(hold, INV(r[N-1]))
#     N odd:
#       u0 = NAND2(en, NAND2(hold, r[N-1]))
#       v0 = NAND2(en, INV(NAND2(hold, r[N-2])))
#       v1 = NAND2(hold, INV(INV(r[N-1])))
#     r0 = NAND2(u0, v0)
#     r1 = NAND2(r0, v1)
#
#   An active start pulse pins r0 low, a low hold pins it to en. Either way
#   every stage behind r0 is fixed (hold also opens the N-1 -> 1 tap) and the
#   ring rests at alternating levels.


class Gate:
    def __init__(self, function, inputs, output, fast=None):
        self.function = function
        self.inputs = tuple(inputs)
        self.output = output
        self.fast = fast

    def __repr__(self):
        return "Gate({}, {} -> {})".format(
            self.function.name, ", ".join(self.inputs), self.output)


class StageDescriptor:
    """One ring stage: its gates, the stage it is timed from, its fan-out.

    ``path`` lists the gate functions between ``source`` and the stage
    output; ``inversions`` counts the inverting ones. ``fanout`` lists every
    stage that reads this stage's output, in index order.
    """

    def __init__(self, index, gates, source, path):
        self.index = index
        self.gates = gates
        self.source = source
        self.path = path
        self.fanout = []

    def __repr__(self):
        return "StageDescriptor({}, source={}, fanout={})".format(
            self.index, self.source, self.fanout)

    @property
    def output(self):
        return self.gates[-1].output

    @property
    def inputs(self):
        """Ring stages read by this stage."""
        return sorted({int(name[1:]) for gate in self.gates
                       for name in gate.inputs if name.startswith("r")})

    @property
    def inversions(self):
        # every gate in the function set inverts
        return len(self.path)

    def delay(self, timing):
        return sum(timing.of(f) for f in self.path)


def _r(i):
    return "r{}".format(i)


def _held_stage(index, source):
    n = "n{}".format(index)
    gates = [
        Gate(Function.NAND2, ("hold", _r(source)), n, fast=0),
        Gate(Function.INV, (n,), _r(index)),
    ]
    return StageDescriptor(index, gates, source,
                           [Function.NAND2, Function.INV])


def _inverters(name, source, count):
    gates = []
    for k in range(count):
        out = name if k == 0 else "{}_{}".format(name, k)
        gates.append(Gate(Function.INV, (source,), out))
        source = out
    return gates, source


def _interleaved_stage(index):
    v = "v{}".format(index)
    gates = [
        Gate(Function.NAND2, ("hold", _r(index - 2)), v, fast=0),
        Gate(Function.NAND2, (_r(index - 1), v), _r(index)),
    ]
    return StageDescriptor(index, gates, index - 1, [Function.NAND2])


def _interleaved_wrap(n):
    pad = n % 2
    gates = [Gate(Function.INV, ("start_pulse",), "en")]
    # both stage 0 taps enter through a hold-gated inverter
    gates.append(Gate(Function.NAND2, ("hold", _r(n - 2)), "w0", fast=0))
    inv, v_src = _inverters("w0_1", "w0", pad)
    gates += inv
    if pad:
        gates.append(Gate(Function.NAND2, ("hold", _r(n - 1)), "y0", fast=0))
        u_src = "y0"
    else:
        u_src = _r(n - 1)
    gates += [
        Gate(Function.NAND2, ("en", u_src), "u0", fast=0),
        Gate(Function.NAND2, ("en", v_src), "v0", fast=0),
        Gate(Function.NAND2, ("u0", "v0"), _r(0)),
    ]
    stage0 = StageDescriptor(
        0, gates, n - 1,
        [Function.NAND2] * pad + [Function.NAND2, Function.NAND2])

    gates, v1_src = _inverters("w1", _r(n - 1), 1 + pad)
    gates += [
        Gate(Function.NAND2, ("hold", v1_src), "v1", fast=0),
        Gate(Function.NAND2, (_r(0), "v1"), _r(1)),
    ]
    stage1 = StageDescriptor(1, gates, 0, [Function.NAND2])
    return [stage0, stage1]


class RingTopology:
    def __init__(self, n, interleaved, stages):
        self.n = n
        self.interleaved = interleaved
        self.stages = stages
        for stage in stages:
            for src in stage.inputs:
                stages[src].fanout.append(stage.index)
        for stage in stages:
            stage.fanout.sort()

    @classmethod
    def build(cls, n, interleaved=True):
        if n < 3:
            raise ValueError("ring needs at least 3 stages, got {}".format(n))

        if not interleaved:
            stages = [StageDescriptor(
                0, [Gate(Function.NOR2, (_r(n - 1), "start_pulse"), _r(0),
                         fast=1)],
                n - 1, [Function.NOR2])]
            stages += [_held_stage(i, i - 1) for i in range(1, n)]
            return cls(n, False, stages)

        stages = _interleaved_wrap(n)
        stages += [_interleaved_stage(i) for i in range(2, n)]
        return cls(n, True, stages)

    def __len__(self):
        return self.n

    def loops(self):
        """Loops formed by following each stage back to its source.

        Each loop is listed in propagation order, starting from its lowest
        stage index.
        """
        seen = set()
        loops = []
        for first in range(self.n):
            if first in seen:
                continue
            loop = [first]
            seen.add(first)
            nxt = self._sink(first)
            while nxt != first:
                loop.append(nxt)
                seen.add(nxt)
                nxt = self._sink(nxt)
            loops.append(loop)
        return loops

    def _sink(self, index):
        for stage in self.stages:
            if stage.source == index:
                return stage.index
        raise ValueError("stage {} drives no timing path".format(index))

    def inversion_parity(self):
        """True when every timing loop inverts an odd number of times."""
        for loop in self.loops():
            total = sum(self.stages[i].inversions for i in loop)
            if total % 2 != 1:
                return False
        return True

    def half_period(self, timing):
        return sum(self.stages[i].delay(timing) for i in self.loops()[0])

    def period(self, timing):
        return 2 * self.half_period(timing)


class RingOscillator:
    """Event-driven instance of a ``RingTopology``.

    ``hold`` is the active-low run/hold control (delay_stop_n) and gates
    every hold-capable stage through its NAND2 fast input. The ring starts
    in the state it settles to with the start pulse active: r0 low (plain
    ring: every stage low). Until a start pulse ends, nothing moves.
    """

    def __init__(self, sim, topology, timing, hold, start_pulse, trace=False):
        self.sim = sim
        self.topology = topology
        self.timing = timing
        self.wires = {"hold": hold, "start_pulse": start_pulse}
        self.elements = []

        for stage in topology.stages:
            for gate in stage.gates:
                self.wires[gate.output] = Wire(
                    sim, gate.output, priority=RING,
                    trace=trace and gate.output.startswith("r"))

        self.r = [self.wires[_r(i)] for i in range(topology.n)]

        for stage in topology.stages:
            for gate in stage.gates:
                self.elements.append(DelayElement(
                    sim, gate.function,
                    [self.wires[name] for name in gate.inputs],
                    self.wires[gate.output],
                    timing.of(gate.function),
                    fast=gate.fast,
                    priority=RING))

        self._reset_state()

    def _reset_state(self):
        start_pulse = self.wires["start_pulse"]
        active = start_pulse.value
        start_pulse.value = True
        for _ in range(len(self.elements)):
            before = [e.output.value for e in self.elements]
            for element in self.elements:
                element.settle()
            if [e.output.value for e in self.elements] == before:
                break
        start_pulse.value = active

    @property
    def n(self):
        return self.topology.n

    @property
    def stage0(self):
        return self.r[0]

    def vector(self):
        return tuple(w.value for w in self.r)

    def bits(self):
        return sum(1 << i for i, w in enumerate(self.r) if w.value)

    def period(self):
        return self.topology.period(self.timing)

    def changed_at(self, t):
        return any(w.last_change == t for w in self.r)
