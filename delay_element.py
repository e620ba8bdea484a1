from enum import Enum

from event_sim import RING


class Function(Enum):
    INV = 1
    NAND2 = 2
    NOR2 = 3


ARITY = {
    Function.INV: 1,
    Function.NAND2: 2,
    Function.NOR2: 2,
}


def compute(function, values):
    if function == Function.INV:
        return not values[0]
    if function == Function.NAND2:
        return not (values[0] and values[1])
    if function == Function.NOR2:
        return not (values[0] or values[1])
    raise ValueError("unknown function {}".format(function))


class Timing:
    """Propagation delays per gate function.

    ``line`` is the delay of one element in an edge shaping line. The
    defaults give one time unit per ring stage (NOR2 for stage 0,
    NAND2 + INV for the others).
    """

    def __init__(self, inv=0.5, nand2=0.5, nor2=1.0, line=1.0):
        for name, value in (("inv", inv), ("nand2", nand2), ("nor2", nor2),
                            ("line", line)):
            if value <= 0:
                raise ValueError("{} delay must be positive".format(name))
        self.inv = inv
        self.nand2 = nand2
        self.nor2 = nor2
        self.line = line

    def __repr__(self):
        return "Timing(inv={}, nand2={}, nor2={}, line={})".format(
            self.inv, self.nand2, self.nor2, self.line)

    def of(self, function):
        return {
            Function.INV: self.inv,
            Function.NAND2: self.nand2,
            Function.NOR2: self.nor2,
        }[function]


class DelayElement:
    """A single gate with a fixed propagation delay.

    The output transitions ``delay`` after the input change that determines
    it. A change is only scheduled when the new value differs from the
    projected output, i.e. the last value already scheduled.

    For two-input gates ``fast`` names the input that is captured in the
    same event it changes in. Changes on any other input (both of them when
    ``fast`` is None) are evaluated in a zero-delay follow-up event, after
    every same-instant transition at this element's priority has landed.
    """

    def __init__(self, sim, function, inputs, output, delay, fast=None,
                 priority=RING, name=None):
        inputs = list(inputs)
        if len(inputs) != ARITY[function]:
            raise ValueError("{} takes {} inputs, got {}".format(
                function.name, ARITY[function], len(inputs)))
        if fast is not None and not 0 <= fast < len(inputs):
            raise ValueError("fast input index {} out of range".format(fast))
        if fast is not None and function == Function.INV:
            raise ValueError("INV has no fast input")
        self.sim = sim
        self.function = function
        self.inputs = inputs
        self.output = output
        self.delay = delay
        self.fast = fast
        self.priority = priority
        self.name = name or output.name
        self.projected = output.value

        for idx, wire in enumerate(inputs):
            if idx == fast or len(inputs) == 1:
                wire.listen(self._on_fast)
            else:
                wire.listen(self._on_slow)

    def __repr__(self):
        return "DelayElement({}, {})".format(self.function.name, self.name)

    def value(self):
        return compute(self.function, [w.value for w in self.inputs])

    def evaluate(self, at=None):
        if at is None:
            at = self.sim.now
        value = self.value()
        if value == self.projected:
            return None
        self.projected = value
        self.output.drive(at + self.delay, value)
        return (value, at + self.delay)

    def settle(self):
        """Set the output from the inputs without scheduling anything."""
        self.output.reset(self.value())
        self.projected = self.output.value

    def _on_fast(self, wire, value):
        self.evaluate()

    def _on_slow(self, wire, value):
        self.sim.schedule(self.sim.now, self.priority, self.evaluate)
