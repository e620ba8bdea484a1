from delay_element import DelayElement, Function
from event_sim import Wire, HOLD, RING

# Shaping lines:
#
#   start:  start_pulse  = i AND NOT delayed(i)   -> one pulse per rising edge,
#                                                    K * line wide
#   stop:   delay_stop_n = NOT delayed(i)         -> ring run/hold control
#
# The chain is K inverters; an odd K is compensated in the output glue so
# "delayed" always has the polarity of the input. The glue itself is ideal
# (zero delay).

MODE_START = "start"
MODE_STOP = "stop"


class EdgeShapingLine:
    def __init__(self, sim, i, length, delay, mode, priority=RING,
                 name=None, trace=False):
        if length < 1:
            raise ValueError("delay line needs at least one element")
        if mode not in (MODE_START, MODE_STOP):
            raise ValueError("unknown mode {}".format(mode))
        self.sim = sim
        self.i = i
        self.length = length
        self.mode = mode
        self.name = name or "{}_line".format(mode)

        self.taps = []
        self.elements = []
        prev = i
        for n in range(length):
            tap = Wire(sim, "{}_tap{}".format(self.name, n), priority=priority)
            element = DelayElement(sim, Function.INV, [prev], tap, delay,
                                   priority=priority)
            element.settle()
            self.taps.append(tap)
            self.elements.append(element)
            prev = tap

        out_name = "start_pulse" if mode == MODE_START else "delay_stop_n"
        self.o = Wire(sim, out_name, value=self._glue(), priority=priority,
                      trace=trace)
        self._projected = self.o.value

        i.listen(self._update)
        self.taps[-1].listen(self._update)

    @classmethod
    def start(cls, sim, i, length=16, delay=1.0, trace=False):
        return cls(sim, i, length, delay, MODE_START, priority=RING,
                   trace=trace)

    @classmethod
    def stop(cls, sim, i, length=8, delay=1.0, trace=False):
        return cls(sim, i, length, delay, MODE_STOP, priority=HOLD,
                   trace=trace)

    @property
    def width(self):
        return self.length * self.elements[0].delay

    def delayed(self):
        return self.taps[-1].value != (self.length % 2 == 1)

    def _glue(self):
        if self.mode == MODE_START:
            return self.i.value and not self.delayed()
        return not self.delayed()

    def _update(self, wire, value):
        value = self._glue()
        if value != self._projected:
            self._projected = value
            self.o.drive(self.sim.now, value)
