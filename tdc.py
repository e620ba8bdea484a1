import logging
from collections import namedtuple

from capture import CaptureUnit
from delay_element import Timing
from edge_shaping import EdgeShapingLine
from event_sim import Scheduler, Wire, HOLD
from ring import RingTopology, RingOscillator
from wrap_counter import WrapCounter

logger = logging.getLogger(__name__)

# Ring-oscillator time-to-digital converter.
#
#   i_start -> start line -> start_pulse -> ring stage 0 (inject edge)
#                                        -> wrap counter (reset)
#   ring stage 0 rising                  -> wrap counter (+1)
#   i_stop  -> stop line  -> delay_stop_n -> ring hold (after N_STOP_DEL)
#   i_stop rising                        -> capture ring vector + counter
#
# Outputs:
#   result_ring: N_DELAY bit phase vector (fine time), bit i = stage i
#   result_ctr:  N_CTR bit wrap count (coarse time)

DebugTaps = namedtuple("DebugTaps", ["start_pulse", "delay_stop_n", "ctr",
                                     "ring"])


class TdcConfigError(ValueError):
    pass


class Tdc:
    def __init__(self, n_delay=64, n_ctr=8, n_start_del=16, n_stop_del=8,
                 interleaved=True, debug=False, timing=None, trace=False,
                 max_events=None):
        if n_delay < 3:
            raise TdcConfigError(
                "n_delay must be at least 3, got {}".format(n_delay))
        if n_ctr < 1:
            raise TdcConfigError(
                "n_ctr must be at least 1, got {}".format(n_ctr))
        if n_start_del < 1 or n_stop_del < 1:
            raise TdcConfigError("delay lines need at least one element")

        self.n_delay = n_delay
        self.n_ctr = n_ctr
        self.n_start_del = n_start_del
        self.n_stop_del = n_stop_del
        self.interleaved = interleaved
        self.debug_enabled = debug
        self.timing = timing or Timing()

        # in
        self.sim = Scheduler(max_events=max_events)
        self.i_start = Wire(self.sim, "i_start", priority=HOLD, trace=trace)
        self.i_stop = Wire(self.sim, "i_stop", priority=HOLD, trace=trace)

        # internal
        self.start_line = EdgeShapingLine.start(
            self.sim, self.i_start, n_start_del, self.timing.line,
            trace=trace)
        self.stop_line = EdgeShapingLine.stop(
            self.sim, self.i_stop, n_stop_del, self.timing.line, trace=trace)
        self.topology = RingTopology.build(n_delay, interleaved)
        self.ring = RingOscillator(self.sim, self.topology, self.timing,
                                   self.stop_line.o, self.start_line.o,
                                   trace=trace)
        self.counter = WrapCounter(self.sim, n_ctr, self.ring.stage0,
                                   self.start_line.o, history=trace)
        self.capture = CaptureUnit(self.sim, self.ring, self.counter,
                                   self.i_stop, history=trace)

        logger.debug("tdc: %d stages (%s), %d bit counter, period %s",
                     n_delay, "interleaved" if interleaved else "plain",
                     n_ctr, self.period)

    @property
    def now(self):
        return self.sim.now

    @property
    def period(self):
        return self.ring.period()

    @property
    def start_pulse(self):
        return self.start_line.o

    @property
    def delay_stop_n(self):
        return self.stop_line.o

    # stimulus

    def start(self, at, value=True):
        self.i_start.drive(at, value)

    def stop(self, at, value=True):
        self.i_stop.drive(at, value)

    def pulse_start(self, at, width):
        self.start(at, True)
        self.start(at + width, False)

    def pulse_stop(self, at, width):
        self.stop(at, True)
        self.stop(at + width, False)

    def run_until(self, t):
        self.sim.run_until(t)

    # results

    @property
    def snapshot(self):
        return self.capture.snapshot

    @property
    def snapshots(self):
        return self.capture.snapshots

    @property
    def result_ring(self):
        if self.snapshot is None:
            return 0
        return self.snapshot.ring_bits()

    @property
    def result_ctr(self):
        if self.snapshot is None:
            return 0
        return self.snapshot.counter

    @property
    def debug(self):
        if not self.debug_enabled:
            return None
        return DebugTaps(self.start_line.o.value, self.stop_line.o.value,
                         self.counter.value, self.ring.bits())

    def measure(self, start_at, stop_at, settle=None):
        """Run one start/stop cycle and return the captured snapshot."""
        if stop_at < start_at:
            raise ValueError("stop must not precede start")
        if settle is None:
            settle = self.n_stop_del * self.timing.line + self.period
        self.start(start_at)
        self.stop(stop_at)
        self.run_until(stop_at + settle)
        return self.snapshot


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    dut = Tdc(n_delay=4, n_ctr=2, interleaved=False, trace=True)
    snapshot = dut.measure(0, 100)
    print("period:", dut.period)
    print("snapshot:", snapshot)
    print("result_ring: {:04b} result_ctr: {}".format(dut.result_ring,
                                                     dut.result_ctr))
    for t, value in dut.ring.stage0.transitions():
        if t > 90:
            print("  r0 {} @ {}".format(int(value), t))
