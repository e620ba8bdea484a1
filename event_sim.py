import heapq
import logging

logger = logging.getLogger(__name__)

# Tie-break order for events sharing a timestamp. Lower runs first.
HOLD = 0
RING = 1
COUNTER = 2
CAPTURE = 3


class SchedulerError(RuntimeError):
    pass


class Scheduler:
    """Discrete-event kernel.

    Events are kept in a heap ordered by ``(time, priority, seq)``. ``seq``
    grows with every insertion, so events with equal time and priority run
    in the order they were scheduled. Processing an event may schedule new
    ones, including at the current instant; a ring oscillator keeps the
    queue non-empty forever, which is the expected steady state.
    """

    def __init__(self, max_events=None):
        self.now = 0
        self.max_events = max_events
        self.processed = 0
        self._queue = []
        self._seq = 0

    def schedule(self, at, priority, action):
        if at < self.now:
            raise SchedulerError(
                "cannot schedule at {} (now {})".format(at, self.now))
        heapq.heappush(self._queue, (at, priority, self._seq, action))
        self._seq += 1

    @property
    def pending(self):
        return len(self._queue)

    def peek(self):
        if not self._queue:
            return None
        return self._queue[0][0]

    def step(self):
        if self.max_events is not None and self.processed >= self.max_events:
            raise SchedulerError("event limit {} reached at {}".format(
                self.max_events, self.peek()))
        at, _, _, action = heapq.heappop(self._queue)
        self.now = at
        self.processed += 1
        action()

    def run_until(self, t):
        if t < self.now:
            raise SchedulerError(
                "cannot run backwards to {} (now {})".format(t, self.now))
        while self._queue and self._queue[0][0] <= t:
            self.step()
        self.now = t
        logger.debug("advanced to %s, %d events processed, %d pending",
                     t, self.processed, self.pending)


class Wire:
    """A boolean net.

    ``drive`` enqueues a transition at the wire's priority. Applying a value
    equal to the current one does nothing, so listeners only ever see real
    edges.
    """

    def __init__(self, sim, name, value=False, priority=RING, trace=False):
        self.sim = sim
        self.name = name
        self.value = value
        self.priority = priority
        self.last_change = None
        self.listeners = []
        self.history = [(0, value)] if trace else None

    def __repr__(self):
        return "Wire({}={})".format(self.name, int(self.value))

    def reset(self, value):
        """Force the value without an event, restarting the trace."""
        self.value = bool(value)
        if self.history is not None:
            self.history = [(self.sim.now, self.value)]

    def listen(self, callback):
        self.listeners.append(callback)

    def drive(self, at, value):
        self.sim.schedule(at, self.priority, lambda: self._apply(value))

    def _apply(self, value):
        value = bool(value)
        if value == self.value:
            return
        self.value = value
        self.last_change = self.sim.now
        if self.history is not None:
            self.history.append((self.sim.now, value))
        for callback in self.listeners:
            callback(self, value)

    def transitions(self, since=0):
        if self.history is None:
            raise SchedulerError("wire {} is not traced".format(self.name))
        return [(t, v) for t, v in self.history[1:] if t >= since]
