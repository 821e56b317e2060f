"""Shutdown coordination — turns termination signals into a process exit code.

State machine::

    RUNNING  --SIGTERM--> DRAINING --(grace period)--> TERMINATED (exit 0)
    RUNNING  --SIGINT---> TERMINATED (exit 0)
    DRAINING --SIGINT---> TERMINATED (exit 0)
    any      --fatal----> TERMINATED (exit 1)

Responders keep serving while DRAINING; only the exit is delayed so that an
orchestrator has time to stop routing traffic here. A repeated SIGTERM while
draining leaves the first deadline in place.
"""

import logging
import queue
import signal
import time
from enum import Enum

logger = logging.getLogger(__name__)


class ShutdownSignal(Enum):
    GRACEFUL_TERM = "SIGTERM"
    IMMEDIATE_INTERRUPT = "SIGINT"


class State(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


POLL_INTERVAL_SEC = 0.5

SIGNALS = {
    signal.SIGTERM: ShutdownSignal.GRACEFUL_TERM,
    signal.SIGINT: ShutdownSignal.IMMEDIATE_INTERRUPT,
}


class ShutdownCoordinator:
    def __init__(self, grace_period_sec: float = 60.0):
        self._grace_period = grace_period_sec
        # SimpleQueue.put is reentrant, so it is safe to call from a signal handler.
        self._events = queue.SimpleQueue()
        self._state = State.RUNNING
        self._deadline = None
        self._exit_code = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def exit_code(self):
        return self._exit_code

    def install(self):
        """Register SIGTERM/SIGINT handlers. Must be called from the main thread."""
        for signum in SIGNALS:
            signal.signal(signum, self._handle_signal)

    def _handle_signal(self, signum, frame):
        self._events.put(SIGNALS[signum])

    def notify(self, sig: ShutdownSignal):
        """Deliver a termination signal without going through the OS."""
        self._events.put(sig)

    def fail(self, exc: BaseException):
        """Report a fatal responder error; wait() returns 1."""
        self._events.put(exc)

    def wait(self) -> int:
        """Block until TERMINATED and return the process exit code."""
        while self._state is not State.TERMINATED:
            # Bounded waits let pending signal handlers run in the main thread.
            timeout = POLL_INTERVAL_SEC
            if self._state is State.DRAINING:
                timeout = min(timeout, max(0.0, self._deadline - time.monotonic()))
            try:
                event = self._events.get(timeout=timeout)
            except queue.Empty:
                if self._state is State.DRAINING and time.monotonic() >= self._deadline:
                    logger.info("grace period elapsed, exiting")
                    self._terminate(0)
                continue
            self._dispatch(event)
        return self._exit_code

    def _dispatch(self, event):
        if isinstance(event, BaseException):
            logger.critical("fatal: %s", event)
            self._terminate(1)
            return

        logger.info("received signal: %s", event.value)
        if event is ShutdownSignal.IMMEDIATE_INTERRUPT:
            logger.info("exiting immediately")
            self._terminate(0)
        elif self._state is State.DRAINING:
            logger.info("already draining, %.1fs left", self._deadline - time.monotonic())
        else:
            logger.info("waiting %gs", self._grace_period)
            self._deadline = time.monotonic() + self._grace_period
            self._state = State.DRAINING

    def _terminate(self, code: int):
        self._exit_code = code
        self._state = State.TERMINATED
