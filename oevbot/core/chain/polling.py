"""
Bounded polling for on-chain state.

Award and confirmation lookups poll until a probe yields a result. Every
poll loop runs against a Deadline and a CancellationToken so a caller can
always get control back:
- probe returns a value  -> loop ends with that value
- probe returns None     -> sleep `interval`, poll again
- TransientRPCError      -> exponential backoff capped at `max_backoff`
- deadline passes        -> PollTimeoutError
- token cancelled        -> CycleCancelledError
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from oevbot.core.errors import CycleCancelledError, PollTimeoutError, TransientRPCError
from oevbot.utils.logger import get_logger

logger = get_logger("polling")

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation signal shared by the phases of one cycle."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True if cancelled meanwhile."""
        return self._event.wait(seconds)


@dataclass
class Deadline:
    """Absolute wall-clock deadline."""
    at: float
    clock: Callable[[], float] = field(default=time.time, repr=False)

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.time) -> "Deadline":
        return cls(at=clock() + seconds, clock=clock)

    def remaining(self) -> float:
        return max(0.0, self.at - self.clock())

    def expired(self) -> bool:
        return self.clock() >= self.at


class Poller:
    """
    Runs probe functions until they produce a result.

    Args:
        interval: Seconds between successful polls
        max_backoff: Cap on the retry delay after RPC failures
        cancel_token: Cancellation signal; a private one is created if None
        sleep: Sleep function; defaults to waiting on the cancel token
        clock: Time source used for deadlines created by this poller
    """

    def __init__(
        self,
        interval: float = 0.1,
        max_backoff: float = 5.0,
        cancel_token: Optional[CancellationToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.interval = interval
        self.max_backoff = max_backoff
        self.cancel_token = cancel_token or CancellationToken()
        self.clock = clock
        self._sleep = sleep

    def deadline_at(self, timestamp: float) -> Deadline:
        return Deadline(at=timestamp, clock=self.clock)

    def deadline_after(self, seconds: float) -> Deadline:
        return Deadline.after(seconds, clock=self.clock)

    def poll(
        self,
        probe: Callable[[], Optional[T]],
        deadline: Deadline,
        description: str,
    ) -> T:
        """
        Poll `probe` until it returns a non-None value.

        Raises:
            PollTimeoutError: deadline reached first
            CycleCancelledError: cancel token fired
        """
        failures = 0
        polls = 0

        while True:
            if self.cancel_token.cancelled:
                raise CycleCancelledError(f"Cancelled while waiting for {description}")

            polls += 1
            try:
                result = probe()
            except TransientRPCError as e:
                failures += 1
                delay = min(self.interval * (2 ** failures), self.max_backoff)
                logger.warning(
                    f"RPC error while waiting for {description} "
                    f"(attempt {failures}), retrying in {delay:.2f}s: {e}"
                )
            else:
                if result is not None:
                    logger.debug(f"{description} observed after {polls} polls")
                    return result
                failures = 0
                delay = self.interval

            if deadline.expired():
                raise PollTimeoutError(description, deadline.at)

            self._wait(min(delay, deadline.remaining()))

    def _wait(self, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
            return
        if self.cancel_token.wait(seconds):
            raise CycleCancelledError("Cancelled while polling")
