"""
Error taxonomy for the bidding agent.

Errors fall into five groups that decide how the lifecycle reacts:
- configuration errors: fatal at startup
- transient RPC errors: retried with backoff inside poll loops
- quote source errors: the failing source is dropped from the bundle
- contract reverts: fatal to the cycle, never retried
- timing misses and poll timeouts: fatal to the cycle, reported
"""

from enum import IntEnum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from oevbot.core.auction.bid import Bid


class OevBotError(Exception):
    """Base class for all oevbot errors."""


class ConfigurationError(OevBotError):
    """Invalid or missing configuration."""


class TransientRPCError(OevBotError):
    """Connection failure or timeout talking to an RPC endpoint."""


class QuoteSourceError(OevBotError):
    """A single signed data source could not be fetched or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Quote source {source} failed: {reason}")
        self.source = source
        self.reason = reason


class QuoteUnavailableError(OevBotError):
    """No usable signed data survived fetching and filtering."""


class ContractRevertError(OevBotError):
    """A state-changing call was rejected by the contract."""

    def __init__(self, operation: str, reason: str, tx_hash: Optional[bytes] = None):
        message = f"{operation} reverted: {reason}"
        if tx_hash is not None:
            message += f" (tx 0x{tx_hash.hex()})"
        super().__init__(message)
        self.operation = operation
        self.reason = reason
        self.tx_hash = tx_hash


class TimingMissError(OevBotError):
    """An award arrived too late to act on before the bid expired."""


class BidNotAwardedError(OevBotError):
    """The auction resolved without awarding this bid."""


class PollTimeoutError(OevBotError):
    """A polling loop reached its deadline without a result."""

    def __init__(self, description: str, deadline: float):
        super().__init__(f"Timed out waiting for {description} (deadline {deadline:.0f})")
        self.description = description
        self.deadline = deadline


class CycleCancelledError(OevBotError):
    """The caller cancelled the bid cycle."""


class CyclePhase(IntEnum):
    """Phase of a bid cycle, reported when the cycle fails."""
    WINDOW = 0
    QUOTES = 1
    PLACEMENT = 2
    AWARD = 3
    UPDATE = 4
    FULFILLMENT = 5


class BidCycleError(OevBotError):
    """
    A bid cycle aborted.

    Carries the phase that failed and the bid as far as it progressed,
    since a placed bid may still hold locked funds.
    """

    def __init__(self, phase: CyclePhase, cause: Exception, bid: Optional["Bid"] = None):
        super().__init__(f"Bid cycle failed during {phase.name}: {cause}")
        self.phase = phase
        self.cause = cause
        self.bid = bid
