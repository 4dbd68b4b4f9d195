"""
Bid lifecycle: placement, award, update, fulfillment and the cycle driver.
"""

from oevbot.core.lifecycle.submitter import BidSubmitter, PlacementResult
from oevbot.core.lifecycle.award import AwardState, AwardWatcher
from oevbot.core.lifecycle.update import UpdateSubmitter
from oevbot.core.lifecycle.fulfillment import FulfillmentReporter, FulfillmentState
from oevbot.core.lifecycle.orchestrator import AuctionOrchestrator, CycleResult

__all__ = [
    "BidSubmitter",
    "PlacementResult",
    "AwardState",
    "AwardWatcher",
    "UpdateSubmitter",
    "FulfillmentReporter",
    "FulfillmentState",
    "AuctionOrchestrator",
    "CycleResult",
]
