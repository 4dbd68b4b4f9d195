"""
Award Watcher - waits for the auction to award a placed bid.

State machine:

    AWAITING_RESOLUTION --(status Awarded)--> AWARDED --(AwardedBid log)--> AWARD_RETRIEVED
            |
            +--(deadline, still Placed)--> NOT_AWARDED

The bid status is read by id on every poll. Once it reads Awarded, the
AwardedBid log is looked up in the last `lookback_blocks` blocks. Log
indexing can trail the status, so a missing log means "poll again", not
failure. A deadline reached before any status read succeeded leaves the
bid Placed: an RPC outage says nothing about the award.
"""

from enum import IntEnum
from typing import Optional

from oevbot.core.auction.bid import Bid, BidStatus
from oevbot.core.auction.window import AuctionWindow
from oevbot.core.chain.contracts import AuctionHouse, AwardEvent
from oevbot.core.chain.polling import Poller
from oevbot.core.errors import BidNotAwardedError, PollTimeoutError
from oevbot.crypto import bytes_to_hex
from oevbot.utils.logger import get_logger

logger = get_logger("award")


class AwardState(IntEnum):
    """State of the award watch."""
    AWAITING_RESOLUTION = 0
    AWARDED = 1
    AWARD_RETRIEVED = 2
    NOT_AWARDED = 3


class AwardWatcher:
    """
    Polls for the award of one bid.

    Args:
        auction_house: Auction contract gateway
        poller: Poll loop (interval, backoff, cancellation)
        lookback_blocks: Blocks scanned per AwardedBid lookup
        grace_seconds: How long past bid expiry to keep waiting
    """

    def __init__(
        self,
        auction_house: AuctionHouse,
        poller: Poller,
        lookback_blocks: int = 10,
        grace_seconds: float = 30.0,
    ):
        self.auction_house = auction_house
        self.poller = poller
        self.lookback_blocks = lookback_blocks
        self.grace_seconds = grace_seconds
        self.state = AwardState.AWAITING_RESOLUTION
        self.last_status: Optional[BidStatus] = None
        self.event: Optional[AwardEvent] = None

    def wait_for_award(self, bid: Bid, window: AuctionWindow) -> bytes:
        """
        Block until the bid is awarded and return the award signature.

        Raises:
            BidNotAwardedError: bid read as unawarded and still so at the deadline
            PollTimeoutError: awarded but the AwardedBid log never showed up,
                or no status read succeeded before the deadline
            CycleCancelledError: cancelled by the caller
        """
        if self.state != AwardState.AWAITING_RESOLUTION:
            raise ValueError(f"Award watch already finished ({self.state.name})")

        deadline = self.poller.deadline_at(window.bid_expiry + self.grace_seconds)
        logger.info(f"Waiting for bid {bytes_to_hex(bid.bid_id)[:18]}... to be awarded")

        try:
            event = self.poller.poll(
                lambda: self._probe(bid),
                deadline,
                f"award of bid {bytes_to_hex(bid.bid_id)[:18]}...",
            )
        except PollTimeoutError as e:
            # Without a successful status read the outcome is unknown; the bid stays Placed
            if self.state == AwardState.AWAITING_RESOLUTION and self.last_status is not None:
                self.state = AwardState.NOT_AWARDED
                bid.mark_lost()
                raise BidNotAwardedError(
                    f"Bid {bytes_to_hex(bid.bid_id)} not awarded by {deadline.at:.0f} "
                    f"(last status {self.last_status.name})"
                ) from e
            raise

        self.event = event
        bid.mark_awarded(event.award_details)
        self.state = AwardState.AWARD_RETRIEVED
        logger.info(
            f"Award signature retrieved from block {event.block_number}: "
            f"{bytes_to_hex(event.award_details)[:18]}..."
        )
        return event.award_details

    def _probe(self, bid: Bid) -> Optional[AwardEvent]:
        on_chain = self.auction_house.read_bid(bid.bid_id)
        self.last_status = on_chain.status

        if on_chain.status < BidStatus.AWARDED:
            return None

        if self.state == AwardState.AWAITING_RESOLUTION:
            self.state = AwardState.AWARDED
            logger.info("Bid awarded, looking up award event")

        to_block = self.auction_house.block_number()
        from_block = max(0, to_block - self.lookback_blocks)
        event = self.auction_house.find_awarded_bid(bid.topic, bid.bid_id, from_block, to_block)
        if event is None:
            logger.debug(f"AwardedBid not indexed in blocks {from_block}-{to_block} yet")
        return event
