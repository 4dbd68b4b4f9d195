"""
Fulfillment Reporter - proves the update back on the auction network.

State machine:

    REPORTING --(reportFulfillment mined)--> AWAITING_CONFIRMATION
              --(ConfirmedFulfillment log)--> CONFIRMED

The confirmation log is searched in the last `lookback_blocks` blocks on
every poll, same as the award lookup.
"""

from enum import IntEnum
from typing import Optional

from oevbot.core.auction.bid import Bid
from oevbot.core.chain.client import TxRecord
from oevbot.core.chain.contracts import AuctionHouse, ConfirmationEvent
from oevbot.core.chain.polling import Poller
from oevbot.utils.logger import get_logger

logger = get_logger("fulfillment")


class FulfillmentState(IntEnum):
    """State of the fulfillment report."""
    REPORTING = 0
    AWAITING_CONFIRMATION = 1
    CONFIRMED = 2


class FulfillmentReporter:
    """
    Reports an update transaction and waits for its confirmation.

    Args:
        auction_house: Auction contract gateway
        poller: Poll loop (interval, backoff, cancellation)
        lookback_blocks: Blocks scanned per ConfirmedFulfillment lookup
        confirmation_timeout: Seconds to wait after the report is mined
    """

    def __init__(
        self,
        auction_house: AuctionHouse,
        poller: Poller,
        lookback_blocks: int = 10,
        confirmation_timeout: float = 120.0,
    ):
        self.auction_house = auction_house
        self.poller = poller
        self.lookback_blocks = lookback_blocks
        self.confirmation_timeout = confirmation_timeout
        self.state = FulfillmentState.REPORTING
        self.report_receipt: Optional[TxRecord] = None

    def report(self, bid: Bid, update_receipt: TxRecord) -> TxRecord:
        """Send reportFulfillment for the update transaction."""
        if self.state != FulfillmentState.REPORTING:
            raise ValueError(f"Fulfillment already reported ({self.state.name})")

        receipt = self.auction_house.report_fulfillment(
            topic=bid.topic,
            details_hash=bid.details_hash,
            fulfillment_details=update_receipt.tx_hash,
        )
        self.report_receipt = receipt
        self.state = FulfillmentState.AWAITING_CONFIRMATION
        logger.info(f"Oracle update reported, tx {receipt.tx_hash_hex}")
        return receipt

    def wait_for_confirmation(self, bid: Bid) -> ConfirmationEvent:
        """
        Block until the auction confirms the fulfillment.

        Raises:
            PollTimeoutError: no confirmation within confirmation_timeout
            CycleCancelledError: cancelled by the caller
        """
        if self.state != FulfillmentState.AWAITING_CONFIRMATION:
            raise ValueError(f"Nothing to confirm in state {self.state.name}")

        logger.info("Waiting for confirmation of fulfillment...")
        deadline = self.poller.deadline_after(self.confirmation_timeout)
        event = self.poller.poll(
            lambda: self._probe(bid),
            deadline,
            "fulfillment confirmation",
        )
        self.state = FulfillmentState.CONFIRMED
        logger.info(f"Confirmed fulfillment in tx 0x{event.tx_hash.hex()}")
        return event

    def report_and_confirm(self, bid: Bid, update_receipt: TxRecord) -> ConfirmationEvent:
        self.report(bid, update_receipt)
        return self.wait_for_confirmation(bid)

    def _probe(self, bid: Bid) -> Optional[ConfirmationEvent]:
        to_block = self.auction_house.block_number()
        from_block = max(0, to_block - self.lookback_blocks)
        return self.auction_house.find_confirmed_fulfillment(
            bid.topic, bid.bid_id, from_block, to_block
        )
