"""
Bid Submitter - places a bid on the auction network.

Placement is a single state-changing transaction that locks up to the bid
amount. A revert is final for the cycle: a retry would need fresh bid
details (and hence a fresh bid id), so the caller starts over instead.
"""

from dataclasses import dataclass
from typing import Optional

from oevbot.core.auction.bid import Bid
from oevbot.core.auction.window import AuctionWindow
from oevbot.core.chain.client import TxRecord
from oevbot.core.chain.contracts import AuctionHouse
from oevbot.core.errors import TimingMissError
from oevbot.crypto import bytes_to_hex
from oevbot.utils.logger import get_logger

logger = get_logger("submitter")


@dataclass
class PlacementResult:
    """Outcome of a successful placement."""
    bid: Bid
    receipt: TxRecord
    target_chain_id: int
    expiration_timestamp: int


class BidSubmitter:
    """
    Submits bids to the auction contract.

    Args:
        auction_house: Auction contract gateway
        max_collateral_amount: Highest collateral the bidder accepts
        max_protocol_fee_amount: Highest protocol fee the bidder accepts
    """

    def __init__(
        self,
        auction_house: AuctionHouse,
        max_collateral_amount: int,
        max_protocol_fee_amount: int,
    ):
        self.auction_house = auction_house
        self.max_collateral_amount = max_collateral_amount
        self.max_protocol_fee_amount = max_protocol_fee_amount

    def submit(
        self,
        bid: Bid,
        window: AuctionWindow,
        target_chain_id: int,
        now: Optional[int] = None,
    ) -> PlacementResult:
        """
        Place `bid` for `window`.

        The bid expires at the end of the bidding phase following the
        signed data cutoff.

        Raises:
            ValueError: bid amount not positive
            TimingMissError: the bidding phase of the window already closed
            ContractRevertError: the auction contract rejected the bid
        """
        if bid.amount <= 0:
            raise ValueError(f"Bid amount must be positive, got {bid.amount}")

        if now is not None and now >= window.bidding_phase_end_time:
            raise TimingMissError(
                f"Bidding phase ended at {window.bidding_phase_end_time} (now {now}), "
                f"bid not placed"
            )

        expiration = window.bid_expiry

        logger.info(
            f"Placing bid {bytes_to_hex(bid.bid_id)[:18]}... "
            f"topic={bytes_to_hex(bid.topic)[:18]}... amount={bid.amount} "
            f"cutoff={window.signed_data_cutoff} expiry={expiration}"
        )
        logger.debug(f"Bid details: {bytes_to_hex(bid.details)}")

        receipt = self.auction_house.place_bid(
            topic=bid.topic,
            chain_id=target_chain_id,
            amount=bid.amount,
            details=bid.details,
            max_collateral_amount=self.max_collateral_amount,
            max_protocol_fee_amount=self.max_protocol_fee_amount,
            expiration_timestamp=expiration,
        )
        bid.mark_placed(receipt.tx_hash)

        logger.info(f"Bid placed in block {receipt.block_number}, tx {receipt.tx_hash_hex}")
        return PlacementResult(
            bid=bid,
            receipt=receipt,
            target_chain_id=target_chain_id,
            expiration_timestamp=expiration,
        )
