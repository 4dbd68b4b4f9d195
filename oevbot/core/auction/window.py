"""
Auction window computation.

Auctions for a dApp repeat every `auction_length` seconds. Each auction
opens with a bidding phase of `bidding_phase_length` seconds whose end is
also the signed data timestamp cutoff. Auction boundaries are shifted by
a per-dApp offset so unrelated dApps on one chain do not share windows:

    offset = keccak256(abi.encode(uint256 dappId)) mod auction_length

If fewer than `bidding_phase_buffer` seconds of bidding remain, the window
rolls forward to the next auction so the bid lands in time.
"""

import time
from dataclasses import dataclass
from typing import Optional

from oevbot.core.config import AuctionConfig
from oevbot.crypto import abi_encode, keccak256
from oevbot.utils.logger import get_logger

logger = get_logger("window")


@dataclass(frozen=True)
class AuctionWindow:
    """Time boundaries of one auction (Unix seconds)."""
    auction_start_time: int
    bidding_phase_end_time: int
    signed_data_cutoff: int
    next_window_start: int
    auction_length: int

    @property
    def bid_expiry(self) -> int:
        """End of the bidding phase following the cutoff."""
        return self.signed_data_cutoff + self.auction_length


def auction_offset(dapp_id: int, auction_length: int) -> int:
    """Per-dApp phase offset of auction boundaries."""
    digest = keccak256(abi_encode(["uint256"], [dapp_id]))
    return int.from_bytes(digest, "big") % auction_length


def compute_window(config: AuctionConfig, now: Optional[int] = None) -> AuctionWindow:
    """
    Compute the auction window a bid placed at `now` should target.

    Args:
        config: Auction timing constants
        now: Unix timestamp; defaults to the current wall clock

    Returns:
        AuctionWindow, rolled forward one auction when too little
        bidding time remains
    """
    if now is None:
        now = int(time.time())

    length = config.auction_length
    offset = auction_offset(config.dapp_id, length)

    time_in_auction = (now - offset) % length
    start = now - time_in_auction
    bidding_end = start + config.bidding_phase_length

    if bidding_end - now < config.bidding_phase_buffer:
        logger.info(
            f"Not enough time to bid in current auction (now={now}, "
            f"bidding ends={bidding_end}, offset={offset}), bidding for the next one"
        )
        start += length
        bidding_end += length

    return AuctionWindow(
        auction_start_time=start,
        bidding_phase_end_time=bidding_end,
        signed_data_cutoff=start + config.bidding_phase_length,
        next_window_start=start + length,
        auction_length=length,
    )
