"""
Auction math: window boundaries and bid identifiers.
"""

from oevbot.core.auction.window import (
    AuctionWindow,
    auction_offset,
    compute_window,
)

from oevbot.core.auction.bid import (
    Bid,
    BidState,
    BidStatus,
    compute_bid_id,
    create_bid,
    derive_bid_topic,
    generate_bid_details,
)

__all__ = [
    # Window
    "AuctionWindow",
    "auction_offset",
    "compute_window",
    # Bid
    "Bid",
    "BidState",
    "BidStatus",
    "compute_bid_id",
    "create_bid",
    "derive_bid_topic",
    "generate_bid_details",
]
