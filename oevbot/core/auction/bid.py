"""
Bid identifiers and the bid record.

The auction contract verifies every identifier below byte for byte, so the
encodings are fixed:

    topic   = keccak256(encodePacked(uint256 version, uint256 dappId,
                                     uint32 auctionLength, uint32 cutoff))
    details = abi.encode(address beneficiary, bytes32 nonce)
    bidId   = keccak256(bidder || topic || keccak256(details))

The nonce is drawn fresh for each bid. Reusing details would reproduce the
bid id of an earlier bid, which the contract rejects.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from oevbot.core.auction.window import AuctionWindow
from oevbot.core.config import AuctionConfig
from oevbot.crypto import (
    abi_encode,
    abi_encode_packed,
    address_to_bytes,
    checksum_address,
    keccak256,
    random_bytes32,
)


class BidStatus(IntEnum):
    """Bid status codes reported by the auction contract."""
    NONE = 0
    PLACED = 1
    AWARDED = 2
    FULFILLMENT_REPORTED = 3
    FULFILLMENT_CONFIRMED = 4
    FULFILLMENT_CONTRADICTED = 5


class BidState(IntEnum):
    """Local lifecycle of a bid."""
    UNANNOUNCED = 0
    PLACED = 1
    AWARDED = 2
    LOST = 3


# =============================================================================
# Identifiers
# =============================================================================


def derive_bid_topic(window: AuctionWindow, config: AuctionConfig) -> bytes:
    """Topic of the auction lane for this window."""
    return keccak256(
        abi_encode_packed(
            ["uint256", "uint256", "uint32", "uint32"],
            [
                config.major_version,
                config.dapp_id,
                config.auction_length,
                window.signed_data_cutoff,
            ],
        )
    )


def generate_bid_details(beneficiary: str) -> bytes:
    """Encode the beneficiary contract with a fresh random nonce."""
    return abi_encode(
        ["address", "bytes32"],
        [checksum_address(beneficiary), random_bytes32()],
    )


def compute_bid_id(bidder: str, topic: bytes, details: bytes) -> bytes:
    """Bid id as computed by the auction contract."""
    if len(topic) != 32:
        raise ValueError(f"Bid topic must be 32 bytes, got {len(topic)}")
    return keccak256(address_to_bytes(bidder) + topic + keccak256(details))


# =============================================================================
# Bid Record
# =============================================================================


@dataclass
class Bid:
    """
    One bid of this bidder, scoped to a single cycle.

    Terminal bids (LOST) are never changed again.
    """
    bid_id: bytes
    topic: bytes
    details: bytes
    amount: int
    bidder: str
    state: BidState = BidState.UNANNOUNCED
    placement_tx: Optional[bytes] = None
    award_signature: Optional[bytes] = None

    @property
    def details_hash(self) -> bytes:
        return keccak256(self.details)

    def mark_placed(self, tx_hash: bytes) -> None:
        """Record the mined placement transaction."""
        self._require_state(BidState.UNANNOUNCED, "place")
        self.placement_tx = tx_hash
        self.state = BidState.PLACED

    def mark_awarded(self, signature: bytes) -> None:
        """Record the award signature."""
        self._require_state(BidState.PLACED, "award")
        self.award_signature = signature
        self.state = BidState.AWARDED

    def mark_lost(self) -> None:
        """The auction ended without awarding this bid."""
        self._require_state(BidState.PLACED, "lose")
        self.state = BidState.LOST

    def _require_state(self, expected: BidState, action: str) -> None:
        if self.state != expected:
            raise ValueError(f"Cannot {action} bid in state {self.state.name}")


def create_bid(
    window: AuctionWindow,
    config: AuctionConfig,
    bidder: str,
    beneficiary: str,
    amount: int,
) -> Bid:
    """
    Derive fresh identifiers for a new bid.

    Args:
        window: Auction window being bid on
        config: Auction timing constants
        bidder: Address placing the bid
        beneficiary: Contract that performs the update
        amount: Bid amount in wei

    Returns:
        Bid in state UNANNOUNCED
    """
    if amount <= 0:
        raise ValueError(f"Bid amount must be positive, got {amount}")

    topic = derive_bid_topic(window, config)
    details = generate_bid_details(beneficiary)
    return Bid(
        bid_id=compute_bid_id(bidder, topic, details),
        topic=topic,
        details=details,
        amount=amount,
        bidder=bidder,
    )
