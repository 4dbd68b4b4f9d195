"""
Shared fixtures: a fake clock and in-memory contract stubs.

The stubs implement the same methods as the web3 gateways in
oevbot.core.chain.contracts and record every call.
"""

from typing import Callable, List, Optional

import pytest

from oevbot.core.auction import AuctionWindow, BidStatus, compute_bid_id
from oevbot.core.chain import AwardEvent, ConfirmationEvent, OnChainBid, TxRecord
from oevbot.core.config import AuctionConfig, BidderConfig
from oevbot.core.errors import ContractRevertError, TransientRPCError
from oevbot.core.quotes import QuoteBundle
from oevbot.crypto import keccak256


BIDDER = "0x" + "11" * 20
FEED_UPDATER = "0x" + "22" * 20
AUCTION_HOUSE = "0x" + "33" * 20
TARGET_CHAIN_ID = 11155111
AWARD_SIGNATURE = b"\xaa" * 65


class FakeClock:
    """Wall clock that only moves when slept on."""

    def __init__(self, now: float = 1000.0):
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubAuctionHouse:
    """In-memory auction contract."""

    def __init__(self):
        self.bidder = BIDDER
        self.block = 100
        self.statuses = {}
        self.topics = {}

        # Behaviour knobs
        self.place_revert: Optional[str] = None
        self.award_after_reads: Optional[int] = 3   # None = never award
        self.award_event_lag: int = 0               # lookups that miss the log
        self.award_event_never_indexed = False
        self.confirm_after_polls: Optional[int] = 2  # None = never confirm
        self.read_failures: int = 0                 # reads that raise first

        # Call records
        self.placements = []
        self.reads = 0
        self.award_lookups = []
        self.reports = []
        self.confirmation_lookups = []

    def _tx(self, tag: int) -> TxRecord:
        self.block += 1
        return TxRecord(tx_hash=bytes([tag]) * 32, block_number=self.block)

    def block_number(self) -> int:
        self.block += 1
        return self.block

    def place_bid(self, topic, chain_id, amount, details, max_collateral_amount,
                  max_protocol_fee_amount, expiration_timestamp) -> TxRecord:
        self.placements.append({
            "topic": topic,
            "chain_id": chain_id,
            "amount": amount,
            "details": details,
            "max_collateral_amount": max_collateral_amount,
            "max_protocol_fee_amount": max_protocol_fee_amount,
            "expiration_timestamp": expiration_timestamp,
        })
        if self.place_revert is not None:
            raise ContractRevertError("placeBidWithExpiration", self.place_revert)
        bid_id = compute_bid_id(self.bidder, topic, details)
        self.statuses[bid_id] = BidStatus.PLACED
        self.topics[bid_id] = topic
        return self._tx(0x01)

    def read_bid(self, bid_id: bytes) -> OnChainBid:
        self.reads += 1
        if self.read_failures > 0:
            self.read_failures -= 1
            raise TransientRPCError("connection reset")

        status = self.statuses.get(bid_id, BidStatus.NONE)
        if (
            status == BidStatus.PLACED
            and self.award_after_reads is not None
            and self.reads >= self.award_after_reads
        ):
            status = BidStatus.AWARDED
            self.statuses[bid_id] = status
        return OnChainBid(
            status=status,
            bidder=self.bidder,
            amount=0,
            signed_data_cutoff=0,
            chain_id=TARGET_CHAIN_ID,
            collateral_amount=0,
            protocol_fee_amount=0,
        )

    def find_awarded_bid(self, topic, bid_id, from_block, to_block) -> Optional[AwardEvent]:
        self.award_lookups.append((from_block, to_block))
        if self.statuses.get(bid_id) != BidStatus.AWARDED or self.topics.get(bid_id) != topic:
            return None
        if self.award_event_never_indexed:
            return None
        if self.award_event_lag > 0:
            self.award_event_lag -= 1
            return None
        return AwardEvent(
            bid_id=bid_id,
            award_details=AWARD_SIGNATURE,
            tx_hash=b"\x02" * 32,
            block_number=to_block,
        )

    def report_fulfillment(self, topic, details_hash, fulfillment_details) -> TxRecord:
        self.reports.append({
            "topic": topic,
            "details_hash": details_hash,
            "fulfillment_details": fulfillment_details,
        })
        for bid_id, bid_topic in self.topics.items():
            if bid_topic == topic:
                self.statuses[bid_id] = BidStatus.FULFILLMENT_REPORTED
        return self._tx(0x03)

    def find_confirmed_fulfillment(self, topic, bid_id, from_block, to_block) -> Optional[ConfirmationEvent]:
        self.confirmation_lookups.append((from_block, to_block))
        if self.confirm_after_polls is None:
            return None
        if len(self.confirmation_lookups) < self.confirm_after_polls:
            return None
        self.statuses[bid_id] = BidStatus.FULFILLMENT_CONFIRMED
        return ConfirmationEvent(
            bid_id=bid_id,
            payload=b"",
            timestamp=0,
            tx_hash=b"\x04" * 32,
            block_number=to_block,
        )


class StubFeedUpdater:
    """In-memory feed updater contract."""

    def __init__(self):
        self.revert: Optional[str] = None
        self.updates = []

    def chain_id(self) -> int:
        return TARGET_CHAIN_ID

    def pay_bid_and_update_feed(self, signed_data_cutoff, signature, bid_amount, signed_data) -> TxRecord:
        self.updates.append({
            "signed_data_cutoff": signed_data_cutoff,
            "signature": signature,
            "bid_amount": bid_amount,
            "signed_data": signed_data,
        })
        if self.revert is not None:
            raise ContractRevertError("payBidAndUpdateFeed", self.revert)
        return TxRecord(tx_hash=keccak256(signature), block_number=500)


class StubQuoteProvider:
    """Returns a fixed bundle and counts fetches."""

    def __init__(self, bundle: QuoteBundle):
        self.bundle = bundle
        self.error: Optional[Exception] = None
        self.fetches = 0
        self.on_fetch: Optional[Callable[[], None]] = None  # e.g. advance the clock

    def fetch(self, feed_name: str) -> QuoteBundle:
        self.fetches += 1
        if self.on_fetch is not None:
            self.on_fetch()
        if self.error is not None:
            raise self.error
        return self.bundle


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def auction_config():
    return AuctionConfig(dapp_id=1, auction_length=30, bidding_phase_length=25, bidding_phase_buffer=3)


@pytest.fixture
def bidder_config(auction_config):
    return BidderConfig(
        auction_rpc_url="http://localhost:8545",
        target_rpc_url="http://localhost:8546",
        private_key="0x" + "01" * 32,
        auction_house_address=AUCTION_HOUSE,
        feed_updater_address=FEED_UPDATER,
        bid_amount_wei=10**14,
        poll_interval=0.1,
        award_grace_seconds=30.0,
        confirmation_timeout=60.0,
        auction=auction_config,
    )


@pytest.fixture
def window():
    """Bidding phase 1000-1025, bid expiry 1055."""
    return AuctionWindow(
        auction_start_time=1000,
        bidding_phase_end_time=1025,
        signed_data_cutoff=1025,
        next_window_start=1030,
        auction_length=30,
    )


@pytest.fixture
def auction_house():
    return StubAuctionHouse()


@pytest.fixture
def feed_updater():
    return StubFeedUpdater()


@pytest.fixture
def quote_bundle():
    return QuoteBundle(
        feed_name="ETH/USD",
        signed_data=(b"\x01" * 64, b"\x02" * 64),
        median_price=3000.0,
    )


@pytest.fixture
def quote_provider(quote_bundle):
    return StubQuoteProvider(quote_bundle)


CONFIG_ENV_VARS = (
    "DAPP_ID",
    "OEV_AUCTION_LENGTH_SECONDS",
    "OEV_BIDDING_PHASE_LENGTH_SECONDS",
    "OEV_BIDDING_PHASE_BUFFER_SECONDS",
    "OEV_NETWORK_RPC_URL",
    "TARGET_NETWORK_RPC_URL",
    "PRIVATE_KEY",
    "OEV_AUCTION_HOUSE_ADDRESS",
    "OEV_FEED_UPDATER_ADDRESS",
    "DEPLOYMENTS_FILE",
    "API3_SERVER_V1_ADDRESS",
    "AIRSEEKER_REGISTRY_ADDRESS",
    "BID_AMOUNT",
    "DAPI_NAME",
    "SIGNED_API_URL",
    "POLL_INTERVAL_SECONDS",
    "EVENT_LOOKBACK_BLOCKS",
    "AWARD_GRACE_SECONDS",
    "CONFIRMATION_TIMEOUT_SECONDS",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every config variable; values loaded from .env files are undone too."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    return monkeypatch
