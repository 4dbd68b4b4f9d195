"""
Contract gateways.

Typed wrappers around the contracts the bidder talks to. Lifecycle
components only use these methods, so tests can swap in in-memory stubs.

- AuctionHouse: OEV auction contract on the auction network
- FeedUpdater: payable price feed updater on the target network
- DataFeedRegistry: Api3ServerV1 + AirseekerRegistry reads on the target network
"""

from dataclasses import dataclass
from typing import List, Optional

from oevbot.core.auction.bid import BidStatus
from oevbot.core.chain.client import ChainClient, TxRecord
from oevbot.utils.logger import get_logger

logger = get_logger("contracts")


# =============================================================================
# ABIs (only the members used here)
# =============================================================================


def _inputs(*pairs):
    return [{"name": name, "type": typ} for name, typ in pairs]


AUCTION_HOUSE_ABI = [
    {
        "type": "function",
        "name": "placeBidWithExpiration",
        "stateMutability": "nonpayable",
        "inputs": _inputs(
            ("bidTopic", "bytes32"),
            ("chainId", "uint256"),
            ("bidAmount", "uint256"),
            ("bidDetails", "bytes"),
            ("maxCollateralAmount", "uint256"),
            ("maxProtocolFeeAmount", "uint256"),
            ("expirationTimestamp", "uint32"),
        ),
        "outputs": _inputs(("collateralAmount", "uint256"), ("protocolFeeAmount", "uint256")),
    },
    {
        "type": "function",
        "name": "bids",
        "stateMutability": "view",
        "inputs": _inputs(("bidId", "bytes32")),
        "outputs": _inputs(
            ("status", "uint8"),
            ("bidder", "address"),
            ("bidAmount", "uint256"),
            ("signedDataTimestampCutoff", "uint32"),
            ("chainId", "uint256"),
            ("collateralAmount", "uint256"),
            ("protocolFeeAmount", "uint256"),
        ),
    },
    {
        "type": "function",
        "name": "reportFulfillment",
        "stateMutability": "nonpayable",
        "inputs": _inputs(
            ("bidTopic", "bytes32"),
            ("bidDetailsHash", "bytes32"),
            ("fulfillmentDetails", "bytes"),
        ),
        "outputs": [],
    },
    {
        "type": "event",
        "name": "AwardedBid",
        "anonymous": False,
        "inputs": [
            {"name": "bidder", "type": "address", "indexed": True},
            {"name": "bidTopic", "type": "bytes32", "indexed": True},
            {"name": "bidId", "type": "bytes32", "indexed": True},
            {"name": "awardDetails", "type": "bytes", "indexed": False},
            {"name": "bidderBalance", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "ConfirmedFulfillment",
        "anonymous": False,
        "inputs": [
            {"name": "bidder", "type": "address", "indexed": True},
            {"name": "bidTopic", "type": "bytes32", "indexed": True},
            {"name": "bidId", "type": "bytes32", "indexed": True},
            {"name": "payload", "type": "bytes", "indexed": False},
            {"name": "timestamp", "type": "uint32", "indexed": False},
        ],
    },
]

FEED_UPDATER_ABI = [
    {
        "type": "function",
        "name": "payBidAndUpdateFeed",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": [
                    {"name": "signedDataTimestampCutoff", "type": "uint32"},
                    {"name": "signature", "type": "bytes"},
                    {"name": "bidAmount", "type": "uint256"},
                    {
                        "name": "payOevBidCallbackData",
                        "type": "tuple",
                        "components": [{"name": "signedDataArray", "type": "bytes[]"}],
                    },
                ],
            }
        ],
        "outputs": [],
    },
]

API3_SERVER_ABI = [
    {
        "type": "function",
        "name": "dapiNameHashToDataFeedId",
        "stateMutability": "view",
        "inputs": _inputs(("dapiNameHash", "bytes32")),
        "outputs": _inputs(("dataFeedId", "bytes32")),
    },
]

AIRSEEKER_REGISTRY_ABI = [
    {
        "type": "function",
        "name": "dataFeedIdToDetails",
        "stateMutability": "view",
        "inputs": _inputs(("dataFeedId", "bytes32")),
        "outputs": _inputs(("dataFeedDetails", "bytes")),
    },
]


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class OnChainBid:
    """Bid as stored by the auction contract."""
    status: BidStatus
    bidder: str
    amount: int
    signed_data_cutoff: int
    chain_id: int
    collateral_amount: int
    protocol_fee_amount: int


@dataclass(frozen=True)
class AwardEvent:
    """AwardedBid log entry."""
    bid_id: bytes
    award_details: bytes
    tx_hash: bytes
    block_number: int


@dataclass(frozen=True)
class ConfirmationEvent:
    """ConfirmedFulfillment log entry."""
    bid_id: bytes
    payload: bytes
    timestamp: int
    tx_hash: bytes
    block_number: int


# =============================================================================
# Auction House
# =============================================================================


class AuctionHouse:
    """OEV auction contract on the auction network."""

    def __init__(self, client: ChainClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, AUCTION_HOUSE_ABI)

    @property
    def bidder(self) -> str:
        return self.client.address

    def block_number(self) -> int:
        return self.client.block_number()

    def place_bid(
        self,
        topic: bytes,
        chain_id: int,
        amount: int,
        details: bytes,
        max_collateral_amount: int,
        max_protocol_fee_amount: int,
        expiration_timestamp: int,
    ) -> TxRecord:
        fn = self.contract.functions.placeBidWithExpiration(
            topic,
            chain_id,
            amount,
            details,
            max_collateral_amount,
            max_protocol_fee_amount,
            expiration_timestamp,
        )
        return self.client.transact(fn, "placeBidWithExpiration")

    def read_bid(self, bid_id: bytes) -> OnChainBid:
        raw = self.client.call(self.contract.functions.bids(bid_id), "bids")
        return OnChainBid(
            status=BidStatus(raw[0]),
            bidder=raw[1],
            amount=raw[2],
            signed_data_cutoff=raw[3],
            chain_id=raw[4],
            collateral_amount=raw[5],
            protocol_fee_amount=raw[6],
        )

    def report_fulfillment(
        self,
        topic: bytes,
        details_hash: bytes,
        fulfillment_details: bytes,
    ) -> TxRecord:
        fn = self.contract.functions.reportFulfillment(topic, details_hash, fulfillment_details)
        return self.client.transact(fn, "reportFulfillment")

    def find_awarded_bid(
        self,
        topic: bytes,
        bid_id: bytes,
        from_block: int,
        to_block: int,
    ) -> Optional[AwardEvent]:
        logs = self.client.get_logs(
            self.contract.events.AwardedBid(),
            from_block,
            to_block,
            {"bidTopic": topic, "bidId": bid_id},
        )
        if not logs:
            return None
        log = logs[0]
        return AwardEvent(
            bid_id=bytes(log["args"]["bidId"]),
            award_details=bytes(log["args"]["awardDetails"]),
            tx_hash=bytes(log["transactionHash"]),
            block_number=log["blockNumber"],
        )

    def find_confirmed_fulfillment(
        self,
        topic: bytes,
        bid_id: bytes,
        from_block: int,
        to_block: int,
    ) -> Optional[ConfirmationEvent]:
        logs = self.client.get_logs(
            self.contract.events.ConfirmedFulfillment(),
            from_block,
            to_block,
            {"bidTopic": topic, "bidId": bid_id},
        )
        if not logs:
            return None
        log = logs[0]
        return ConfirmationEvent(
            bid_id=bytes(log["args"]["bidId"]),
            payload=bytes(log["args"]["payload"]),
            timestamp=log["args"]["timestamp"],
            tx_hash=bytes(log["transactionHash"]),
            block_number=log["blockNumber"],
        )


# =============================================================================
# Feed Updater
# =============================================================================


class FeedUpdater:
    """Payable feed updater contract on the target network."""

    def __init__(self, client: ChainClient, address: str):
        self.client = client
        self.address = address
        self.contract = client.contract(address, FEED_UPDATER_ABI)

    def chain_id(self) -> int:
        return self.client.chain_id()

    def pay_bid_and_update_feed(
        self,
        signed_data_cutoff: int,
        signature: bytes,
        bid_amount: int,
        signed_data: List[bytes],
    ) -> TxRecord:
        params = (signed_data_cutoff, signature, bid_amount, (list(signed_data),))
        fn = self.contract.functions.payBidAndUpdateFeed(params)
        return self.client.transact(fn, "payBidAndUpdateFeed", value=bid_amount)


# =============================================================================
# Data Feed Registry
# =============================================================================


class DataFeedRegistry:
    """Resolves dAPI names to their beacon sources on the target network."""

    def __init__(self, client: ChainClient, api3_server_address: str, airseeker_registry_address: str):
        self.client = client
        self.api3_server = client.contract(api3_server_address, API3_SERVER_ABI)
        self.airseeker_registry = client.contract(airseeker_registry_address, AIRSEEKER_REGISTRY_ABI)

    def data_feed_id(self, dapi_name_hash: bytes) -> bytes:
        fn = self.api3_server.functions.dapiNameHashToDataFeedId(dapi_name_hash)
        return bytes(self.client.call(fn, "dapiNameHashToDataFeedId"))

    def data_feed_details(self, data_feed_id: bytes) -> bytes:
        fn = self.airseeker_registry.functions.dataFeedIdToDetails(data_feed_id)
        return bytes(self.client.call(fn, "dataFeedIdToDetails"))
