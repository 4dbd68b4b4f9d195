"""
Chain access: web3 client, contract gateways and bounded polling.
"""

from oevbot.core.chain.client import ChainClient, TxRecord

from oevbot.core.chain.contracts import (
    AuctionHouse,
    AwardEvent,
    ConfirmationEvent,
    DataFeedRegistry,
    FeedUpdater,
    OnChainBid,
)

from oevbot.core.chain.polling import CancellationToken, Deadline, Poller

__all__ = [
    # Client
    "ChainClient",
    "TxRecord",
    # Contracts
    "AuctionHouse",
    "AwardEvent",
    "ConfirmationEvent",
    "DataFeedRegistry",
    "FeedUpdater",
    "OnChainBid",
    # Polling
    "CancellationToken",
    "Deadline",
    "Poller",
]
