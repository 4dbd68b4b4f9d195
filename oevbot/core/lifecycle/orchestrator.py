"""
Auction Orchestrator - one complete bid cycle.

    window -> bid identifiers -> quotes (fetched once) -> placement
           -> award -> feed update -> fulfillment report -> confirmation

The first failure aborts the cycle with a BidCycleError naming the phase.
Each cycle builds its own identifiers, watcher and reporter; cycles are not
repeated automatically.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from oevbot.core.auction.bid import Bid, BidState, create_bid
from oevbot.core.auction.window import AuctionWindow, compute_window
from oevbot.core.chain.client import ChainClient, TxRecord
from oevbot.core.chain.contracts import (
    AuctionHouse,
    ConfirmationEvent,
    DataFeedRegistry,
    FeedUpdater,
)
from oevbot.core.chain.polling import CancellationToken, Poller
from oevbot.core.config import BidderConfig
from oevbot.core.errors import BidCycleError, ConfigurationError, CyclePhase
from oevbot.core.lifecycle.award import AwardWatcher
from oevbot.core.lifecycle.fulfillment import FulfillmentReporter
from oevbot.core.lifecycle.submitter import BidSubmitter
from oevbot.core.lifecycle.update import UpdateSubmitter
from oevbot.core.quotes.provider import QuoteProvider, SignedApiQuoteProvider
from oevbot.core.quotes.signed_data import QuoteBundle
from oevbot.crypto import bytes_to_hex
from oevbot.utils.logger import cycle_context, get_logger, set_bid, set_phase

logger = get_logger("orchestrator")


@dataclass
class CycleResult:
    """Everything a completed cycle produced."""
    window: AuctionWindow
    bid: Bid
    quotes: QuoteBundle
    placement: TxRecord
    award_signature: bytes
    update: TxRecord
    report: TxRecord
    confirmation: ConfirmationEvent


class AuctionOrchestrator:
    """
    Drives bid cycles for one bidder.

    Args:
        config: Bidder configuration
        auction_house: Auction contract gateway
        feed_updater: Feed updater gateway on the target network
        quote_provider: Source of signed data
        clock: Wall clock (Unix seconds)
        sleep: Sleep used between polls; None waits on the cancel token
    """

    def __init__(
        self,
        config: BidderConfig,
        auction_house: AuctionHouse,
        feed_updater: FeedUpdater,
        quote_provider: QuoteProvider,
        clock: Callable[[], float] = time.time,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config
        self.auction_house = auction_house
        self.feed_updater = feed_updater
        self.quote_provider = quote_provider
        self.clock = clock
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: BidderConfig) -> "AuctionOrchestrator":
        """Wire web3 clients, contract gateways and the signed API provider."""
        if not config.api3_server_address or not config.airseeker_registry_address:
            raise ConfigurationError(
                "API3_SERVER_V1_ADDRESS and AIRSEEKER_REGISTRY_ADDRESS are required to fetch quotes"
            )

        auction_client = ChainClient(
            "auction network", config.auction_rpc_url, config.private_key, config.receipt_timeout
        )
        target_client = ChainClient(
            "target network", config.target_rpc_url, config.private_key, config.receipt_timeout
        )
        registry = DataFeedRegistry(
            target_client, config.api3_server_address, config.airseeker_registry_address
        )
        return cls(
            config=config,
            auction_house=AuctionHouse(auction_client, config.auction_house_address),
            feed_updater=FeedUpdater(target_client, config.feed_updater_address),
            quote_provider=SignedApiQuoteProvider(
                registry, config.signed_api_url, timeout=config.http_timeout
            ),
        )

    def compute_window(self) -> AuctionWindow:
        return compute_window(self.config.auction, int(self.clock()))

    def run_cycle(self, cancel_token: Optional[CancellationToken] = None) -> CycleResult:
        """
        Run one bid cycle to completion.

        Args:
            cancel_token: Lets another thread abort the polling phases

        Raises:
            BidCycleError: any phase failed; carries the phase and the bid
        """
        with cycle_context():
            return self._run_cycle(cancel_token)

    def _run_cycle(self, cancel_token: Optional[CancellationToken]) -> CycleResult:
        config = self.config
        poller = Poller(
            interval=config.poll_interval,
            max_backoff=config.max_backoff,
            cancel_token=cancel_token,
            sleep=self.sleep,
            clock=self.clock,
        )

        phase = CyclePhase.WINDOW
        set_phase(phase.name)
        bid: Optional[Bid] = None
        try:
            window = self.compute_window()
            logger.info(
                f"Target window: cutoff={window.signed_data_cutoff} "
                f"next bidding phase ends={window.bid_expiry}"
            )

            phase = CyclePhase.QUOTES
            set_phase(phase.name)
            quotes = self.quote_provider.fetch(config.feed_name)

            phase = CyclePhase.PLACEMENT
            set_phase(phase.name)
            target_chain_id = self.feed_updater.chain_id()
            bid = create_bid(
                window,
                config.auction,
                bidder=self.auction_house.bidder,
                beneficiary=config.feed_updater_address,
                amount=config.bid_amount_wei,
            )
            set_bid(bytes_to_hex(bid.bid_id))
            submitter = BidSubmitter(
                self.auction_house,
                config.max_collateral_amount,
                config.max_protocol_fee_amount,
            )
            placement = submitter.submit(bid, window, target_chain_id, now=int(self.clock()))

            phase = CyclePhase.AWARD
            set_phase(phase.name)
            watcher = AwardWatcher(
                self.auction_house,
                poller,
                lookback_blocks=config.event_lookback_blocks,
                grace_seconds=config.award_grace_seconds,
            )
            signature = watcher.wait_for_award(bid, window)

            phase = CyclePhase.UPDATE
            set_phase(phase.name)
            update = UpdateSubmitter(self.feed_updater, clock=self.clock).submit(
                signature, window, bid.amount, quotes
            )

            phase = CyclePhase.FULFILLMENT
            set_phase(phase.name)
            reporter = FulfillmentReporter(
                self.auction_house,
                poller,
                lookback_blocks=config.event_lookback_blocks,
                confirmation_timeout=config.confirmation_timeout,
            )
            report = reporter.report(bid, update)
            confirmation = reporter.wait_for_confirmation(bid)

        except Exception as e:
            logger.error(f"Bid cycle failed during {phase.name}: {e}")
            if bid is not None and bid.state in (BidState.PLACED, BidState.AWARDED):
                logger.warning(
                    f"Bid {bytes_to_hex(bid.bid_id)} left in state {bid.state.name}; "
                    f"funds may remain locked"
                )
            raise BidCycleError(phase, e, bid) from e

        logger.info(f"Bid cycle complete for bid {bytes_to_hex(bid.bid_id)[:18]}...")
        return CycleResult(
            window=window,
            bid=bid,
            quotes=quotes,
            placement=placement.receipt,
            award_signature=signature,
            update=update,
            report=report,
            confirmation=confirmation,
        )
