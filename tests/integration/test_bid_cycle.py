"""
Integration tests: a complete bid cycle against in-memory contracts.

Scenarios:
1. Successful cycle with the window rolled past a closing bidding phase
2. Placement revert
3. No usable quotes
4. Bid not awarded
5. Award arriving after bid expiry
6. Update revert
7. Missing fulfillment confirmation
8. Cancellation
9. Bidding phase closing while quotes are fetched
10. RPC outage while waiting for the award
"""

import pytest

from oevbot.core.auction import BidState, auction_offset, compute_window
from oevbot.core.chain import CancellationToken
from oevbot.core.errors import (
    BidCycleError,
    BidNotAwardedError,
    ContractRevertError,
    CycleCancelledError,
    CyclePhase,
    PollTimeoutError,
    QuoteUnavailableError,
    TimingMissError,
)
from oevbot.core.lifecycle import AuctionOrchestrator
from oevbot.crypto import abi_decode, keccak256


def time_with_bidding_left(config, seconds_left: int, after: int = 1000) -> int:
    """First timestamp >= `after` with exactly `seconds_left` of bidding remaining."""
    offset = auction_offset(config.dapp_id, config.auction_length)
    for t in range(after, after + config.auction_length):
        start = t - (t - offset) % config.auction_length
        if start + config.bidding_phase_length - t == seconds_left:
            return t
    raise AssertionError("no such timestamp")


@pytest.fixture
def orchestrator(bidder_config, auction_house, feed_updater, quote_provider, clock):
    return AuctionOrchestrator(
        bidder_config,
        auction_house,
        feed_updater,
        quote_provider,
        clock=clock,
        sleep=clock.sleep,
    )


class TestSuccessfulCycle:
    """The happy path end to end."""

    def test_cycle_with_rolled_window(
        self, orchestrator, bidder_config, auction_house, feed_updater, quote_provider, clock
    ):
        clock.now = float(time_with_bidding_left(bidder_config.auction, 2))
        naive = compute_window(bidder_config.auction, int(clock.now) - 10)

        result = orchestrator.run_cycle()

        # Two seconds left is under the buffer: target the next auction
        assert result.window.signed_data_cutoff == naive.signed_data_cutoff + 30

        placed = auction_house.placements[0]
        assert placed["expiration_timestamp"] == result.window.signed_data_cutoff + 30
        assert placed["chain_id"] == 11155111
        assert placed["amount"] == bidder_config.bid_amount_wei

        beneficiary, _ = abi_decode(["address", "bytes32"], placed["details"])
        assert beneficiary.lower() == bidder_config.feed_updater_address

        update = feed_updater.updates[0]
        assert update["signature"] == result.award_signature
        assert update["signed_data_cutoff"] == result.window.signed_data_cutoff
        assert update["signed_data"] == list(quote_provider.bundle.signed_data)

        report = auction_house.reports[0]
        assert report["fulfillment_details"] == result.update.tx_hash
        assert report["details_hash"] == keccak256(result.bid.details)

        assert result.bid.state == BidState.AWARDED
        assert result.confirmation.bid_id == result.bid.bid_id
        assert quote_provider.fetches == 1

    def test_cycles_use_fresh_bid_ids(self, orchestrator, auction_house):
        first = orchestrator.run_cycle()
        auction_house.reads = 0
        auction_house.confirmation_lookups = []
        second = orchestrator.run_cycle()

        assert first.bid.bid_id != second.bid.bid_id


class TestFailedCycles:
    """Each failure aborts the cycle in the phase it happened."""

    def test_placement_revert(self, orchestrator, auction_house, feed_updater):
        auction_house.place_revert = "Insufficient balance"

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.PLACEMENT
        assert isinstance(exc_info.value.cause, ContractRevertError)
        assert exc_info.value.bid.state == BidState.UNANNOUNCED
        assert auction_house.reads == 0
        assert feed_updater.updates == []

    def test_quotes_unavailable(self, orchestrator, auction_house, quote_provider):
        quote_provider.error = QuoteUnavailableError("No valid signed data for ETH/USD")

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.QUOTES
        assert exc_info.value.bid is None
        assert auction_house.placements == []

    def test_not_awarded(self, orchestrator, auction_house, feed_updater):
        auction_house.award_after_reads = None

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.AWARD
        assert isinstance(exc_info.value.cause, BidNotAwardedError)
        assert exc_info.value.bid.state == BidState.LOST
        assert feed_updater.updates == []

    def test_award_after_expiry(self, orchestrator, bidder_config, auction_house, feed_updater, clock):
        window = compute_window(bidder_config.auction, int(clock.now))
        # Award two seconds after the bid expired, still within the grace period
        auction_house.award_after_reads = int((window.bid_expiry - clock.now) / 0.1) + 20

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.UPDATE
        assert isinstance(exc_info.value.cause, TimingMissError)
        assert exc_info.value.bid.state == BidState.AWARDED
        assert feed_updater.updates == []

    def test_update_revert(self, orchestrator, auction_house, feed_updater):
        feed_updater.revert = "Invalid signed data"

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.UPDATE
        assert isinstance(exc_info.value.cause, ContractRevertError)
        assert auction_house.reports == []

    def test_confirmation_missing(self, orchestrator, auction_house):
        auction_house.confirm_after_polls = None

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.FULFILLMENT
        assert isinstance(exc_info.value.cause, PollTimeoutError)
        assert len(auction_house.reports) == 1

    def test_cancelled(self, orchestrator, auction_house):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle(cancel_token=token)

        assert exc_info.value.phase == CyclePhase.AWARD
        assert isinstance(exc_info.value.cause, CycleCancelledError)
        assert exc_info.value.bid.state == BidState.PLACED
        assert len(auction_house.placements) == 1

    def test_bidding_phase_closes_during_quote_fetch(
        self, orchestrator, bidder_config, auction_house, quote_provider, clock
    ):
        window = compute_window(bidder_config.auction, int(clock.now))
        # Quote sources answer slowly, past the end of the bidding phase
        quote_provider.on_fetch = lambda: clock.sleep(window.bidding_phase_end_time - clock.now + 1)

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.PLACEMENT
        assert isinstance(exc_info.value.cause, TimingMissError)
        assert exc_info.value.bid.state == BidState.UNANNOUNCED
        assert auction_house.placements == []

    def test_rpc_outage_during_award_keeps_bid_placed(self, orchestrator, auction_house):
        auction_house.read_failures = 10**9

        with pytest.raises(BidCycleError) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.phase == CyclePhase.AWARD
        assert isinstance(exc_info.value.cause, PollTimeoutError)
        assert exc_info.value.bid.state == BidState.PLACED
