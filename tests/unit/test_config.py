"""
Tests for configuration validation and loading.
"""

import json
from decimal import Decimal

import pytest
from eth_utils import to_wei

from oevbot.core.config import AuctionConfig, BidderConfig, MAX_UINT256, load_config
from oevbot.core.errors import ConfigurationError

AUCTION_HOUSE = "0x" + "33" * 20
FEED_UPDATER = "0x" + "22" * 20


def bidder_kwargs(**overrides):
    kwargs = dict(
        auction_rpc_url="http://localhost:8545",
        target_rpc_url="http://localhost:8546",
        private_key="01" * 32,
        auction_house_address=AUCTION_HOUSE,
        feed_updater_address=FEED_UPDATER,
    )
    kwargs.update(overrides)
    return kwargs


def set_required(env):
    env.setenv("OEV_NETWORK_RPC_URL", "http://auction:8545")
    env.setenv("TARGET_NETWORK_RPC_URL", "http://target:8545")
    env.setenv("PRIVATE_KEY", "0x" + "01" * 32)
    env.setenv("OEV_AUCTION_HOUSE_ADDRESS", AUCTION_HOUSE)


class TestAuctionConfig:
    """Tests for AuctionConfig."""

    def test_defaults(self):
        config = AuctionConfig()
        assert (config.auction_length, config.bidding_phase_length, config.bidding_phase_buffer) == (30, 25, 3)
        assert config.dapp_id == 1
        assert config.major_version == 1

    def test_negative_dapp_id(self):
        with pytest.raises(ConfigurationError):
            AuctionConfig(dapp_id=-1)


class TestBidderConfig:
    """Tests for BidderConfig validation."""

    def test_defaults(self):
        config = BidderConfig(**bidder_kwargs())
        assert config.private_key == "0x" + "01" * 32
        assert config.bid_amount_wei == 10**14
        assert config.max_collateral_amount == MAX_UINT256
        assert config.max_protocol_fee_amount == MAX_UINT256
        assert config.poll_interval == 0.1
        assert config.event_lookback_blocks == 10

    def test_missing_rpc_url(self):
        with pytest.raises(ConfigurationError):
            BidderConfig(**bidder_kwargs(auction_rpc_url=""))

    def test_invalid_address(self):
        with pytest.raises(ConfigurationError):
            BidderConfig(**bidder_kwargs(feed_updater_address="0x1234"))

    def test_invalid_optional_address(self):
        with pytest.raises(ConfigurationError):
            BidderConfig(**bidder_kwargs(api3_server_address="server"))

    def test_non_positive_amount(self):
        with pytest.raises(ConfigurationError):
            BidderConfig(**bidder_kwargs(bid_amount_wei=0))

    def test_non_positive_interval(self):
        with pytest.raises(ConfigurationError):
            BidderConfig(**bidder_kwargs(poll_interval=0))


class TestLoadConfig:
    """Tests for load_config."""

    def test_from_environment(self, clean_env):
        set_required(clean_env)
        clean_env.setenv("OEV_FEED_UPDATER_ADDRESS", FEED_UPDATER)
        clean_env.setenv("BID_AMOUNT", "0.5")
        clean_env.setenv("DAPI_NAME", "BTC/USD")
        clean_env.setenv("OEV_AUCTION_LENGTH_SECONDS", "60")
        clean_env.setenv("OEV_BIDDING_PHASE_LENGTH_SECONDS", "50")
        clean_env.setenv("POLL_INTERVAL_SECONDS", "0.5")

        config = load_config()

        assert config.auction_rpc_url == "http://auction:8545"
        assert config.feed_updater_address == FEED_UPDATER
        assert config.bid_amount_wei == to_wei(Decimal("0.5"), "ether")
        assert config.feed_name == "BTC/USD"
        assert config.auction.auction_length == 60
        assert config.auction.bidding_phase_length == 50
        assert config.auction.bidding_phase_buffer == 3
        assert config.poll_interval == 0.5
        assert config.api3_server_address is None

    def test_from_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "OEV_NETWORK_RPC_URL=http://auction:8545\n"
            "TARGET_NETWORK_RPC_URL=http://target:8545\n"
            f"PRIVATE_KEY={'02' * 32}\n"
            f"OEV_AUCTION_HOUSE_ADDRESS={AUCTION_HOUSE}\n"
            f"OEV_FEED_UPDATER_ADDRESS={FEED_UPDATER}\n"
            "DAPP_ID=7\n"
        )

        config = load_config(str(env_file))

        assert config.private_key == "0x" + "02" * 32
        assert config.auction.dapp_id == 7

    def test_feed_updater_from_deployments(self, clean_env, tmp_path):
        set_required(clean_env)
        deployments = tmp_path / "deployments.json"
        deployments.write_text(json.dumps({"OevFeedUpdater": FEED_UPDATER}))
        clean_env.setenv("DEPLOYMENTS_FILE", str(deployments))

        assert load_config().feed_updater_address == FEED_UPDATER

    def test_deployments_without_feed_updater(self, clean_env, tmp_path):
        set_required(clean_env)
        deployments = tmp_path / "deployments.json"
        deployments.write_text(json.dumps({"Other": FEED_UPDATER}))
        clean_env.setenv("DEPLOYMENTS_FILE", str(deployments))

        with pytest.raises(ConfigurationError):
            load_config()

    def test_feed_updater_required(self, clean_env):
        set_required(clean_env)
        with pytest.raises(ConfigurationError):
            load_config()

    def test_missing_required(self, clean_env):
        clean_env.setenv("OEV_FEED_UPDATER_ADDRESS", FEED_UPDATER)
        with pytest.raises(ConfigurationError) as exc_info:
            load_config()
        assert "OEV_NETWORK_RPC_URL" in str(exc_info.value)

    def test_invalid_bid_amount(self, clean_env):
        set_required(clean_env)
        clean_env.setenv("OEV_FEED_UPDATER_ADDRESS", FEED_UPDATER)
        clean_env.setenv("BID_AMOUNT", "lots")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_invalid_number(self, clean_env):
        set_required(clean_env)
        clean_env.setenv("OEV_FEED_UPDATER_ADDRESS", FEED_UPDATER)
        clean_env.setenv("EVENT_LOOKBACK_BLOCKS", "ten")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_inconsistent_timing(self, clean_env):
        set_required(clean_env)
        clean_env.setenv("OEV_FEED_UPDATER_ADDRESS", FEED_UPDATER)
        clean_env.setenv("OEV_BIDDING_PHASE_BUFFER_SECONDS", "25")
        with pytest.raises(ConfigurationError):
            load_config()
