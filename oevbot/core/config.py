"""
Configuration for the bidding agent.

Defines auction timing constants and the runtime inputs of a bidder
(endpoints, signer key, contract addresses, bid parameters, poll tuning).
Values are read from the environment, optionally seeded from a .env file.
"""

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_utils import to_wei

from oevbot.core.errors import ConfigurationError
from oevbot.crypto import is_valid_address

MAX_UINT256 = 2**256 - 1

DEFAULT_SIGNED_API_URL = "https://signed-api.api3.org/public-oev"


@dataclass(frozen=True)
class AuctionConfig:
    """Auction timing parameters shared by every bidder of a dApp"""

    dapp_id: int = 1                     # dApp id of the communal proxies
    auction_length: int = 30             # L: seconds per auction
    bidding_phase_length: int = 25       # B: seconds of bidding per auction
    bidding_phase_buffer: int = 3        # S: minimum seconds left to bid
    major_version: int = 1               # OEV auctions protocol version

    def __post_init__(self):
        if self.dapp_id < 0:
            raise ConfigurationError(f"dapp_id must be >= 0, got {self.dapp_id}")
        if self.bidding_phase_buffer <= 0:
            raise ConfigurationError(
                f"bidding_phase_buffer must be positive, got {self.bidding_phase_buffer}"
            )
        if self.bidding_phase_buffer >= self.bidding_phase_length:
            raise ConfigurationError(
                f"bidding_phase_buffer ({self.bidding_phase_buffer}) must be shorter than "
                f"bidding_phase_length ({self.bidding_phase_length})"
            )
        if self.bidding_phase_length >= self.auction_length:
            raise ConfigurationError(
                f"bidding_phase_length ({self.bidding_phase_length}) must be shorter than "
                f"auction_length ({self.auction_length})"
            )


@dataclass
class BidderConfig:
    """Runtime inputs of one bidder process"""

    # Endpoints
    auction_rpc_url: str
    target_rpc_url: str

    # Signer
    private_key: str

    # Contracts
    auction_house_address: str
    feed_updater_address: str
    api3_server_address: Optional[str] = None
    airseeker_registry_address: Optional[str] = None

    # Bid
    bid_amount_wei: int = to_wei(Decimal("0.0001"), "ether")
    feed_name: str = "ETH/USD"
    max_collateral_amount: int = MAX_UINT256
    max_protocol_fee_amount: int = MAX_UINT256

    # Quotes
    signed_api_url: str = DEFAULT_SIGNED_API_URL
    http_timeout: float = 10.0

    # Polling
    poll_interval: float = 0.1           # seconds between polls
    max_backoff: float = 5.0             # cap on RPC retry delay
    event_lookback_blocks: int = 10      # blocks scanned per event poll
    award_grace_seconds: float = 30.0    # wait past bid expiry before giving up
    confirmation_timeout: float = 120.0  # wait for ConfirmedFulfillment
    receipt_timeout: float = 120.0       # wait for a mined receipt

    auction: AuctionConfig = field(default_factory=AuctionConfig)

    def __post_init__(self):
        for name in ("auction_rpc_url", "target_rpc_url", "private_key"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} is required")

        for name in (
            "auction_house_address",
            "feed_updater_address",
            "api3_server_address",
            "airseeker_registry_address",
        ):
            value = getattr(self, name)
            if value is not None and not is_valid_address(value):
                raise ConfigurationError(f"{name} is not a valid address: {value!r}")

        if not self.private_key.startswith("0x"):
            self.private_key = "0x" + self.private_key

        if self.bid_amount_wei <= 0:
            raise ConfigurationError(f"bid amount must be positive, got {self.bid_amount_wei}")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive")
        if self.event_lookback_blocks <= 0:
            raise ConfigurationError("event_lookback_blocks must be positive")


# =============================================================================
# Loading
# =============================================================================


def _require(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise ConfigurationError(f"Environment variable {name} is not set")
    return value


def _parse_ether(value: str) -> int:
    try:
        return to_wei(Decimal(value), "ether")
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"Invalid BID_AMOUNT {value!r}: {e}") from e


def _env_number(name: str, default, cast):
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name} {value!r}: {e}") from e


def _feed_updater_address() -> str:
    address = os.environ.get("OEV_FEED_UPDATER_ADDRESS")
    if address:
        return address

    deployments_file = os.environ.get("DEPLOYMENTS_FILE")
    if not deployments_file:
        raise ConfigurationError(
            "Set OEV_FEED_UPDATER_ADDRESS or DEPLOYMENTS_FILE to locate the feed updater"
        )
    path = Path(deployments_file)
    try:
        deployments = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read deployments file {path}: {e}") from e
    if "OevFeedUpdater" not in deployments:
        raise ConfigurationError(f"{path} has no OevFeedUpdater entry")
    return deployments["OevFeedUpdater"]


def load_config(env_file: Optional[str] = None) -> BidderConfig:
    """
    Load bidder configuration from the environment.

    Args:
        env_file: Optional .env file; the default search applies when None

    Returns:
        BidderConfig instance
    """
    load_dotenv(dotenv_path=env_file)

    auction = AuctionConfig(
        dapp_id=_env_number("DAPP_ID", 1, int),
        auction_length=_env_number("OEV_AUCTION_LENGTH_SECONDS", 30, int),
        bidding_phase_length=_env_number("OEV_BIDDING_PHASE_LENGTH_SECONDS", 25, int),
        bidding_phase_buffer=_env_number("OEV_BIDDING_PHASE_BUFFER_SECONDS", 3, int),
    )

    return BidderConfig(
        auction_rpc_url=_require("OEV_NETWORK_RPC_URL"),
        target_rpc_url=_require("TARGET_NETWORK_RPC_URL"),
        private_key=_require("PRIVATE_KEY"),
        auction_house_address=_require("OEV_AUCTION_HOUSE_ADDRESS"),
        feed_updater_address=_feed_updater_address(),
        api3_server_address=os.environ.get("API3_SERVER_V1_ADDRESS") or None,
        airseeker_registry_address=os.environ.get("AIRSEEKER_REGISTRY_ADDRESS") or None,
        bid_amount_wei=_parse_ether(os.environ.get("BID_AMOUNT") or "0.0001"),
        feed_name=os.environ.get("DAPI_NAME") or "ETH/USD",
        signed_api_url=os.environ.get("SIGNED_API_URL") or DEFAULT_SIGNED_API_URL,
        poll_interval=_env_number("POLL_INTERVAL_SECONDS", 0.1, float),
        event_lookback_blocks=_env_number("EVENT_LOOKBACK_BLOCKS", 10, int),
        award_grace_seconds=_env_number("AWARD_GRACE_SECONDS", 30.0, float),
        confirmation_timeout=_env_number("CONFIRMATION_TIMEOUT_SECONDS", 120.0, float),
        auction=auction,
    )
