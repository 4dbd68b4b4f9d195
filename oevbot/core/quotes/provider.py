"""
Quote Provider - signed OEV data for a dAPI.

Resolves a dAPI name to its beacons on the target network, fetches the
latest OEV-signed update of every beacon from the signed API and freezes
them into a QuoteBundle. A failing source only shrinks the bundle.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from oevbot.core.chain.contracts import DataFeedRegistry
from oevbot.core.errors import QuoteSourceError, QuoteUnavailableError
from oevbot.core.quotes.signed_data import PriceDetail, QuoteBundle, build_quote_bundle
from oevbot.crypto import abi_decode, bytes_to_hex, keccak256
from oevbot.utils.logger import get_logger

logger = get_logger("quotes")


class QuoteProvider(Protocol):
    """Source of the quote bundle for a feed."""

    def fetch(self, feed_name: str) -> QuoteBundle:
        ...


# =============================================================================
# Signed API schema
# =============================================================================


class SignedDataEntry(BaseModel):
    """One signed update as served by the signed API."""
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    templateId: str
    timestamp: str
    encodedValue: str
    signature: str


class SignedApiResponse(BaseModel):
    """Response envelope; entries are validated one by one."""
    model_config = ConfigDict(extra="ignore")

    data: Dict[str, Dict[str, Any]]


# =============================================================================
# Helpers
# =============================================================================


def encode_dapi_name(name: str) -> bytes:
    """dAPI name as a right-zero-padded bytes32."""
    raw = name.encode("utf-8")
    if len(raw) > 32:
        raise ValueError(f"dAPI name longer than 32 bytes: {name!r}")
    return raw.ljust(32, b"\x00")


def derive_oev_template_id(template_id: bytes) -> bytes:
    return keccak256(template_id)


def decode_data_feed_details(details: bytes) -> List[Tuple[str, bytes]]:
    """
    Decode AirseekerRegistry data feed details into (airnode, templateId) pairs.

    Single beacons are encoded as (address, bytes32), beacon sets as
    (address[], bytes32[]).
    """
    if len(details) == 64:
        airnode, template_id = abi_decode(["address", "bytes32"], details)
        return [(airnode, template_id)]

    airnodes, template_ids = abi_decode(["address[]", "bytes32[]"], details)
    if len(airnodes) != len(template_ids):
        raise ValueError("Mismatched airnode and template id counts")
    return list(zip(airnodes, template_ids))


def _latest_update(entries: List[SignedDataEntry]) -> SignedDataEntry:
    def sort_key(entry: SignedDataEntry) -> int:
        try:
            return int(entry.timestamp)
        except ValueError:
            return -1

    return max(entries, key=sort_key)


# =============================================================================
# Provider
# =============================================================================


class SignedApiQuoteProvider:
    """
    QuoteProvider backed by the on-chain feed registry and the signed API.

    Args:
        registry: Api3ServerV1/AirseekerRegistry reader on the target network
        signed_api_url: Base URL; airnode addresses are appended
        http_client: httpx client (one is created if None)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        registry: DataFeedRegistry,
        signed_api_url: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.registry = registry
        self.signed_api_url = signed_api_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def fetch(self, feed_name: str) -> QuoteBundle:
        logger.info(f"Fetching OEV signed data for {feed_name}")

        dapi_name_hash = keccak256(encode_dapi_name(feed_name))
        data_feed_id = self.registry.data_feed_id(dapi_name_hash)
        logger.debug(f"Data feed id: {bytes_to_hex(data_feed_id)}")

        sources = decode_data_feed_details(self.registry.data_feed_details(data_feed_id))

        details = []
        for airnode, template_id in sources:
            try:
                detail = self.fetch_source(airnode, template_id)
            except QuoteSourceError as e:
                logger.warning(str(e))
                continue
            if detail is not None:
                details.append(detail)

        bundle = build_quote_bundle(feed_name, details)
        if len(bundle) == 0:
            raise QuoteUnavailableError(f"No valid signed data for {feed_name}")
        return bundle

    def fetch_source(self, airnode: str, template_id: bytes) -> Optional[PriceDetail]:
        """
        Fetch the latest OEV update of one beacon.

        Returns:
            PriceDetail, or None if the airnode serves no matching update

        Raises:
            QuoteSourceError: request or response parsing failed
        """
        oev_template_id = bytes_to_hex(derive_oev_template_id(template_id))

        try:
            response = self._http.get(f"{self.signed_api_url}/{airnode}")
            response.raise_for_status()
            payload = SignedApiResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise QuoteSourceError(airnode, f"HTTP error: {e}") from e
        except (ValueError, ValidationError) as e:
            raise QuoteSourceError(airnode, f"malformed response: {e}") from e

        relevant = []
        for key, raw in payload.data.items():
            if str(raw.get("templateId", "")).lower() != oev_template_id:
                continue
            try:
                relevant.append(SignedDataEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed signed data {key} from {airnode}: "
                    f"{e.error_count()} validation errors"
                )

        if not relevant:
            logger.debug(f"No OEV update for template {oev_template_id} at {airnode}")
            return None

        latest = _latest_update(relevant)
        return PriceDetail(
            airnode=airnode,
            template_id=bytes(template_id),
            oev_template_id=latest.templateId,
            timestamp=latest.timestamp,
            encoded_value=latest.encodedValue,
            signature=latest.signature,
        )
