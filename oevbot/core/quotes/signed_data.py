"""
Signed price data and the quote bundle.

A quote bundle is the set of signed beacon updates submitted with the OEV
update, each ABI-encoded as

    (address airnode, bytes32 templateId, uint256 timestamp,
     bytes encodedValue, bytes signature)

plus the median of the decoded values as a reference price.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from oevbot.crypto import abi_encode, checksum_address, hex_to_bytes
from oevbot.utils.logger import get_logger

logger = get_logger("quotes")

# Beacon values are 18-decimal fixed point
VALUE_DECIMALS = 18


@dataclass(frozen=True)
class PriceDetail:
    """Latest signed update from one airnode."""
    airnode: str
    template_id: bytes       # beacon template id
    oev_template_id: str     # template id as served by the signed API
    timestamp: str
    encoded_value: str
    signature: str

    @property
    def timestamp_int(self) -> Optional[int]:
        try:
            return int(self.timestamp)
        except (TypeError, ValueError):
            return None

    @property
    def decoded_value(self) -> float:
        return int(self.encoded_value, 16) / 10 ** VALUE_DECIMALS

    def encode(self) -> bytes:
        return abi_encode(
            ["address", "bytes32", "uint256", "bytes", "bytes"],
            [
                checksum_address(self.airnode),
                self.template_id,
                int(self.timestamp),
                hex_to_bytes(self.encoded_value),
                hex_to_bytes(self.signature),
            ],
        )


@dataclass(frozen=True)
class QuoteBundle:
    """Signed data frozen for one bid cycle."""
    feed_name: str
    signed_data: Tuple[bytes, ...]
    median_price: float

    def __len__(self) -> int:
        return len(self.signed_data)


def _is_hex(value: Optional[str]) -> bool:
    # "0x" alone carries no digits and does not decode
    if not value or not value.startswith("0x") or len(value) == 2:
        return False
    try:
        hex_to_bytes(value)
    except ValueError:
        return False
    return True


def is_valid_detail(detail: PriceDetail) -> Tuple[bool, str]:
    """
    Check that a detail can be encoded for submission.

    Returns:
        (is_valid, error_message)
    """
    if detail.timestamp_int is None:
        return False, "invalid timestamp"
    if not _is_hex(detail.encoded_value):
        return False, "invalid encodedValue"
    if not _is_hex(detail.signature):
        return False, "invalid signature"
    return True, ""


def filter_valid_details(details: Sequence[PriceDetail]) -> List[PriceDetail]:
    """Drop details that fail validation, keeping order."""
    valid = []
    for detail in details:
        ok, reason = is_valid_detail(detail)
        if not ok:
            logger.warning(f"{reason.capitalize()} for airnode {detail.airnode}, skipping")
            continue
        valid.append(detail)

    logger.info(f"Filtered from {len(details)} to {len(valid)} valid price details")
    return valid


def median(values: Sequence[float]) -> float:
    """Median of values; 0 for an empty sequence."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0
    mid = n // 2
    if n % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def build_quote_bundle(feed_name: str, details: Sequence[PriceDetail]) -> QuoteBundle:
    """
    Filter details, compute the median price and encode the bundle.

    Invalid entries are excluded from both the encoded data and the median.
    """
    valid = filter_valid_details(details)
    median_price = median([d.decoded_value for d in valid])
    logger.info(f"Median price for {feed_name}: {median_price}")

    return QuoteBundle(
        feed_name=feed_name,
        signed_data=tuple(d.encode() for d in valid),
        median_price=median_price,
    )
