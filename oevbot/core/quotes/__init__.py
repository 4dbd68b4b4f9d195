"""
Quotes: signed OEV price data for the feed update.
"""

from oevbot.core.quotes.signed_data import (
    PriceDetail,
    QuoteBundle,
    build_quote_bundle,
    filter_valid_details,
    is_valid_detail,
    median,
)

from oevbot.core.quotes.provider import (
    QuoteProvider,
    SignedApiQuoteProvider,
    decode_data_feed_details,
    derive_oev_template_id,
    encode_dapi_name,
)

__all__ = [
    "PriceDetail",
    "QuoteBundle",
    "build_quote_bundle",
    "filter_valid_details",
    "is_valid_detail",
    "median",
    "QuoteProvider",
    "SignedApiQuoteProvider",
    "decode_data_feed_details",
    "derive_oev_template_id",
    "encode_dapi_name",
]
