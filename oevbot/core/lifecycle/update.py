"""
Update Submitter - performs the awarded price feed update on the target network.

Pays the bid amount and hands the award signature plus the frozen quote
bundle to the feed updater contract, which validates both. Reverts are
final: after the cutoff a resubmission cannot succeed and the award
signature cannot be re-issued.
"""

import time
from typing import Callable

from oevbot.core.auction.window import AuctionWindow
from oevbot.core.chain.client import TxRecord
from oevbot.core.chain.contracts import FeedUpdater
from oevbot.core.errors import TimingMissError
from oevbot.core.quotes.signed_data import QuoteBundle
from oevbot.utils.logger import get_logger

logger = get_logger("update")


class UpdateSubmitter:
    """Submits awarded updates to the feed updater contract."""

    def __init__(self, feed_updater: FeedUpdater, clock: Callable[[], float] = time.time):
        self.feed_updater = feed_updater
        self.clock = clock

    def submit(
        self,
        award_signature: bytes,
        window: AuctionWindow,
        bid_amount: int,
        bundle: QuoteBundle,
    ) -> TxRecord:
        """
        Pay the bid and update the feed.

        Raises:
            TimingMissError: the bid already expired
            ContractRevertError: the feed updater rejected the update
        """
        now = self.clock()
        if now >= window.bid_expiry:
            raise TimingMissError(
                f"Award arrived at {now:.0f}, after bid expiry {window.bid_expiry}"
            )

        logger.info(
            f"Performing oracle update: cutoff={window.signed_data_cutoff} "
            f"amount={bid_amount} signed_data={len(bundle)} median={bundle.median_price}"
        )
        receipt = self.feed_updater.pay_bid_and_update_feed(
            signed_data_cutoff=window.signed_data_cutoff,
            signature=award_signature,
            bid_amount=bid_amount,
            signed_data=list(bundle.signed_data),
        )
        logger.info(f"Oracle update performed, tx {receipt.tx_hash_hex}")
        return receipt
