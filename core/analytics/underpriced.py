import logging
from datetime import datetime
from typing import List, Optional

from core.analytics.base import MarketAnalyzer, clamp, require_text
from core.errors import NotFoundError
from core.market.results import UnderpricedAuction

logger = logging.getLogger(__name__)


class UnderpricedFinder(MarketAnalyzer):
    """Flags BIN listings priced well below the sampled mean for one item."""

    def find(
        self,
        item_tag: str,
        percent_below: float = 20,
        now: Optional[datetime] = None,
    ) -> List[UnderpricedAuction]:
        """Return active BINs for ``item_tag`` priced below the sample mean.

        A listing qualifies when its price is strictly below
        ``mean * (100 - percent_below) / 100``. Results come back cheapest
        first.

        Raises:
            InvalidArgumentError: if ``item_tag`` is blank.
            NotFoundError: if the item has no active BIN auctions.
        """
        item_tag = require_text(item_tag, "item_tag")
        percent_below = clamp(percent_below, 0, 100)

        sample = self.store.active_fixed_price_auctions(
            self._now(now),
            self.settings.UNDERPRICED_SAMPLE_SIZE,
            tag=item_tag,
            order_by_price_asc=True,
        )
        if not sample:
            raise NotFoundError(
                "No active BIN auctions found", details={"item_tag": item_tag}
            )

        average = sum(a.starting_bid for a in sample) / len(sample)
        threshold = average * (100 - percent_below) / 100

        underpriced = [
            UnderpricedAuction(
                auction_uuid=a.uuid,
                item_tag=a.tag,
                item_name=a.item_name,
                price=a.starting_bid,
                average_price=int(average),
                discount=(average - a.starting_bid) / average * 100,
                seller=a.seller,
                ends_at=a.end,
            )
            for a in sample
            if a.starting_bid < threshold
        ]
        underpriced.sort(key=lambda u: (u.price, u.auction_uuid))
        logger.info(
            "%d of %d %s auctions are below %.2f", len(underpriced), len(sample), item_tag, threshold
        )
        return underpriced
