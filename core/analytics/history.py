import logging
from datetime import datetime, timedelta
from typing import List, Optional

from core.analytics.base import MarketAnalyzer, clamp, require_text
from core.errors import NotFoundError
from core.market.results import BazaarHistoryPoint, PriceHistoryPoint

logger = logging.getLogger(__name__)


class WindowAggregator(MarketAnalyzer):
    """Plain time-series reads over a clamped lookback window.

    Both reads return every stored point newer than ``now - window`` in
    ascending time order, without resampling or filling gaps.
    """

    def item_price_history(
        self, item_tag: str, days: int = 7, now: Optional[datetime] = None
    ) -> List[PriceHistoryPoint]:
        """Price points of one item for the last ``days`` days (at most MAX_HISTORY_DAYS).

        Raises:
            NotFoundError: if the tag is not a known item.
        """
        item_tag = require_text(item_tag, "item_tag")
        days = clamp(days, 0, self.settings.MAX_HISTORY_DAYS)

        item_id = self.store.resolve_item_ids_by_tags([item_tag]).get(item_tag)
        if item_id is None:
            raise NotFoundError("Item not found", details={"item_tag": item_tag})

        since = self._now(now) - timedelta(days=days)
        points = self.store.price_points_since(item_id, since)
        logger.debug("%s: %d price points since %s", item_tag, len(points), since)
        return [
            PriceHistoryPoint(
                date=p.date,
                average=p.avg,
                min=p.min,
                max=p.max,
                volume=p.volume,
            )
            for p in points
        ]

    def bazaar_price_history(
        self, product_id: str, hours: int = 24, now: Optional[datetime] = None
    ) -> List[BazaarHistoryPoint]:
        """Quotes of one bazaar product for the last ``hours`` hours (at most MAX_BAZAAR_HISTORY_HOURS)."""
        product_id = require_text(product_id, "product_id")
        hours = clamp(hours, 0, self.settings.MAX_BAZAAR_HISTORY_HOURS)

        since = self._now(now) - timedelta(hours=hours)
        quotes = self.store.bazaar_quotes_since(product_id, since)
        return [
            BazaarHistoryPoint(
                timestamp=q.timestamp,
                buy_price=q.buy_price,
                sell_price=q.sell_price,
                buy_volume=q.buy_volume,
                sell_volume=q.sell_volume,
            )
            for q in quotes
        ]
