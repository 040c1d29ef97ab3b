import logging
from typing import List

from core.analytics.base import MarketAnalyzer, clamp_limit
from core.errors import NotFoundError
from core.market.records import BazaarPull
from core.market.results import BazaarMargin
from core.store.base import MarketDataStore

logger = logging.getLogger(__name__)


def latest_pull_or_raise(store: MarketDataStore) -> BazaarPull:
    pull = store.latest_bazaar_pull()
    if pull is None:
        raise NotFoundError("No bazaar data available")
    return pull


class MarginCalculator(MarketAnalyzer):
    """Ranks bazaar products of the newest pull by their buy/sell spread."""

    def top_margins(self, limit: int = 20) -> List[BazaarMargin]:
        """Return products with the highest margin relative to their sell price.

        Products without a positive buy and sell price are left out, which
        also keeps the percentage from dividing by zero.

        Raises:
            NotFoundError: if the store holds no bazaar pull.
        """
        limit = clamp_limit(limit, self.settings.MAX_MARGIN_LIMIT)
        pull = latest_pull_or_raise(self.store)

        margins = [
            BazaarMargin(
                product_id=q.product_id,
                buy_price=q.buy_price,
                sell_price=q.sell_price,
                margin=q.buy_price - q.sell_price,
                margin_percent=(q.buy_price - q.sell_price) / q.sell_price * 100,
                buy_volume=q.buy_volume,
                sell_volume=q.sell_volume,
            )
            for q in pull.quotes
            if q.buy_price > 0 and q.sell_price > 0
        ]
        margins.sort(key=lambda m: (-m.margin_percent, m.product_id))
        logger.debug("Pull %s: %d of %d products have a margin", pull.id, len(margins), len(pull.quotes))
        return margins[:limit]
