import logging
from datetime import datetime, timedelta
from typing import List, Optional

from core.analytics.base import MarketAnalyzer, clamp_limit, require_text
from core.analytics.margins import latest_pull_or_raise
from core.errors import NotFoundError
from core.market.records import AuctionFilters
from core.market.results import BazaarProduct, CurrentPrice, FlipStats, LowestBin

logger = logging.getLogger(__name__)


class MarketOverview(MarketAnalyzer):
    """Summary reads over the auction house and the bazaar."""

    def flip_stats(self, now: Optional[datetime] = None) -> FlipStats:
        """Active auction counts plus auctions sold during the last 24 hours."""
        now = self._now(now)
        activity = self.store.auction_activity(now, now - timedelta(days=1))
        return FlipStats(
            active_bin_auctions=activity.active_bin_auctions,
            active_auctions=activity.active_auctions,
            sold_last_24h=activity.sold,
            total_volume_24h=activity.sold_volume,
            last_updated=now,
        )

    def current_price(self, item_tag: str, now: Optional[datetime] = None) -> CurrentPrice:
        """Latest aggregated price of an item next to its cheapest recent BINs.

        The BIN sample holds the CURRENT_PRICE_BIN_SAMPLE cheapest BIN
        auctions that ended (or will end) within the last day. An item with
        no price point yet reports zeros instead of failing.

        Raises:
            NotFoundError: if the tag is not a known item.
        """
        item_tag = require_text(item_tag, "item_tag")
        now = self._now(now)

        item_id = self.store.resolve_item_ids_by_tags([item_tag]).get(item_tag)
        if item_id is None:
            raise NotFoundError("Item not found", details={"item_tag": item_tag})

        return self._current_price(item_tag, item_id, now)

    def compare_prices(self, tags: str, now: Optional[datetime] = None) -> List[CurrentPrice]:
        """Current prices for a comma separated list of item tags.

        Tags are trimmed and only the first MAX_COMPARE_TAGS are looked at.
        Unknown tags are skipped, so the result may be shorter than the input.

        Raises:
            InvalidArgumentError: if ``tags`` is blank.
        """
        tags = require_text(tags, "tags")
        now = self._now(now)

        wanted = [t.strip() for t in tags.split(",")]
        wanted = [t for t in wanted if t][: self.settings.MAX_COMPARE_TAGS]
        item_ids = self.store.resolve_item_ids_by_tags(wanted)
        logger.debug("Comparing %d tags, %d known", len(wanted), len(item_ids))

        return [
            self._current_price(tag, item_ids[tag], now)
            for tag in wanted
            if tag in item_ids
        ]

    def _current_price(self, item_tag: str, item_id: int, now: datetime) -> CurrentPrice:
        latest = self.store.latest_price_point(item_id)
        recent_bins = self.store.auctions_by_tag(
            item_tag,
            AuctionFilters(bin_only=True, ended_after=now - timedelta(days=1)),
            self.settings.CURRENT_PRICE_BIN_SAMPLE,
        )
        prices = [a.starting_bid for a in recent_bins]

        return CurrentPrice(
            item_tag=item_tag,
            average=latest.avg if latest else 0,
            min=latest.min if latest else 0,
            max=latest.max if latest else 0,
            volume=latest.volume if latest else 0,
            lowest_bin=min(prices) if prices else 0,
            average_bin=int(sum(prices) / len(prices)) if prices else 0,
            last_updated=latest.date if latest else None,
        )

    def lowest_bin(self, item_tag: str, now: Optional[datetime] = None) -> LowestBin:
        """The cheapest active BIN auction for an item.

        Raises:
            NotFoundError: if the item has no active BIN auctions.
        """
        item_tag = require_text(item_tag, "item_tag")
        cheapest = self.store.auctions_by_tag(
            item_tag,
            AuctionFilters(bin_only=True, active_at=self._now(now)),
            1,
        )
        if not cheapest:
            raise NotFoundError("No active BIN auctions found", details={"item_tag": item_tag})

        auction = cheapest[0]
        return LowestBin(
            item_tag=item_tag,
            price=auction.starting_bid,
            auction_uuid=auction.uuid,
            seller=auction.seller,
            ends_at=auction.end,
        )

    def top_bazaar_by_volume(self, limit: int = 20) -> List[BazaarProduct]:
        """Products of the newest pull ranked by ``(buy + sell volume) * buy price``."""
        limit = clamp_limit(limit, self.settings.MAX_MARGIN_LIMIT)
        pull = latest_pull_or_raise(self.store)

        quotes = sorted(
            pull.quotes,
            key=lambda q: (-(q.buy_volume + q.sell_volume) * q.buy_price, q.product_id),
        )
        return [
            BazaarProduct(
                product_id=q.product_id,
                buy_price=q.buy_price,
                sell_price=q.sell_price,
                buy_volume=q.buy_volume,
                sell_volume=q.sell_volume,
                buy_moving_week=q.buy_moving_week,
                sell_moving_week=q.sell_moving_week,
                buy_orders=q.buy_orders,
                sell_orders=q.sell_orders,
                timestamp=q.timestamp or pull.timestamp,
            )
            for q in quotes[:limit]
        ]
