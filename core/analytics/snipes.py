import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from core.analytics.base import MarketAnalyzer, clamp, clamp_limit
from core.market.results import SnipeOpportunity

logger = logging.getLogger(__name__)


def _rank(snipes: List[SnipeOpportunity]) -> None:
    # Stable sorts, least significant key first
    snipes.sort(key=lambda s: s.auction_uuid)
    snipes.sort(key=lambda s: s.listed_at, reverse=True)
    snipes.sort(key=lambda s: s.discount, reverse=True)


class SnipeDetector(MarketAnalyzer):
    """Finds freshly listed BINs priced below the item's last known average."""

    def find_snipes(
        self,
        max_age_minutes: int = 5,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> List[SnipeOpportunity]:
        """Return recent listings at least SNIPE_MIN_DISCOUNT percent below average.

        ``max_age_minutes`` is capped at MAX_SNIPE_AGE_MINUTES and ``limit`` at
        MAX_SNIPE_LIMIT. Listings whose item has no price point, or only a
        non-positive average, are skipped.
        """
        max_age_minutes = clamp(max_age_minutes, 0, self.settings.MAX_SNIPE_AGE_MINUTES)
        limit = clamp_limit(limit, self.settings.MAX_SNIPE_LIMIT)
        if limit == 0:
            return []

        now = self._now(now)
        since = now - timedelta(minutes=max_age_minutes)
        recent = self.store.recently_listed_auctions(since, now, self.settings.SNIPE_SAMPLE_SIZE)
        if not recent:
            return []

        item_ids = self.store.resolve_item_ids_by_tags({a.tag for a in recent})
        averages: Dict[int, float] = {}
        for item_id in set(item_ids.values()):
            point = self.store.latest_price_point(item_id)
            if point is not None:
                averages[item_id] = point.avg
        logger.debug(
            "Snipe sample: %d auctions, %d resolved items, %d priced",
            len(recent), len(item_ids), len(averages),
        )

        snipes = []
        for auction in recent:
            item_id = item_ids.get(auction.tag)
            if item_id is None:
                continue
            average = averages.get(item_id)
            if average is None or average <= 0:
                continue

            discount = (average - auction.starting_bid) / average * 100
            if discount >= self.settings.SNIPE_MIN_DISCOUNT:
                snipes.append(SnipeOpportunity(
                    auction_uuid=auction.uuid,
                    item_tag=auction.tag,
                    item_name=auction.item_name,
                    price=auction.starting_bid,
                    average_price=int(average),
                    discount=discount,
                    listed_at=auction.start,
                    ends_at=auction.end,
                    seller=auction.seller,
                ))

        _rank(snipes)
        logger.info("Found %d snipes in the last %s minutes", len(snipes), max_age_minutes)
        return snipes[:limit]
