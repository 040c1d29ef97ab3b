import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from core.analytics.base import MarketAnalyzer, clamp_limit
from core.market.results import PriceTrend

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def _daily_means(points) -> Dict[int, float]:
    totals: Dict[int, List[float]] = defaultdict(list)
    for point in points:
        totals[point.item_id].append(point.avg)
    return {item_id: sum(values) / len(values) for item_id, values in totals.items()}


class TrendAnalyzer(MarketAnalyzer):
    """Ranks items by the change of their average price from yesterday to today."""

    def trending(
        self,
        direction: Optional[str] = "up",
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> List[PriceTrend]:
        """Return the items with the largest day-over-day price change.

        Only a ``direction`` of "down" (any case) puts the biggest drops
        first. Every other value, including typos and None, ranks the
        biggest rises first.

        Days are UTC calendar days. Items need price points on both days and
        a positive average yesterday to be ranked.
        """
        limit = clamp_limit(limit, self.settings.MAX_TREND_LIMIT)
        if limit == 0:
            return []

        today = self._now(now).replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        tomorrow = today + timedelta(days=1)

        points = self.store.price_points_between(yesterday, tomorrow)
        today_avgs = _daily_means(p for p in points if p.date >= today)
        yesterday_avgs = _daily_means(p for p in points if p.date < today)

        changes = []
        for item_id, today_avg in today_avgs.items():
            yesterday_avg = yesterday_avgs.get(item_id)
            if yesterday_avg is None or yesterday_avg <= 0:
                continue
            change = today_avg - yesterday_avg
            changes.append((item_id, today_avg, yesterday_avg, change, change / yesterday_avg * 100))

        descending = (direction or "").lower() != "down"
        changes.sort(key=lambda c: c[0])
        changes.sort(key=lambda c: c[4], reverse=descending)
        top = changes[:limit]
        logger.debug("Ranked %d items with prices on both days", len(changes))

        items = self.store.items_by_ids(c[0] for c in top)
        trends = []
        for item_id, today_avg, yesterday_avg, change, change_percent in top:
            item = items.get(item_id)
            trends.append(PriceTrend(
                item_tag=item.tag if item else UNKNOWN,
                item_name=(item.name or UNKNOWN) if item else UNKNOWN,
                today_avg=today_avg,
                yesterday_avg=yesterday_avg,
                change=change,
                change_percent=change_percent,
            ))
        return trends
