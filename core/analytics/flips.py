import logging
from datetime import datetime
from typing import Dict, List, Optional

from core.analytics.base import MarketAnalyzer, clamp_limit
from core.market.records import AuctionRecord
from core.market.results import FlipOpportunity

logger = logging.getLogger(__name__)


def _rank_key(opportunity: FlipOpportunity):
    return (
        -opportunity.profit_percent,
        -opportunity.profit,
        opportunity.item_tag,
        opportunity.auction_uuid,
    )


class FlipDetector(MarketAnalyzer):
    """Detects flips between listings of the same item.

    The cheapest active BIN of every item is compared against the listing at
    the middle of that item's price-sorted group. For even sized groups this
    is the upper of the two middle listings (index ``count // 2``), not an
    interpolated median.
    """

    def find_opportunities(
        self,
        min_profit: float = 100000,
        min_profit_percent: float = 10,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> List[FlipOpportunity]:
        """Find flip opportunities across the whole auction house.

        Args:
            min_profit: Minimum coin difference between the cheapest and the
                reference listing. Negative values are treated as 0.
            min_profit_percent: Minimum difference relative to the cheapest
                listing. Negative values are treated as 0.
            limit: Maximum number of results, capped at MAX_FLIP_LIMIT.
            now: Point in time deciding which auctions are still active.

        Returns:
            Opportunities ranked by profit percent, then profit, then item
            tag, highest first.
        """
        limit = clamp_limit(limit, self.settings.MAX_FLIP_LIMIT)
        min_profit = max(min_profit, 0)
        min_profit_percent = max(min_profit_percent, 0)
        if limit == 0:
            return []

        sample = self.store.active_fixed_price_auctions(
            self._now(now), self.settings.FLIP_SAMPLE_SIZE, order_by_price_asc=True
        )
        logger.debug("Flip sample holds %d auctions", len(sample))

        # Group auctions by item tag
        grouped: Dict[str, List[AuctionRecord]] = {}
        for auction in sample:
            grouped.setdefault(auction.tag, []).append(auction)

        opportunities = []
        for tag, auctions in grouped.items():
            if len(auctions) < 2:
                continue

            auctions.sort(key=lambda a: (a.starting_bid, a.uuid))
            lowest = auctions[0]
            reference = auctions[len(auctions) // 2]
            if lowest.starting_bid == 0:
                continue

            profit = reference.starting_bid - lowest.starting_bid
            profit_percent = profit * 100 / lowest.starting_bid

            if profit >= min_profit and profit_percent >= min_profit_percent:
                opportunities.append(FlipOpportunity(
                    auction_uuid=lowest.uuid,
                    item_tag=tag,
                    item_name=lowest.item_name,
                    buy_price=lowest.starting_bid,
                    median_price=reference.starting_bid,
                    profit=profit,
                    profit_percent=profit_percent,
                    seller=lowest.seller,
                    ends_at=lowest.end,
                    tier=lowest.tier,
                ))

        opportunities.sort(key=_rank_key)
        logger.info("Found %d flip opportunities across %d items", len(opportunities), len(grouped))
        return opportunities[:limit]
