from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from core.market.records import (
    AuctionActivity,
    AuctionFilters,
    AuctionRecord,
    BazaarPull,
    BazaarQuote,
    ItemInfo,
    PricePoint,
)
from core.store.base import MarketDataStore


def _price_order(auction: AuctionRecord):
    return (auction.starting_bid, auction.uuid)


class InMemoryMarketStore(MarketDataStore):
    """A store backed by plain lists (for testing and demos).

    Queries follow the same filtering and ordering rules as the SQL store so
    analytics results do not depend on which backend produced them.
    """

    def __init__(
        self,
        items: Sequence[ItemInfo] = (),
        auctions: Sequence[AuctionRecord] = (),
        price_points: Sequence[PricePoint] = (),
        bazaar_pulls: Sequence[BazaarPull] = (),
    ):
        self.items = list(items)
        self.auctions = list(auctions)
        self.price_points = list(price_points)
        self.bazaar_pulls = list(bazaar_pulls)

    def active_fixed_price_auctions(
        self,
        now: datetime,
        sample_limit: int,
        tag: Optional[str] = None,
        order_by_price_asc: bool = True,
    ) -> List[AuctionRecord]:
        matches = [
            a
            for a in self.auctions
            if a.bin
            and a.end > now
            and (a.tag == tag if tag is not None else a.starting_bid > 0)
        ]
        if order_by_price_asc:
            matches.sort(key=_price_order)
        return matches[:sample_limit]

    def recently_listed_auctions(
        self, since: datetime, now: datetime, sample_limit: int
    ) -> List[AuctionRecord]:
        matches = [a for a in self.auctions if a.bin and a.start > since and a.end > now]
        matches.sort(key=lambda a: a.uuid)
        matches.sort(key=lambda a: a.start, reverse=True)
        return matches[:sample_limit]

    def auctions_by_tag(
        self, tag: str, filters: AuctionFilters, sample_limit: int
    ) -> List[AuctionRecord]:
        matches = []
        for auction in self.auctions:
            if auction.tag != tag:
                continue
            if filters.bin_only and not auction.bin:
                continue
            if filters.active_at is not None and auction.end <= filters.active_at:
                continue
            if filters.ended_after is not None and auction.end <= filters.ended_after:
                continue
            matches.append(auction)
        if filters.order_by_price_asc:
            matches.sort(key=_price_order)
        return matches[:sample_limit]

    def latest_price_point(self, item_id: int) -> Optional[PricePoint]:
        points = [p for p in self.price_points if p.item_id == item_id]
        if not points:
            return None
        return max(points, key=lambda p: p.date)

    def price_points_since(self, item_id: int, since: datetime) -> List[PricePoint]:
        points = [p for p in self.price_points if p.item_id == item_id and p.date > since]
        return sorted(points, key=lambda p: p.date)

    def price_points_between(self, start: datetime, end: datetime) -> List[PricePoint]:
        return [p for p in self.price_points if start <= p.date < end]

    def latest_bazaar_pull(self) -> Optional[BazaarPull]:
        if not self.bazaar_pulls:
            return None
        return max(self.bazaar_pulls, key=lambda p: p.timestamp)

    def bazaar_quotes_since(self, product_id: str, since: datetime) -> List[BazaarQuote]:
        quotes = []
        for pull in self.bazaar_pulls:
            for quote in pull.quotes:
                if quote.product_id != product_id:
                    continue
                # Quotes without their own timestamp take the pull's
                if quote.timestamp is None:
                    quote = replace(quote, timestamp=pull.timestamp)
                if quote.timestamp > since:
                    quotes.append(quote)
        return sorted(quotes, key=lambda q: q.timestamp)

    def resolve_item_ids_by_tags(self, tags: Iterable[str]) -> Dict[str, int]:
        wanted = set(tags)
        return {item.tag: item.id for item in self.items if item.tag in wanted}

    def items_by_ids(self, item_ids: Iterable[int]) -> Dict[int, ItemInfo]:
        wanted = set(item_ids)
        return {item.id: item for item in self.items if item.id in wanted}

    def auction_activity(self, now: datetime, since: datetime) -> AuctionActivity:
        active = [a for a in self.auctions if a.end > now]
        sold = [a for a in self.auctions if since < a.end <= now and a.highest_bid > 0]
        return AuctionActivity(
            active_bin_auctions=sum(1 for a in active if a.bin),
            active_auctions=sum(1 for a in active if not a.bin),
            sold=len(sold),
            sold_volume=sum(a.highest_bid for a in sold),
        )
