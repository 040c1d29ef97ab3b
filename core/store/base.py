# This file defines the abstract read interface every market data store implements
# The analytics layer only ever talks to this interface, never to a concrete backend

import abc
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from core.market.records import (
    AuctionActivity,
    AuctionFilters,
    AuctionRecord,
    BazaarPull,
    BazaarQuote,
    ItemInfo,
    PricePoint,
)


class MarketDataStore(abc.ABC):
    """Read-only provider of auctions, price points and bazaar pulls.

    Every method returns fully materialized lists or records. Analytics code
    fetches once at the start of an operation and then works on the returned
    values, so a store must never hand back lazy query objects.

    Implementations raise :class:`core.errors.DataStoreUnavailableError` when
    the backing storage cannot be read. They must not retry.
    """

    @abc.abstractmethod
    def active_fixed_price_auctions(
        self,
        now: datetime,
        sample_limit: int,
        tag: Optional[str] = None,
        order_by_price_asc: bool = True,
    ) -> List[AuctionRecord]:
        """Return up to ``sample_limit`` BIN auctions ending after ``now``.

        Only auctions with a positive starting bid are returned when ``tag``
        is None (the whole-market sample). With ``order_by_price_asc`` the
        cheapest listings come first, ties broken by uuid.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def recently_listed_auctions(
        self, since: datetime, now: datetime, sample_limit: int
    ) -> List[AuctionRecord]:
        """Return active BIN auctions that started after ``since``, newest first."""
        raise NotImplementedError

    @abc.abstractmethod
    def auctions_by_tag(
        self, tag: str, filters: AuctionFilters, sample_limit: int
    ) -> List[AuctionRecord]:
        """Return up to ``sample_limit`` auctions for ``tag`` matching ``filters``."""
        raise NotImplementedError

    @abc.abstractmethod
    def latest_price_point(self, item_id: int) -> Optional[PricePoint]:
        """Return the most recent price point for an item, if any."""
        raise NotImplementedError

    @abc.abstractmethod
    def price_points_since(self, item_id: int, since: datetime) -> List[PricePoint]:
        """Return price points strictly newer than ``since``, oldest first."""
        raise NotImplementedError

    @abc.abstractmethod
    def price_points_between(self, start: datetime, end: datetime) -> List[PricePoint]:
        """Return every item's price points with ``start <= date < end``."""
        raise NotImplementedError

    @abc.abstractmethod
    def latest_bazaar_pull(self) -> Optional[BazaarPull]:
        """Return the newest bazaar pull with all of its quotes, if any."""
        raise NotImplementedError

    @abc.abstractmethod
    def bazaar_quotes_since(self, product_id: str, since: datetime) -> List[BazaarQuote]:
        """Return one product's quotes strictly newer than ``since``, oldest first."""
        raise NotImplementedError

    @abc.abstractmethod
    def resolve_item_ids_by_tags(self, tags: Iterable[str]) -> Dict[str, int]:
        """Map each known tag to its item id. Unknown tags are left out."""
        raise NotImplementedError

    @abc.abstractmethod
    def items_by_ids(self, item_ids: Iterable[int]) -> Dict[int, ItemInfo]:
        """Map each known item id to its item. Unknown ids are left out."""
        raise NotImplementedError

    @abc.abstractmethod
    def auction_activity(self, now: datetime, since: datetime) -> AuctionActivity:
        """Count active auctions and those sold between ``since`` and ``now``."""
        raise NotImplementedError
