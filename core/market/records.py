# Read-only views of the records the data store hands to the analytics layer.
# They are produced by the store implementations and never mutated afterwards.

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class ItemInfo:
    """An item known to the market, keyed by its stable tag."""

    id: int
    tag: str
    name: str
    tier: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class AuctionRecord:
    """A single auction listing.

    ``bin`` marks fixed-price ("buy it now") listings; everything else is a
    bid auction that resolves at ``end``.
    """

    uuid: str
    tag: str
    item_name: str
    starting_bid: int
    highest_bid: int
    bin: bool
    start: datetime
    end: datetime
    seller: str
    tier: Optional[str] = None


@dataclass(frozen=True)
class PricePoint:
    """Aggregated auction prices for one item over one sampling interval."""

    item_id: int
    date: datetime
    avg: float
    min: float
    max: float
    volume: int


@dataclass(frozen=True)
class BazaarQuote:
    """Quick-status quote for one bazaar product."""

    product_id: str
    buy_price: float
    sell_price: float
    buy_volume: int = 0
    sell_volume: int = 0
    buy_moving_week: int = 0
    sell_moving_week: int = 0
    buy_orders: int = 0
    sell_orders: int = 0
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class BazaarPull:
    """A timestamped bazaar snapshot holding at most one quote per product."""

    id: int
    timestamp: datetime
    quotes: Tuple[BazaarQuote, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AuctionFilters:
    """Optional restrictions for :meth:`MarketDataStore.auctions_by_tag`.

    ``active_at`` keeps auctions whose end lies after that instant,
    ``ended_after`` keeps auctions whose end lies after that instant
    regardless of whether they are still running.
    """

    bin_only: bool = False
    active_at: Optional[datetime] = None
    ended_after: Optional[datetime] = None
    order_by_price_asc: bool = True


@dataclass(frozen=True)
class AuctionActivity:
    """Auction house counters used for the flip market overview."""

    active_bin_auctions: int
    active_auctions: int
    sold: int
    sold_volume: int
