# Plain value records returned by the analytics layer.
# The API turns them into pydantic models and the CLI into table rows.

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class FlipOpportunity:
    auction_uuid: str
    item_tag: str
    item_name: str
    buy_price: int
    median_price: int
    profit: int
    profit_percent: float
    seller: str
    ends_at: datetime
    tier: Optional[str]


@dataclass(frozen=True)
class UnderpricedAuction:
    auction_uuid: str
    item_tag: str
    item_name: str
    price: int
    average_price: int
    discount: float
    seller: str
    ends_at: datetime


@dataclass(frozen=True)
class SnipeOpportunity:
    auction_uuid: str
    item_tag: str
    item_name: str
    price: int
    average_price: int
    discount: float
    listed_at: datetime
    ends_at: datetime
    seller: str


@dataclass(frozen=True)
class PriceTrend:
    item_tag: str
    item_name: str
    today_avg: float
    yesterday_avg: float
    change: float
    change_percent: float


@dataclass(frozen=True)
class BazaarMargin:
    product_id: str
    buy_price: float
    sell_price: float
    margin: float
    margin_percent: float
    buy_volume: int
    sell_volume: int


@dataclass(frozen=True)
class PriceHistoryPoint:
    date: datetime
    average: float
    min: float
    max: float
    volume: int


@dataclass(frozen=True)
class BazaarHistoryPoint:
    timestamp: datetime
    buy_price: float
    sell_price: float
    buy_volume: int
    sell_volume: int


@dataclass(frozen=True)
class FlipStats:
    active_bin_auctions: int
    active_auctions: int
    sold_last_24h: int
    total_volume_24h: int
    last_updated: datetime


@dataclass(frozen=True)
class CurrentPrice:
    """Latest aggregated price for an item next to its cheapest recent BINs."""

    item_tag: str
    average: float
    min: float
    max: float
    volume: int
    lowest_bin: int
    average_bin: int
    last_updated: Optional[datetime]


@dataclass(frozen=True)
class LowestBin:
    item_tag: str
    price: int
    auction_uuid: str
    seller: str
    ends_at: datetime


@dataclass(frozen=True)
class BazaarProduct:
    product_id: str
    buy_price: float
    sell_price: float
    buy_volume: int
    sell_volume: int
    buy_moving_week: int
    sell_moving_week: int
    buy_orders: int
    sell_orders: int
    timestamp: Optional[datetime]
