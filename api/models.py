from typing import Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime


# Response Models
# All of them are built straight from the analytics result records
class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class FlipOpportunity(ApiModel):
    """A cheap BIN listing compared against its item's reference listing."""

    auction_uuid: str
    item_tag: str
    item_name: Optional[str] = None
    buy_price: int
    median_price: int
    profit: int
    profit_percent: float
    seller: Optional[str] = None
    ends_at: datetime
    tier: Optional[str] = None


class UnderpricedAuction(ApiModel):
    """A BIN listing priced below its item's sampled average."""

    auction_uuid: str
    item_tag: str
    item_name: Optional[str] = None
    price: int
    average_price: int
    discount: float
    seller: Optional[str] = None
    ends_at: datetime


class SnipeOpportunity(ApiModel):
    """A freshly listed BIN priced below the item's last known average."""

    auction_uuid: str
    item_tag: str
    item_name: Optional[str] = None
    price: int
    average_price: int
    discount: float
    listed_at: datetime
    ends_at: datetime
    seller: Optional[str] = None


class FlipStats(ApiModel):
    active_bin_auctions: int
    active_auctions: int
    sold_last_24h: int
    total_volume_24h: int
    last_updated: datetime


class PriceHistoryPoint(ApiModel):
    date: datetime
    average: float
    min: float
    max: float
    volume: int


class CurrentPrice(ApiModel):
    item_tag: str
    average: float
    min: float
    max: float
    volume: int
    lowest_bin: int
    average_bin: int
    last_updated: Optional[datetime] = None


class LowestBin(ApiModel):
    item_tag: str
    price: int
    auction_uuid: str
    seller: Optional[str] = None
    ends_at: datetime


class PriceTrend(ApiModel):
    """Day-over-day change of an item's average price."""

    item_tag: str
    item_name: str
    today_avg: float
    yesterday_avg: float
    change: float
    change_percent: float


class BazaarMargin(ApiModel):
    product_id: str
    buy_price: float
    sell_price: float
    margin: float
    margin_percent: float
    buy_volume: int
    sell_volume: int


class BazaarProduct(ApiModel):
    product_id: str
    buy_price: float
    sell_price: float
    buy_volume: int
    sell_volume: int
    buy_moving_week: int
    sell_moving_week: int
    buy_orders: int
    sell_orders: int
    timestamp: Optional[datetime] = None


class BazaarHistoryPoint(ApiModel):
    timestamp: datetime
    buy_price: float
    sell_price: float
    buy_volume: int
    sell_volume: int


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str
