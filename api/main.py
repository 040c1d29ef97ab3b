import logging
from typing import List

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config.settings import get_settings
from core.analytics.flips import FlipDetector
from core.analytics.history import WindowAggregator
from core.analytics.margins import MarginCalculator
from core.analytics.overview import MarketOverview
from core.analytics.snipes import SnipeDetector
from core.analytics.trends import TrendAnalyzer
from core.analytics.underpriced import UnderpricedFinder
from core.database.operations import SqlMarketStore, get_db
from core.errors import (
    DataStoreUnavailableError,
    InvalidArgumentError,
    MarketAnalyticsError,
    NotFoundError,
)
from core.store.base import MarketDataStore

from .models import (
    BazaarHistoryPoint,
    BazaarMargin,
    BazaarProduct,
    CurrentPrice,
    FlipOpportunity,
    FlipStats,
    LowestBin,
    PriceHistoryPoint,
    PriceTrend,
    SnipeOpportunity,
    UnderpricedAuction,
)

logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(
    title="Market Analytics API",
    description="Read analytics over the auction house and the bazaar",
    version=settings.PROJECT_VERSION,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(db: Session = Depends(get_db)) -> MarketDataStore:
    """Wrap the request's database session in a market data store."""
    return SqlMarketStore(db)


@app.get("/", tags=["General"])
async def root():
    """Root endpoint providing API information."""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.PROJECT_VERSION,
        "description": "Flip, snipe, trend and margin analytics for auctions and the bazaar",
        "endpoints": {
            "GET /flips/opportunities": "Cheapest BINs well below their item's reference listing",
            "GET /flips/underpriced/{item_tag}": "BINs priced below the item's average",
            "GET /flips/snipes": "Freshly listed BINs below the last known average",
            "GET /flips/stats": "Auction house activity",
            "GET /prices/trending/{direction}": "Biggest day-over-day price changes",
            "GET /prices/compare": "Current prices of several items",
            "GET /prices/{item_tag}/history": "Price history of an item",
            "GET /prices/{item_tag}/current": "Current price of an item",
            "GET /prices/{item_tag}/lowestbin": "Cheapest active BIN of an item",
            "GET /bazaar/top/margin": "Bazaar products with the best margins",
            "GET /bazaar/top/volume": "Bazaar products with the most volume",
            "GET /bazaar/{product_id}/history": "Quote history of a bazaar product",
        },
    }


@app.get("/flips/opportunities", response_model=List[FlipOpportunity], tags=["Flips"])
def get_flip_opportunities(
    min_profit: int = 100000,
    min_profit_percent: float = 10,
    limit: int = 20,
    store: MarketDataStore = Depends(get_store),
):
    """Get potential flips based on the price gap inside each item's listings."""
    opportunities = FlipDetector(store).find_opportunities(
        min_profit=min_profit, min_profit_percent=min_profit_percent, limit=limit
    )
    return [FlipOpportunity.model_validate(o) for o in opportunities]


@app.get("/flips/underpriced/{item_tag}", response_model=List[UnderpricedAuction], tags=["Flips"])
def get_underpriced_auctions(
    item_tag: str,
    percent_below: float = 20,
    store: MarketDataStore = Depends(get_store),
):
    """Get BIN auctions for one item priced below its sampled average."""
    auctions = UnderpricedFinder(store).find(item_tag, percent_below=percent_below)
    return [UnderpricedAuction.model_validate(a) for a in auctions]


@app.get("/flips/snipes", response_model=List[SnipeOpportunity], tags=["Flips"])
def get_snipe_opportunities(
    max_age: int = 5,
    limit: int = 20,
    store: MarketDataStore = Depends(get_store),
):
    """Get very recently listed BIN auctions priced below the item's average."""
    snipes = SnipeDetector(store).find_snipes(max_age_minutes=max_age, limit=limit)
    return [SnipeOpportunity.model_validate(s) for s in snipes]


@app.get("/flips/stats", response_model=FlipStats, tags=["Flips"])
def get_flip_stats(store: MarketDataStore = Depends(get_store)):
    """Get overall auction house statistics."""
    return FlipStats.model_validate(MarketOverview(store).flip_stats())


# Registered before the item routes so "trending" is never read as an item tag
@app.get("/prices/trending/{direction}", response_model=List[PriceTrend], tags=["Prices"])
def get_trending_prices(
    direction: str,
    limit: int = 20,
    store: MarketDataStore = Depends(get_store),
):
    """Get items with the biggest price change since yesterday ("down" for drops)."""
    trends = TrendAnalyzer(store).trending(direction, limit=limit)
    return [PriceTrend.model_validate(t) for t in trends]


@app.get("/prices/compare", response_model=List[CurrentPrice], tags=["Prices"])
def compare_prices(tags: str = "", store: MarketDataStore = Depends(get_store)):
    """Get current prices for several items at once (comma separated tags)."""
    prices = MarketOverview(store).compare_prices(tags)
    return [CurrentPrice.model_validate(p) for p in prices]


@app.get("/prices/{item_tag}/history", response_model=List[PriceHistoryPoint], tags=["Prices"])
def get_price_history(
    item_tag: str,
    days: int = 7,
    store: MarketDataStore = Depends(get_store),
):
    """Get price history for an item."""
    points = WindowAggregator(store).item_price_history(item_tag, days=days)
    return [PriceHistoryPoint.model_validate(p) for p in points]


@app.get("/prices/{item_tag}/current", response_model=CurrentPrice, tags=["Prices"])
def get_current_price(item_tag: str, store: MarketDataStore = Depends(get_store)):
    """Get the current average price and recent BIN prices for an item."""
    return CurrentPrice.model_validate(MarketOverview(store).current_price(item_tag))


@app.get("/prices/{item_tag}/lowestbin", response_model=LowestBin, tags=["Prices"])
def get_lowest_bin(item_tag: str, store: MarketDataStore = Depends(get_store)):
    """Get the cheapest active BIN auction for an item."""
    return LowestBin.model_validate(MarketOverview(store).lowest_bin(item_tag))


@app.get("/bazaar/top/margin", response_model=List[BazaarMargin], tags=["Bazaar"])
def get_top_by_margin(limit: int = 20, store: MarketDataStore = Depends(get_store)):
    """Get bazaar products with the highest margins."""
    margins = MarginCalculator(store).top_margins(limit=limit)
    return [BazaarMargin.model_validate(m) for m in margins]


@app.get("/bazaar/top/volume", response_model=List[BazaarProduct], tags=["Bazaar"])
def get_top_by_volume(limit: int = 20, store: MarketDataStore = Depends(get_store)):
    """Get bazaar products with the most traded value."""
    products = MarketOverview(store).top_bazaar_by_volume(limit=limit)
    return [BazaarProduct.model_validate(p) for p in products]


@app.get("/bazaar/{product_id}/history", response_model=List[BazaarHistoryPoint], tags=["Bazaar"])
def get_bazaar_history(
    product_id: str,
    hours: int = 24,
    store: MarketDataStore = Depends(get_store),
):
    """Get quote history for a bazaar product."""
    points = WindowAggregator(store).bazaar_price_history(product_id, hours=hours)
    return [BazaarHistoryPoint.model_validate(p) for p in points]


# Error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(_request, exc):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=exc.to_dict())


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(_request, exc):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())


@app.exception_handler(DataStoreUnavailableError)
async def store_unavailable_handler(_request, exc):
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=exc.to_dict())


@app.exception_handler(MarketAnalyticsError)
async def analytics_error_handler(_request, exc):
    logger.error("Unhandled analytics error: %s", exc.message)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=exc.to_dict())


# Run with: uvicorn api.main:app --reload
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
