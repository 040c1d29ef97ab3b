# This file contains the database access layer that handles connections to the market database
# and implements the read-only MarketDataStore interface on top of SQLAlchemy sessions

import logging
from functools import wraps
from typing import Dict, Generator, Iterable, List, Optional
from datetime import datetime

import pymysql
import sqlalchemy.exc
from sqlalchemy import create_engine, func, text
from sqlalchemy.orm import Session, selectinload, sessionmaker

from config.settings import get_settings
from core.errors import DataStoreUnavailableError
from core.market.records import (
    AuctionActivity,
    AuctionFilters,
    AuctionRecord,
    BazaarPull as BazaarPullRecord,
    BazaarQuote,
    ItemInfo,
    PricePoint,
)
from core.store.base import MarketDataStore
from .models import Auction, Base, BazaarProduct, BazaarPull, Item, Price

logger = logging.getLogger(__name__)

# Get application settings
settings = get_settings()

# Database Connection Setup
# The engine is the low-level interface to the database that handles the connection pool
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Session Factory
# Every analytics call gets its own short-lived session, so reads never share state
SessionLocal = sessionmaker(bind=engine)


def ensure_database_exists():
    """Ensure that the MySQL database exists before attempting operations."""
    if engine.dialect.name != "mysql":
        return
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return  # Database exists and connection works
    except sqlalchemy.exc.OperationalError as e:
        # This is the specific exception for connection problems including "Unknown database"
        if "Unknown database" not in str(e):
            logger.error("Database connection error: %s", e)
            raise
        try:
            create_db_connection = pymysql.connect(
                host=settings.DB_HOST,
                user=settings.DB_USER,
                password=settings.DB_PASS,
                port=int(settings.DB_PORT)
            )
            try:
                with create_db_connection.cursor() as cursor:
                    cursor.execute(f"CREATE DATABASE IF NOT EXISTS {settings.DB_NAME}")
                logger.info("Created database '%s'", settings.DB_NAME)
            finally:
                create_db_connection.close()
        except pymysql.Error as db_err:
            logger.error("Failed to create database: %s", db_err)
            raise


def init_db():
    """Create the market tables if they don't exist.

    The production schema is owned by the ingestion pipeline; this exists so
    a local or demo database can be brought up with the same layout.
    """
    ensure_database_exists()
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator:
    """Create and yield a database session.

    Used as a FastAPI dependency. The session is closed even if the request
    fails halfway through.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _store_read(method):
    """Turn SQLAlchemy failures inside a store read into DataStoreUnavailableError."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except sqlalchemy.exc.SQLAlchemyError as e:
            logger.error("Market store read %s failed: %s", method.__name__, e)
            raise DataStoreUnavailableError(
                f"Market data store unavailable: {e}",
                details={"operation": method.__name__},
            ) from e

    return wrapper


def _to_auction(row: Auction) -> AuctionRecord:
    return AuctionRecord(
        uuid=row.uuid,
        tag=row.tag,
        item_name=row.item_name,
        starting_bid=row.starting_bid,
        highest_bid=row.highest_bid_amount,
        bin=row.bin,
        start=row.start,
        end=row.end,
        seller=row.auctioneer_id,
        tier=row.tier,
    )


def _to_price_point(row: Price) -> PricePoint:
    return PricePoint(
        item_id=row.item_id,
        date=row.date,
        avg=row.avg,
        min=row.min,
        max=row.max,
        volume=row.volume,
    )


def _to_quote(row: BazaarProduct) -> BazaarQuote:
    return BazaarQuote(
        product_id=row.product_id,
        buy_price=row.buy_price,
        sell_price=row.sell_price,
        buy_volume=row.buy_volume,
        sell_volume=row.sell_volume,
        buy_moving_week=row.buy_moving_week,
        sell_moving_week=row.sell_moving_week,
        buy_orders=row.buy_orders,
        sell_orders=row.sell_orders,
        timestamp=row.timestamp,
    )


class SqlMarketStore(MarketDataStore):
    """MarketDataStore backed by a SQLAlchemy session.

    Each query is executed immediately with ``.all()`` or ``.first()`` and
    converted into immutable records, so nothing handed to the analytics
    layer can trigger another round trip.
    """

    def __init__(self, db: Session):
        self.db = db

    @_store_read
    def active_fixed_price_auctions(
        self,
        now: datetime,
        sample_limit: int,
        tag: Optional[str] = None,
        order_by_price_asc: bool = True,
    ) -> List[AuctionRecord]:
        query = self.db.query(Auction).filter(Auction.bin.is_(True), Auction.end > now)
        if tag is not None:
            query = query.filter(Auction.tag == tag)
        else:
            query = query.filter(Auction.starting_bid > 0)
        if order_by_price_asc:
            query = query.order_by(Auction.starting_bid.asc(), Auction.uuid.asc())
        return [_to_auction(row) for row in query.limit(sample_limit).all()]

    @_store_read
    def recently_listed_auctions(
        self, since: datetime, now: datetime, sample_limit: int
    ) -> List[AuctionRecord]:
        rows = (
            self.db.query(Auction)
            .filter(Auction.bin.is_(True), Auction.start > since, Auction.end > now)
            .order_by(Auction.start.desc(), Auction.uuid.asc())
            .limit(sample_limit)
            .all()
        )
        return [_to_auction(row) for row in rows]

    @_store_read
    def auctions_by_tag(
        self, tag: str, filters: AuctionFilters, sample_limit: int
    ) -> List[AuctionRecord]:
        query = self.db.query(Auction).filter(Auction.tag == tag)
        if filters.bin_only:
            query = query.filter(Auction.bin.is_(True))
        if filters.active_at is not None:
            query = query.filter(Auction.end > filters.active_at)
        if filters.ended_after is not None:
            query = query.filter(Auction.end > filters.ended_after)
        if filters.order_by_price_asc:
            query = query.order_by(Auction.starting_bid.asc(), Auction.uuid.asc())
        return [_to_auction(row) for row in query.limit(sample_limit).all()]

    @_store_read
    def latest_price_point(self, item_id: int) -> Optional[PricePoint]:
        row = (
            self.db.query(Price)
            .filter(Price.item_id == item_id)
            .order_by(Price.date.desc())
            .first()
        )
        return _to_price_point(row) if row is not None else None

    @_store_read
    def price_points_since(self, item_id: int, since: datetime) -> List[PricePoint]:
        rows = (
            self.db.query(Price)
            .filter(Price.item_id == item_id, Price.date > since)
            .order_by(Price.date.asc())
            .all()
        )
        return [_to_price_point(row) for row in rows]

    @_store_read
    def price_points_between(self, start: datetime, end: datetime) -> List[PricePoint]:
        rows = (
            self.db.query(Price)
            .filter(Price.date >= start, Price.date < end)
            .all()
        )
        return [_to_price_point(row) for row in rows]

    @_store_read
    def latest_bazaar_pull(self) -> Optional[BazaarPullRecord]:
        pull = (
            self.db.query(BazaarPull)
            .options(selectinload(BazaarPull.products))
            .order_by(BazaarPull.timestamp.desc())
            .first()
        )
        if pull is None:
            return None
        return BazaarPullRecord(
            id=pull.id,
            timestamp=pull.timestamp,
            quotes=tuple(_to_quote(product) for product in pull.products),
        )

    @_store_read
    def bazaar_quotes_since(self, product_id: str, since: datetime) -> List[BazaarQuote]:
        rows = (
            self.db.query(BazaarProduct)
            .filter(BazaarProduct.product_id == product_id, BazaarProduct.timestamp > since)
            .order_by(BazaarProduct.timestamp.asc())
            .all()
        )
        return [_to_quote(row) for row in rows]

    @_store_read
    def resolve_item_ids_by_tags(self, tags: Iterable[str]) -> Dict[str, int]:
        tags = list(set(tags))
        if not tags:
            return {}
        rows = self.db.query(Item.tag, Item.id).filter(Item.tag.in_(tags)).all()
        return {tag: item_id for tag, item_id in rows}

    @_store_read
    def items_by_ids(self, item_ids: Iterable[int]) -> Dict[int, ItemInfo]:
        item_ids = list(set(item_ids))
        if not item_ids:
            return {}
        rows = self.db.query(Item).filter(Item.id.in_(item_ids)).all()
        return {
            row.id: ItemInfo(
                id=row.id,
                tag=row.tag,
                name=row.name,
                tier=row.tier,
                category=row.category,
            )
            for row in rows
        }

    @_store_read
    def auction_activity(self, now: datetime, since: datetime) -> AuctionActivity:
        active_bins = (
            self.db.query(func.count(Auction.id))
            .filter(Auction.bin.is_(True), Auction.end > now)
            .scalar()
        )
        active_auctions = (
            self.db.query(func.count(Auction.id))
            .filter(Auction.bin.is_(False), Auction.end > now)
            .scalar()
        )
        sold, sold_volume = (
            self.db.query(func.count(Auction.id), func.sum(Auction.highest_bid_amount))
            .filter(Auction.end > since, Auction.end <= now, Auction.highest_bid_amount > 0)
            .one()
        )
        return AuctionActivity(
            active_bin_auctions=active_bins or 0,
            active_auctions=active_auctions or 0,
            sold=sold or 0,
            sold_volume=int(sold_volume or 0),
        )
