# This file maps the market database schema using SQLAlchemy's Object Relational Mapper (ORM)
# The tables are filled by the ingestion pipeline; this application only reads from them

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

# Create a base class for all ORM models
# It provides the metadata that SQLAlchemy needs to map Python classes to database tables
Base = declarative_base()


class Item(Base):
    """An item that can be auctioned, identified by its stable tag.

    Auctions reference items by tag while price points reference them by id,
    so this table is the bridge between the two.
    """
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Stable key used by auctions, unique per item
    tag = Column(String(100), unique=True, index=True, nullable=False)

    name = Column(String(255), nullable=True)
    tier = Column(String(50), nullable=True)
    category = Column(String(50), nullable=True)

    prices = relationship("Price", back_populates="item")


class Auction(Base):
    """A single auction listing, either fixed-price (BIN) or bid based."""
    __tablename__ = "auctions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False)

    # Indexed because every analytics query filters or groups by tag
    tag = Column(String(100), index=True)
    item_name = Column(String(255))

    # Prices are whole coins and can exceed 32 bits
    starting_bid = Column(BigInteger, index=True, nullable=False, default=0)
    highest_bid_amount = Column(BigInteger, nullable=False, default=0)

    bin = Column(Boolean, index=True, nullable=False, default=False)

    start = Column(DateTime, index=True, nullable=False)
    end = Column(DateTime, index=True, nullable=False)

    auctioneer_id = Column(String(36), index=True)
    tier = Column(String(50), nullable=True)


class Price(Base):
    """Aggregated auction prices for one item over one sampling interval."""
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("items.id"), index=True, nullable=False)

    # Start of the sampling interval
    date = Column(DateTime, index=True, nullable=False)

    avg = Column(Float, nullable=False)
    min = Column(Float, nullable=False)
    max = Column(Float, nullable=False)
    volume = Column(Integer, nullable=False, default=0)

    item = relationship("Item", back_populates="prices")


class BazaarPull(Base):
    """A point-in-time snapshot of the whole bazaar.

    A pull is written atomically by the ingestion job and holds at most one
    product row per product id.
    """
    __tablename__ = "bazaar_pulls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, index=True, nullable=False)

    products = relationship("BazaarProduct", back_populates="pull", order_by="BazaarProduct.product_id")


class BazaarProduct(Base):
    """The quick-status quote for one product inside a bazaar pull."""
    __tablename__ = "bazaar_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pull_id = Column(Integer, ForeignKey("bazaar_pulls.id"), index=True, nullable=False)

    # Indexed for the per-product history query
    product_id = Column(String(100), index=True, nullable=False)
    timestamp = Column(DateTime, index=True, nullable=False)

    buy_price = Column(Float, nullable=False, default=0)
    sell_price = Column(Float, nullable=False, default=0)
    buy_volume = Column(BigInteger, nullable=False, default=0)
    sell_volume = Column(BigInteger, nullable=False, default=0)
    buy_moving_week = Column(BigInteger, nullable=False, default=0)
    sell_moving_week = Column(BigInteger, nullable=False, default=0)
    buy_orders = Column(Integer, nullable=False, default=0)
    sell_orders = Column(Integer, nullable=False, default=0)

    pull = relationship("BazaarPull", back_populates="products")
