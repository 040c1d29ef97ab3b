"""
Tests for the SQLAlchemy backed market store, run against SQLite in memory.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.analytics.flips import FlipDetector
from core.analytics.margins import MarginCalculator
from core.database.models import Auction, Base, BazaarProduct, BazaarPull, Item, Price
from core.database.operations import SqlMarketStore
from core.errors import DataStoreUnavailableError
from core.market.records import AuctionFilters

NOW = datetime(2024, 5, 10, 12, 0, 0)


def memory_engine():
    return create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


@pytest.fixture
def db():
    engine = memory_engine()
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()

    session.add_all([
        Item(id=1, tag="HYPERION", name="Hyperion", tier="LEGENDARY"),
        Item(id=2, tag="WAND", name="Wand", tier="EPIC"),
    ])

    def auction(uuid, tag, price, bin=True, start_ago=60, ends_in=60, highest=0):
        return Auction(
            uuid=uuid, tag=tag, item_name=tag.title(), starting_bid=price,
            highest_bid_amount=highest, bin=bin,
            start=NOW - timedelta(minutes=start_ago), end=NOW + timedelta(minutes=ends_in),
            auctioneer_id="seller", tier="RARE",
        )

    session.add_all([
        auction("h-2", "HYPERION", 1000),
        auction("h-1", "HYPERION", 500),
        auction("h-3", "HYPERION", 2000, start_ago=3),
        auction("h-old", "HYPERION", 100, ends_in=-10, highest=100),
        auction("w-1", "WAND", 0),
        auction("w-bid", "WAND", 50, bin=False),
    ])
    session.add_all([
        Price(item_id=1, date=NOW - timedelta(days=2), avg=900, min=800, max=1000, volume=3),
        Price(item_id=1, date=NOW - timedelta(hours=1), avg=1100, min=900, max=1200, volume=5),
    ])

    old_pull = BazaarPull(id=1, timestamp=NOW - timedelta(hours=3))
    new_pull = BazaarPull(id=2, timestamp=NOW - timedelta(minutes=1))
    session.add_all([old_pull, new_pull])
    session.add_all([
        BazaarProduct(pull=old_pull, product_id="WHEAT", timestamp=old_pull.timestamp, buy_price=4, sell_price=2),
        BazaarProduct(pull=new_pull, product_id="WHEAT", timestamp=new_pull.timestamp, buy_price=3, sell_price=2),
        BazaarProduct(pull=new_pull, product_id="CACTUS", timestamp=new_pull.timestamp, buy_price=10, sell_price=0),
    ])
    session.commit()

    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlMarketStore(db)


class TestAuctionReads:

    def test_active_fixed_price_auctions_cheapest_first(self, store):
        auctions = store.active_fixed_price_auctions(NOW, 10)

        # Zero priced, ended and bid auctions are left out
        assert [a.uuid for a in auctions] == ["h-1", "h-2", "h-3"]

    def test_active_fixed_price_auctions_for_tag_keeps_zero_prices(self, store):
        assert [a.uuid for a in store.active_fixed_price_auctions(NOW, 10, tag="WAND")] == ["w-1"]

    def test_sample_limit(self, store):
        assert len(store.active_fixed_price_auctions(NOW, 2)) == 2

    def test_recently_listed_auctions(self, store):
        auctions = store.recently_listed_auctions(NOW - timedelta(minutes=5), NOW, 10)

        assert [a.uuid for a in auctions] == ["h-3"]

    def test_auctions_by_tag_with_filters(self, store):
        ended_recently = store.auctions_by_tag(
            "HYPERION", AuctionFilters(bin_only=True, ended_after=NOW - timedelta(days=1)), 10
        )
        active = store.auctions_by_tag("HYPERION", AuctionFilters(bin_only=True, active_at=NOW), 1)

        assert [a.uuid for a in ended_recently] == ["h-old", "h-1", "h-2", "h-3"]
        assert [a.uuid for a in active] == ["h-1"]

    def test_auction_activity(self, store):
        activity = store.auction_activity(NOW, NOW - timedelta(days=1))

        assert activity.active_bin_auctions == 4
        assert activity.active_auctions == 1
        assert activity.sold == 1
        assert activity.sold_volume == 100


class TestPriceReads:

    def test_latest_price_point(self, store):
        assert store.latest_price_point(1).avg == 1100
        assert store.latest_price_point(2) is None

    def test_price_points_since(self, store):
        assert [p.avg for p in store.price_points_since(1, NOW - timedelta(days=3))] == [900, 1100]

    def test_price_points_between(self, store):
        points = store.price_points_between(NOW - timedelta(days=1), NOW)

        assert [p.avg for p in points] == [1100]

    def test_item_lookups(self, store):
        assert store.resolve_item_ids_by_tags(["HYPERION", "NOPE"]) == {"HYPERION": 1}
        assert store.resolve_item_ids_by_tags([]) == {}
        assert store.items_by_ids([2])[2].name == "Wand"


class TestBazaarReads:

    def test_latest_bazaar_pull(self, store):
        pull = store.latest_bazaar_pull()

        assert pull.id == 2
        assert [q.product_id for q in pull.quotes] == ["CACTUS", "WHEAT"]

    def test_bazaar_quotes_since(self, store):
        quotes = store.bazaar_quotes_since("WHEAT", NOW - timedelta(hours=4))

        assert [q.buy_price for q in quotes] == [4, 3]


class TestWithAnalytics:

    def test_flip_detector_over_sql(self, store, settings):
        flips = FlipDetector(store, settings).find_opportunities(0, 0, now=NOW)

        assert len(flips) == 1
        assert flips[0].auction_uuid == "h-1"
        assert flips[0].median_price == 1000

    def test_margin_calculator_over_sql(self, store, settings):
        margins = MarginCalculator(store, settings).top_margins()

        assert [m.product_id for m in margins] == ["WHEAT"]
        assert margins[0].margin_percent == 50.0


def test_missing_tables_raise_store_unavailable():
    session = sessionmaker(bind=memory_engine())()
    try:
        with pytest.raises(DataStoreUnavailableError) as excinfo:
            SqlMarketStore(session).latest_bazaar_pull()
        assert excinfo.value.details == {"operation": "latest_bazaar_pull"}
    finally:
        session.close()
