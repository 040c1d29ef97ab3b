import os

# Keep the module level engine away from MySQL while the tests import it
os.environ.setdefault("DATABASE_URL", "sqlite://")

import itertools
from datetime import datetime, timedelta

import pytest

from config.settings import Settings
from core.market.records import AuctionRecord, BazaarPull, BazaarQuote, ItemInfo, PricePoint
from core.store.memory import InMemoryMarketStore

NOW = datetime(2024, 5, 10, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    """A fresh settings object; tests may override caps on the instance."""
    return Settings()


@pytest.fixture
def make_auction():
    counter = itertools.count(1)

    def _make(tag, price, bin=True, start=None, end=None, highest_bid=0,
              seller="seller-1", tier="RARE", uuid=None, name=None):
        number = next(counter)
        return AuctionRecord(
            uuid=uuid or f"auction-{number:04d}",
            tag=tag,
            item_name=name or tag.replace("_", " ").title(),
            starting_bid=price,
            highest_bid=highest_bid,
            bin=bin,
            start=start or NOW - timedelta(hours=1),
            end=end or NOW + timedelta(hours=1),
            seller=seller,
            tier=tier,
        )

    return _make


@pytest.fixture
def make_price_point():
    def _make(item_id, avg, date, volume=10):
        return PricePoint(item_id=item_id, date=date, avg=avg, min=avg * 0.8, max=avg * 1.2, volume=volume)

    return _make


@pytest.fixture
def make_quote():
    def _make(product_id, buy, sell, buy_volume=100, sell_volume=100, timestamp=None):
        return BazaarQuote(
            product_id=product_id,
            buy_price=buy,
            sell_price=sell,
            buy_volume=buy_volume,
            sell_volume=sell_volume,
            buy_moving_week=buy_volume * 7,
            sell_moving_week=sell_volume * 7,
            buy_orders=5,
            sell_orders=4,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def items():
    return [
        ItemInfo(id=1, tag="HYPERION", name="Hyperion", tier="LEGENDARY", category="WEAPON"),
        ItemInfo(id=2, tag="ASPECT_OF_THE_END", name="Aspect of the End", tier="RARE", category="WEAPON"),
        ItemInfo(id=3, tag="JUJU_SHORTBOW", name="Juju Shortbow", tier="EPIC", category="BOW"),
    ]


@pytest.fixture
def market(items, make_auction, make_price_point, make_quote):
    """A small market covering auctions, price points and two bazaar pulls."""
    auctions = [
        make_auction("HYPERION", 900_000_000, uuid="hyp-1"),
        make_auction("HYPERION", 1_000_000_000, uuid="hyp-2"),
        make_auction("HYPERION", 1_100_000_000, uuid="hyp-3"),
        make_auction("ASPECT_OF_THE_END", 100_000, uuid="aote-1"),
        make_auction("ASPECT_OF_THE_END", 400_000, uuid="aote-2"),
        make_auction("JUJU_SHORTBOW", 30_000_000, bin=False, highest_bid=31_000_000, uuid="juju-1"),
        make_auction(
            "JUJU_SHORTBOW", 25_000_000, highest_bid=25_000_000, uuid="juju-sold",
            start=NOW - timedelta(hours=10), end=NOW - timedelta(hours=2),
        ),
    ]
    price_points = [
        make_price_point(1, 1_000_000_000, NOW - timedelta(days=1, hours=2)),
        make_price_point(1, 1_200_000_000, NOW - timedelta(hours=2)),
        make_price_point(2, 200_000, NOW - timedelta(days=3)),
    ]
    pulls = [
        BazaarPull(id=1, timestamp=NOW - timedelta(hours=2), quotes=(
            make_quote("ENCHANTED_DIAMOND", 200.0, 100.0, timestamp=NOW - timedelta(hours=2)),
        )),
        BazaarPull(id=2, timestamp=NOW - timedelta(minutes=1), quotes=(
            make_quote("ENCHANTED_DIAMOND", 120.0, 100.0, timestamp=NOW - timedelta(minutes=1)),
            make_quote("ENCHANTED_GOLD", 50.0, 0.0, timestamp=NOW - timedelta(minutes=1)),
            make_quote("WHEAT", 3.0, 2.0, buy_volume=10_000, timestamp=NOW - timedelta(minutes=1)),
        )),
    ]
    return InMemoryMarketStore(items=items, auctions=auctions, price_points=price_points, bazaar_pulls=pulls)
