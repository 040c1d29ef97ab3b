from datetime import timedelta

import pytest

from core.analytics.history import WindowAggregator
from core.errors import InvalidArgumentError, NotFoundError
from core.market.records import BazaarPull, ItemInfo
from core.store.memory import InMemoryMarketStore


@pytest.fixture
def aggregator(make_price_point, make_quote, settings, now):
    items = [ItemInfo(id=1, tag="ITEM", name="Item")]
    points = [
        make_price_point(1, 30, now - timedelta(days=1)),
        make_price_point(1, 10, now - timedelta(days=6)),
        make_price_point(1, 20, now - timedelta(days=3)),
        make_price_point(1, 99, now - timedelta(days=7)),
        make_price_point(1, 5, now - timedelta(days=20)),
        make_price_point(1, 1, now - timedelta(days=40)),
    ]
    pulls = [
        BazaarPull(id=i, timestamp=now - timedelta(hours=hours), quotes=(make_quote("WHEAT", 3.0 + i, 2.0),))
        for i, hours in enumerate((1, 12, 24, 100, 200))
    ]
    store = InMemoryMarketStore(items=items, price_points=points, bazaar_pulls=pulls)
    return WindowAggregator(store, settings)


class TestItemPriceHistory:

    def test_window_is_exclusive_and_ascending(self, aggregator, now):
        history = aggregator.item_price_history("ITEM", days=7, now=now)

        assert [p.average for p in history] == [10, 20, 30]
        assert history[0].date < history[1].date < history[2].date

    def test_days_are_clamped(self, aggregator, now):
        history = aggregator.item_price_history("ITEM", days=365, now=now)

        assert [p.average for p in history] == [5, 99, 10, 20, 30]

    def test_carries_min_max_and_volume(self, aggregator, now):
        point = aggregator.item_price_history("ITEM", days=2, now=now)[0]

        assert point.min == pytest.approx(24)
        assert point.max == pytest.approx(36)
        assert point.volume == 10

    def test_unknown_tag_raises_not_found(self, aggregator, now):
        with pytest.raises(NotFoundError):
            aggregator.item_price_history("MISSING", now=now)

    def test_blank_tag_is_rejected(self, aggregator, now):
        with pytest.raises(InvalidArgumentError):
            aggregator.item_price_history("", now=now)


class TestBazaarPriceHistory:

    def test_default_window(self, aggregator, now):
        history = aggregator.bazaar_price_history("WHEAT", now=now)

        # The quote exactly 24 hours old is outside the window
        assert [p.buy_price for p in history] == [4.0, 3.0]

    def test_hours_are_clamped_to_a_week(self, aggregator, now):
        history = aggregator.bazaar_price_history("WHEAT", hours=10_000, now=now)

        assert [p.buy_price for p in history] == [6.0, 5.0, 4.0, 3.0]

    def test_unknown_product_is_empty(self, aggregator, now):
        assert aggregator.bazaar_price_history("NOTHING", now=now) == []
