from datetime import timedelta

import pytest

from core.analytics.margins import MarginCalculator
from core.errors import InvalidArgumentError, NotFoundError
from core.market.records import BazaarPull
from core.store.memory import InMemoryMarketStore


def test_margin_of_latest_pull(market, settings):
    result = MarginCalculator(market, settings).top_margins()

    diamond = next(m for m in result if m.product_id == "ENCHANTED_DIAMOND")
    assert diamond.margin == 20
    assert diamond.margin_percent == 20.0


def test_zero_sell_price_is_excluded(market, settings):
    product_ids = [m.product_id for m in MarginCalculator(market, settings).top_margins()]

    assert "ENCHANTED_GOLD" not in product_ids
    assert product_ids == ["WHEAT", "ENCHANTED_DIAMOND"]


def test_zero_buy_price_is_excluded(make_quote, settings, now):
    pull = BazaarPull(id=1, timestamp=now, quotes=(make_quote("DEAD", 0.0, 10.0),))

    assert MarginCalculator(InMemoryMarketStore(bazaar_pulls=[pull]), settings).top_margins() == []


def test_no_pull_raises_not_found(settings):
    with pytest.raises(NotFoundError):
        MarginCalculator(InMemoryMarketStore(), settings).top_margins()


def test_equal_margins_rank_by_product_id(make_quote, settings, now):
    pull = BazaarPull(id=1, timestamp=now, quotes=(
        make_quote("B_PRODUCT", 11.0, 10.0),
        make_quote("A_PRODUCT", 22.0, 20.0),
        make_quote("C_PRODUCT", 50.0, 10.0),
    ))
    calculator = MarginCalculator(InMemoryMarketStore(bazaar_pulls=[pull]), settings)

    assert [m.product_id for m in calculator.top_margins()] == ["C_PRODUCT", "A_PRODUCT", "B_PRODUCT"]


def test_limits(make_quote, settings, now):
    settings.MAX_MARGIN_LIMIT = 2
    pull = BazaarPull(id=1, timestamp=now - timedelta(minutes=1), quotes=tuple(
        make_quote(f"P{i}", 10.0 + i, 10.0) for i in range(5)
    ))
    calculator = MarginCalculator(InMemoryMarketStore(bazaar_pulls=[pull]), settings)

    assert len(calculator.top_margins(limit=500)) == 2
    assert calculator.top_margins(limit=0) == []
    with pytest.raises(InvalidArgumentError):
        calculator.top_margins(limit=-1)
