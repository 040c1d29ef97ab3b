from datetime import timedelta

import pytest
from click.testing import CliRunner

from cli import cli
from core.analytics.base import utcnow
from core.errors import DataStoreUnavailableError
from core.market.records import BazaarPull, ItemInfo
from core.store.memory import InMemoryMarketStore


class UnavailableStore(InMemoryMarketStore):
    def active_fixed_price_auctions(self, *args, **kwargs):
        raise DataStoreUnavailableError("Market data store unavailable: timeout")


@pytest.fixture
def store(make_auction, make_price_point, make_quote):
    now = utcnow()
    soon = now + timedelta(hours=1)
    return InMemoryMarketStore(
        items=[ItemInfo(id=1, tag="HYPERION", name="Hyperion")],
        auctions=[
            make_auction("HYPERION", 500_000_000, end=soon, name="Hyperion"),
            make_auction("HYPERION", 900_000_000, end=soon, name="Hyperion"),
        ],
        price_points=[make_price_point(1, 800_000_000, now - timedelta(hours=2))],
        bazaar_pulls=[
            BazaarPull(id=1, timestamp=now - timedelta(minutes=1), quotes=(
                make_quote("ENCHANTED_DIAMOND", 120.0, 100.0),
            )),
        ],
    )


def invoke(store, *args):
    return CliRunner().invoke(cli, list(args), obj={"STORE": store})


def test_flips_table(store):
    result = invoke(store, "flips")

    assert result.exit_code == 0
    assert "Hyperion" in result.output
    assert "500,000,000" in result.output
    assert "80.0%" in result.output


def test_flips_csv(store):
    result = invoke(store, "flips", "--format-type", "csv")

    assert "Item,Tag,Buy Price,Median,Profit,Profit %,Tier,Ends" in result.output


def test_flips_text_to_file(store, tmp_path):
    target = tmp_path / "flips.txt"

    result = invoke(store, "flips", "-f", "text", "-o", str(target))

    assert f"Results written to {target}" in result.output
    content = target.read_text(encoding="utf-8")
    assert content.startswith("Found 1 results:")
    assert "Profit %: 80.0%" in content


def test_margins(store):
    result = invoke(store, "margins", "-f", "csv")

    assert result.exit_code == 0
    assert "ENCHANTED_DIAMOND,120.0,100.0,20.0,20.0%,100,100" in result.output


def test_history(store):
    result = invoke(store, "history", "HYPERION", "--days", "3")

    assert "Found 1 history points for HYPERION" in result.output


def test_not_found_is_reported(store):
    result = invoke(store, "underpriced", "NOT_LISTED")

    assert result.exit_code == 0
    assert "Not found: No active BIN auctions found" in result.output


def test_invalid_argument_is_reported(store):
    result = invoke(store, "margins", "--limit=-5")

    assert "Invalid argument: limit must not be negative" in result.output


def test_store_failure_is_reported():
    result = invoke(UnavailableStore(), "flips")

    assert "Database error: Market data store unavailable: timeout" in result.output


def test_empty_results(store):
    result = invoke(store, "trending", "down")

    assert "No price trends found." in result.output


def test_stats(store):
    result = invoke(store, "stats")

    assert "Active BIN auctions" in result.output


def test_underpriced_table(store):
    result = invoke(store, "underpriced", "HYPERION")

    assert result.exit_code == 0
    assert "500,000,000" in result.output
    assert "700,000,000" in result.output
    assert "28.6%" in result.output
    assert "900,000,000" not in result.output


def test_snipes_table(make_auction, make_price_point):
    now = utcnow()
    store = InMemoryMarketStore(
        items=[ItemInfo(id=1, tag="HYPERION", name="Hyperion")],
        auctions=[
            make_auction("HYPERION", 600_000_000, start=now - timedelta(minutes=2),
                         end=now + timedelta(hours=1), name="Hyperion"),
            make_auction("HYPERION", 750_000_000, start=now - timedelta(hours=3),
                         end=now + timedelta(hours=1), name="Hyperion"),
        ],
        price_points=[make_price_point(1, 800_000_000, now - timedelta(hours=2))],
    )

    result = invoke(store, "snipes", "--max-age", "5")

    assert result.exit_code == 0
    assert "600,000,000" in result.output
    assert "25.0%" in result.output
    assert "750,000,000" not in result.output


def test_trending_up_table(make_price_point):
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    store = InMemoryMarketStore(
        items=[
            ItemInfo(id=1, tag="HYPERION", name="Hyperion"),
            ItemInfo(id=2, tag="WAND", name="Wand"),
        ],
        price_points=[
            make_price_point(1, 1_000, today - timedelta(hours=12)),
            make_price_point(1, 1_500, today),
            make_price_point(2, 1_000, today - timedelta(hours=12)),
            make_price_point(2, 900, today),
        ],
    )

    result = invoke(store, "trending", "up")

    assert result.exit_code == 0
    assert "50.0%" in result.output
    assert "-10.0%" in result.output
    assert result.output.index("Hyperion") < result.output.index("Wand")
