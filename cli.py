import click
import csv
import logging
import traceback
from contextlib import contextmanager
from io import StringIO

from tabulate import tabulate

from core.analytics.flips import FlipDetector
from core.analytics.history import WindowAggregator
from core.analytics.margins import MarginCalculator
from core.analytics.overview import MarketOverview
from core.analytics.snipes import SnipeDetector
from core.analytics.trends import TrendAnalyzer
from core.analytics.underpriced import UnderpricedFinder
from core.errors import DataStoreUnavailableError, InvalidArgumentError, NotFoundError

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("market-cli")

FORMAT_CHOICES = click.Choice(["text", "table", "csv"])


def coins(value):
    return f"{value:,.0f}"


def decimal(value):
    return f"{value:,.1f}"


def percent(value):
    return f"{value:.1f}%"


def timestamp(value):
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def truncate(value, width=40):
    value = value or ""
    return value if len(value) <= width else value[: width - 3] + "..."


# Column layouts per command: (header, attribute, formatter)
FLIP_COLUMNS = [
    ("Item", "item_name", truncate),
    ("Tag", "item_tag", str),
    ("Buy Price", "buy_price", coins),
    ("Median", "median_price", coins),
    ("Profit", "profit", coins),
    ("Profit %", "profit_percent", percent),
    ("Tier", "tier", str),
    ("Ends", "ends_at", timestamp),
]

UNDERPRICED_COLUMNS = [
    ("Item", "item_name", truncate),
    ("Price", "price", coins),
    ("Average", "average_price", coins),
    ("Discount", "discount", percent),
    ("Seller", "seller", str),
    ("Ends", "ends_at", timestamp),
]

SNIPE_COLUMNS = [
    ("Item", "item_name", truncate),
    ("Price", "price", coins),
    ("Average", "average_price", coins),
    ("Discount", "discount", percent),
    ("Listed", "listed_at", timestamp),
    ("Ends", "ends_at", timestamp),
]

TREND_COLUMNS = [
    ("Item", "item_name", truncate),
    ("Tag", "item_tag", str),
    ("Yesterday", "yesterday_avg", coins),
    ("Today", "today_avg", coins),
    ("Change", "change", coins),
    ("Change %", "change_percent", percent),
]

MARGIN_COLUMNS = [
    ("Product", "product_id", str),
    ("Buy Price", "buy_price", decimal),
    ("Sell Price", "sell_price", decimal),
    ("Margin", "margin", decimal),
    ("Margin %", "margin_percent", percent),
    ("Buy Volume", "buy_volume", coins),
    ("Sell Volume", "sell_volume", coins),
]

HISTORY_COLUMNS = [
    ("Date", "date", timestamp),
    ("Average", "average", coins),
    ("Min", "min", coins),
    ("Max", "max", coins),
    ("Volume", "volume", str),
]

BAZAAR_HISTORY_COLUMNS = [
    ("Time", "timestamp", timestamp),
    ("Buy Price", "buy_price", decimal),
    ("Sell Price", "sell_price", decimal),
    ("Buy Volume", "buy_volume", coins),
    ("Sell Volume", "sell_volume", coins),
]


def format_results(results, columns, format_type, empty_message="No results found."):
    """Format analytics results based on specified format type."""
    if not results:
        return empty_message

    headers = [header for header, _, _ in columns]
    rows = [
        [fmt(getattr(result, attr)) if getattr(result, attr) is not None else "-"
         for _, attr, fmt in columns]
        for result in results
    ]

    if format_type == "text":
        lines = [f"Found {len(results)} results:"]
        for i, row in enumerate(rows, 1):
            lines.append(f"\n{i}. {row[0]}")
            for header, value in zip(headers[1:], row[1:]):
                lines.append(f"   {header}: {value}")
        return "\n".join(lines)

    elif format_type == "csv":
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(headers)
        writer.writerows(rows)
        return output.getvalue()

    else:  # table format
        return tabulate(rows, headers=headers, tablefmt="grid")


def emit(result_output, output):
    """Write formatted results to a file or the console."""
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(result_output)
        click.echo(f"Results written to {output}")
    else:
        click.echo("\n" + result_output)


@contextmanager
def market_store(ctx):
    """Yield the store for this invocation.

    A store placed in the click context object is used as is, otherwise a
    database session is opened for the duration of the command.
    """
    store = ctx.obj.get("STORE")
    if store is not None:
        yield store
        return

    from core.database.operations import SessionLocal, SqlMarketStore

    db = SessionLocal()
    try:
        yield SqlMarketStore(db)
    finally:
        db.close()


@contextmanager
def reported_errors(ctx):
    """Turn analytics errors into console messages instead of tracebacks."""
    try:
        yield
    except NotFoundError as e:
        click.echo(f"Not found: {e.message}")
    except InvalidArgumentError as e:
        click.echo(f"Invalid argument: {e.message}")
    except DataStoreUnavailableError as e:
        click.echo(f"Database error: {e.message}")
        click.echo("Check your database server is running and credentials are correct.")
        if ctx.obj["VERBOSE"]:
            click.echo(traceback.format_exc())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, verbose):
    """Auction house and bazaar analytics tool."""
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")


@cli.command()
def init():
    """Create the market tables in the configured database."""
    from core.database.operations import init_db

    init_db()
    click.echo("Database initialized!")


@cli.command()
@click.option("--min-profit", "-p", default=100000, type=int, help="Minimum profit in coins (default: 100000)")
@click.option("--min-profit-percent", "-P", default=10.0, help="Minimum profit percentage (default: 10)")
@click.option("--limit", "-l", default=20, help="Maximum number of results (default: 20)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def flips(ctx, min_profit, min_profit_percent, limit, format_type, output):
    """Find flip opportunities across all active BIN auctions."""
    with reported_errors(ctx), market_store(ctx) as store:
        click.echo(
            f"Searching flips (min profit: {min_profit:,}, min profit %: {min_profit_percent})..."
        )
        results = FlipDetector(store).find_opportunities(
            min_profit=min_profit, min_profit_percent=min_profit_percent, limit=limit
        )
        emit(format_results(results, FLIP_COLUMNS, format_type, "No flip opportunities found."), output)


@cli.command()
@click.argument("item_tag")
@click.option("--percent-below", "-b", default=20.0, help="Percentage below average (default: 20)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def underpriced(ctx, item_tag, percent_below, format_type, output):
    """List BIN auctions of ITEM_TAG priced below the item's average."""
    with reported_errors(ctx), market_store(ctx) as store:
        results = UnderpricedFinder(store).find(item_tag, percent_below=percent_below)
        emit(format_results(results, UNDERPRICED_COLUMNS, format_type, "No underpriced auctions found."), output)


@cli.command()
@click.option("--max-age", "-a", default=5, help="Maximum listing age in minutes (default: 5, max: 30)")
@click.option("--limit", "-l", default=20, help="Maximum number of results (default: 20, max: 50)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def snipes(ctx, max_age, limit, format_type, output):
    """List freshly listed BIN auctions priced below the item's average."""
    with reported_errors(ctx), market_store(ctx) as store:
        results = SnipeDetector(store).find_snipes(max_age_minutes=max_age, limit=limit)
        emit(format_results(results, SNIPE_COLUMNS, format_type, "No snipes found."), output)


@cli.command()
@click.argument("direction", default="up")
@click.option("--limit", "-l", default=20, help="Maximum number of results (default: 20, max: 100)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def trending(ctx, direction, limit, format_type, output):
    """List items with the biggest price change since yesterday.

    DIRECTION "down" lists the biggest drops, anything else the biggest rises.
    """
    with reported_errors(ctx), market_store(ctx) as store:
        results = TrendAnalyzer(store).trending(direction, limit=limit)
        emit(format_results(results, TREND_COLUMNS, format_type, "No price trends found."), output)


@cli.command()
@click.option("--limit", "-l", default=20, help="Maximum number of results (default: 20, max: 100)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def margins(ctx, limit, format_type, output):
    """List bazaar products with the best buy/sell margins."""
    with reported_errors(ctx), market_store(ctx) as store:
        results = MarginCalculator(store).top_margins(limit=limit)
        emit(format_results(results, MARGIN_COLUMNS, format_type, "No bazaar margins found."), output)


@cli.command()
@click.argument("key")
@click.option("--bazaar", is_flag=True, help="Treat KEY as a bazaar product id")
@click.option("--days", "-d", default=7, help="Days of item history (default: 7, max: 30)")
@click.option("--hours", "-h", default=24, help="Hours of bazaar history (default: 24, max: 168)")
@click.option("--format-type", "-f", type=FORMAT_CHOICES, default="table", help="Output format (default: table)")
@click.option("--output", "-o", type=click.Path(), help="Save results to file")
@click.pass_context
def history(ctx, key, bazaar, days, hours, format_type, output):
    """Show the price history of an item tag or bazaar product KEY."""
    with reported_errors(ctx), market_store(ctx) as store:
        aggregator = WindowAggregator(store)
        if bazaar:
            results = aggregator.bazaar_price_history(key, hours=hours)
            columns = BAZAAR_HISTORY_COLUMNS
        else:
            results = aggregator.item_price_history(key, days=days)
            columns = HISTORY_COLUMNS
        click.echo(f"Found {len(results)} history points for {key}")
        emit(format_results(results, columns, format_type, "No price history found."), output)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show auction house activity for the last 24 hours."""
    with reported_errors(ctx), market_store(ctx) as store:
        result = MarketOverview(store).flip_stats()
        click.echo(tabulate(
            [
                ["Active BIN auctions", f"{result.active_bin_auctions:,}"],
                ["Active bid auctions", f"{result.active_auctions:,}"],
                ["Sold (24h)", f"{result.sold_last_24h:,}"],
                ["Volume (24h)", f"{result.total_volume_24h:,}"],
                ["Updated", timestamp(result.last_updated)],
            ],
            tablefmt="grid",
        ))


if __name__ == "__main__":
    # This runs the Click application
    cli.main(obj={})
