"""
Command-line interface for the guidance credibility pipeline.

Usage:
    gci resolve AAPL
    gci import-filings MSFT NVDA
    gci extract-guidance MSFT NVDA
    gci pull-actuals MSFT NVDA
    gci analyze-language MSFT NVDA
    gci compute-scores
    gci run-all MSFT NVDA --json
"""

import argparse
import json
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from guidance_credibility.config import Settings
from guidance_credibility.errors import NotFoundError
from guidance_credibility.models import ScoreCard, TickerResult, json_serializer
from guidance_credibility.pipeline import GuidancePipeline

console = Console()

TICKER_COMMANDS = {
    "import-filings": "import_filings",
    "extract-guidance": "extract_guidance",
    "pull-actuals": "pull_actuals",
    "analyze-language": "analyze_language",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gci",
        description="Extract SEC guidance, align actuals and score guidance credibility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gci import-filings MSFT NVDA
  gci extract-guidance MSFT --verbose
  gci run-all MSFT NVDA --json
        """,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON instead of tables",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve a ticker to its CIK")
    resolve.add_argument("ticker", help="Stock ticker symbol (e.g., AAPL, MSFT)")

    for command in (*TICKER_COMMANDS, "run-all"):
        sub = subparsers.add_parser(command, help=f"Run {command} for tickers")
        sub.add_argument("tickers", nargs="+", help="Ticker symbols (space or comma separated)")

    subparsers.add_parser("compute-scores", help="Compute scores for every company with data")
    return parser


def _split(values: list[str]) -> list[str]:
    return [t for value in values for t in value.split(",")]


def print_ticker_results(title: str, results: list[TickerResult]) -> None:
    table = Table(title=title)
    table.add_column("Ticker", style="cyan")
    table.add_column("Status")
    table.add_column("Result")

    for result in results:
        if result.success:
            status = "[green]ok[/green]"
            value = result.words_total if result.words_total is not None else result.count
            detail = "" if value is None else str(value)
        else:
            status = "[red]failed[/red]"
            detail = result.error or ""
        table.add_row(result.ticker, status, detail)

    console.print(table)


def print_scores(cards: list[ScoreCard]) -> None:
    table = Table(title="Guidance Credibility Index")
    for column in ("Ticker", "FY", "FP", "TRA", "CVP", "LR", "GCI", "Badge"):
        table.add_column(column)

    colors = {"High": "green", "Medium": "yellow", "Low": "red"}
    for card in cards:
        color = colors.get(card.badge, "white")
        table.add_row(
            card.ticker,
            str(card.fy or "-"),
            card.fp or "-",
            str(card.tra),
            str(card.cvp),
            str(card.lr),
            f"[bold]{card.gci}[/bold]",
            f"[{color}]{card.badge}[/{color}]",
        )

    console.print(table)


def _to_jsonable(value):
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the gci CLI."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    pipeline = GuidancePipeline(settings, verbose=args.verbose)

    if args.command == "resolve":
        try:
            identity = pipeline.resolve_identifier(args.ticker)
        except NotFoundError as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1
        output = {"ticker": identity.ticker, "cik": identity.cik, "name": identity.name}
        if args.json:
            print(json.dumps(output, indent=2))
        else:
            console.print(f"[bold cyan]{identity.ticker}[/bold cyan] CIK {identity.cik} ({identity.name})")
        return 0

    if args.command == "compute-scores":
        output = pipeline.compute_scores()
        if not args.json:
            print_scores(output)
    elif args.command == "run-all":
        output = pipeline.run_all(_split(args.tickers))
        if not args.json:
            for stage, results in output.items():
                if stage == "compute_scores":
                    print_scores(results)
                else:
                    print_ticker_results(stage.replace("_", " ").title(), results)
    else:
        output = getattr(pipeline, TICKER_COMMANDS[args.command])(_split(args.tickers))
        if not args.json:
            print_ticker_results(args.command.replace("-", " ").title(), output)

    if args.json:
        print(json.dumps(_to_jsonable(output), indent=2, default=json_serializer))
    return 0


if __name__ == "__main__":
    sys.exit(main())
