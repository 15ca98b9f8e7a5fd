"""Command-line best price search.

Example:

    bestpreis "München Hbf" "Berlin Hbf" --from 2025-07-26 --days 7
"""
from __future__ import annotations

import argparse
import asyncio
import datetime as dt
from typing import Sequence

from app.config import get_logger
from app.orchestrator import StationResolutionError, aggregate_prices
from app.schemas import AggregationResult, SearchOptions, TravelClass

logger = get_logger(__name__)


def _iso_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Cheapest Deutsche Bahn fare per day")
    p.add_argument("start", help="Departure station, free text")
    p.add_argument("ziel", help="Destination station, free text")
    p.add_argument("--from", dest="window_start", type=_iso_date, default=None, help="First day (YYYY-MM-DD), default today")
    p.add_argument("--days", type=int, default=3, help="Number of days to search (1-30)")
    p.add_argument("--first-class", action="store_true", help="Search 1st class fares")
    p.add_argument("--max-transfers", type=int, default=0)
    p.add_argument("--fast", action="store_true", help="Prefer fast connections")
    p.add_argument("--deutschland-ticket", action="store_true", help="Only Deutschland-Ticket connections")
    p.add_argument("--pacing", type=float, default=None, help="Seconds between day queries")
    return p


def format_result(result: AggregationResult) -> str:
    meta = result.meta
    lines = [f"{meta.start.name} -> {meta.destination.name}"]
    for day, entry in result.by_date.items():
        price = f"{entry.best_price:8.2f} EUR" if entry.has_price else f"{'-':>12}"
        lines.append(f"{day}  {price}  {entry.status_or_info}")

    summary = meta.summary
    if summary.priced_days:
        lines.append(
            f"min {summary.min_price:.2f} / avg {summary.avg_price:.2f} / max {summary.max_price:.2f} EUR"
            f" over {summary.priced_days} day(s)"
        )
    else:
        lines.append("No prices available for this period.")
    return "\n".join(lines)


def main_cli(argv: Sequence[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    options = SearchOptions(
        travel_class=TravelClass.FIRST if args.first_class else TravelClass.SECOND,
        max_transfers=max(0, args.max_transfers),
        prefer_fast_connections=args.fast,
        germany_ticket_only=args.deutschland_ticket,
        window_start=args.window_start or dt.date.today(),
        day_count=args.days,
    )

    try:
        result = asyncio.run(
            aggregate_prices(args.start, args.ziel, options, pacing_seconds=args.pacing)
        )
    except StationResolutionError as exc:
        print(exc)
        return 2
    except Exception:  # noqa: BLE001
        logger.exception("Best price search failed")
        return 1

    print(format_result(result))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main_cli())
