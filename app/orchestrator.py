# app/orchestrator.py
from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Dict, Iterable, Optional

from app.agents.day_pricer import price_for_day
from app.agents.station_resolver import resolve_station
from app.config import get_logger, settings
from app.schemas import (
    AggregationResult,
    DayResult,
    PriceSummary,
    ResultMeta,
    SearchOptions,
    StationRef,
)
from app.tools.bahn_api import BahnApi
from app.tools.booking_links import build_booking_link

logger = get_logger(__name__)

MIN_DAYS = 1
MAX_DAYS = 30

Sleeper = Callable[[float], Awaitable[None]]


class StationResolutionError(Exception):
    """Raised when the start or destination query matches no station."""

    def __init__(self, start_found: bool, destination_found: bool):
        self.start_found = start_found
        self.destination_found = destination_found
        super().__init__(
            "Station not found. "
            f"Start: {'found' if start_found else 'missing'}, "
            f"Ziel: {'found' if destination_found else 'missing'}"
        )


def clamp_day_count(day_count: int) -> int:
    return min(max(int(day_count), MIN_DAYS), MAX_DAYS)


async def aggregate_prices(
    origin_query: str,
    destination_query: str,
    options: SearchOptions,
    *,
    api: Optional[BahnApi] = None,
    sleep: Sleeper = asyncio.sleep,
    pacing_seconds: Optional[float] = None,
) -> AggregationResult:
    """Collect the best price of every day in the requested window.

    Stations are resolved first; if either side is unknown the run stops with
    ``StationResolutionError`` before any price query. Days are then queried
    one after another with a fixed pause in between so bahn.de does not start
    throttling. A day that fails is kept as a zero-price entry.
    """
    api = api or BahnApi()
    pause = settings.pacing_seconds if pacing_seconds is None else pacing_seconds

    start, destination = await asyncio.gather(
        resolve_station(origin_query, api),
        resolve_station(destination_query, api),
    )
    if start is None or destination is None:
        logger.warning(
            "Aborting search: start %r %s, ziel %r %s",
            origin_query,
            "resolved" if start else "unresolved",
            destination_query,
            "resolved" if destination else "unresolved",
        )
        raise StationResolutionError(start is not None, destination is not None)

    day_count = clamp_day_count(options.day_count)
    if day_count != options.day_count:
        logger.info("Clamped day count %s to %s", options.day_count, day_count)
        options = options.model_copy(update={"day_count": day_count})

    logger.info(
        "Searching prices %s -> %s for %d day(s) starting %s",
        start.name,
        destination.name,
        day_count,
        options.window_start.isoformat(),
    )

    by_date: Dict[str, DayResult] = {}
    for offset in range(day_count):
        if offset:
            await sleep(pause)
        day = options.window_start + timedelta(days=offset)
        logger.debug("Processing day %d/%d: %s", offset + 1, day_count, day.isoformat())
        result = await price_for_day(api, start, destination, day, options)
        by_date[result.date] = _with_booking_links(result, start, destination, options)

    summary = summarise_prices(by_date.values())
    logger.info(
        "Search completed: %d day(s) processed, %d priced",
        len(by_date),
        summary.priced_days,
    )
    return AggregationResult(
        by_date=by_date,
        meta=ResultMeta(start=start, destination=destination, options=options, summary=summary),
    )


def summarise_prices(results: Iterable[DayResult]) -> PriceSummary:
    prices = [r.best_price for r in results if r.best_price > 0]
    if not prices:
        return PriceSummary()
    return PriceSummary(
        priced_days=len(prices),
        min_price=min(prices),
        max_price=max(prices),
        avg_price=round(sum(prices) / len(prices), 2),
    )


def _with_booking_links(
    result: DayResult,
    start: StationRef,
    destination: StationRef,
    options: SearchOptions,
) -> DayResult:
    if not result.all_connections:
        return result
    connections = [
        leg.model_copy(
            update={
                "booking_link": build_booking_link(
                    leg.departure_timestamp,
                    start.id,
                    destination.id,
                    options.travel_class,
                    options.max_transfers,
                )
            }
        )
        for leg in result.all_connections
    ]
    return result.model_copy(update={"all_connections": connections})
