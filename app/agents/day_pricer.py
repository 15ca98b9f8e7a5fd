"""Query and reduce the bahn.de best price for a single travel day."""
from __future__ import annotations

import datetime as dt
import json
from numbers import Real
from typing import Any, Dict, List, Tuple

import httpx

from app.config import get_logger
from app.schemas import ConnectionLeg, DayResult, SearchOptions, StationRef
from app.tools.bahn_api import BahnApi

logger = get_logger(__name__)

PRICE_UNAVAILABLE_MARKER = "Preisauskunft nicht möglich"
SEARCH_ANCHOR = dt.time(8, 0)
ERROR_BODY_LIMIT = 100

PRODUCT_CATEGORIES: Tuple[str, ...] = (
    "ICE",
    "EC_IC",
    "IR",
    "REGIONAL",
    "SBAHN",
    "BUS",
    "SCHIFF",
    "UBAHN",
    "TRAM",
    "ANRUFPFLICHTIG",
)

NO_BEST_PRICE = "no best price available"
PARSE_ERROR = "parse error"
NO_INTERVALS = "no intervals found"
NO_VALID_PRICES = "no valid prices found"


def build_day_request(
    origin: StationRef,
    destination: StationRef,
    day: dt.date,
    options: SearchOptions,
) -> Dict[str, Any]:
    """Request body for one day, anchored at 08:00 local time, one adult, no discount."""
    anchor = dt.datetime.combine(day, SEARCH_ANCHOR)
    return {
        "abfahrtsHalt": origin.id,
        "anfrageZeitpunkt": anchor.strftime("%Y-%m-%dT%H:%M:%S"),
        "ankunftsHalt": destination.id,
        "ankunftSuche": "ABFAHRT",
        "klasse": options.travel_class.value,
        "maxUmstiege": options.max_transfers,
        "produktgattungen": list(PRODUCT_CATEGORIES),
        "reisende": [
            {
                "typ": "ERWACHSENER",
                "ermaessigungen": [{"art": "KEINE_ERMAESSIGUNG", "klasse": "KLASSENLOS"}],
                "alter": [],
                "anzahl": 1,
            }
        ],
        "schnelleVerbindungen": options.prefer_fast_connections,
        "sitzplatzOnly": False,
        "bikeCarriage": False,
        "reservierungsKontingenteVorhanden": False,
        "nurDeutschlandTicketVerbindungen": options.germany_ticket_only,
        "deutschlandTicketVorhanden": False,
    }


async def price_for_day(
    api: BahnApi,
    origin: StationRef,
    destination: StationRef,
    day: dt.date,
    options: SearchOptions,
) -> DayResult:
    """Fetch and reduce the best price for ``day``.

    Never raises for upstream trouble: every failure is reported as a zero-price
    ``DayResult`` whose ``status_or_info`` names the reason.
    """
    tag = day.isoformat()
    body = build_day_request(origin, destination, day, options)
    logger.info("Getting best price for %s", tag)

    try:
        response = await api.day_best_price(body)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Best price request for %s failed: %s", tag, exc)
        return DayResult.unavailable(tag, f"fetch error: {str(exc) or type(exc).__name__}")

    if not response.ok:
        logger.error("HTTP %s for %s: %s", response.status_code, tag, response.text[:ERROR_BODY_LIMIT])
        return DayResult.unavailable(
            tag, f"API error {response.status_code}: {response.text[:ERROR_BODY_LIMIT]}"
        )

    if PRICE_UNAVAILABLE_MARKER in response.text:
        logger.info("Price info not available for %s", tag)
        return DayResult.unavailable(tag, NO_BEST_PRICE)

    try:
        data = json.loads(response.text)
    except ValueError:
        logger.warning("Failed to parse best price response for %s", tag, exc_info=True)
        return DayResult.unavailable(tag, PARSE_ERROR)

    intervals = data.get("intervalle") if isinstance(data, dict) else None
    if not isinstance(intervals, list):
        logger.info("No intervals found in response for %s", tag)
        return DayResult.unavailable(tag, NO_INTERVALS)

    logger.debug("Found %d intervals for %s", len(intervals), tag)
    return reduce_intervals(tag, intervals)


def reduce_intervals(tag: str, intervals: List[Any]) -> DayResult:
    """Collapse the upstream interval list into the day's best price.

    Every priced interval with a leg is kept as a connection. The cheapest
    connection wins, and on equal prices the one listed first upstream.
    """
    legs: List[ConnectionLeg] = []
    best: ConnectionLeg | None = None

    for interval in intervals:
        price = _interval_price(interval)
        if price is None:
            continue
        section = _first_section(interval)
        if section is None:
            continue

        leg = _leg_from_section(section, price)
        legs.append(leg)

        if best is None or leg.price < best.price:
            best = leg

    if best is None:
        logger.info("No valid prices found for %s", tag)
        return DayResult.unavailable(tag, NO_VALID_PRICES)

    logger.info("Best price for %s: %.2f EUR (%d connections)", tag, best.price, len(legs))
    return DayResult(
        date=tag,
        best_price=best.price,
        status_or_info=best.description,
        best_departure=best.departure_timestamp,
        best_arrival=best.arrival_timestamp,
        # sorted() is stable, so tied prices keep upstream order
        all_connections=sorted(legs, key=lambda leg: leg.price),
    )


def describe_section(departure: str, departure_station: str, arrival: str, arrival_station: str) -> str:
    return f"{_format_timestamp(departure)} {departure_station} -> {_format_timestamp(arrival)} {arrival_station}"


def _interval_price(interval: Any) -> float | None:
    if not isinstance(interval, dict):
        return None
    preis = interval.get("preis")
    if not isinstance(preis, dict):
        return None
    amount = preis.get("betrag")
    # bool is a Real subclass, so rule it out explicitly
    if isinstance(amount, bool) or not isinstance(amount, Real):
        return None
    if amount <= 0:
        return None
    return float(amount)


def _first_section(interval: Dict[str, Any]) -> Dict[str, Any] | None:
    connections = interval.get("verbindungen") or []
    if not isinstance(connections, list) or not connections:
        return None
    first = connections[0]
    connection = first.get("verbindung") if isinstance(first, dict) else None
    if not isinstance(connection, dict):
        return None
    sections = connection.get("verbindungsAbschnitte") or []
    if not isinstance(sections, list) or not sections or not isinstance(sections[0], dict):
        return None
    return sections[0]


def _leg_from_section(section: Dict[str, Any], price: float) -> ConnectionLeg:
    departure = str(section.get("abfahrtsZeitpunkt") or "")
    arrival = str(section.get("ankunftsZeitpunkt") or "")
    departure_station = str(section.get("abfahrtsOrt") or "")
    arrival_station = str(section.get("ankunftsOrt") or "")
    return ConnectionLeg(
        price=price,
        departure_timestamp=departure,
        arrival_timestamp=arrival,
        departure_station=departure_station,
        arrival_station=arrival_station,
        description=describe_section(departure, departure_station, arrival, arrival_station),
    )


def _format_timestamp(value: str) -> str:
    """German style ``dd.mm.yyyy, HH:MM:SS``; unparseable values pass through."""
    if not value:
        return ""
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        return value
    return parsed.strftime("%d.%m.%Y, %H:%M:%S")
