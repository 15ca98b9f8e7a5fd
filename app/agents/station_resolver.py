"""Resolve free-text station queries to bahn.de place identifiers."""
from __future__ import annotations

import httpx

from app.config import get_logger
from app.schemas import StationRef
from app.tools.bahn_api import BahnApi

logger = get_logger(__name__)


async def resolve_station(query: str | None, api: BahnApi) -> StationRef | None:
    """Return the first place bahn.de ranks for ``query``, or ``None``.

    The identifier is returned exactly as delivered; it is later echoed into the
    price query and the booking link. Lookup failures and empty result lists are
    indistinguishable to the caller.
    """
    query = (query or "").strip()
    if not query:
        return None

    logger.info("Searching station %r", query)
    try:
        candidates = await api.search_places(query, limit=10)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError):
        logger.warning("Station lookup for %r failed", query, exc_info=True)
        return None

    if not candidates:
        logger.info("No station matches %r", query)
        return None

    first = candidates[0]
    station_id = first.get("id") if isinstance(first, dict) else None
    if not station_id:
        logger.warning("First candidate for %r carries no id: %r", query, first)
        return None

    station = StationRef(id=str(station_id), name=str(first.get("name") or ""))
    logger.info("Found station %s with id %s", station.name, station.id)
    return station
