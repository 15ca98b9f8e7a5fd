from __future__ import annotations

from typing import Any, Dict

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app.agents.station_resolver import resolve_station
from app.config import get_logger, settings
from app.orchestrator import StationResolutionError, aggregate_prices
from app.schemas import SearchPricesRequest, StationRef
from app.tools.bahn_api import BahnApi

logger = get_logger(__name__)

app = FastAPI(title="Bahn Bestpreis API")

# Let the calendar frontend reach the API from its dev server. Operators can
# narrow this via BESTPREIS_ALLOWED_ORIGINS.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _search_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the incoming payload and delegate to the orchestrator."""

    try:
        request = SearchPricesRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False)) from exc

    if not request.has_stations():
        raise HTTPException(status_code=400, detail="Start and destination required")

    logger.info("Starting best price search %r -> %r", request.start, request.ziel)
    try:
        result = await aggregate_prices(request.start, request.ziel, request.to_options())
    except StationResolutionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Best price search failed")
        raise HTTPException(status_code=500, detail="Internal server error") from exc

    return result.to_payload()


@app.post("/api/search-prices")
async def api_search_prices(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Primary endpoint consumed by the price calendar."""
    return await _search_from_payload(payload)


@app.get("/api/stations", response_model=StationRef, response_model_by_alias=True)
async def api_station_lookup(q: str = Query(..., min_length=1)) -> StationRef:
    station = await resolve_station(q, BahnApi())
    if station is None:
        raise HTTPException(status_code=404, detail=f"Station not found: {q}")
    return station


@app.get("/api/health")
async def api_health() -> Dict[str, str]:
    return {"status": "ok"}
