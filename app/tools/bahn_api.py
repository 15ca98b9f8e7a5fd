from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.config import get_logger, settings

logger = get_logger(__name__)


@dataclass
class BahnResponse:
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class BahnApi:
    """
    Thin client for the two bahn.de web endpoints the price search depends on.

    Transport errors (``httpx.HTTPError``) are left to the caller, which decides
    whether they collapse to "not found" or to a zero-price day.
    """
    PLACES_PATH = "/reiseloesung/orte"
    BEST_PRICE_PATH = "/angebote/tagesbestpreis"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.user_agent = user_agent or settings.user_agent

    async def search_places(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return the ranked place candidates for ``query``.

        Raises ``httpx.HTTPStatusError`` on non-success responses and
        ``ValueError`` when the body is not JSON. A body that is not a list is
        treated as no candidates.
        """
        params = {"suchbegriff": query, "typ": "ALL", "limit": limit}
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
            "Referer": "https://www.bahn.de/",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}{self.PLACES_PATH}", params=params, headers=headers)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, list):
            logger.warning("Place search for %r returned %s instead of a list", query, type(data).__name__)
            return []
        return data

    async def day_best_price(self, body: Dict[str, Any]) -> BahnResponse:
        """POST one day-best-price query and hand back status and raw body text."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
            "Accept-Encoding": "gzip",
            "Origin": "https://www.bahn.de",
            "Referer": "https://www.bahn.de/buchung/fahrplan/suche",
            "User-Agent": self.user_agent,
            "Connection": "close",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}{self.BEST_PRICE_PATH}", json=body, headers=headers)
            return BahnResponse(status_code=response.status_code, text=response.text)
