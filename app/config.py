"""Environment driven settings for the best-price service.

Loads ``.env`` once on import so every module reads the same values.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:137.0) Gecko/20100101 Firefox/137.0"
)


@dataclass(frozen=True)
class Settings:
    api_base: str = os.getenv("BAHN_API_BASE", "https://www.bahn.de/web/api")
    booking_url: str = os.getenv("BAHN_BOOKING_URL", "https://www.bahn.de/buchung/fahrplan/suche")
    http_timeout: float = float(os.getenv("BAHN_HTTP_TIMEOUT", "15"))
    user_agent: str = os.getenv("BAHN_USER_AGENT", _DEFAULT_USER_AGENT)
    pacing_seconds: float = float(os.getenv("BESTPREIS_PACING_SECONDS", "1.0"))
    allowed_origins: str = os.getenv("BESTPREIS_ALLOWED_ORIGINS", "*")
    log_level: str = os.getenv("BESTPREIS_LOG_LEVEL", "INFO").upper()

    def origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return origins or ["*"]


settings = Settings()


def get_logger(name: str) -> logging.Logger:
    """Module logger with its own stream handler, level taken from settings."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    logger.propagate = False
    return logger
