from typing import Optional, Union
from urllib.parse import quote

from app.config import settings
from app.schemas import TravelClass


def build_booking_link(
    departure_timestamp: Optional[str],
    origin_id: Optional[str],
    destination_id: Optional[str],
    travel_class: Union[TravelClass, str],
    max_transfers: Union[int, str],
) -> str:
    """Deep link into the bahn.de booking flow for one departure, or "" if it cannot be built."""
    if not departure_timestamp or not origin_id or not destination_id:
        return ""

    class_param = "1" if travel_class == TravelClass.FIRST else "2"
    direct_only = "true" if str(max_transfers).strip() == "0" else "false"

    return (
        f"{settings.booking_url}#sts=true"
        f"&kl={class_param}"
        f"&hd={quote(departure_timestamp, safe='')}"
        f"&soid={quote(origin_id, safe='')}"
        f"&zoid={quote(destination_id, safe='')}"
        f"&bp=true&d={direct_only}"
    )
