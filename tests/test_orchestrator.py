import asyncio
import datetime as dt
import json
from typing import Any, Dict, List

import pytest

from app.orchestrator import StationResolutionError, aggregate_prices, clamp_day_count, summarise_prices
from app.schemas import DayResult, SearchOptions, TravelClass
from app.tools.bahn_api import BahnResponse

START = dt.date(2025, 7, 26)

PLACES = {
    "München": [{"id": "A=1@O=München Hbf@L=8000261@", "name": "München Hbf"}],
    "Berlin": [{"id": "A=1@O=Berlin Hbf@L=8011160@", "name": "Berlin Hbf"}],
}


def _priced(*prices_and_departures) -> BahnResponse:
    intervals = []
    for price, departure in prices_and_departures:
        intervals.append(
            {
                "preis": {"betrag": price},
                "verbindungen": [
                    {
                        "verbindung": {
                            "verbindungsAbschnitte": [
                                {
                                    "abfahrtsZeitpunkt": departure,
                                    "ankunftsZeitpunkt": departure.replace("T0", "T1"),
                                    "abfahrtsOrt": "München Hbf",
                                    "ankunftsOrt": "Berlin Hbf",
                                }
                            ]
                        }
                    }
                ],
            }
        )
    return BahnResponse(200, json.dumps({"intervalle": intervals}))


class FakeApi:
    def __init__(self, day_responses: List[BahnResponse] | None = None, default: BahnResponse | None = None):
        self.day_responses = list(day_responses or [])
        self.default = default or _priced((42.0, "2025-07-26T07:00:00"))
        self.place_queries: List[str] = []
        self.day_bodies: List[Dict[str, Any]] = []

    async def search_places(self, query: str, limit: int = 10):
        self.place_queries.append(query)
        return PLACES.get(query, [])

    async def day_best_price(self, body):
        self.day_bodies.append(body)
        if self.day_responses:
            return self.day_responses.pop(0)
        return self.default


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _options(**overrides) -> SearchOptions:
    values = {"window_start": START, "day_count": 3}
    values.update(overrides)
    return SearchOptions(**values)


def test_mixed_outcomes_are_kept_per_day():
    api = FakeApi(
        [
            _priced((95.0, "2025-07-26T09:00:00"), (80.0, "2025-07-26T06:00:00")),
            BahnResponse(200, '{"details": "Preisauskunft nicht möglich"}'),
            BahnResponse(500, "Internal Server Error"),
        ]
    )
    sleep = SleepRecorder()

    result = asyncio.run(
        aggregate_prices("München", "Berlin", _options(), api=api, sleep=sleep, pacing_seconds=1.0)
    )

    assert list(result.by_date) == ["2025-07-26", "2025-07-27", "2025-07-28"]
    day1, day2, day3 = result.by_date.values()
    assert day1.best_price == 80.0
    assert day1.best_departure == "2025-07-26T06:00:00"
    assert day2.best_price == 0
    assert day2.status_or_info == "no best price available"
    assert day3.best_price == 0
    assert day3.status_or_info.startswith("API error 500")

    assert sleep.calls == [1.0, 1.0]
    assert [body["anfrageZeitpunkt"] for body in api.day_bodies] == [
        "2025-07-26T08:00:00",
        "2025-07-27T08:00:00",
        "2025-07-28T08:00:00",
    ]
    assert result.meta.start.name == "München Hbf"
    assert result.meta.destination.name == "Berlin Hbf"
    assert result.meta.summary.priced_days == 1
    assert result.meta.summary.min_price == 80.0


def test_unresolved_origin_aborts_before_any_price_query():
    api = FakeApi()

    with pytest.raises(StationResolutionError) as excinfo:
        asyncio.run(aggregate_prices("Atlantis", "Berlin", _options(), api=api, sleep=SleepRecorder()))

    assert excinfo.value.start_found is False
    assert excinfo.value.destination_found is True
    assert "Start: missing" in str(excinfo.value)
    assert api.day_bodies == []


def test_both_sides_reported_when_neither_resolves():
    with pytest.raises(StationResolutionError) as excinfo:
        asyncio.run(aggregate_prices("", "Atlantis", _options(), api=FakeApi(), sleep=SleepRecorder()))

    assert not excinfo.value.start_found
    assert not excinfo.value.destination_found


@pytest.mark.parametrize("requested, expected", [(0, 1), (-5, 1), (1, 1), (3, 3), (30, 30), (99, 30)])
def test_day_count_is_clamped(requested, expected):
    api = FakeApi()
    sleep = SleepRecorder()

    result = asyncio.run(
        aggregate_prices("München", "Berlin", _options(day_count=requested), api=api, sleep=sleep, pacing_seconds=0)
    )

    assert clamp_day_count(requested) == expected
    assert len(result.by_date) == expected
    assert len(api.day_bodies) == expected
    assert len(sleep.calls) == expected - 1
    assert result.meta.options.day_count == expected
    days = [dt.date.fromisoformat(key) for key in result.by_date]
    assert days == [START + dt.timedelta(days=i) for i in range(expected)]


def test_all_zero_days_still_return_a_result():
    api = FakeApi(default=BahnResponse(503, "unavailable"))

    result = asyncio.run(aggregate_prices("München", "Berlin", _options(), api=api, sleep=SleepRecorder()))

    assert all(day.best_price == 0 and day.status_or_info for day in result.by_date.values())
    assert result.meta.summary.priced_days == 0
    assert result.meta.summary.avg_price == 0


def test_connections_carry_booking_links():
    api = FakeApi(default=_priced((19.9, "2025-07-26T06:30:00")))
    options = _options(day_count=1, travel_class=TravelClass.FIRST, max_transfers=0)

    result = asyncio.run(aggregate_prices("München", "Berlin", options, api=api, sleep=SleepRecorder()))

    (leg,) = result.by_date["2025-07-26"].all_connections
    assert leg.booking_link.startswith("https://www.bahn.de/buchung/fahrplan/suche#sts=true&kl=1&")
    assert "hd=2025-07-26T06%3A30%3A00" in leg.booking_link
    assert leg.booking_link.endswith("&d=true")


def test_payload_is_flat_and_chronological():
    result = asyncio.run(
        aggregate_prices("München", "Berlin", _options(), api=FakeApi(), sleep=SleepRecorder())
    )

    payload = result.to_payload()

    assert list(payload) == ["2025-07-26", "2025-07-27", "2025-07-28", "meta"]
    day = payload["2025-07-26"]
    assert day["bestPrice"] == 42.0
    assert day["allConnections"][0]["departureTimestamp"] == "2025-07-26T07:00:00"
    assert payload["meta"]["start"] == {"id": "A=1@O=München Hbf@L=8000261@", "name": "München Hbf"}
    assert payload["meta"]["options"]["travelClass"] == "KLASSE_2"
    assert payload["meta"]["options"]["windowStart"] == "2025-07-26"
    assert payload["meta"]["summary"]["pricedDays"] == 3


def test_summarise_prices_ignores_sentinels():
    summary = summarise_prices(
        [
            DayResult(date="2025-07-26", best_price=30.0, status_or_info="a"),
            DayResult.unavailable("2025-07-27", "no valid prices found"),
            DayResult(date="2025-07-28", best_price=50.0, status_or_info="b"),
        ]
    )

    assert summary.priced_days == 2
    assert summary.min_price == 30.0
    assert summary.max_price == 50.0
    assert summary.avg_price == 40.0
