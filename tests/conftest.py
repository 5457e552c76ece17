import datetime

import pytest
import pytz

from snapevent_travel.directions_client import NoRoute
from snapevent_travel.models import Coordinate, EventWindow, Participant, TravelLeg, TravelStep

EVENT_LOCATION = Coordinate(43.4643, -80.5204)
HOME_A = Coordinate(43.4723, -80.5449)
HOME_C = Coordinate(43.4510, -80.4920)


def utc(hour, minute=0):
    return datetime.datetime(2025, 6, 1, hour, minute, tzinfo=pytz.utc)


class FakeGateway:
    """Routing provider stand-in: fixed durations, no explicit timing unless configured."""

    def __init__(self, outbound_minutes=20, return_minutes=22):
        self.outbound_minutes = outbound_minutes
        self.return_minutes = return_minutes
        self.failures = {}
        self.timings = {}
        self.calls = []

    def get_directions(self, origin, destination, mode, arrive_by=None, depart_at=None):
        self.calls.append({
            "origin": origin,
            "destination": destination,
            "mode": mode,
            "arrive_by": arrive_by,
            "depart_at": depart_at,
        })
        for coordinate, failure in self.failures.items():
            if coordinate in (origin, destination):
                return failure
        outbound = arrive_by is not None
        minutes = self.outbound_minutes if outbound else self.return_minutes
        departure, arrival = self.timings.get("outbound" if outbound else "return", (None, None))
        return TravelLeg(
            duration=minutes,
            distance=f"{minutes / 2:.1f} km",
            steps=[TravelStep("Head north on King St", minutes, "1.0 km", mode)],
            departure_time=departure,
            arrival_time=arrival,
            origin=origin,
            destination=destination,
            provider_timing=departure is not None or arrival is not None,
        )

    def fail_for(self, coordinate, unreachable=False):
        self.failures[coordinate] = NoRoute("unreachable" if unreachable else "ZERO_RESULTS", unreachable)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def event():
    return EventWindow("evt-1", EVENT_LOCATION, start=utc(14), end=utc(15), description="Waterloo Park")


@pytest.fixture
def participants():
    return [
        Participant("a", "Alice", home=HOME_A),
        Participant("b", "Bob"),
        Participant("c", "Carol", home=HOME_C),
    ]
