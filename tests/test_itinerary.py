import datetime

import pytest

from conftest import EVENT_LOCATION, HOME_A, utc
from snapevent_travel.itinerary import (
    MISSING_HOME,
    MISSING_ORIGIN,
    NO_ROUTE,
    PROVIDER_UNAVAILABLE,
    ItineraryCalculator,
)
from snapevent_travel.models import Coordinate, Participant

OVERRIDE = Coordinate(43.4800, -80.5300)


def test_schedule_with_calculated_timing(gateway, event):
    calculator = ItineraryCalculator(gateway, buffer_minutes=5)
    alice = Participant("a", "Alice", home=HOME_A)

    schedule = calculator.compute_schedule(alice, event, "driving")

    assert schedule.user_id == "a"
    assert schedule.transport_mode == "driving"
    assert schedule.outbound.arrival_time == utc(13, 55)
    assert schedule.outbound.departure_time == utc(13, 35)
    assert schedule.return_leg.departure_time == utc(15)
    assert schedule.return_leg.arrival_time == utc(15, 22)

    outbound_call, return_call = gateway.calls
    assert outbound_call["origin"] == HOME_A
    assert outbound_call["destination"] == EVENT_LOCATION
    assert outbound_call["arrive_by"] == utc(14)
    assert return_call["origin"] == EVENT_LOCATION
    assert return_call["depart_at"] == utc(15)


def test_provider_timing_takes_precedence(gateway, event):
    gateway.timings["outbound"] = (utc(13, 20), utc(13, 47))
    gateway.timings["return"] = (utc(15, 8), utc(15, 40))
    calculator = ItineraryCalculator(gateway)

    schedule = calculator.compute_schedule(Participant("a", "Alice", home=HOME_A), event, "transit")

    assert schedule.outbound.departure_time == utc(13, 20)
    assert schedule.outbound.arrival_time == utc(13, 47)
    assert schedule.outbound.provider_timing
    assert schedule.return_leg.departure_time == utc(15, 8)
    assert schedule.return_leg.arrival_time == utc(15, 40)


def test_override_is_outbound_origin_only(gateway, event):
    calculator = ItineraryCalculator(gateway)
    schedule = calculator.compute_schedule(Participant("a", "Alice", home=HOME_A), event, "walking", OVERRIDE)

    assert schedule.outbound.origin == OVERRIDE
    assert schedule.return_leg.destination == HOME_A


def test_missing_origin(gateway, event):
    calculator = ItineraryCalculator(gateway)
    schedule, reason = calculator.evaluate(Participant("b", "Bob"), event, "driving")
    assert schedule is None
    assert reason == MISSING_ORIGIN
    assert gateway.calls == []


def test_override_without_home_cannot_return(gateway, event):
    calculator = ItineraryCalculator(gateway)
    schedule, reason = calculator.evaluate(Participant("b", "Bob"), event, "driving", OVERRIDE)
    assert schedule is None
    assert reason == MISSING_HOME


@pytest.mark.parametrize("unreachable,expected", [(False, NO_ROUTE), (True, PROVIDER_UNAVAILABLE)])
def test_failed_leg_drops_whole_schedule(gateway, event, unreachable, expected):
    gateway.fail_for(HOME_A, unreachable=unreachable)
    calculator = ItineraryCalculator(gateway)
    schedule, reason = calculator.evaluate(Participant("a", "Alice", home=HOME_A), event, "driving")
    assert schedule is None
    assert reason == expected


def test_buffer_is_configurable(gateway, event):
    calculator = ItineraryCalculator(gateway, buffer_minutes=10)
    schedule = calculator.compute_schedule(Participant("a", "Alice", home=HOME_A), event, "driving")
    assert schedule.outbound.arrival_time == event.start - datetime.timedelta(minutes=10)
    assert schedule.outbound.departure_time == event.start - datetime.timedelta(minutes=30)
