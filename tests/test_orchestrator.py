from unittest.mock import MagicMock

import pytest

from conftest import HOME_A, HOME_C, utc
from snapevent_travel.errors import InvalidEventError, ProviderUnavailableError
from snapevent_travel.itinerary import ItineraryCalculator
from snapevent_travel.models import Coordinate, EventWindow, Participant
from snapevent_travel.orchestrator import BatchScheduleOrchestrator
from snapevent_travel.preferences import (
    InMemoryTransportSettings,
    TransportPreferenceResolver,
    TransportSettingsClient,
)
from snapevent_travel.schedule_cache import compute_fingerprint


def make_orchestrator(gateway, settings=None, max_workers=4):
    resolver = TransportPreferenceResolver(InMemoryTransportSettings(settings or {}))
    return BatchScheduleOrchestrator(ItineraryCalculator(gateway), resolver, max_workers=max_workers)


def test_partial_failure_isolation(gateway, event, participants):
    orchestrator = make_orchestrator(gateway)
    result = orchestrator.generate(participants, event)

    assert [s.user_id for s in result.schedules] == ["a", "c"]
    assert result.unavailable == {"b": "missing_origin"}
    assert result.missing_location_count == 1
    assert result.messages() == {"b": "location data needed"}


def test_uses_primary_resolved_mode(gateway, event, participants):
    orchestrator = make_orchestrator(gateway, {"a": ["transit", "walking"]})
    schedules = orchestrator.generate_schedules(participants, event)

    modes = {s.user_id: s.transport_mode for s in schedules}
    assert modes == {"a": "transit", "c": "driving"}


def test_override_gives_participant_an_origin(gateway, event):
    override = Coordinate(43.48, -80.53)
    orchestrator = make_orchestrator(gateway)
    result = orchestrator.generate([Participant("a", "Alice", home=HOME_A)], event, {"a": override})

    schedule = result.schedules[0]
    assert schedule.outbound.origin == override
    assert schedule.return_leg.destination == HOME_A


def test_output_order_follows_input_order(gateway, event):
    people = [Participant(str(i), f"P{i}", home=Coordinate(43.4 + i / 100, -80.5)) for i in range(12)]
    orchestrator = make_orchestrator(gateway, max_workers=8)
    schedules = orchestrator.generate_schedules(people, event)
    assert [s.user_id for s in schedules] == [str(i) for i in range(12)]


def test_route_failure_is_omitted_with_reason(gateway, event, participants):
    gateway.fail_for(HOME_C)
    result = make_orchestrator(gateway).generate(participants, event)
    assert [s.user_id for s in result.schedules] == ["a"]
    assert result.messages()["c"] == "unable to calculate route"


def test_calculator_exception_does_not_fail_batch(event, participants):
    calculator = MagicMock()
    calculator.evaluate.side_effect = [RuntimeError("boom"), (None, "no_route")]
    resolver = TransportPreferenceResolver(InMemoryTransportSettings())
    result = BatchScheduleOrchestrator(calculator, resolver, max_workers=1).generate(participants, event)
    assert result.schedules == []
    assert result.unavailable == {"a": "no_route", "b": "missing_origin", "c": "no_route"}


def test_provider_outage_for_everyone_is_escalated(gateway, event, participants):
    gateway.fail_for(HOME_A, unreachable=True)
    gateway.fail_for(HOME_C, unreachable=True)
    with pytest.raises(ProviderUnavailableError):
        make_orchestrator(gateway).generate(participants, event)


def test_no_schedulable_participants_is_not_an_error(gateway, event):
    result = make_orchestrator(gateway).generate([Participant("b", "Bob")], event)
    assert result.schedules == []
    assert gateway.calls == []


def test_invalid_event_window_is_escalated(gateway, participants):
    bad = EventWindow("evt", Coordinate(0, 0), start=utc(15), end=utc(14))
    with pytest.raises(InvalidEventError):
        make_orchestrator(gateway).generate(participants, bad)


def test_malformed_preferences_fall_back_to_driving(gateway, event, participants):
    session = MagicMock()
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = ["not", "an", "object"]
    session.post.return_value = response
    resolver = TransportPreferenceResolver(TransportSettingsClient(base_url="http://users.test", session=session))

    result = BatchScheduleOrchestrator(ItineraryCalculator(gateway), resolver).generate(participants, event)
    assert [(s.user_id, s.transport_mode) for s in result.schedules] == [("a", "driving"), ("c", "driving")]


def test_override_keys_match_integer_ids(gateway, event):
    override = Coordinate(43.48, -80.53)
    people = [Participant(1, "Ann", home=HOME_A)]
    schedules = make_orchestrator(gateway).generate_schedules(people, event, {"1": override})

    assert schedules[0].outbound.origin == override
    assert schedules[0].return_leg.destination == HOME_A
    assert compute_fingerprint(event, people, {"1": override}) != compute_fingerprint(event, people)
