"""
SnapEvent Travel Schedules

This module computes per-participant travel itineraries for an event: an outbound
trip arriving by the event start and a return trip home departing at the event end,
using the Google Directions API, with results cached per event.

Example:
    from snapevent_travel import EventWindow, Participant, Coordinate, build_service

    event = EventWindow("evt-1", Coordinate(43.4643, -80.5204),
                        start="2025-06-01T14:00:00", end="2025-06-01T15:00:00")
    friends = [Participant("u1", "Alex", home=Coordinate(43.4723, -80.5449))]

    service = build_service()
    result = service.get_travel_schedules(event, friends)
    # result["schedules"], result["fromCache"]
"""

from .models import Coordinate, EventWindow, Participant, TravelLeg, TravelSchedule, TravelStep
from .service import TravelScheduleService, build_service

__all__ = ['Coordinate', 'EventWindow', 'Participant', 'TravelLeg', 'TravelSchedule', 'TravelStep',
           'TravelScheduleService', 'build_service']
