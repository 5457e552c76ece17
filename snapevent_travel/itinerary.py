import datetime
import logging
from typing import Optional

from .config import Config
from .models import Coordinate, EventWindow, Participant, TravelSchedule

MISSING_ORIGIN = "missing_origin"
MISSING_HOME = "missing_home"
NO_ROUTE = "no_route"
PROVIDER_UNAVAILABLE = "provider_unavailable"


class ItineraryCalculator:
    """
    Builds one participant's round trip: an outbound leg arriving by the event
    start and a return leg home departing at the event end.
    """

    def __init__(self, gateway, buffer_minutes=None):
        self.gateway = gateway
        self.buffer_minutes = Config.OUTBOUND_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes

    def compute_schedule(self, participant: Participant, event: EventWindow, mode: str,
                         override: Optional[Coordinate] = None) -> Optional[TravelSchedule]:
        schedule, _ = self.evaluate(participant, event, mode, override)
        return schedule

    def evaluate(self, participant, event, mode, override=None):
        """
        Returns ``(schedule, reason)``; reason is None on success, otherwise one of
        MISSING_ORIGIN, MISSING_HOME, NO_ROUTE or PROVIDER_UNAVAILABLE.
        """
        origin = override or participant.home
        if origin is None:
            logging.warning(f"User {participant.name} has no location data and no starting location")
            return None, MISSING_ORIGIN

        # Return trip always goes home, never to the starting location
        if participant.home is None:
            logging.warning(f"User {participant.name} has no home location for the return trip")
            return None, MISSING_HOME

        logging.info(f"Generating schedule for {participant.name} using {mode} "
                     f"from {'custom starting location' if override else 'home'}")

        outbound = self.gateway.get_directions(origin, event.destination, mode, arrive_by=event.start)
        if not outbound:
            logging.warning(f"Failed to get outbound directions for {participant.name}: {outbound}")
            return None, self._failure_reason(outbound)

        inbound = self.gateway.get_directions(event.destination, participant.home, mode, depart_at=event.end)
        if not inbound:
            logging.warning(f"Failed to get return directions for {participant.name}: {inbound}")
            return None, self._failure_reason(inbound)

        buffer = datetime.timedelta(minutes=self.buffer_minutes)
        outbound_arrival = outbound.arrival_time or event.start - buffer
        outbound_departure = outbound.departure_time or \
            event.start - buffer - datetime.timedelta(minutes=outbound.duration)

        return_departure = inbound.departure_time or event.end
        return_arrival = inbound.arrival_time or event.end + datetime.timedelta(minutes=inbound.duration)

        logging.debug(f"Timing for {participant.name}: outbound "
                      f"{'provider' if outbound.provider_timing else 'calculated'}, return "
                      f"{'provider' if inbound.provider_timing else 'calculated'}")

        return TravelSchedule(
            user_id=participant.id,
            user_name=participant.name,
            user_picture=participant.picture,
            transport_mode=mode,
            outbound=outbound.with_timing(outbound_departure, outbound_arrival),
            return_leg=inbound.with_timing(return_departure, return_arrival),
        ), None

    @staticmethod
    def _failure_reason(failure):
        return PROVIDER_UNAVAILABLE if getattr(failure, "unreachable", False) else NO_ROUTE
