import logging
from typing import Dict, List, Optional

from .config import Config
from .directions_client import DirectionsClient
from .errors import CacheUnavailableError
from .itinerary import MISSING_HOME, MISSING_ORIGIN, ItineraryCalculator
from .models import Coordinate, EventWindow, Participant, TravelSchedule
from .orchestrator import UNAVAILABLE_MESSAGES, BatchScheduleOrchestrator
from .preferences import InMemoryTransportSettings, TransportPreferenceResolver, TransportSettingsClient
from .schedule_cache import (
    FreshScheduleSource,
    InMemoryScheduleStore,
    RedisScheduleStore,
    ScheduleCache,
    compute_fingerprint,
)


class TravelScheduleService:
    """
    Entry point for event travel schedules.

    Uses the cache-backed source when one is configured and falls back to
    always-fresh computation when there is no cache or the store is unreachable.
    """

    def __init__(self, orchestrator: BatchScheduleOrchestrator, cache: Optional[ScheduleCache] = None):
        self.orchestrator = orchestrator
        self.cache = cache
        self.fresh = FreshScheduleSource()

    def get_travel_schedules(self, event: EventWindow, participants: List[Participant],
                             starting_locations: Optional[Dict[str, Coordinate]] = None,
                             regenerate: bool = False):
        """
        Returns ``{"schedules", "fromCache", "unavailable", "missingLocationCount"}`` where
        ``unavailable`` maps each omitted participant id to a display message.
        """
        event.validate()
        starting_locations = starting_locations or {}
        fingerprint = compute_fingerprint(event, participants, starting_locations)

        def compute():
            return self.orchestrator.generate(participants, event, starting_locations)

        source = self.cache if self.cache is not None else self.fresh
        try:
            read = source.read(event.id, fingerprint, regenerate, compute)
        except CacheUnavailableError as e:
            logging.warning(f"Schedule cache unavailable for event {event.id}, computing fresh: {e}")
            read = self.fresh.read(event.id, fingerprint, regenerate, compute)

        return {
            "schedules": read.schedules,
            "fromCache": read.from_cache,
            "unavailable": {pid: UNAVAILABLE_MESSAGES.get(reason, reason) for pid, reason in read.unavailable.items()},
            "missingLocationCount": sum(1 for reason in read.unavailable.values()
                                        if reason in (MISSING_ORIGIN, MISSING_HOME)),
        }

    def regenerate_travel_schedules(self, event, participants, starting_locations=None) -> List[TravelSchedule]:
        return self.get_travel_schedules(event, participants, starting_locations, regenerate=True)["schedules"]

    def invalidate(self, event_id):
        if self.cache is None:
            return
        try:
            self.cache.invalidate(event_id)
        except CacheUnavailableError as e:
            logging.warning(f"Could not invalidate schedules for event {event_id}: {e}")

    def discard(self, event_id):
        if self.cache is None:
            return
        try:
            self.cache.discard(event_id)
        except CacheUnavailableError as e:
            logging.warning(f"Could not discard schedules for event {event_id}: {e}")


def build_service(transport_settings=None, use_cache=True) -> TravelScheduleService:
    """
    Wires a service from Config: Redis cache when REDIS_URL is set (in-memory
    otherwise), HTTP transport settings when USERS_API_URL is set.
    """
    if transport_settings is not None:
        store = InMemoryTransportSettings(transport_settings)
    elif Config.USERS_API_URL:
        store = TransportSettingsClient()
    else:
        store = InMemoryTransportSettings()

    orchestrator = BatchScheduleOrchestrator(
        calculator=ItineraryCalculator(DirectionsClient()),
        resolver=TransportPreferenceResolver(store),
    )

    cache = None
    if use_cache:
        cache = ScheduleCache(RedisScheduleStore() if Config.REDIS_URL else InMemoryScheduleStore())
    return TravelScheduleService(orchestrator, cache)
