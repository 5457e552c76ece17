import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .config import Config
from .errors import ProviderUnavailableError
from .itinerary import MISSING_HOME, MISSING_ORIGIN, NO_ROUTE, PROVIDER_UNAVAILABLE
from .models import Coordinate, EventWindow, Participant, TravelSchedule
from .preferences import primary_mode

UNAVAILABLE_MESSAGES = {
    MISSING_ORIGIN: "location data needed",
    MISSING_HOME: "location data needed",
    NO_ROUTE: "unable to calculate route",
    PROVIDER_UNAVAILABLE: "unable to calculate route",
}


class BatchResult:
    """Schedules for every participant that could be computed, plus why the rest could not."""

    def __init__(self, schedules: List[TravelSchedule], unavailable: Dict[str, str]):
        self.schedules = schedules
        self.unavailable = unavailable

    @property
    def missing_location_count(self) -> int:
        return sum(1 for reason in self.unavailable.values() if reason in (MISSING_ORIGIN, MISSING_HOME))

    def messages(self) -> Dict[str, str]:
        return {pid: UNAVAILABLE_MESSAGES[reason] for pid, reason in self.unavailable.items()}


class BatchScheduleOrchestrator:
    def __init__(self, calculator, resolver, max_workers=None):
        self.calculator = calculator
        self.resolver = resolver
        self.max_workers = max_workers or Config.MAX_WORKERS

    def generate_schedules(self, participants: List[Participant], event: EventWindow,
                           overrides: Optional[Dict[str, Coordinate]] = None) -> List[TravelSchedule]:
        return self.generate(participants, event, overrides).schedules

    def generate(self, participants, event, overrides=None) -> BatchResult:
        """
        Computes a round-trip schedule for each participant.

        Participants that cannot be scheduled are left out of the result and
        recorded in ``unavailable``. Output order follows input order.
        Raises InvalidEventError for a malformed event window and
        ProviderUnavailableError when the routing provider failed for everyone.
        """
        event.validate()
        overrides = {str(pid): coordinate for pid, coordinate in (overrides or {}).items()}
        logging.info(f"Generating travel schedules for event {event.id} with {len(participants)} participants")

        modes = self.resolver.resolve_modes([p.id for p in participants])
        unavailable = {}
        jobs = []
        for participant in participants:
            override = overrides.get(str(participant.id))
            if override is None and participant.home is None:
                logging.warning(f"Skipping {participant.name} ({participant.id}): no location data")
                unavailable[participant.id] = MISSING_ORIGIN
                continue
            jobs.append((participant, primary_mode(modes.get(participant.id)), override))

        if not jobs:
            logging.info("No participants with location data to schedule")
            return BatchResult([], unavailable)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs))) as executor:
            outcomes = list(executor.map(lambda job: self._evaluate(job, event), jobs))

        schedules = []
        for (participant, _, _), (schedule, reason) in zip(jobs, outcomes):
            if schedule is not None:
                schedules.append(schedule)
            else:
                unavailable[participant.id] = reason

        routed = [reason for _, reason in outcomes if reason != MISSING_HOME]
        if routed and all(reason == PROVIDER_UNAVAILABLE for reason in routed):
            raise ProviderUnavailableError(f"Routing provider unreachable for every participant of event {event.id}")

        logging.info(f"Successfully generated {len(schedules)} travel schedules for event {event.id}")
        return BatchResult(schedules, unavailable)

    def _evaluate(self, job, event):
        participant, mode, override = job
        try:
            return self.calculator.evaluate(participant, event, mode, override)
        except Exception as e:
            logging.error(f"Error generating schedule for user {participant.id}: {e}", exc_info=True)
            return None, NO_ROUTE
