import logging
import math
import re

import requests

from .config import Config
from .models import Coordinate, TransitDetail, TravelLeg, TravelStep, from_timestamp

TRANSPORT_MODES = ("walking", "driving", "transit", "bicycling")

# Provider statuses meaning the service refused or failed the request, not that no route exists
PROVIDER_ERROR_STATUSES = ("REQUEST_DENIED", "OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT", "UNKNOWN_ERROR")

HTML_TAG_PATTERN = re.compile(r'<[^>]*>')


def strip_html(text: str) -> str:
    """Remove HTML tags from provider instruction text."""
    return HTML_TAG_PATTERN.sub('', text)


def ceil_minutes(seconds) -> int:
    return int(math.ceil((seconds or 0) / 60))


class NoRoute:
    """
    Failure value returned by ``DirectionsClient.get_directions``.
    Falsy, so callers can test ``if not leg``. ``unreachable`` is set when the
    provider itself could not be reached, as opposed to answering with no route.
    """

    def __init__(self, reason: str, unreachable: bool = False):
        self.reason = reason
        self.unreachable = unreachable

    def __bool__(self):
        return False

    def __repr__(self):
        return f"NoRoute({self.reason!r}, unreachable={self.unreachable})"


class DirectionsClient:
    """
    Client for the Google Directions API.
    Resolves one directional trip anchored by an arrival or departure instant.
    """

    def __init__(self, api_key=None, url=None, timeout=None, session=None):
        self.api_key = api_key or Config.GOOGLE_MAPS_API_KEY
        self.url = url or Config.DIRECTIONS_URL
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.session = session or requests.Session()

        if not self.api_key:
            logging.warning("Google Maps API key not found. Set GOOGLE_MAPS_API_KEY in your environment.")

    def get_directions(self, origin: Coordinate, destination: Coordinate, mode: str,
                       arrive_by=None, depart_at=None):
        """
        Fetches directions between two coordinates and maps the first route's
        first leg into a TravelLeg.

        Exactly one of ``arrive_by`` or ``depart_at`` must be given.
        Returns a NoRoute value instead of raising when the provider fails.
        """
        if (arrive_by is None) == (depart_at is None):
            raise ValueError("Exactly one of arrive_by or depart_at is required")
        if mode not in TRANSPORT_MODES:
            raise ValueError(f"Unsupported transport mode: {mode}")

        params = {
            "origin": str(origin),
            "destination": str(destination),
            "mode": mode,
            "key": self.api_key,
        }
        if arrive_by is not None:
            params["arrival_time"] = int(arrive_by.timestamp())
        else:
            params["departure_time"] = int(depart_at.timestamp())

        logging.info(f"Requesting {mode} directions {origin} -> {destination}")
        safe_params = {k: v for k, v in params.items() if k != "key"}
        logging.debug(f"Directions params: {safe_params}")

        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logging.warning(f"Timeout requesting directions {origin} -> {destination}")
            return NoRoute("timeout", unreachable=True)
        except requests.exceptions.RequestException as e:
            logging.warning(f"Request error requesting directions: {e}")
            return NoRoute(f"request error: {e}", unreachable=True)

        if response.status_code != 200:
            logging.error("Directions request failed (%s): %s", response.status_code, response.text[:200])
            return NoRoute(f"HTTP {response.status_code}", unreachable=True)

        try:
            data = response.json()
        except ValueError:
            logging.error("Directions response was not JSON: %s", response.text[:200])
            return NoRoute("invalid response", unreachable=True)
        if not isinstance(data, dict):
            logging.error("Directions response was not an object: %s", response.text[:200])
            return NoRoute("invalid response", unreachable=True)

        status = data.get("status", "OK")
        if status != "OK":
            logging.warning(f"Directions provider returned status {status}: {data.get('error_message', '')}")
            return NoRoute(status, unreachable=status in PROVIDER_ERROR_STATUSES)

        leg = self.parse_leg(data)
        if leg is None:
            return NoRoute("no usable route")
        leg.origin = origin
        leg.destination = destination
        return leg

    def parse_leg(self, data):
        """
        Maps the first leg of the first route in a provider response.
        Returns None when there is no route or the leg lacks duration, distance or steps.
        """
        routes = data.get("routes") or []
        if not routes:
            logging.warning("No routes found in directions response")
            return None

        legs = routes[0].get("legs") or []
        leg = legs[0] if legs else None
        if not leg or not leg.get("duration") or not leg.get("distance") or not leg.get("steps"):
            logging.warning(f"Invalid route data structure: {leg}")
            return None

        departure_time = self.parse_instant(leg.get("departure_time"))
        arrival_time = self.parse_instant(leg.get("arrival_time"))

        return TravelLeg(
            duration=ceil_minutes(leg["duration"].get("value")),
            distance=leg["distance"].get("text"),
            steps=[self.parse_step(step) for step in leg["steps"]],
            departure_time=departure_time,
            arrival_time=arrival_time,
            provider_timing=departure_time is not None or arrival_time is not None,
        )

    def parse_instant(self, value):
        """Provider time object to datetime; None when it carries no epoch ``value``."""
        seconds = value.get("value") if isinstance(value, dict) else None
        if seconds is None:
            return None
        try:
            return from_timestamp(seconds)
        except (TypeError, ValueError, OverflowError, OSError):
            logging.warning(f"Ignoring unparseable provider time: {value}")
            return None

    def parse_step(self, step) -> TravelStep:
        instruction = step.get("html_instructions") or step.get("instructions")
        travel_mode = step.get("travel_mode")
        return TravelStep(
            instruction=strip_html(instruction) if instruction else "Continue on route",
            duration=ceil_minutes((step.get("duration") or {}).get("value")),
            distance=(step.get("distance") or {}).get("text") or "Unknown distance",
            travel_mode=travel_mode.lower() if travel_mode else "unknown",
            transit=self.parse_transit(step.get("transit_details")),
        )

    def parse_transit(self, details):
        if not details:
            return None
        departure_stop = details.get("departure_stop") or {}
        arrival_stop = details.get("arrival_stop") or {}
        line = details.get("line") or {}
        vehicle = line.get("vehicle") or {}
        return TransitDetail(
            departure_stop=departure_stop.get("name"),
            departure_location=Coordinate.from_dict(departure_stop.get("location")),
            arrival_stop=arrival_stop.get("name"),
            arrival_location=Coordinate.from_dict(arrival_stop.get("location")),
            departure_time=(details.get("departure_time") or {}).get("text"),
            arrival_time=(details.get("arrival_time") or {}).get("text"),
            line_name=line.get("name"),
            line_short_name=line.get("short_name"),
            vehicle_type=vehicle.get("type"),
            headsign=details.get("headsign"),
            num_stops=details.get("num_stops"),
        )
