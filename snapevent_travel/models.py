import datetime
from typing import Any, Dict, List, Optional

import pytz

from .config import Config
from .errors import InvalidEventError


def parse_datetime(value, time_zone=None):
    """
    Parse an ISO format string (or pass through a datetime) into an aware datetime.
    Naive values are localized to the configured timezone.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        try:
            parsed = datetime.datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (ValueError, AttributeError):
            return None
    if parsed.tzinfo is None:
        parsed = pytz.timezone(time_zone or Config.TIMEZONE).localize(parsed)
    return parsed


def from_timestamp(seconds):
    """Convert provider epoch seconds to an aware UTC datetime."""
    return datetime.datetime.fromtimestamp(seconds, tz=pytz.utc)


def _isoformat(value):
    return value.isoformat() if value else None


class Coordinate:
    def __init__(self, lat, lng):
        self.lat = float(lat)
        self.lng = float(lng)

    @classmethod
    def from_dict(cls, data):
        """Build a coordinate from ``{"lat", "lng"}``; returns None when either is missing."""
        if not data:
            return None
        lat = data.get('lat')
        lng = data.get('lng', data.get('lon'))
        if lat is None or lng is None:
            return None
        return cls(lat, lng)

    @classmethod
    def parse(cls, text: str):
        """Parse a ``"lat,lng"`` string."""
        lat, lng = text.split(',')
        return cls(lat.strip(), lng.strip())

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    def __str__(self):
        return f"{self.lat},{self.lng}"

    def __eq__(self, other):
        if not isinstance(other, Coordinate):
            return NotImplemented
        return (self.lat, self.lng) == (other.lat, other.lng)

    def __hash__(self):
        return hash((self.lat, self.lng))

    def __repr__(self):
        return f"Coordinate({self.lat}, {self.lng})"


class Participant:
    def __init__(self, participant_id, name, picture=None, home: Optional[Coordinate] = None,
                 transport_modes: Optional[List[str]] = None):
        self.id = participant_id
        self.name = name
        self.picture = picture
        self.home = home
        self.transport_modes = transport_modes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Build a participant from a user record (``id, name, picture, lat, lng, transportModes``)."""
        return cls(
            participant_id=data.get('id'),
            name=data.get('name', ''),
            picture=data.get('picture'),
            home=Coordinate.from_dict(data),
            transport_modes=data.get('transportModes'),
        )

    def __repr__(self):
        return f"Participant({self.id}, {self.name}, {self.home})"


class EventWindow:
    def __init__(self, event_id, destination: Optional[Coordinate], start, end, description=None):
        self.id = event_id
        self.destination = destination
        self.start = parse_datetime(start)
        self.end = parse_datetime(end)
        self.description = description

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        location = data.get('location') or {}
        return cls(
            event_id=data.get('id'),
            destination=Coordinate.from_dict(location),
            start=data.get('startTime'),
            end=data.get('endTime'),
            description=location.get('description'),
        )

    def validate(self):
        if self.destination is None:
            raise InvalidEventError(f"Event {self.id} has no destination")
        if self.start is None or self.end is None:
            raise InvalidEventError(f"Event {self.id} is missing a start or end time")
        if self.end <= self.start:
            raise InvalidEventError(f"Event {self.id} ends before it starts")

    def __repr__(self):
        return f"EventWindow({self.id}, {self.destination}, {self.start}, {self.end})"


class TransitDetail:
    def __init__(self, departure_stop=None, departure_location=None, arrival_stop=None,
                 arrival_location=None, departure_time=None, arrival_time=None, line_name=None,
                 line_short_name=None, vehicle_type=None, headsign=None, num_stops=None):
        self.departure_stop = departure_stop
        self.departure_location = departure_location
        self.arrival_stop = arrival_stop
        self.arrival_location = arrival_location
        self.departure_time = departure_time
        self.arrival_time = arrival_time
        self.line_name = line_name
        self.line_short_name = line_short_name
        self.vehicle_type = vehicle_type
        self.headsign = headsign
        self.num_stops = num_stops

    def to_dict(self) -> Dict[str, Any]:
        return {
            "departureStop": self.departure_stop,
            "departureLocation": self.departure_location.to_dict() if self.departure_location else None,
            "arrivalStop": self.arrival_stop,
            "arrivalLocation": self.arrival_location.to_dict() if self.arrival_location else None,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "lineName": self.line_name,
            "lineShortName": self.line_short_name,
            "vehicleType": self.vehicle_type,
            "headsign": self.headsign,
            "numStops": self.num_stops,
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(
            departure_stop=data.get('departureStop'),
            departure_location=Coordinate.from_dict(data.get('departureLocation')),
            arrival_stop=data.get('arrivalStop'),
            arrival_location=Coordinate.from_dict(data.get('arrivalLocation')),
            departure_time=data.get('departureTime'),
            arrival_time=data.get('arrivalTime'),
            line_name=data.get('lineName'),
            line_short_name=data.get('lineShortName'),
            vehicle_type=data.get('vehicleType'),
            headsign=data.get('headsign'),
            num_stops=data.get('numStops'),
        )


class TravelStep:
    def __init__(self, instruction, duration, distance, travel_mode, transit: Optional[TransitDetail] = None):
        self.instruction = instruction
        self.duration = duration
        self.distance = distance
        self.travel_mode = travel_mode
        self.transit = transit

    def to_dict(self) -> Dict[str, Any]:
        step = {
            "instruction": self.instruction,
            "duration": self.duration,
            "distance": self.distance,
            "travelMode": self.travel_mode,
        }
        if self.transit:
            step["transitDetails"] = self.transit.to_dict()
        return step

    @classmethod
    def from_dict(cls, data):
        return cls(
            instruction=data.get('instruction'),
            duration=data.get('duration', 0),
            distance=data.get('distance'),
            travel_mode=data.get('travelMode'),
            transit=TransitDetail.from_dict(data.get('transitDetails')),
        )


class TravelLeg:
    """
    One directional trip. ``provider_timing`` is True when the departure and
    arrival instants came from the routing provider rather than being derived.
    """

    def __init__(self, duration, distance, steps, departure_time=None, arrival_time=None,
                 origin: Optional[Coordinate] = None, destination: Optional[Coordinate] = None,
                 provider_timing=False):
        self.duration = duration
        self.distance = distance
        self.steps = steps
        self.departure_time = departure_time
        self.arrival_time = arrival_time
        self.origin = origin
        self.destination = destination
        self.provider_timing = provider_timing

    def with_timing(self, departure_time, arrival_time):
        """Return a copy of this leg with the given departure and arrival instants."""
        return TravelLeg(
            duration=self.duration,
            distance=self.distance,
            steps=self.steps,
            departure_time=departure_time,
            arrival_time=arrival_time,
            origin=self.origin,
            destination=self.destination,
            provider_timing=self.provider_timing,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "departureTime": _isoformat(self.departure_time),
            "arrivalTime": _isoformat(self.arrival_time),
            "duration": self.duration,
            "distance": self.distance,
            "steps": [step.to_dict() for step in self.steps],
            "origin": self.origin.to_dict() if self.origin else None,
            "destination": self.destination.to_dict() if self.destination else None,
            "providerTiming": self.provider_timing,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            duration=data.get('duration'),
            distance=data.get('distance'),
            steps=[TravelStep.from_dict(step) for step in data.get('steps', [])],
            departure_time=parse_datetime(data.get('departureTime')),
            arrival_time=parse_datetime(data.get('arrivalTime')),
            origin=Coordinate.from_dict(data.get('origin')),
            destination=Coordinate.from_dict(data.get('destination')),
            provider_timing=bool(data.get('providerTiming', False)),
        )

    def __repr__(self):
        return f"TravelLeg({self.departure_time} -> {self.arrival_time}, {self.duration} min, {self.distance})"


class TravelSchedule:
    def __init__(self, user_id, user_name, transport_mode, outbound: TravelLeg, return_leg: TravelLeg,
                 user_picture=None):
        self.user_id = user_id
        self.user_name = user_name
        self.user_picture = user_picture
        self.transport_mode = transport_mode
        self.outbound = outbound
        self.return_leg = return_leg

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "userPicture": self.user_picture,
            "transportMode": self.transport_mode,
            "outbound": self.outbound.to_dict(),
            "return": self.return_leg.to_dict(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            user_id=data.get('userId'),
            user_name=data.get('userName'),
            user_picture=data.get('userPicture'),
            transport_mode=data.get('transportMode'),
            outbound=TravelLeg.from_dict(data['outbound']),
            return_leg=TravelLeg.from_dict(data['return']),
        )

    def __repr__(self):
        return f"TravelSchedule({self.user_id}, {self.transport_mode}, {self.outbound}, {self.return_leg})"
