#!/usr/bin/env python3
import argparse
import datetime
import json
import logging
import sys

from snapevent_travel.config import Config
from snapevent_travel.directions_client import TRANSPORT_MODES, DirectionsClient
from snapevent_travel.errors import TravelScheduleError
from snapevent_travel.models import Coordinate, EventWindow, Participant, parse_datetime
from snapevent_travel.service import build_service


def setup_logging(debug=False):
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def format_time(time_str):
    """Parse an ISO string or a bare "HH:MM" (today) into an aware datetime."""
    if time_str and len(time_str) <= 5:
        try:
            time_only = datetime.datetime.strptime(time_str, "%H:%M").time()
        except ValueError:
            return None
        return parse_datetime(datetime.datetime.combine(datetime.date.today(), time_only))
    return parse_datetime(time_str)


def print_leg(label, leg):
    print(f"  {label}: {leg.departure_time:%H:%M} -> {leg.arrival_time:%H:%M} "
          f"({leg.duration} min, {leg.distance})")
    for i, step in enumerate(leg.steps):
        line = f"    {i+1}. {step.instruction} ({step.duration} min, {step.distance})"
        if step.transit:
            line += f" [{step.transit.vehicle_type} {step.transit.line_short_name or step.transit.line_name}" \
                    f" from {step.transit.departure_stop}, {step.transit.num_stops} stops]"
        print(line)


def load_event_file(path):
    """
    Reads an event file:
    {"event": {...}, "participants": [...], "startingLocations": {id: {lat, lng}},
     "transportSettings": {id: [modes]}}
    """
    with open(path, 'r') as f:
        data = json.load(f)

    event = EventWindow.from_dict(data["event"])
    participants = [Participant.from_dict(p) for p in data.get("participants", [])]
    starting_locations = {}
    for pid, location in (data.get("startingLocations") or {}).items():
        coordinate = Coordinate.from_dict(location)
        if coordinate:
            starting_locations[pid] = coordinate

    transport_settings = data.get("transportSettings")
    if transport_settings is None:
        transport_settings = {p.id: p.transport_modes for p in participants if p.transport_modes}
    return event, participants, starting_locations, transport_settings


def show_schedules(events_file, regenerate=False, as_json=False):
    """Compute and print travel schedules for every participant of an event."""
    try:
        event, participants, starting_locations, transport_settings = load_event_file(events_file)
    except FileNotFoundError:
        print(f"❌ Event file not found: {events_file}")
        return 1
    except (json.JSONDecodeError, KeyError) as e:
        print(f"❌ Invalid event file {events_file}: {e}")
        return 1

    service = build_service(transport_settings=transport_settings)
    try:
        result = service.get_travel_schedules(event, participants, starting_locations, regenerate=regenerate)
    except TravelScheduleError as e:
        print(f"❌ Could not generate schedules: {e}")
        return 1

    if as_json:
        payload = dict(result)
        payload["schedules"] = [schedule.to_dict() for schedule in result["schedules"]]
        print(json.dumps(payload, indent=2))
        return 0

    schedules = result["schedules"]
    if not schedules:
        print(f"❌ No schedules available ({result['missingLocationCount']} participants missing location data)")
    for schedule in schedules:
        print(f"\n🧭 {schedule.user_name} ({schedule.transport_mode})")
        print_leg("To event", schedule.outbound)
        print_leg("Return home", schedule.return_leg)
    for pid, message in result["unavailable"].items():
        print(f"⚠️  {pid}: {message}")
    return 0


def show_directions(origin, destination, mode, arrive_by=None, depart_at=None):
    """Test a single directions lookup."""
    anchor_text = arrive_by or depart_at
    anchor = format_time(anchor_text) if anchor_text else None
    if anchor_text and not anchor:
        print(f"❌ Invalid time format: {anchor_text}")
        return 1
    if anchor is None:
        depart_at = anchor = datetime.datetime.now(datetime.timezone.utc)

    client = DirectionsClient()
    kwargs = {"arrive_by": anchor} if arrive_by else {"depart_at": anchor}
    leg = client.get_directions(Coordinate.parse(origin), Coordinate.parse(destination), mode, **kwargs)
    if not leg:
        print(f"❌ No route from {origin} to {destination}: {leg.reason}")
        return 1

    print(f"✅ Route found ({mode}): {leg.duration} min, {leg.distance}")
    if leg.provider_timing:
        print(f"  🕒 Scheduled: {leg.departure_time} -> {leg.arrival_time}")
    for i, step in enumerate(leg.steps):
        print(f"  {i+1}. {step.instruction} ({step.duration} min, {step.distance})")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="SnapEvent travel schedules CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Travel schedules for every participant of an event
  ./main_cli.py schedules event.json

  # Directions between two coordinates arriving by 14:00
  ./main_cli.py directions "43.4723,-80.5449" "43.4643,-80.5204" --mode transit --arrive-by 14:00
        """
    )

    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Sub-command help')

    schedules_parser = subparsers.add_parser('schedules', help='Travel schedules for an event')
    schedules_parser.add_argument('events_file', type=str, help='JSON file with event and participants')
    schedules_parser.add_argument('--regenerate', action='store_true', help='Bypass the schedule cache')
    schedules_parser.add_argument('--json', action='store_true', help='Print schedules as JSON')

    directions_parser = subparsers.add_parser('directions', help='Directions between two coordinates')
    directions_parser.add_argument('origin', type=str, help='Origin as "lat,lng"')
    directions_parser.add_argument('destination', type=str, help='Destination as "lat,lng"')
    directions_parser.add_argument('--mode', choices=TRANSPORT_MODES, default='driving')
    anchor = directions_parser.add_mutually_exclusive_group()
    anchor.add_argument('--arrive-by', type=str, help='Arrival time (e.g., "14:30" or ISO format)')
    anchor.add_argument('--depart-at', type=str, help='Departure time (e.g., "14:30" or ISO format)')

    args = parser.parse_args()
    setup_logging(args.debug or Config.DEBUG)

    if args.command == 'schedules':
        return show_schedules(args.events_file, args.regenerate, args.json)
    elif args.command == 'directions':
        return show_directions(args.origin, args.destination, args.mode, args.arrive_by, args.depart_at)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
