import json

from main_cli import format_time, load_event_file
from snapevent_travel.models import Coordinate


def test_load_event_file(tmp_path):
    path = tmp_path / "event.json"
    path.write_text(json.dumps({
        "event": {
            "id": "evt-1",
            "location": {"lat": 43.4643, "lng": -80.5204},
            "startTime": "2025-06-01T14:00:00Z",
            "endTime": "2025-06-01T15:00:00Z",
        },
        "participants": [
            {"id": "a", "name": "Alice", "lat": 43.4723, "lng": -80.5449, "transportModes": ["transit"]},
            {"id": "b", "name": "Bob"},
        ],
        "startingLocations": {"b": {"lat": 43.48, "lng": -80.53}, "c": {}},
    }))

    event, participants, starting_locations, settings = load_event_file(str(path))
    assert event.id == "evt-1"
    assert [p.id for p in participants] == ["a", "b"]
    assert starting_locations == {"b": Coordinate(43.48, -80.53)}
    assert settings == {"a": ["transit"]}


def test_format_time():
    assert format_time("14:30").hour == 14
    assert format_time("2025-06-01T14:30:00Z").minute == 30
    assert format_time("25:99") is None
