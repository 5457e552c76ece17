import logging
from typing import Dict, Iterable, List

import requests

from .config import Config
from .directions_client import TRANSPORT_MODES
from .errors import PreferenceLookupError

DEFAULT_MODES = ["driving"]


def primary_mode(modes) -> str:
    """The first preferred mode is the only one used for schedule generation."""
    return modes[0] if modes else DEFAULT_MODES[0]


class TransportSettingsClient:
    """
    Client for the users API transport settings batch endpoint.
    """

    def __init__(self, base_url=None, token=None, timeout=None, session=None):
        self.base_url = (base_url or Config.USERS_API_URL or "http://localhost:3000").rstrip('/')
        self.token = token
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def fetch_transport_modes(self, participant_ids: List[str]) -> Dict[str, List[str]]:
        url = f"{self.base_url}/api/users/transport-settings/batch"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.post(url, json={"userIds": participant_ids}, headers=headers,
                                         timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise PreferenceLookupError(f"Transport settings request failed: {e}") from e

        if response.status_code != 200:
            raise PreferenceLookupError(f"Transport settings returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise PreferenceLookupError("Transport settings response was not JSON") from e

        if not isinstance(data, dict):
            raise PreferenceLookupError("Transport settings response was not an object")
        if not data.get("success"):
            raise PreferenceLookupError(f"Transport settings lookup failed: {data.get('error')}")

        settings = data.get("data") or {}
        if not isinstance(settings, dict):
            raise PreferenceLookupError("Transport settings data was not an object")
        return settings


class InMemoryTransportSettings:
    """Dictionary-backed preference store."""

    def __init__(self, settings=None):
        self.settings = dict(settings or {})

    def fetch_transport_modes(self, participant_ids):
        return {pid: self.settings[pid] for pid in participant_ids if pid in self.settings}


class TransportPreferenceResolver:
    def __init__(self, store):
        self.store = store

    def resolve_modes(self, participant_ids: Iterable[str]) -> Dict[str, List[str]]:
        """
        Resolves every participant's ordered transport modes in one store call.
        Participants without a stored preference get the default ``["driving"]``;
        a failed lookup degrades everyone to the default.
        """
        participant_ids = list(participant_ids)
        if not participant_ids:
            return {}

        try:
            stored = self.store.fetch_transport_modes(participant_ids)
        except PreferenceLookupError as e:
            logging.warning(f"Transport preference lookup failed, using defaults: {e}")
            stored = {}
        if not isinstance(stored, dict):
            logging.warning(f"Transport preference store returned {type(stored).__name__}, using defaults")
            stored = {}

        resolved = {}
        for pid in participant_ids:
            entry = stored.get(pid, stored.get(str(pid)))
            if not isinstance(entry, (list, tuple)):
                entry = []
            modes = [mode for mode in entry if mode in TRANSPORT_MODES]
            if not modes:
                modes = list(DEFAULT_MODES)
            resolved[pid] = modes
        logging.debug(f"Resolved transport modes: {resolved}")
        return resolved
