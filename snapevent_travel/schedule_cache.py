import hashlib
import json
import logging
import threading
import weakref
from typing import Callable, Dict, List, Optional

import pytz
import redis

from .config import Config
from .errors import CacheUnavailableError
from .models import TravelSchedule


def compute_fingerprint(event, participants, overrides=None) -> str:
    """
    Deterministic digest of every input that affects an event's schedules:
    participant ids and homes, active starting-location overrides, destination and window.
    Independent of participant order.
    """
    overrides = overrides or {}
    ids = sorted(str(p.id) for p in participants)
    homes = {str(p.id): p.home.to_dict() if p.home else None for p in participants}
    active = {str(pid): coordinate.to_dict() for pid, coordinate in overrides.items()
              if coordinate is not None and str(pid) in homes}
    document = {
        "participants": ids,
        "homes": homes,
        "overrides": active,
        "destination": event.destination.to_dict() if event.destination else None,
        "start": event.start.astimezone(pytz.utc).isoformat() if event.start else None,
        "end": event.end.astimezone(pytz.utc).isoformat() if event.end else None,
    }
    encoded = json.dumps(document, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(encoded.encode('utf-8')).hexdigest()


class CacheEntry:
    def __init__(self, schedules: List[TravelSchedule], fingerprint: str, fresh=True, unavailable=None):
        self.schedules = schedules
        self.fingerprint = fingerprint
        self.fresh = fresh
        self.unavailable = unavailable or {}

    def to_dict(self):
        return {
            "schedules": [schedule.to_dict() for schedule in self.schedules],
            "fingerprint": self.fingerprint,
            "fresh": self.fresh,
            "unavailable": dict(self.unavailable),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            schedules=[TravelSchedule.from_dict(item) for item in data.get("schedules", [])],
            fingerprint=data.get("fingerprint"),
            fresh=data.get("fresh", True),
            unavailable=dict(data.get("unavailable") or {}),
        )


class ScheduleRead:
    def __init__(self, schedules, from_cache, unavailable=None):
        self.schedules = schedules
        self.from_cache = from_cache
        self.unavailable = unavailable or {}


class InMemoryScheduleStore:
    """
    Process-local store; lives as long as the object that owns it.
    Entries are kept as plain documents so callers never share state with the store.
    """

    def __init__(self):
        self._entries: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, event_id) -> Optional[CacheEntry]:
        with self._lock:
            document = self._entries.get(event_id)
        return CacheEntry.from_dict(document) if document is not None else None

    def put(self, event_id, entry: CacheEntry):
        document = entry.to_dict()
        with self._lock:
            self._entries[event_id] = document

    def delete(self, event_id):
        with self._lock:
            self._entries.pop(event_id, None)


class RedisScheduleStore:
    """
    Redis-backed store. Entries are JSON documents with no TTL; staleness is
    decided by fingerprint only.
    """

    KEY_PREFIX = "snapevent:schedules:"

    def __init__(self, client=None, url=None):
        self.client = client or redis.from_url(url or Config.REDIS_URL, socket_timeout=5,
                                               socket_connect_timeout=5, decode_responses=True)

    def _key(self, event_id):
        return f"{self.KEY_PREFIX}{event_id}"

    def get(self, event_id):
        try:
            value = self.client.get(self._key(event_id))
        except redis.exceptions.RedisError as e:
            raise CacheUnavailableError(f"Schedule cache get failed: {e}") from e
        if not value:
            logging.debug(f"Cache MISS: {self._key(event_id)}")
            return None
        logging.debug(f"Cache HIT: {self._key(event_id)}")
        return CacheEntry.from_dict(json.loads(value))

    def put(self, event_id, entry):
        try:
            self.client.set(self._key(event_id), json.dumps(entry.to_dict()))
        except redis.exceptions.RedisError as e:
            raise CacheUnavailableError(f"Schedule cache set failed: {e}") from e

    def delete(self, event_id):
        try:
            self.client.delete(self._key(event_id))
        except redis.exceptions.RedisError as e:
            raise CacheUnavailableError(f"Schedule cache delete failed: {e}") from e


class ScheduleCache:
    """
    Fingerprint-checked schedule cache in front of a key-value store.
    Read-or-recompute is serialized per event id.
    """

    def __init__(self, store=None):
        self.store = store if store is not None else InMemoryScheduleStore()
        # A lock lives only while some caller holds it
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, event_id):
        with self._locks_guard:
            lock = self._locks.get(event_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[event_id] = lock
            return lock

    def read(self, event_id, fingerprint: str, force_regenerate: bool, compute: Callable) -> ScheduleRead:
        """
        Returns cached schedules when the stored fingerprint matches, otherwise
        calls ``compute()`` (which returns a BatchResult) and stores the result.
        """
        with self._lock_for(event_id):
            if not force_regenerate:
                entry = self.store.get(event_id)
                if entry is not None and entry.fresh and entry.fingerprint == fingerprint:
                    logging.info(f"Using cached travel schedules for event {event_id}")
                    return ScheduleRead(entry.schedules, True, entry.unavailable)
                logging.info(f"Travel schedules for event {event_id} missing or stale, regenerating")
            else:
                logging.info(f"Regenerating travel schedules for event {event_id}")

            result = compute()
            try:
                self.store.put(event_id, CacheEntry(result.schedules, fingerprint, True, result.unavailable))
            except CacheUnavailableError as e:
                logging.warning(f"Could not store travel schedules for event {event_id}: {e}")
            return ScheduleRead(result.schedules, False, result.unavailable)

    def invalidate(self, event_id):
        with self._lock_for(event_id):
            entry = self.store.get(event_id)
            if entry is not None:
                entry.fresh = False
                self.store.put(event_id, entry)
                logging.info(f"Invalidated travel schedules for event {event_id}")

    def discard(self, event_id):
        """Removes the stored entry, e.g. when the event itself is deleted."""
        with self._lock_for(event_id):
            self.store.delete(event_id)


class FreshScheduleSource:
    """Same contract as ScheduleCache without a store: always computes, never caches."""

    def read(self, event_id, fingerprint, force_regenerate, compute) -> ScheduleRead:
        logging.debug(f"Computing travel schedules for event {event_id} without cache")
        result = compute()
        return ScheduleRead(result.schedules, False, result.unavailable)
