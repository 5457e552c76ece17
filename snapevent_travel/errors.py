class TravelScheduleError(Exception):
    """Base class for travel schedule failures that reach the caller."""


class InvalidEventError(TravelScheduleError):
    """The event window is missing a destination or time, or ends before it starts."""


class ProviderUnavailableError(TravelScheduleError):
    """The routing provider could not be reached for any participant."""


class PreferenceLookupError(TravelScheduleError):
    """The transport preference store failed for the whole batch."""


class CacheUnavailableError(TravelScheduleError):
    """The schedule cache store could not be reached."""
