"""Error taxonomy for the weather client core.

Network errors are caught at the component that issued the call and
translated into one of these before they reach the view state machine.
"""


class MeteoError(Exception):
    """Base class for all meteo errors."""


class InputError(MeteoError):
    """The user input cannot be searched (e.g. empty query)."""


class ResolutionError(MeteoError):
    """Geocoding failed or produced no usable place."""


class WeatherFetchError(MeteoError):
    """The weather provider could not deliver a usable forecast."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(MeteoError):
    """The durable store could not be read or written."""


class ConfigurationError(MeteoError):
    """Startup configuration is missing or invalid."""
