"""Exceptions raised by the proximity engine and its adapters."""


class ProximityError(Exception):
    """Base class for every error raised by bleproximity."""


class ConfigurationError(ProximityError):
    """Raised when the user configuration holds an unusable value."""


class RadioError(ProximityError):
    """Raised inside radio adapters when a BLE operation fails.

    The engine never sees these: adapters turn them into failure events.
    """

    def __init__(self, identifier, message):
        super().__init__(f"{identifier}: {message}")
        self.identifier = identifier
