"""Runtime options for the proximity engine.

Users edit a plain ``CONFIG`` dict (see ``main.py``); ``ProximityConfig.from_mapping``
turns it into a validated object. A stronger signal has a higher RSSI, so -40
is closer than -70.
"""

from dataclasses import dataclass, field

from .exceptions import ConfigurationError

LOCK_DISABLED = -100
UNLOCK_DISABLED = 1
DISABLED = 'disabled'


@dataclass
class ProximityConfig:
    lock_rssi: int = -80           # Away once the smoothed RSSI drops below this
    unlock_rssi: int = -60         # Close once the smoothed RSSI rises to this
    discovery_rssi: int = -70      # Minimum RSSI for a new device to be listed
    proximity_timeout: float = 5.0  # Seconds every target must stay away before "away"
    signal_timeout: float = 60.0   # Seconds without a sample before RSSI is unknown
    window_size: int = 5           # Samples averaged per target
    passive_mode: bool = False     # Never connect to monitored targets
    poll_interval: float = 2.0     # Seconds between connection-level RSSI reads
    stale_after: float = 10.0      # Active mode gives up after this long without a read
    connection_timeout: float = 60.0
    debug_mode: bool = False
    excluded_devices: list = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping):
        """Build a config from a ``CONFIG``-style dict, ignoring unknown keys."""
        config = cls()
        for key, value in mapping.items():
            if not hasattr(config, key):
                continue
            if key in ('lock_rssi', 'unlock_rssi'):
                value = _threshold(key, value)
            elif key == 'excluded_devices':
                value = list(value)
            setattr(config, key, value)
        config.validate()
        return config

    @property
    def lock_disabled(self):
        return self.lock_rssi == LOCK_DISABLED

    @property
    def unlock_disabled(self):
        return self.unlock_rssi == UNLOCK_DISABLED

    @property
    def effective_threshold(self):
        """RSSI a target must reach to count as present."""
        return self.unlock_rssi if self.lock_disabled else self.lock_rssi

    def validate(self):
        for name in ('lock_rssi', 'unlock_rssi', 'discovery_rssi', 'window_size'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if self.window_size < 1:
            raise ConfigurationError(f"window_size must be at least 1, got {self.window_size}")
        for name in ('proximity_timeout', 'signal_timeout', 'poll_interval',
                     'stale_after', 'connection_timeout'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number of seconds, got {value!r}")
        if not self.lock_disabled and not self.unlock_disabled and self.lock_rssi > self.unlock_rssi:
            raise ConfigurationError(
                f"lock_rssi ({self.lock_rssi}) must not be above unlock_rssi ({self.unlock_rssi})"
            )


def _threshold(key, value):
    if isinstance(value, str):
        if value.strip().lower() != DISABLED:
            raise ConfigurationError(f"{key} must be an integer or '{DISABLED}', got {value!r}")
        return LOCK_DISABLED if key == 'lock_rssi' else UNLOCK_DISABLED
    return value
