"""BLE proximity monitoring: lock when your phone walks away, wake when it returns."""

from .config import LOCK_DISABLED, UNLOCK_DISABLED, ProximityConfig
from .engine import ProximityEngine
from .events import RadioEvent, RadioEventType
from .exceptions import ConfigurationError, ProximityError, RadioError
from .labels import device_label
from .listener import LoggingListener, ProximityListener
from .log import setup_logging
from .models import ConnectionState, DiscoveredDevice, MonitoredTarget, ScanMode

__all__ = [
    'ConfigurationError',
    'ConnectionState',
    'DiscoveredDevice',
    'LOCK_DISABLED',
    'LoggingListener',
    'MonitoredTarget',
    'ProximityConfig',
    'ProximityEngine',
    'ProximityError',
    'ProximityListener',
    'RadioError',
    'RadioEvent',
    'RadioEventType',
    'ScanMode',
    'UNLOCK_DISABLED',
    'device_label',
    'setup_logging',
]
