"""Inbound radio events.

Every radio callback is normalised into a ``RadioEvent`` and handed to
``ProximityEngine.dispatch``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

DEVICE_INFORMATION = '180a'
MANUFACTURER_NAME = '2a29'
MODEL_NUMBER = '2a24'
EXPOSURE_NOTIFICATION = 'fd6f'

_BASE_UUID_SUFFIX = '-0000-1000-8000-00805f9b34fb'


class RadioEventType(Enum):
    POWER_ON = 'power_on'
    POWER_OFF = 'power_off'
    DISCOVERED = 'discovered'
    CONNECTED = 'connected'
    CONNECT_FAILED = 'connect_failed'
    DISCONNECTED = 'disconnected'
    RSSI_READ = 'rssi_read'
    RSSI_READ_FAILED = 'rssi_read_failed'
    SERVICES_DISCOVERED = 'services_discovered'
    SERVICES_INVALIDATED = 'services_invalidated'
    CHARACTERISTICS_DISCOVERED = 'characteristics_discovered'
    VALUE_UPDATED = 'value_updated'


@dataclass(frozen=True)
class RadioEvent:
    type: RadioEventType
    identifier: Optional[str] = None
    rssi: Optional[int] = None
    payload: Optional[bytes] = None
    service_uuids: Tuple[str, ...] = ()
    name: Optional[str] = None
    service: Optional[str] = None
    characteristics: Tuple[str, ...] = ()
    characteristic: Optional[str] = None
    value: Optional[bytes] = None


def short_uuid(uuid):
    """Reduce a Bluetooth base UUID to its 16-bit form, e.g. ``'180a'``."""
    uuid = str(uuid).lower()
    if uuid.endswith(_BASE_UUID_SUFFIX) and uuid.startswith('0000'):
        return uuid[4:8]
    return uuid


def full_uuid(uuid):
    """Expand a 16-bit UUID such as ``'2a29'`` to its 128-bit string form."""
    uuid = str(uuid).lower()
    if len(uuid) == 4:
        return f"0000{uuid}{_BASE_UUID_SUFFIX}"
    return uuid
