"""Records kept by the engine for monitored targets, discovered devices and the scan session."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ScanMode(Enum):
    IDLE = 'idle'
    PASSIVE_SCAN = 'passive-scan'
    ACTIVE_POLL = 'active-poll'


class ConnectionState(Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


@dataclass
class MonitoredTarget:
    """A peripheral whose proximity drives presence."""

    identifier: str
    samples: deque
    seen: bool = False
    last_read_at: Optional[float] = None
    signal_timer: Optional[int] = None
    connection_timer: Optional[int] = None

    @classmethod
    def create(cls, identifier, window_size):
        return cls(identifier=identifier, samples=deque(maxlen=window_size))


@dataclass
class DiscoveredDevice:
    """A peripheral listed while discovery mode is on."""

    identifier: str
    rssi: int = 0
    adv_data: Optional[bytes] = None
    local_name: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    mac_address: Optional[str] = None
    platform_name: Optional[str] = None
    removal_timer: Optional[int] = None

    @property
    def identity_resolved(self):
        return self.manufacturer is not None and self.model is not None


@dataclass
class ScanSession:
    mode: ScanMode = ScanMode.IDLE
    powered: bool = False
    discovering: bool = False
    poll_timer: Optional[int] = None
    active_since: Optional[float] = None
    connections: set = field(default_factory=set)
