import pytest

from bleproximity.config import ProximityConfig
from bleproximity.engine import ProximityEngine
from bleproximity.events import RadioEvent, RadioEventType
from bleproximity.listener import ProximityListener
from bleproximity.models import ConnectionState
from bleproximity.scheduler import Scheduler


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeRadio:
    """Records every request; connection outcomes are driven by the test."""

    def __init__(self):
        self.is_scanning = False
        self.states = {}
        self.calls = []

    def start_scan(self):
        self.is_scanning = True
        self.calls.append(('start_scan',))

    def stop_scan(self):
        self.is_scanning = False
        self.calls.append(('stop_scan',))

    def connect(self, identifier):
        self.states[identifier] = ConnectionState.CONNECTING
        self.calls.append(('connect', identifier))

    def cancel_connection(self, identifier):
        self.states.pop(identifier, None)
        self.calls.append(('cancel_connection', identifier))

    def connection_state(self, identifier):
        return self.states.get(identifier, ConnectionState.DISCONNECTED)

    def read_rssi(self, identifier):
        self.calls.append(('read_rssi', identifier))

    def discover_services(self, identifier, uuids):
        self.calls.append(('discover_services', identifier, tuple(uuids)))

    def discover_characteristics(self, identifier, service, uuids):
        self.calls.append(('discover_characteristics', identifier, service, tuple(uuids)))

    def read_characteristic(self, identifier, uuid):
        self.calls.append(('read_characteristic', identifier, uuid))

    def count(self, *call):
        return self.calls.count(call)


class RecordingListener(ProximityListener):
    def __init__(self):
        self.calls = []

    def new_device(self, device):
        self.calls.append(('new_device', device.identifier))

    def update_device(self, device):
        self.calls.append(('update_device', device.identifier))

    def remove_device(self, device):
        self.calls.append(('remove_device', device.identifier))

    def update_rssi(self, identifier, rssi, active):
        self.calls.append(('update_rssi', identifier, rssi, active))

    def update_presence(self, present, reason):
        self.calls.append(('update_presence', present, reason))

    def bluetooth_power_warn(self):
        self.calls.append(('bluetooth_power_warn',))

    def named(self, name):
        return [call[1:] for call in self.calls if call[0] == name]


class Harness:
    def __init__(self, config):
        self.clock = ManualClock()
        self.radio = FakeRadio()
        self.listener = RecordingListener()
        self.scheduler = Scheduler(self.clock)
        self.engine = ProximityEngine(self.radio, self.listener, config, self.scheduler)

    def send(self, event_type, identifier=None, **fields):
        self.engine.dispatch(RadioEvent(event_type, identifier=identifier, **fields))

    def seen(self, identifier, rssi, **fields):
        self.send(RadioEventType.DISCOVERED, identifier, rssi=rssi, **fields)

    def connected(self, identifier):
        self.radio.states[identifier] = ConnectionState.CONNECTED
        self.send(RadioEventType.CONNECTED, identifier)

    def rssi_read(self, identifier, rssi):
        self.send(RadioEventType.RSSI_READ, identifier, rssi=rssi)

    def advance(self, seconds, step=0.5):
        """Move the clock forward, firing timers as they come due."""
        end = self.clock.now + seconds
        while self.clock.now < end:
            self.clock.now = min(self.clock.now + step, end)
            self.scheduler.run_due()

    @property
    def presence_events(self):
        return self.listener.named('update_presence')


@pytest.fixture
def make_harness():
    def factory(powered=True, **options):
        harness = Harness(ProximityConfig(**options))
        if powered:
            harness.send(RadioEventType.POWER_ON)
        return harness
    return factory


@pytest.fixture
def passive(make_harness):
    return make_harness(passive_mode=True)


@pytest.fixture
def active(make_harness):
    return make_harness()
