import pytest

dbus = pytest.importorskip('dbus')

from bleproximity.power import AdapterPowerMonitor  # noqa: E402


class FakeAdapter:
    def __init__(self, powered):
        self.powered = powered
        self.calls = []

    def Get(self, interface, name, dbus_interface=None):
        self.calls.append((interface, name, dbus_interface))
        return self.powered


class FakeBus:
    def __init__(self, adapter):
        self.adapter = adapter
        self.requests = []

    def get_object(self, service, path):
        self.requests.append((service, path))
        return self.adapter


def test_reads_powered_property():
    adapter = FakeAdapter(dbus.Boolean(False))
    bus = FakeBus(adapter)
    monitor = AdapterPowerMonitor('hci1', system_bus=bus)

    assert monitor.is_powered() is False
    adapter.powered = dbus.Boolean(True)
    assert monitor.is_powered() is True
    assert bus.requests[0] == ('org.bluez', '/org/bluez/hci1')
    assert adapter.calls[0] == ('org.bluez.Adapter1', 'Powered', 'org.freedesktop.DBus.Properties')


def test_unknown_when_bluez_is_unreachable():
    class BrokenBus:
        def get_object(self, service, path):
            raise dbus.exceptions.DBusException('org.bluez was not provided')

    assert AdapterPowerMonitor(system_bus=BrokenBus()).is_powered() is None
