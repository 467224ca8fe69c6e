import pytest

dbus = pytest.importorskip('dbus')

from bleproximity.screen import ScreenLockListener  # noqa: E402


class FakeScreensaver:
    def __init__(self):
        self.active = False
        self.calls = []

    def GetActive(self, dbus_interface=None):
        return self.active

    def Lock(self, dbus_interface=None):
        self.calls.append('Lock')
        self.active = True

    def SetActive(self, value, dbus_interface=None):
        self.calls.append(('SetActive', value))
        self.active = value


class FakeBus:
    def __init__(self):
        self.screensaver = FakeScreensaver()

    def get_object(self, service, path):
        return self.screensaver


def test_away_locks_and_close_wakes():
    bus = FakeBus()
    listener = ScreenLockListener(session_bus=bus)

    listener.update_presence(False, 'away')
    assert bus.screensaver.calls == ['Lock']
    assert listener.screen_locked_by_us

    listener.update_presence(True, 'close')
    assert bus.screensaver.calls == ['Lock', ('SetActive', False)]
    assert not listener.screen_locked_by_us


def test_close_leaves_user_lock_alone():
    bus = FakeBus()
    bus.screensaver.active = True
    listener = ScreenLockListener(session_bus=bus)

    listener.update_presence(True, 'close')
    listener.update_presence(False, 'away')
    assert bus.screensaver.calls == []


def test_dbus_errors_are_logged(caplog):
    class BrokenBus:
        def get_object(self, service, path):
            raise dbus.exceptions.DBusException('no screensaver')

    listener = ScreenLockListener(session_bus=BrokenBus())
    listener.update_presence(False, 'away')
    assert 'Failed to lock screen' in caplog.text
    assert not listener.screen_locked_by_us
