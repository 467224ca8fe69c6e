"""Bluetooth adapter power state from BlueZ over the D-Bus system bus."""

import logging

import dbus

logger = logging.getLogger(__name__)

BLUEZ_SERVICE = 'org.bluez'
ADAPTER_INTERFACE = 'org.bluez.Adapter1'


class AdapterPowerMonitor:
    def __init__(self, adapter='hci0', system_bus=None):
        self.system_bus = system_bus if system_bus is not None else dbus.SystemBus()
        self.path = f'/org/bluez/{adapter}'

    def is_powered(self):
        """Return the adapter's ``Powered`` property, or None if BlueZ cannot be asked."""
        try:
            adapter = self.system_bus.get_object(BLUEZ_SERVICE, self.path)
            powered = adapter.Get(ADAPTER_INTERFACE, 'Powered', dbus_interface=dbus.PROPERTIES_IFACE)
        except dbus.exceptions.DBusException as e:
            logger.debug(f"Failed to read adapter power state: {e}")
            return None
        return bool(powered)
