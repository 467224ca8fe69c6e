"""Discovery mode: list nearby peripherals so the user can choose what to monitor.

A new peripheral is listed once it is heard at or above ``discovery_rssi``.
A short side connection reads its Device Information manufacturer and model
strings, then is dropped unless the peripheral is monitored. Devices that stop
advertising for ``signal_timeout`` seconds are removed.
"""

import logging

from .estimator import clamp_rssi
from .events import (
    DEVICE_INFORMATION,
    EXPOSURE_NOTIFICATION,
    MANUFACTURER_NAME,
    MODEL_NUMBER,
    short_uuid,
)
from .identity import resolve_identity
from .models import DiscoveredDevice

logger = logging.getLogger(__name__)


class DiscoveryCoordinator:
    def __init__(self, controller, radio, lifecycle, registry, config, excluded, is_monitored, emit,
                 identity_cache=None):
        self._controller = controller
        self._radio = radio
        self._lifecycle = lifecycle
        self.registry = registry
        self._config = config
        self.excluded = excluded
        self._is_monitored = is_monitored
        self._emit = emit
        self._identity_cache = identity_cache

    @property
    def discovering(self):
        return self._controller.session.discovering

    def on_sighting(self, event):
        if not self.discovering:
            return
        identifier = event.identifier
        if identifier in self.excluded:
            return
        if any(short_uuid(uuid) == EXPOSURE_NOTIFICATION for uuid in event.service_uuids):
            return

        rssi = clamp_rssi(event.rssi)
        device = self.registry.get(identifier)
        if device is None:
            if rssi < self._config.discovery_rssi:
                return
            device = DiscoveredDevice(
                identifier=identifier,
                rssi=rssi,
                adv_data=event.payload,
                local_name=event.name,
            )
            resolve_identity(device, self._identity_cache)
            self.registry.add(device)
            self._controller.connect(identifier)
            self._emit('new_device', device)
        else:
            device.rssi = rssi
            if event.name:
                device.local_name = event.name
            self._emit('update_device', device)
        self._lifecycle.reset_removal_timer(device, self._on_removal)

    def on_connected(self, identifier):
        if self.discovering and identifier in self.registry:
            self._radio.discover_services(identifier, [DEVICE_INFORMATION])

    def on_services_discovered(self, identifier, services):
        if identifier not in self.registry:
            return
        if any(short_uuid(uuid) == DEVICE_INFORMATION for uuid in services):
            self._radio.discover_characteristics(identifier, DEVICE_INFORMATION,
                                                 [MANUFACTURER_NAME, MODEL_NUMBER])

    def on_services_invalidated(self, identifier):
        self.on_connected(identifier)

    def on_characteristics_discovered(self, identifier, characteristics):
        if identifier not in self.registry:
            return
        for uuid in characteristics:
            if short_uuid(uuid) in (MANUFACTURER_NAME, MODEL_NUMBER):
                self._radio.read_characteristic(identifier, uuid)

    def on_value_updated(self, identifier, characteristic, value):
        device = self.registry.get(identifier)
        if device is None or value is None:
            return
        try:
            text = bytes(value).decode('utf-8').rstrip('\x00').strip()
        except UnicodeDecodeError:
            logger.debug(f"Undecodable value for {characteristic} from {identifier}")
            return

        uuid = short_uuid(characteristic)
        if uuid == MANUFACTURER_NAME:
            device.manufacturer = text
        elif uuid == MODEL_NUMBER:
            device.model = text
        else:
            return
        self._emit('update_device', device)

        if device.identity_resolved and not self._is_monitored(identifier):
            self._controller.disconnect(identifier)

    def exclude(self, identifier):
        self.excluded.add(identifier)
        device = self.registry.get(identifier)
        if device is not None:
            self._lifecycle.cancel_removal_timer(device)
            self._drop(device)

    def clear(self):
        for device in self.registry:
            self._lifecycle.cancel_removal_timer(device)
            self._drop(device)

    def _on_removal(self, device):
        self._drop(device)

    def _drop(self, device):
        self.registry.remove(device.identifier)
        self._emit('remove_device', device)
        if device.identifier in self._controller.session.connections and not self._is_monitored(device.identifier):
            self._controller.disconnect(device.identifier)
