"""The proximity engine: one control loop, one dispatch function.

All state is touched only from ``dispatch`` and from scheduler callbacks run by
``run`` (or by tests calling ``scheduler.run_due``), so nothing needs locking.
"""

import asyncio
import logging

from .config import LOCK_DISABLED, ProximityConfig
from .discovery import DiscoveryCoordinator
from .estimator import RssiEstimator
from .events import RadioEventType
from .labels import device_label
from .lifecycle import LifecycleManager
from .listener import LoggingListener
from .presence import PresenceStateMachine
from .radio import Radio
from .registry import DeviceRegistry
from .scanning import ScanController
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class ProximityEngine:
    def __init__(self, radio: Radio, listener=None, config=None, scheduler=None, identity_cache=None):
        self.radio = radio
        self.listener = listener or LoggingListener()
        self.config = config or ProximityConfig()
        self.scheduler = scheduler or Scheduler()
        self.targets = {}
        self._power_warned = False

        self.lifecycle = LifecycleManager(self.scheduler, self.config)
        self.estimator = RssiEstimator(self.targets, self.config)
        self.presence = PresenceStateMachine(self.estimator, self.scheduler, self.config,
                                             self._on_presence)
        self.controller = ScanController(
            radio, self.scheduler, self.lifecycle, self.config, self.targets,
            self.estimator, self.presence, self._emit,
        )
        self.discovery = DiscoveryCoordinator(
            self.controller, radio, self.lifecycle, DeviceRegistry(), self.config,
            set(self.config.excluded_devices), self.is_monitored, self._emit,
            identity_cache=identity_cache,
        )

        self._handlers = {
            RadioEventType.POWER_ON: self._on_power_on,
            RadioEventType.POWER_OFF: self._on_power_off,
            RadioEventType.DISCOVERED: self._on_discovered,
            RadioEventType.CONNECTED: self._on_connected,
            RadioEventType.CONNECT_FAILED: self._on_connect_failed,
            RadioEventType.DISCONNECTED: self._on_disconnected,
            RadioEventType.RSSI_READ: self._on_rssi_read,
            RadioEventType.RSSI_READ_FAILED: self._on_rssi_read_failed,
            RadioEventType.SERVICES_DISCOVERED: self._on_services_discovered,
            RadioEventType.SERVICES_INVALIDATED: self._on_services_invalidated,
            RadioEventType.CHARACTERISTICS_DISCOVERED: self._on_characteristics_discovered,
            RadioEventType.VALUE_UPDATED: self._on_value_updated,
        }

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def present(self):
        return self.presence.present

    @property
    def mode(self):
        return self.controller.mode

    @property
    def devices(self):
        return self.discovery.registry

    @property
    def excluded(self):
        return self.discovery.excluded

    def is_monitored(self, identifier):
        return identifier in self.targets

    def estimate(self, identifier):
        return self.estimator.estimate(identifier)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def start_monitor(self, identifiers):
        self.controller.start_monitor(identifiers)

    def start_discovery(self):
        logger.info("Discovery started")
        self.controller.session.discovering = True
        self.controller.ensure_scanning()

    def stop_discovery(self):
        logger.info("Discovery stopped")
        self.controller.session.discovering = False
        self.controller.release_scan()

    def set_passive_mode(self, passive):
        self.controller.set_passive_mode(passive)

    def set_thresholds(self, lock_rssi=None, unlock_rssi=None):
        if lock_rssi is not None:
            self.config.lock_rssi = lock_rssi
        if unlock_rssi is not None:
            self.config.unlock_rssi = unlock_rssi
        logger.info(f"Lock if RSSI < {'disabled' if self.config.lock_rssi == LOCK_DISABLED else self.config.lock_rssi} dBm"
                    f" | Unlock if RSSI >= {self.config.unlock_rssi} dBm")

    def exclude(self, identifier):
        self.discovery.exclude(identifier)

    def label(self, device):
        return device_label(device)

    def stop(self):
        self.discovery.clear()
        self.controller.stop()
        self.presence.suspend()
        self.scheduler.clear()

    # ------------------------------------------------------------------
    # Control loop
    # ------------------------------------------------------------------
    def dispatch(self, event):
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.debug(f"Ignoring radio event {event.type}")
            return
        handler(event)

    async def run(self, queue, stop_event=None):
        """Consume radio events from ``queue`` and fire timers until ``stop_event`` is set."""
        while stop_event is None or not stop_event.is_set():
            deadline = self.scheduler.next_deadline()
            timeout = None if deadline is None else max(0.0, deadline - self.scheduler.now())
            # Wake up at least once a second so stop_event is honoured
            timeout = 1.0 if timeout is None else min(timeout, 1.0)
            try:
                event = await asyncio.wait_for(queue.get(), timeout)
            except asyncio.TimeoutError:
                event = None
            if event is not None:
                self.dispatch(event)
            self.scheduler.run_due()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _on_power_on(self, event):
        logger.info("Bluetooth powered on")
        self._power_warned = False
        self.controller.power_on()

    def _on_power_off(self, event):
        logger.info("Bluetooth powered off")
        self.controller.power_off()
        self.presence.suspend()
        if not self._power_warned:
            self._power_warned = True
            self._emit('bluetooth_power_warn')

    def _on_discovered(self, event):
        self.controller.on_sighting(event.identifier, event.rssi)
        self.discovery.on_sighting(event)

    def _on_connected(self, event):
        self.discovery.on_connected(event.identifier)
        self.controller.on_connected(event.identifier)

    def _on_connect_failed(self, event):
        self.controller.on_connection_lost(event.identifier, failed=True)

    def _on_disconnected(self, event):
        self.controller.on_connection_lost(event.identifier)

    def _on_rssi_read(self, event):
        self.controller.on_rssi_read(event.identifier, event.rssi)

    def _on_rssi_read_failed(self, event):
        self.controller.on_rssi_read_failed(event.identifier)

    def _on_services_discovered(self, event):
        self.discovery.on_services_discovered(event.identifier, event.service_uuids)

    def _on_services_invalidated(self, event):
        self.discovery.on_services_invalidated(event.identifier)

    def _on_characteristics_discovered(self, event):
        self.discovery.on_characteristics_discovered(event.identifier, event.characteristics)

    def _on_value_updated(self, event):
        self.discovery.on_value_updated(event.identifier, event.characteristic, event.value)

    def _on_presence(self, present, reason):
        self._emit('update_presence', present, reason)

    def _emit(self, name, *args):
        try:
            getattr(self.listener, name)(*args)
        except Exception:
            logger.exception(f"Listener {name} failed")
