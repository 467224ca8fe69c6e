"""Scanning-mode controller.

Monitored targets are first picked up from advertisements (passive scan). The
first successful connection-level RSSI read switches to active mode, where the
controller keeps a connection to each target and reads its RSSI every
``poll_interval`` seconds. A target that produces no read for ``stale_after``
seconds drops everything back to passive scanning; reconnection is then
retried on the next advertisement from that target.
"""

import logging

from .models import ConnectionState, MonitoredTarget, ScanMode, ScanSession
from .radio import Radio

logger = logging.getLogger(__name__)


class ScanController:
    def __init__(self, radio: Radio, scheduler, lifecycle, config, targets, estimator, presence, emit):
        self._radio = radio
        self._scheduler = scheduler
        self._lifecycle = lifecycle
        self._config = config
        self._targets = targets
        self._estimator = estimator
        self._presence = presence
        self._emit = emit
        self.session = ScanSession()

    @property
    def mode(self):
        return self.session.mode

    @property
    def active(self):
        return self.session.mode is ScanMode.ACTIVE_POLL

    # ------------------------------------------------------------------
    # Radio session
    # ------------------------------------------------------------------
    def ensure_scanning(self):
        if not self.session.powered:
            return
        if not self._radio.is_scanning:
            self._radio.start_scan()
        if self.session.mode is ScanMode.IDLE:
            self.session.mode = ScanMode.PASSIVE_SCAN
            logger.info("Passive scanning started")

    def release_scan(self):
        """Stop scanning once neither discovery nor passive monitoring needs it."""
        if self.session.discovering:
            return
        if self.active:
            self._radio.stop_scan()
        elif not self._targets:
            self._radio.stop_scan()
            self.session.mode = ScanMode.IDLE
            logger.info("Scanning stopped")

    def connect(self, identifier):
        self.session.connections.add(identifier)
        self._radio.connect(identifier)

    def disconnect(self, identifier):
        self.session.connections.discard(identifier)
        self._radio.cancel_connection(identifier)
        target = self._targets.get(identifier)
        if target is not None:
            self._lifecycle.cancel_connection_timer(target)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def start_monitor(self, identifiers):
        for target in list(self._targets.values()):
            self._release_target(target)
        self._leave_active_mode()
        self._targets.clear()
        for identifier in identifiers:
            target = MonitoredTarget.create(identifier, self._config.window_size)
            self._targets[identifier] = target
            self._lifecycle.reset_signal_timer(target, self._on_signal_lost)
        logger.info(f"Monitoring devices: {list(self._targets)}")
        self.ensure_scanning()

    def set_passive_mode(self, passive):
        self._config.passive_mode = passive
        if passive:
            logger.info("Passive mode enabled")
            self._leave_active_mode()
            for identifier in list(self._targets):
                if identifier in self.session.connections:
                    self.disconnect(identifier)
        self.ensure_scanning()

    def power_on(self):
        self.session.powered = True
        for target in self._targets.values():
            if target.signal_timer is None:
                self._lifecycle.reset_signal_timer(target, self._on_signal_lost)
        self.ensure_scanning()

    def power_off(self):
        self.session.powered = False
        self._leave_active_mode()
        for target in self._targets.values():
            self._lifecycle.release_target(target)
        self.session.connections.clear()
        self.session.mode = ScanMode.IDLE

    def stop(self):
        for target in list(self._targets.values()):
            self._release_target(target)
        for identifier in list(self.session.connections):
            self.disconnect(identifier)
        self._leave_active_mode()
        self.session.discovering = False
        if self._radio.is_scanning:
            self._radio.stop_scan()
        self.session.mode = ScanMode.IDLE
        logger.info("Scanning stopped")

    # ------------------------------------------------------------------
    # Radio events
    # ------------------------------------------------------------------
    def on_sighting(self, identifier, rssi):
        target = self._targets.get(identifier)
        if target is None:
            return
        target.seen = True
        if self.active:
            return
        self._record(target, rssi)
        if not self._config.passive_mode:
            self._connect_target(target)

    def on_connected(self, identifier):
        target = self._targets.get(identifier)
        if target is None:
            return
        self._lifecycle.cancel_connection_timer(target)
        if self._config.passive_mode:
            # Completion of a request made before passive mode was enabled
            if not self.session.discovering:
                self.disconnect(identifier)
            return
        logger.info(f"Connected to {identifier}")
        self._radio.read_rssi(identifier)

    def on_connection_lost(self, identifier, failed=False):
        self.session.connections.discard(identifier)
        target = self._targets.get(identifier)
        if target is None:
            return
        self._lifecycle.cancel_connection_timer(target)
        if failed:
            logger.debug(f"Connection to {identifier} failed")
        else:
            logger.info(f"Disconnected from {identifier}")

    def on_rssi_read(self, identifier, rssi):
        target = self._targets.get(identifier)
        if target is None:
            return
        target.last_read_at = self._scheduler.now()
        self._record(target, rssi)
        if not self.active and not self._config.passive_mode:
            self._enter_active_mode()

    def on_rssi_read_failed(self, identifier):
        if identifier in self._targets:
            logger.debug(f"RSSI read failed for {identifier}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _record(self, target, rssi):
        estimate = self._estimator.record_sample(target.identifier, rssi)
        self._emit('update_rssi', target.identifier, estimate, self.active)
        self._presence.recompute(self._targets)
        self._lifecycle.reset_signal_timer(target, self._on_signal_lost)

    def _on_signal_lost(self, target):
        self._estimator.clear(target.identifier)
        self._emit('update_rssi', target.identifier, None, False)
        self._presence.recompute(self._targets)

    def _connect_target(self, target):
        state = self._radio.connection_state(target.identifier)
        if state is ConnectionState.CONNECTED:
            self._radio.read_rssi(target.identifier)
            return
        if state is ConnectionState.CONNECTING:
            return
        logger.debug(f"Connecting to {target.identifier}")
        self.connect(target.identifier)
        self._lifecycle.reset_connection_timer(target, self._on_connection_timeout)

    def _on_connection_timeout(self, target):
        if self._radio.connection_state(target.identifier) is ConnectionState.CONNECTING:
            logger.info(f"Connection timeout for {target.identifier}")
            self.disconnect(target.identifier)

    def _enter_active_mode(self):
        logger.info("Entering active mode")
        if not self.session.discovering:
            self._radio.stop_scan()
        self.session.mode = ScanMode.ACTIVE_POLL
        self.session.active_since = self._scheduler.now()
        self.session.poll_timer = self._scheduler.call_later(self._config.poll_interval, self._poll)

    def _leave_active_mode(self):
        self._scheduler.cancel(self.session.poll_timer)
        self.session.poll_timer = None
        self.session.active_since = None
        if self.session.mode is ScanMode.ACTIVE_POLL:
            self.session.mode = ScanMode.IDLE

    def _poll(self):
        self.session.poll_timer = self._scheduler.call_later(self._config.poll_interval, self._poll)
        now = self._scheduler.now()
        for target in list(self._targets.values()):
            if not target.seen:
                continue
            last_read = max(target.last_read_at or 0.0, self.session.active_since or 0.0)
            if now > last_read + self._config.stale_after:
                logger.info(f"No RSSI from {target.identifier} for {self._config.stale_after}s, "
                            f"falling back to passive mode")
                self.disconnect(target.identifier)
                self._leave_active_mode()
                self.ensure_scanning()
                return
            if self._radio.connection_state(target.identifier) is ConnectionState.CONNECTED:
                self._radio.read_rssi(target.identifier)
            else:
                self._connect_target(target)

    def _release_target(self, target):
        self._lifecycle.release_target(target)
        if target.identifier in self.session.connections:
            self.disconnect(target.identifier)
