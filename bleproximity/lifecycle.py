"""Per-record expiry timers: signal loss, stuck connections and stale discoveries."""

import logging

logger = logging.getLogger(__name__)


class LifecycleManager:
    def __init__(self, scheduler, config):
        self._scheduler = scheduler
        self._config = config

    def reset_signal_timer(self, target, on_lost):
        self._scheduler.cancel(target.signal_timer)

        def expire():
            target.signal_timer = None
            logger.info(f"Device {target.identifier} is lost")
            on_lost(target)

        target.signal_timer = self._scheduler.call_later(self._config.signal_timeout, expire)

    def cancel_signal_timer(self, target):
        self._scheduler.cancel(target.signal_timer)
        target.signal_timer = None

    def reset_connection_timer(self, target, on_timeout):
        self._scheduler.cancel(target.connection_timer)

        def expire():
            target.connection_timer = None
            on_timeout(target)

        target.connection_timer = self._scheduler.call_later(self._config.connection_timeout, expire)

    def cancel_connection_timer(self, target):
        self._scheduler.cancel(target.connection_timer)
        target.connection_timer = None

    def reset_removal_timer(self, device, on_expired):
        self._scheduler.cancel(device.removal_timer)

        def expire():
            device.removal_timer = None
            logger.debug(f"Device {device.identifier} not seen for {self._config.signal_timeout}s")
            on_expired(device)

        device.removal_timer = self._scheduler.call_later(self._config.signal_timeout, expire)

    def cancel_removal_timer(self, device):
        self._scheduler.cancel(device.removal_timer)
        device.removal_timer = None

    def release_target(self, target):
        self.cancel_signal_timer(target)
        self.cancel_connection_timer(target)
