import logging

logger = logging.getLogger(__name__)


class ProximityListener:
    """Receives engine notifications. Override what you need; the rest are no-ops."""

    def new_device(self, device):
        pass

    def update_device(self, device):
        pass

    def remove_device(self, device):
        pass

    def update_rssi(self, identifier, rssi, active):
        pass

    def update_presence(self, present, reason):
        pass

    def bluetooth_power_warn(self):
        pass


class LoggingListener(ProximityListener):
    def new_device(self, device):
        logger.info(f"New device {device.identifier} (RSSI: {device.rssi})")

    def update_device(self, device):
        logger.debug(f"Device {device.identifier} updated (RSSI: {device.rssi})")

    def remove_device(self, device):
        logger.info(f"Device {device.identifier} removed")

    def update_rssi(self, identifier, rssi, active):
        if rssi is None:
            logger.info(f"{identifier} RSSI unknown")
        else:
            logger.debug(f"{identifier} RSSI {rssi:.1f} dBm ({'active' if active else 'passive'})")

    def update_presence(self, present, reason):
        logger.info(f"Presence: {'Present' if present else 'Away'} ({reason})")

    def bluetooth_power_warn(self):
        logger.warning("Bluetooth is powered off")
