#!/usr/bin/env python3
"""
BLE proximity lock - lock the screen when your phone walks away, wake it when
it comes back.

Usage:
    ./main.py              monitor the devices listed in CONFIG['devices']
    ./main.py --discover   list nearby BLE devices to pick from
"""
import asyncio
import os
import signal
import sys

from bleproximity import ConfigurationError, LoggingListener, ProximityConfig, ProximityEngine, setup_logging
from bleproximity.bleak_radio import BleakRadio
from bleproximity.identity import BlueZIdentityCache

# --- Configuration ---
# A stronger signal has a higher RSSI (e.g., -40 is stronger than -70)
CONFIG = {
    'devices': [
        # Find addresses with: ./main.py --discover
        "XX:XX:XX:XX:XX:XX",
    ],
    'lock_rssi': -80,           # Lock once every device is weaker than this ("disabled" to use unlock_rssi)
    'unlock_rssi': -60,         # Wake the screen once a device is at least this strong
    'discovery_rssi': -70,      # Only list devices at least this strong in --discover
    'proximity_timeout': 5,     # Seconds of being "away" before locking
    'signal_timeout': 60,       # Seconds without any signal before a device counts as gone
    'window_size': 5,           # RSSI samples averaged per device
    'passive_mode': False,      # Never connect, rely on advertisements only
    'excluded_devices': [],
    'debug_mode': False,
}
# --- End Configuration ---


class DiscoveryPrinter(LoggingListener):
    def __init__(self, engine=None):
        self.engine = engine

    def new_device(self, device):
        print(f"+ {device.identifier}  {device.rssi:4d} dBm  {self.engine.label(device)}")

    def update_device(self, device):
        if device.identity_resolved:
            print(f"~ {device.identifier}  {device.rssi:4d} dBm  {self.engine.label(device)}")

    def remove_device(self, device):
        print(f"- {device.identifier}  {self.engine.label(device)}")


def validate_configuration(discover):
    if discover:
        return True
    if not CONFIG['devices'] or all(mac == 'XX:XX:XX:XX:XX:XX' for mac in CONFIG['devices']):
        print("Please edit the script and set your device's MAC address.")
        return False
    return True


async def main(discover=False):
    try:
        config = ProximityConfig.from_mapping(CONFIG)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)
    if not validate_configuration(discover):
        sys.exit(1)

    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
    logger = setup_logging(config.debug_mode, log_dir)

    power_monitor = None
    if discover:
        listener = DiscoveryPrinter()
    else:
        from bleproximity.power import AdapterPowerMonitor
        from bleproximity.screen import ScreenLockListener
        listener = ScreenLockListener()
        power_monitor = AdapterPowerMonitor()
    queue = asyncio.Queue()
    radio = BleakRadio(queue, power_monitor=power_monitor)
    engine = ProximityEngine(radio, listener, config, identity_cache=BlueZIdentityCache())
    if discover:
        listener.engine = engine

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    await radio.open()
    if discover:
        logger.info("Scanning for nearby BLE devices...")
        engine.start_discovery()
    else:
        logger.info("Starting proximity monitor...")
        logger.info(f"Lock threshold: RSSI < {config.lock_rssi}")
        logger.info(f"Unlock threshold: RSSI >= {config.unlock_rssi}")
        engine.start_monitor([mac.upper() for mac in CONFIG['devices']])

    try:
        await engine.run(queue, stop_event)
    finally:
        logger.info("Stopping proximity monitor.")
        engine.stop()
        await radio.close()


if __name__ == "__main__":
    try:
        asyncio.run(main(discover='--discover' in sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nStopping proximity monitor.")
        sys.exit(0)
