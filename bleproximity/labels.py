"""Human-readable labels for discovered devices.

``device_label`` is a pure function of already-resolved attributes; call it
whenever a label is needed rather than storing the result.
"""

import struct
from collections import namedtuple

APPLE = 'Apple Inc.'
IBEACON_PREFIX = b'\x4c\x00\x02\x15'  # Apple company id (LE), iBeacon type and length

IBeacon = namedtuple('IBeacon', 'uuid major minor tx_power')

APPLE_DEVICE_NAMES = {
    'iPhone12,1': 'iPhone 11',
    'iPhone12,3': 'iPhone 11 Pro',
    'iPhone13,2': 'iPhone 12',
    'iPhone13,3': 'iPhone 12 Pro',
    'iPhone14,2': 'iPhone 13 Pro',
    'iPhone14,5': 'iPhone 13',
    'iPhone14,7': 'iPhone 14',
    'iPhone15,2': 'iPhone 14 Pro',
    'iPhone15,4': 'iPhone 15',
    'iPhone16,1': 'iPhone 15 Pro',
}


def parse_ibeacon(adv_data):
    """Decode an iBeacon frame from manufacturer data, or return None."""
    if not adv_data or len(adv_data) < 25 or adv_data[:4] != IBEACON_PREFIX:
        return None
    major, minor, tx_power = struct.unpack('>HHb', adv_data[20:25])
    return IBeacon(adv_data[4:20].hex(), major, minor, tx_power)


def estimate_distance(tx_power, rssi):
    return 10 ** ((tx_power - rssi) / 20.0)


def model_name(manufacturer, model):
    if manufacturer and model:
        if manufacturer == APPLE and model in APPLE_DEVICE_NAMES:
            return APPLE_DEVICE_NAMES[model]
        return f"{manufacturer}/{model}"
    return manufacturer or model


def device_label(device):
    modeled = model_name(device.manufacturer, device.model)

    name = device.platform_name
    if name:
        if modeled:
            if modeled in name:
                return name
            if name in modeled:
                return modeled
            return f"{name} - {modeled}"
        return name

    if modeled:
        return modeled

    if device.local_name and device.local_name.strip():
        return device.local_name.strip()

    beacon = parse_ibeacon(device.adv_data)
    if beacon is not None:
        distance = estimate_distance(beacon.tx_power, device.rssi)
        return f"iBeacon [{beacon.major}, {beacon.minor}] {distance:.1f}m"

    # better than the raw identifier
    if device.mac_address:
        return device.mac_address
    return device.identifier
