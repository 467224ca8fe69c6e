"""Best-effort MAC/name lookup from the BlueZ device store.

BlueZ keeps what it learned about a device under
``/var/lib/bluetooth/<adapter>/<MAC>/info`` (paired devices) and
``/var/lib/bluetooth/<adapter>/cache/<MAC>`` (everything seen). Both are
INI files with a ``[General] Name=`` entry. The directory is usually readable
by root only; any failure simply yields no name.
"""

import configparser
import glob
import logging
import os
import re

logger = logging.getLogger(__name__)

BLUEZ_STORAGE = '/var/lib/bluetooth'
MAC_PATTERN = re.compile(r'^([0-9A-F]{2}:){5}[0-9A-F]{2}$')


class BlueZIdentityCache:
    def __init__(self, root=BLUEZ_STORAGE):
        self.root = root

    def mac_for(self, identifier):
        # On Linux the peripheral identifier is already the device address.
        mac = str(identifier).upper()
        return mac if MAC_PATTERN.match(mac) else None

    def name_for(self, mac):
        candidates = glob.glob(os.path.join(self.root, '*', mac, 'info'))
        candidates += glob.glob(os.path.join(self.root, '*', 'cache', mac))
        for path in candidates:
            name = self._read_name(path)
            if name:
                return name
        return None

    def _read_name(self, path):
        parser = configparser.ConfigParser(interpolation=None, strict=False)
        try:
            with open(path, encoding='utf-8', errors='replace') as handle:
                parser.read_file(handle)
        except (OSError, configparser.Error) as e:
            logger.debug(f"Cannot read BlueZ cache {path}: {e}")
            return None
        name = parser.get('General', 'Name', fallback='').strip()
        return name or None


def resolve_identity(device, cache):
    """Fill ``mac_address`` and ``platform_name`` on ``device`` where the cache knows them."""
    if cache is None:
        return device
    if device.mac_address is None:
        device.mac_address = cache.mac_for(device.identifier)
    if device.mac_address and device.platform_name is None:
        device.platform_name = cache.name_for(device.mac_address)
    return device
