class DeviceRegistry:
    """Discovered devices keyed by peripheral identifier."""

    def __init__(self):
        self._devices = {}

    def get(self, identifier):
        return self._devices.get(identifier)

    def add(self, device):
        self._devices[device.identifier] = device
        return device

    def remove(self, identifier):
        return self._devices.pop(identifier, None)

    def clear(self):
        self._devices.clear()

    def __contains__(self, identifier):
        return identifier in self._devices

    def __iter__(self):
        return iter(list(self._devices.values()))

    def __len__(self):
        return len(self._devices)
