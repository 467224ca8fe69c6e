"""What the engine needs from a BLE stack.

Every request is fire-and-forget; its outcome comes back later as a
``RadioEvent``. Requests on an identifier the radio no longer knows must be
ignored rather than raise.
"""

from typing import Iterable, Protocol

from .models import ConnectionState


class Radio(Protocol):
    @property
    def is_scanning(self) -> bool: ...

    def start_scan(self) -> None: ...

    def stop_scan(self) -> None: ...

    def connect(self, identifier: str) -> None: ...

    def cancel_connection(self, identifier: str) -> None: ...

    def connection_state(self, identifier: str) -> ConnectionState: ...

    def read_rssi(self, identifier: str) -> None: ...

    def discover_services(self, identifier: str, uuids: Iterable[str]) -> None: ...

    def discover_characteristics(self, identifier: str, service: str, uuids: Iterable[str]) -> None: ...

    def read_characteristic(self, identifier: str, uuid: str) -> None: ...
