"""``Radio`` implementation on top of bleak.

Requests are started as asyncio tasks and their outcome is posted to the
engine queue as ``RadioEvent``s. bleak has no connection-level RSSI read, so
that goes through ``hcitool rssi`` against the connected device. hcitool asks
for the classic (ACL) link, which many BLE-only peripherals do not have; those
reads fail and the engine stays on advertisement RSSI.

Adapter power changes while running are picked up by polling an
``AdapterPowerMonitor`` when one is given.
"""

import asyncio
import logging

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .events import RadioEvent, RadioEventType, full_uuid, short_uuid
from .exceptions import RadioError
from .models import ConnectionState

logger = logging.getLogger(__name__)

HCITOOL_TIMEOUT = 4
POWER_RETRY_INTERVAL = 5.0
POWER_POLL_INTERVAL = 5.0


def manufacturer_payload(manufacturer_data):
    """Rebuild raw manufacturer data (company id little-endian, then payload)."""
    for company_id, data in manufacturer_data.items():
        return company_id.to_bytes(2, 'little') + bytes(data)
    return None


def parse_hcitool_rssi(output):
    if 'RSSI return value:' not in output:
        return None
    try:
        return int(output.split(':')[-1].strip())
    except ValueError:
        return None


async def read_connection_rssi(mac_address):
    try:
        process = await asyncio.create_subprocess_exec(
            'hcitool', 'rssi', mac_address,
            stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise RadioError(mac_address, f"cannot run hcitool: {e}") from e
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), HCITOOL_TIMEOUT)
    except asyncio.TimeoutError as e:
        process.kill()
        raise RadioError(mac_address, "hcitool timed out") from e
    rssi = parse_hcitool_rssi(stdout.decode(errors='replace'))
    if process.returncode != 0 or rssi is None:
        raise RadioError(mac_address, f"hcitool returned {process.returncode}")
    logger.debug(f"hcitool RSSI for {mac_address}: {rssi}")
    return rssi


class BleakRadio:
    def __init__(self, queue, adapter=None, power_monitor=None, power_poll_interval=POWER_POLL_INTERVAL):
        self._queue = queue
        self._adapter = adapter
        self._power_monitor = power_monitor
        self._power_poll_interval = power_poll_interval
        self._powered = True
        self._scanner = None
        self._scanning = False
        self._devices = {}
        self._clients = {}
        self._states = {}
        self._connect_tasks = {}
        self._tasks = set()
        self._teardown = set()

    async def open(self):
        kwargs = {'adapter': self._adapter} if self._adapter else {}
        self._scanner = BleakScanner(detection_callback=self._on_detection, **kwargs)
        self._powered = True
        self._post(RadioEventType.POWER_ON)
        if self._power_monitor is not None:
            self._spawn(self._watch_power())

    async def close(self):
        self.stop_scan()
        for identifier in list(self._clients):
            self.cancel_connection(identifier)
        # Scanner stop and disconnects must complete before anything is cancelled
        await asyncio.gather(*self._teardown, return_exceptions=True)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Radio protocol
    # ------------------------------------------------------------------
    @property
    def is_scanning(self):
        return self._scanning

    def start_scan(self):
        if self._scanning:
            return
        self._scanning = True
        self._spawn(self._start_scan())

    def stop_scan(self):
        if not self._scanning:
            return
        self._scanning = False
        self._spawn(self._stop_scan(), teardown=True)

    def connection_state(self, identifier):
        return self._states.get(identifier, ConnectionState.DISCONNECTED)

    def connect(self, identifier):
        if self.connection_state(identifier) is not ConnectionState.DISCONNECTED:
            return
        self._states[identifier] = ConnectionState.CONNECTING
        self._connect_tasks[identifier] = self._spawn(self._connect(identifier))

    def cancel_connection(self, identifier):
        state = self._states.pop(identifier, None)
        client = self._clients.pop(identifier, None)
        task = self._connect_tasks.pop(identifier, None)
        if task is not None and not task.done():
            task.cancel()
        if client is not None and state is ConnectionState.CONNECTED:
            self._spawn(self._disconnect(client), teardown=True)

    def read_rssi(self, identifier):
        self._spawn(self._read_rssi(identifier))

    def discover_services(self, identifier, uuids):
        client = self._connected_client(identifier)
        if client is None:
            return
        wanted = {short_uuid(uuid) for uuid in uuids}
        services = tuple(
            service.uuid for service in client.services
            if not wanted or short_uuid(service.uuid) in wanted
        )
        self._post(RadioEventType.SERVICES_DISCOVERED, identifier=identifier, service_uuids=services)

    def discover_characteristics(self, identifier, service, uuids):
        client = self._connected_client(identifier)
        if client is None:
            return
        wanted = {short_uuid(uuid) for uuid in uuids}
        for candidate in client.services:
            if short_uuid(candidate.uuid) != short_uuid(service):
                continue
            characteristics = tuple(
                char.uuid for char in candidate.characteristics
                if not wanted or short_uuid(char.uuid) in wanted
            )
            self._post(RadioEventType.CHARACTERISTICS_DISCOVERED, identifier=identifier,
                       service=service, characteristics=characteristics)
            return

    def read_characteristic(self, identifier, uuid):
        client = self._connected_client(identifier)
        if client is not None:
            self._spawn(self._read_characteristic(identifier, client, uuid))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    async def _start_scan(self):
        try:
            await self._scanner.start()
        except (BleakError, OSError) as e:
            # Common when Bluetooth is turned off or the adapter is not ready
            logger.warning(f"BLE scanner error: {e}")
            self._scanning = False
            if self._power_monitor is not None:
                # The watcher reports power again once the adapter answers
                self._set_powered(False)
                return
            self._post(RadioEventType.POWER_OFF)
            self._spawn(self._wait_for_power())

    async def _stop_scan(self):
        try:
            await self._scanner.stop()
        except (BleakError, OSError) as e:
            logger.debug(f"Error while stopping BLE scanner: {e}")

    async def _wait_for_power(self):
        while True:
            await asyncio.sleep(POWER_RETRY_INTERVAL)
            try:
                await self._scanner.start()
                await self._scanner.stop()
            except (BleakError, OSError) as e:
                logger.debug(f"Bluetooth still unavailable: {e}")
                continue
            self._post(RadioEventType.POWER_ON)
            return

    async def _watch_power(self):
        while True:
            await asyncio.sleep(self._power_poll_interval)
            powered = self._power_monitor.is_powered()
            if powered is None or powered == self._powered:
                continue
            self._set_powered(powered)

    def _set_powered(self, powered):
        self._powered = powered
        if powered:
            logger.info("Bluetooth adapter powered on")
            self._post(RadioEventType.POWER_ON)
            return
        logger.warning("Bluetooth adapter powered off")
        # BlueZ drops discovery and every connection along with the adapter
        self.stop_scan()
        for identifier in list(self._states):
            self.cancel_connection(identifier)
        self._post(RadioEventType.POWER_OFF)

    async def _connect(self, identifier):
        client = BleakClient(self._devices.get(identifier, identifier),
                             disconnected_callback=self._on_disconnect)
        self._clients[identifier] = client
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Connection to {identifier} failed: {e}")
            if self._clients.get(identifier) is client:
                self._forget(identifier)
                self._post(RadioEventType.CONNECT_FAILED, identifier=identifier)
            return
        finally:
            if self._connect_tasks.get(identifier) is asyncio.current_task():
                del self._connect_tasks[identifier]

        if self._clients.get(identifier) is not client:
            # Cancelled while the connection was being set up
            await self._disconnect(client)
            return
        self._states[identifier] = ConnectionState.CONNECTED
        self._post(RadioEventType.CONNECTED, identifier=identifier)

    async def _disconnect(self, client):
        try:
            await client.disconnect()
        except (BleakError, OSError) as e:
            logger.debug(f"Disconnect from {client.address} failed: {e}")

    async def _read_rssi(self, identifier):
        try:
            rssi = await read_connection_rssi(identifier)
        except RadioError as e:
            logger.debug(f"RSSI read failed: {e}")
            self._post(RadioEventType.RSSI_READ_FAILED, identifier=identifier)
            return
        self._post(RadioEventType.RSSI_READ, identifier=identifier, rssi=rssi)

    async def _read_characteristic(self, identifier, client, uuid):
        try:
            value = await client.read_gatt_char(full_uuid(uuid))
        except (BleakError, OSError) as e:
            logger.debug(f"Reading {uuid} from {identifier} failed: {e}")
            return
        self._post(RadioEventType.VALUE_UPDATED, identifier=identifier,
                   characteristic=short_uuid(uuid), value=bytes(value))

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------
    def _on_detection(self, device, advertisement_data):
        self._devices[device.address] = device
        self._post(
            RadioEventType.DISCOVERED,
            identifier=device.address,
            rssi=advertisement_data.rssi,
            payload=manufacturer_payload(advertisement_data.manufacturer_data),
            service_uuids=tuple(advertisement_data.service_uuids),
            name=advertisement_data.local_name,
        )

    def _on_disconnect(self, client):
        identifier = client.address
        if self._clients.get(identifier) is not client:
            return
        # A failed attempt is reported by _connect
        if self._states.get(identifier) is not ConnectionState.CONNECTED:
            return
        self._forget(identifier)
        self._post(RadioEventType.DISCONNECTED, identifier=identifier)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _connected_client(self, identifier):
        if self.connection_state(identifier) is not ConnectionState.CONNECTED:
            return None
        return self._clients.get(identifier)

    def _forget(self, identifier):
        self._states.pop(identifier, None)
        self._clients.pop(identifier, None)

    def _post(self, event_type, **fields):
        self._queue.put_nowait(RadioEvent(event_type, **fields))

    def _spawn(self, coro, teardown=False):
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if teardown:
            self._teardown.add(task)
            task.add_done_callback(self._teardown.discard)
        return task
