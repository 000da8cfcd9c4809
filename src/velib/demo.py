"""A simulated battery, published the way a real device driver would."""

from __future__ import annotations

import logging
import random
import threading

from .bus import Transport
from .items import BusItem
from .service import Service
from .values import FormatterValue


_LOGGER = logging.getLogger(__name__)

PROCESS_NAME = "velib"
PROCESS_VERSION = "0.1.0"


def format_voltage(value: object) -> str:
    return f"{float(value):.2f} V"  # type: ignore[arg-type]


def publish_battery(transport: Transport, device_name: str = "testing_abc_123") -> tuple[Service, BusItem]:
    """Create, populate and register the battery service. Returns it with its voltage item."""

    service = Service(transport, "com.victronenergy.battery." + device_name)
    device_instance = service.get_device_instance()

    paths = {
        "Connected": 1,
        "CustomName": PROCESS_NAME + device_name,
        "DeviceName": device_name,
        "ErrorCode": 0,
        "FirmwareVersion": PROCESS_VERSION,
        "Mgmt/Connection": device_name,
        "Mgmt/ProcessName": PROCESS_NAME,
        "Mgmt/ProcessVersion": PROCESS_VERSION,
        "ProductId": 65535,
        "ProductName": PROCESS_NAME,
        "HardwareVersion": PROCESS_VERSION,
        "DeviceInstance": device_instance,
    }
    for path, value in paths.items():
        service.add_path("/" + path, value)

    voltage = service.add_path("/Dc/0/Voltage", holder=FormatterValue(0.0, format_voltage))

    service.register()
    _LOGGER.info("service registered: %s", service.name)
    return service, voltage


def simulate(voltage: BusItem, stop: threading.Event, *, interval_s: float = 10.0) -> None:
    """Write a random voltage now and every `interval_s` seconds until `stop` is set."""

    voltage.set_value(random.random() * 10)
    while not stop.wait(interval_s):
        voltage.set_value(random.random() * 10)
