from __future__ import annotations

import logging
import threading
from typing import Any

from .bus import BUSITEM_INTERFACE, ERROR_UNKNOWN_OBJECT, LocalBus, RequestNameReply
from .errors import BusError, NameTakenError
from .identity import DEVICES_PATH, INSTANCE_SETTING, SETTINGS_SERVICE, parse_class_and_instance
from .introspection import introspect_xml
from .items import BUSITEM_METHODS


_LOGGER = logging.getLogger(__name__)

SUPPORTED_TYPES = {"s": str, "i": int, "f": float}


class _Setting:
    def __init__(self, value: Any, item_type: str, minimum: Any, maximum: Any) -> None:
        self.value = value
        self.item_type = item_type
        self.minimum = minimum
        self.maximum = maximum


class LocalSettings:
    """In-process stand-in for the settings service that stores device instances.

    Only the part of the contract device services rely on is implemented:
    `AddSetting` on ``/Settings/Devices`` and BusItem access to each setting.
    Values live in memory.
    """

    def __init__(self, bus: LocalBus, *, service_name: str = SETTINGS_SERVICE) -> None:
        self._lock = threading.RLock()
        self._conn = bus.connect()
        self._settings: dict[str, _Setting] = {}
        self.service_name = service_name

        self._conn.export(DEVICES_PATH, {"AddSetting": self.add_setting}, BUSITEM_INTERFACE)
        self._conn.export_introspection(DEVICES_PATH, introspect_xml(BUSITEM_INTERFACE, ["AddSetting"]))

        reply = self._conn.request_name(service_name)
        if reply != RequestNameReply.PRIMARY_OWNER:
            self._conn.close()
            raise NameTakenError(f"name {service_name!r} already taken")

    def close(self) -> None:
        self._conn.close()

    def get(self, group: str, name: str) -> Any:
        with self._lock:
            setting = self._settings.get(f"{DEVICES_PATH}/{group}/{name}")
            return None if setting is None else setting.value

    def add_setting(
        self,
        group: str,
        name: str,
        default: Any,
        item_type: str,
        minimum: Any = "",
        maximum: Any = "",
    ) -> int:
        if not group or not name or item_type not in SUPPORTED_TYPES:
            return -1

        path = f"{DEVICES_PATH}/{group}/{name}"
        with self._lock:
            if path in self._settings:
                return 0
            try:
                value = SUPPORTED_TYPES[item_type](default)
            except (TypeError, ValueError):
                return -1
            if name == INSTANCE_SETTING:
                value = self._free_instance_locked(value)
            self._settings[path] = _Setting(value, item_type, minimum, maximum)

        self._export_setting(path)
        _LOGGER.debug("added setting %s = %r", path, value)
        return 0

    def _free_instance_locked(self, value: str) -> str:
        try:
            device_class, proposal = parse_class_and_instance(value)
        except ValueError:
            return value

        taken: set[int] = set()
        for path, setting in self._settings.items():
            if not path.endswith("/" + INSTANCE_SETTING):
                continue
            try:
                other_class, other_instance = parse_class_and_instance(setting.value)
            except ValueError:
                continue
            if other_class == device_class:
                taken.add(other_instance)

        instance = proposal
        while instance in taken:
            instance += 1
        return f"{device_class}:{instance}"

    def _export_setting(self, path: str) -> None:
        def get_value() -> Any:
            return self._require(path).value

        def get_text() -> str:
            return str(self._require(path).value)

        def set_value(value: Any) -> int:
            with self._lock:
                setting = self._require(path)
                try:
                    setting.value = SUPPORTED_TYPES[setting.item_type](value)
                except (TypeError, ValueError):
                    return -1
            return 0

        self._conn.export(path, {"GetValue": get_value, "GetText": get_text, "SetValue": set_value}, BUSITEM_INTERFACE)
        self._conn.export_introspection(path, introspect_xml(BUSITEM_INTERFACE, BUSITEM_METHODS))

    def _require(self, path: str) -> _Setting:
        with self._lock:
            setting = self._settings.get(path)
        if setting is None:
            raise BusError(ERROR_UNKNOWN_OBJECT, f"No such object path '{path}'")
        return setting
