from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from .bus import BUSITEM_INTERFACE
from .values import ServiceValue

if TYPE_CHECKING:
    from .service import Service


_LOGGER = logging.getLogger(__name__)

PROPERTIES_CHANGED = "PropertiesChanged"
BUSITEM_METHODS = ("GetValue", "GetText", "SetValue")


class BusItem:
    """Handle for one published path.

    All three operations take the item's own lock, so reads and writes on one
    path are linearized while different paths never wait on each other.

    `set_value` emits `PropertiesChanged` after the holder accepted the value.
    There is no rollback: if rendering the text or emitting the signal fails,
    the holder keeps the new value and the error propagates.
    """

    def __init__(self, service: "Service", path: str, holder: ServiceValue) -> None:
        self._lock = threading.Lock()
        self._service = service
        self._path = path
        self._holder = holder

    @property
    def path(self) -> str:
        return self._path

    @property
    def service(self) -> "Service":
        return self._service

    @property
    def holder(self) -> ServiceValue:
        return self._holder

    def __repr__(self) -> str:
        return f"BusItem({self._service.name!r}, {self._path!r}, {type(self._holder).__name__})"

    def set_value(self, value: Any) -> int:
        with self._lock:
            return self._set_value_locked(value)

    def get_value(self) -> Any:
        with self._lock:
            return self._holder.get_value()

    def get_text(self) -> str:
        with self._lock:
            return self._holder.get_text()

    def _set_value_locked(self, value: Any) -> int:
        self._holder.set_value(value)
        text = self._holder.get_text()
        self._service.transport.emit(
            self._path,
            f"{BUSITEM_INTERFACE}.{PROPERTIES_CHANGED}",
            {"Value": value, "Text": text},
        )
        _LOGGER.debug("%s%s changed to %r (%s)", self._service.name, self._path, value, text)
        return 0

    def _initialize(self) -> None:
        with self._lock:
            self._set_value_locked(self._holder.get_value())

    def bus_methods(self) -> dict[str, Any]:
        return {
            "GetValue": self.get_value,
            "GetText": self.get_text,
            "SetValue": self.set_value,
        }
