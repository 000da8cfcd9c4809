from __future__ import annotations

import logging
import threading
from typing import Any

from .bus import BUSITEM_INTERFACE, ReleaseNameReply, RequestNameReply, Transport
from .errors import DuplicatePathError, InitializationError, NameReleaseError, NameTakenError
from .identity import SETTINGS_SERVICE, DeviceInstanceResolver
from .introspection import introspect_xml
from .items import BUSITEM_METHODS, PROPERTIES_CHANGED, BusItem
from .naming import resolve_service_name
from .values import AnyValue, DelegatingValue, FormatterValue, ServiceValue


_LOGGER = logging.getLogger(__name__)

ROOT_PATH = "/"
ROOT_METHODS = ("GetItems", "ItemsChanged")


class Service:
    """A device published on the bus: its name, its instance and its paths.

    The path table is guarded by one lock that is only held to insert or to
    take a snapshot. Holder calls and transport calls always happen outside
    it, so a slow path never blocks registration of new ones.
    """

    def __init__(self, transport: Transport, name: str, *, settings_service: str = SETTINGS_SERVICE) -> None:
        resolved = resolve_service_name(name)

        self._lock = threading.Lock()
        self._transport = transport
        self._items: dict[str, BusItem] = {}
        self._pending: set[str] = set()
        self._registered = False

        self.name = resolved.name
        self.device_name = resolved.device_name
        self.device_class = resolved.device_class

        self._resolver = DeviceInstanceResolver(
            transport,
            self.device_name,
            self.device_class,
            settings_service=settings_service,
        )

    def __repr__(self) -> str:
        return f"Service({self.name!r})"

    def __enter__(self) -> "Service":
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._registered:
            self.close()

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def device_instance(self) -> int:
        """The resolved device instance, or -1 if `get_device_instance` has not succeeded yet."""
        return self._resolver.instance

    @property
    def registered(self) -> bool:
        return self._registered

    def get_device_instance(self) -> int:
        return self._resolver.resolve()

    def add_path(self, path: str, value: Any = None, *, holder: ServiceValue | None = None) -> BusItem:
        """Publish `path` and return the handle used to update it.

        Pass either a raw `value` (stored as-is) or a ready-made `holder`.
        A `FormatterValue` holder is used directly; any other holder is
        wrapped so its text always comes back as a string.
        """

        if holder is not None and value is not None:
            raise ValueError("pass either value or holder, not both")

        if holder is None and isinstance(value, ServiceValue):
            raise TypeError(f"{type(value).__name__} is a holder; pass it as add_path(path, holder=...)")

        resolved: ServiceValue
        if holder is None:
            resolved = AnyValue(value)
        elif isinstance(holder, FormatterValue):
            resolved = holder
        else:
            resolved = DelegatingValue(holder)

        with self._lock:
            if path in self._items or path in self._pending:
                raise DuplicatePathError(path)
            self._pending.add(path)

        item = BusItem(self, path, resolved)
        try:
            self._transport.export(path, item.bus_methods(), BUSITEM_INTERFACE)
            self._transport.export_introspection(
                path,
                introspect_xml(BUSITEM_INTERFACE, BUSITEM_METHODS, [PROPERTIES_CHANGED]),
            )
        except BaseException:
            try:
                self._transport.unexport(path)
            finally:
                with self._lock:
                    self._pending.discard(path)
            raise

        with self._lock:
            self._pending.discard(path)
            self._items[path] = item

        _LOGGER.debug("AddPath %s %s %s", self.name, path, type(resolved).__name__)

        try:
            item._initialize()
        except Exception as e:
            raise InitializationError(f"failed to initialize {path}: {e}") from e

        return item

    def get_item(self, path: str) -> BusItem | None:
        with self._lock:
            return self._items.get(path)

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._items)

    def get_items(self) -> dict[str, dict[str, Any]]:
        """Return ``{path: {"Value": ..., "Text": ...}}`` for every path.

        Entries are read after the snapshot is taken, so paths added while
        this runs may or may not be included.
        """

        with self._lock:
            items = dict(self._items)

        out: dict[str, dict[str, Any]] = {}
        for path, item in items.items():
            out[path] = {
                "Value": item.get_value(),
                "Text": item.get_text(),
            }
        return out

    def items_changed(self) -> None:
        return None

    def register(self) -> None:
        """Export the root object and claim the service name."""

        self._transport.export(
            ROOT_PATH,
            {"GetItems": self.get_items, "ItemsChanged": self.items_changed},
            BUSITEM_INTERFACE,
        )
        self._transport.export_introspection(ROOT_PATH, introspect_xml(BUSITEM_INTERFACE, ROOT_METHODS))

        reply = self._transport.request_name(self.name)
        if reply != RequestNameReply.PRIMARY_OWNER:
            raise NameTakenError(f"name {self.name!r} already taken")

        self._registered = True
        _LOGGER.info("registered %s (%d paths)", self.name, len(self.paths()))

    def close(self) -> None:
        reply = self._transport.release_name(self.name)
        if reply != ReleaseNameReply.RELEASED:
            raise NameReleaseError(f"failed to release name {self.name!r}: {int(reply)}")

        self._registered = False
        _LOGGER.info("released %s", self.name)
