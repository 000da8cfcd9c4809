from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Mapping, Protocol

from .errors import BusError, wrap_error


_LOGGER = logging.getLogger(__name__)

BUSITEM_INTERFACE = "com.victronenergy.BusItem"
INTROSPECTABLE_INTERFACE = "org.freedesktop.DBus.Introspectable"

ERROR_SERVICE_UNKNOWN = "org.freedesktop.DBus.Error.ServiceUnknown"
ERROR_UNKNOWN_OBJECT = "org.freedesktop.DBus.Error.UnknownObject"
ERROR_UNKNOWN_METHOD = "org.freedesktop.DBus.Error.UnknownMethod"
ERROR_DISCONNECTED = "org.freedesktop.DBus.Error.Disconnected"

Methods = Mapping[str, Callable[..., Any]]


class RequestNameReply(IntEnum):
    PRIMARY_OWNER = 1
    IN_QUEUE = 2
    EXISTS = 3
    ALREADY_OWNER = 4


class ReleaseNameReply(IntEnum):
    RELEASED = 1
    NON_EXISTENT = 2
    NOT_OWNER = 3


@dataclass(frozen=True)
class Signal:
    sender: str
    path: str
    name: str
    payload: Any


class Transport(Protocol):
    """What a `Service` needs from the bus connection it publishes on."""

    def export(self, path: str, methods: Methods, interface: str) -> None: ...
    def export_introspection(self, path: str, xml: str) -> None: ...
    def unexport(self, path: str) -> None: ...
    def emit(self, path: str, name: str, payload: Any) -> None: ...
    def request_name(self, name: str) -> RequestNameReply: ...
    def release_name(self, name: str) -> ReleaseNameReply: ...
    def call(self, service: str, path: str, method: str, *args: Any) -> Any: ...


class LocalBus:
    """An in-process message bus with D-Bus naming and dispatch rules.

    Names are owned by connections (no queueing), objects are exported per
    connection, and method calls are routed by bus name -> object path ->
    method. Dispatch and signal delivery happen outside the bus lock.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._owners: dict[str, Connection] = {}
        self._subscribers: list[Callable[[Signal], None]] = []
        self._revision = 0
        self._ids = itertools.count(1)

    def connect(self) -> "Connection":
        with self._lock:
            unique_name = f":1.{next(self._ids)}"
        return Connection(self, unique_name)

    def revision(self) -> int:
        with self._lock:
            return self._revision

    def list_names(self) -> list[str]:
        with self._lock:
            return sorted(self._owners)

    def owner_of(self, name: str) -> "Connection | None":
        with self._lock:
            return self._owners.get(name)

    def subscribe(self, callback: Callable[[Signal], None]) -> Callable[[], None]:
        """Register a signal callback; returns a function that removes it."""

        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def call(self, service: str, path: str, method: str, *args: Any) -> Any:
        conn = self.owner_of(service)
        if conn is None:
            raise BusError(ERROR_SERVICE_UNKNOWN, f"The name {service} was not provided by any service")

        fn = conn._lookup(path, method)
        try:
            return fn(*args)
        except BusError:
            raise
        except Exception as e:
            raise wrap_error(e) from e

    def _request_name(self, conn: "Connection", name: str) -> RequestNameReply:
        with self._lock:
            owner = self._owners.get(name)
            if owner is conn:
                return RequestNameReply.ALREADY_OWNER
            if owner is not None:
                return RequestNameReply.EXISTS
            self._owners[name] = conn
            return RequestNameReply.PRIMARY_OWNER

    def _release_name(self, conn: "Connection", name: str) -> ReleaseNameReply:
        with self._lock:
            owner = self._owners.get(name)
            if owner is None:
                return ReleaseNameReply.NON_EXISTENT
            if owner is not conn:
                return ReleaseNameReply.NOT_OWNER
            del self._owners[name]
            return ReleaseNameReply.RELEASED

    def _drop(self, conn: "Connection") -> None:
        with self._lock:
            for name in [n for n, c in self._owners.items() if c is conn]:
                del self._owners[name]

    def _publish(self, signal: Signal) -> None:
        with self._lock:
            self._revision += 1
            subscribers = list(self._subscribers)
        for cb in subscribers:
            cb(signal)


class Connection:
    """One peer on a `LocalBus`. Implements `Transport`."""

    def __init__(self, bus: LocalBus, unique_name: str) -> None:
        self._bus = bus
        self._lock = threading.RLock()
        self._objects: dict[str, dict[str, dict[str, Callable[..., Any]]]] = {}
        self._closed = False
        self.unique_name = unique_name

    @property
    def bus(self) -> LocalBus:
        return self._bus

    def _check_open(self) -> None:
        if self._closed:
            raise BusError(ERROR_DISCONNECTED, f"connection {self.unique_name} is closed")

    def export(self, path: str, methods: Methods, interface: str) -> None:
        self._check_open()
        with self._lock:
            self._objects.setdefault(path, {})[interface] = dict(methods)
        _LOGGER.debug("%s exported %s on %s", self.unique_name, interface, path)

    def export_introspection(self, path: str, xml: str) -> None:
        self.export(path, {"Introspect": lambda: xml}, INTROSPECTABLE_INTERFACE)

    def unexport(self, path: str) -> None:
        with self._lock:
            self._objects.pop(path, None)
        _LOGGER.debug("%s removed %s", self.unique_name, path)

    def exported_paths(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)

    def emit(self, path: str, name: str, payload: Any) -> None:
        self._check_open()
        self._bus._publish(Signal(sender=self.unique_name, path=path, name=name, payload=payload))

    def request_name(self, name: str) -> RequestNameReply:
        self._check_open()
        return self._bus._request_name(self, name)

    def release_name(self, name: str) -> ReleaseNameReply:
        self._check_open()
        return self._bus._release_name(self, name)

    def call(self, service: str, path: str, method: str, *args: Any) -> Any:
        self._check_open()
        return self._bus.call(service, path, method, *args)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._objects.clear()
        self._bus._drop(self)

    def _lookup(self, path: str, method: str) -> Callable[..., Any]:
        with self._lock:
            interfaces = self._objects.get(path)
            if interfaces is None:
                raise BusError(ERROR_UNKNOWN_OBJECT, f"No such object path '{path}'")
            for methods in interfaces.values():
                fn = methods.get(method)
                if fn is not None:
                    return fn
        raise BusError(ERROR_UNKNOWN_METHOD, f"No such method '{method}' on '{path}'")
