from __future__ import annotations

from .bus import Connection, LocalBus, ReleaseNameReply, RequestNameReply, Signal, Transport
from .client import BusClient
from .errors import (
    BusError,
    DuplicatePathError,
    IdentityAllocationError,
    InitializationError,
    InvalidNameError,
    NameReleaseError,
    NameTakenError,
    VelibError,
)
from .identity import DeviceInstanceResolver
from .items import BusItem
from .naming import ServiceName, resolve_service_name
from .runner import BusServer, run
from .service import Service
from .settings import LocalSettings
from .values import AnyValue, DelegatingValue, FormatterValue, ServiceValue, new_formatter_value

__all__ = [
    "AnyValue",
    "BusClient",
    "BusError",
    "BusItem",
    "BusServer",
    "Connection",
    "DelegatingValue",
    "DeviceInstanceResolver",
    "DuplicatePathError",
    "FormatterValue",
    "IdentityAllocationError",
    "InitializationError",
    "InvalidNameError",
    "LocalBus",
    "LocalSettings",
    "NameReleaseError",
    "NameTakenError",
    "ReleaseNameReply",
    "RequestNameReply",
    "Service",
    "ServiceName",
    "ServiceValue",
    "Signal",
    "Transport",
    "VelibError",
    "new_formatter_value",
    "resolve_service_name",
    "run",
]
