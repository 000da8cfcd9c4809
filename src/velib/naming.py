from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidNameError


_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]+")


@dataclass(frozen=True)
class ServiceName:
    """A publication name split into the parts the rest of the library needs.

    Notes:
    - `name` is what gets claimed on the bus, with the device label normalized.
    - `device_name` is the normalized label; it doubles as the settings group
      under which the device instance is stored.
    """

    name: str
    device_name: str
    device_class: str


def normalize_device_name(label: str) -> str:
    return _NON_ALPHANUMERIC.sub("_", label).lower()


def resolve_service_name(name: str) -> ServiceName:
    parts = str(name).split(".")
    if len(parts) < 3:
        raise InvalidNameError(f"name {name!r} must have at least 3 parts")

    device_name = normalize_device_name(parts[-1])
    device_class = parts[-2]

    return ServiceName(
        name=".".join(parts[:-1]) + "." + device_name,
        device_name=device_name,
        device_class=device_class,
    )
