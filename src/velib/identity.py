"""Device instance negotiation against the settings service.

The settings service persists a ``<class>:<instance>`` string per device under
``/Settings/Devices/<device>/ClassAndVrmInstance``. On startup a device looks
that record up; if it is missing it asks the service to create it via
``AddSetting`` (which keeps an existing value and may pick a different free
instance), then reads it back.
"""

from __future__ import annotations

import logging
import os
from enum import Enum, auto

from .bus import Transport
from .errors import IdentityAllocationError


_LOGGER = logging.getLogger(__name__)

SETTINGS_SERVICE = os.getenv("VELIB_SETTINGS_SERVICE", "com.victronenergy.settings")
DEVICES_PATH = "/Settings/Devices"
INSTANCE_SETTING = "ClassAndVrmInstance"
DEFAULT_INSTANCE = 1


class ResolverState(Enum):
    UNRESOLVED = auto()
    RESOLVED = auto()
    FAILED = auto()


def parse_class_and_instance(value: object) -> tuple[str, int]:
    parts = str(value).split(":")
    if len(parts) != 2:
        raise ValueError(f"unexpected value {value!r}")
    return parts[0], int(parts[1])


class DeviceInstanceResolver:
    """Look up (or allocate) the device instance once, then remember the outcome.

    Notes:
    - Both RESOLVED and FAILED are terminal; a failed startup is not retried.
    - Not safe against two threads racing the first `resolve()`; a service
      resolves before it registers any path.
    """

    def __init__(
        self,
        transport: Transport,
        device_name: str,
        device_class: str,
        *,
        settings_service: str = SETTINGS_SERVICE,
    ) -> None:
        self._transport = transport
        self._device_name = device_name
        self._device_class = device_class
        self._settings_service = settings_service
        self._state = ResolverState.UNRESOLVED
        self._instance = -1
        self._error: IdentityAllocationError | None = None

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def instance(self) -> int:
        """The resolved instance, or -1 while unresolved."""
        return self._instance

    @property
    def setting_path(self) -> str:
        return f"{DEVICES_PATH}/{self._device_name}/{INSTANCE_SETTING}"

    def resolve(self) -> int:
        if self._state is ResolverState.RESOLVED:
            return self._instance
        if self._state is ResolverState.FAILED and self._error is not None:
            raise self._error

        try:
            instance = self._allocate()
        except IdentityAllocationError as e:
            self._state = ResolverState.FAILED
            self._error = e
            raise

        self._instance = instance
        self._state = ResolverState.RESOLVED
        _LOGGER.info("device %s resolved to %s:%d", self._device_name, self._device_class, instance)
        return instance

    def _lookup(self) -> int:
        value = self._transport.call(self._settings_service, self.setting_path, "GetValue")
        return parse_class_and_instance(value)[1]

    def _allocate(self) -> int:
        try:
            proposal = self._lookup()
        except Exception as e:
            _LOGGER.warning("no stored instance for %s (%s), proposing %d", self._device_name, e, DEFAULT_INSTANCE)
            proposal = DEFAULT_INSTANCE

        # https://github.com/victronenergy/localsettings#using-addsetting-to-allocate-a-vrm-device-instance
        try:
            result = self._transport.call(
                self._settings_service,
                DEVICES_PATH,
                "AddSetting",
                self._device_name,
                INSTANCE_SETTING,
                f"{self._device_class}:{proposal}",
                "s",
                "",
                "",
            )
        except Exception as e:
            raise IdentityAllocationError(f"failed to add setting for {self._device_name}: {e}") from e

        if result != 0:
            raise IdentityAllocationError(f"unexpected AddSetting result {result!r}")

        try:
            return self._lookup()
        except Exception as e:
            raise IdentityAllocationError(f"failed to get device instance: {e}") from e
