from __future__ import annotations

from typing import Any


BUSITEM_ERROR = "com.victronenergy.BusItem.Error"


class VelibError(Exception):
    """Base class for every error raised by velib."""


class InvalidNameError(VelibError, ValueError):
    pass


class IdentityAllocationError(VelibError, RuntimeError):
    """The naming authority could not produce a device instance."""


class DuplicatePathError(VelibError, KeyError):
    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"path {self.path!r} is already registered"


class InitializationError(VelibError, RuntimeError):
    """Round-tripping the first value of a freshly added path failed."""


class NameTakenError(VelibError, RuntimeError):
    pass


class NameReleaseError(VelibError, RuntimeError):
    pass


class BusError(VelibError):
    """An error that travels over the bus: a well-known error name plus a message."""

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(name, message)
        self.name = name
        self.message = message

    def __str__(self) -> str:
        if not self.message:
            return self.name
        return f"{self.name}: {self.message}"


def wrap_error(err: BaseException | None) -> BusError | None:
    """Convert a handler exception into something a remote caller can receive."""
    if err is None:
        return None
    if isinstance(err, BusError):
        return err
    return BusError(BUSITEM_ERROR, str(err))


def describe(err: BusError) -> dict[str, Any]:
    return {"name": err.name, "message": err.message}
