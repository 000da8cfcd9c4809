from __future__ import annotations

from typing import Any

import pytest

from velib.bus import ERROR_UNKNOWN_OBJECT, LocalBus
from velib.errors import BusError, IdentityAllocationError
from velib.identity import DEVICES_PATH, DeviceInstanceResolver, ResolverState, parse_class_and_instance
from velib.settings import LocalSettings


class FakeSettings:
    """Records every call and answers like the settings service would."""

    def __init__(self, stored: Any = None, add_result: int = 0, store_on_add: bool = True) -> None:
        self.stored = stored
        self.add_result = add_result
        self.store_on_add = store_on_add
        self.calls: list[tuple[str, str, str, tuple[Any, ...]]] = []

    def call(self, service: str, path: str, method: str, *args: Any) -> Any:
        self.calls.append((service, path, method, args))
        if method == "GetValue":
            if self.stored is None:
                raise BusError(ERROR_UNKNOWN_OBJECT, path)
            return self.stored
        if method == "AddSetting":
            if self.stored is None and self.store_on_add:
                self.stored = args[2]
            return self.add_result
        raise AssertionError(f"unexpected method {method}")


def test_missing_record_proposes_instance_one() -> None:
    fake = FakeSettings()
    resolver = DeviceInstanceResolver(fake, "my_device", "battery")  # type: ignore[arg-type]

    assert resolver.instance == -1
    assert resolver.resolve() == 1
    assert resolver.state is ResolverState.RESOLVED

    methods = [c[2] for c in fake.calls]
    assert methods == ["GetValue", "AddSetting", "GetValue"]
    _, path, _, args = fake.calls[1]
    assert path == DEVICES_PATH
    assert args == ("my_device", "ClassAndVrmInstance", "battery:1", "s", "", "")
    assert fake.calls[0][1] == "/Settings/Devices/my_device/ClassAndVrmInstance"


def test_existing_record_wins() -> None:
    fake = FakeSettings(stored="battery:7")
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    assert resolver.resolve() == 7
    assert fake.calls[1][3][2] == "battery:7"


def test_resolution_is_memoized() -> None:
    fake = FakeSettings()
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    first = resolver.resolve()
    calls = len(fake.calls)
    second = resolver.resolve()

    assert first == second
    assert len(fake.calls) == calls == 3


def test_nonzero_add_setting_result_fails() -> None:
    fake = FakeSettings(add_result=-1)
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    with pytest.raises(IdentityAllocationError):
        resolver.resolve()
    assert resolver.state is ResolverState.FAILED


def test_failure_is_memoized_without_new_round_trips() -> None:
    fake = FakeSettings(add_result=-1)
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    with pytest.raises(IdentityAllocationError) as first:
        resolver.resolve()
    calls = len(fake.calls)
    with pytest.raises(IdentityAllocationError) as second:
        resolver.resolve()

    assert second.value is first.value
    assert len(fake.calls) == calls
    assert resolver.instance == -1


def test_final_lookup_failure_fails() -> None:
    fake = FakeSettings(store_on_add=False)
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    with pytest.raises(IdentityAllocationError):
        resolver.resolve()


def test_unparseable_record_fails() -> None:
    fake = FakeSettings(stored="battery:1:extra")
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    with pytest.raises(IdentityAllocationError):
        resolver.resolve()
    # The bad record made the first lookup fail too, so 1 was proposed.
    assert fake.calls[1][3][2] == "battery:1"


def test_parse_class_and_instance() -> None:
    assert parse_class_and_instance("battery:3") == ("battery", 3)
    with pytest.raises(ValueError):
        parse_class_and_instance("battery")
    with pytest.raises(ValueError):
        parse_class_and_instance("battery:x")


def test_resolves_against_local_settings(bus: LocalBus, settings: LocalSettings) -> None:
    conn = bus.connect()
    a = DeviceInstanceResolver(conn, "first", "battery")
    b = DeviceInstanceResolver(conn, "second", "battery")
    c = DeviceInstanceResolver(conn, "meter", "grid")

    assert a.resolve() == 1
    assert b.resolve() == 2
    assert c.resolve() == 1
    assert settings.get("second", "ClassAndVrmInstance") == "battery:2"


def test_restart_reuses_stored_instance(bus: LocalBus, settings: LocalSettings) -> None:
    DeviceInstanceResolver(bus.connect(), "first", "battery").resolve()
    DeviceInstanceResolver(bus.connect(), "second", "battery").resolve()

    again = DeviceInstanceResolver(bus.connect(), "second", "battery")
    assert again.resolve() == 2


def test_missing_settings_service_fails(bus: LocalBus) -> None:
    resolver = DeviceInstanceResolver(bus.connect(), "dev", "battery")
    with pytest.raises(IdentityAllocationError):
        resolver.resolve()


class FlakyTransport(FakeSettings):
    """Raises a connection error for the listed methods, otherwise behaves like FakeSettings."""

    def __init__(self, failing: set[str], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.failing = failing

    def call(self, service: str, path: str, method: str, *args: Any) -> Any:
        if method in self.failing:
            self.calls.append((service, path, method, args))
            self.failing.discard(method)
            raise ConnectionError("socket reset")
        return super().call(service, path, method, *args)


def test_transport_error_on_first_lookup_proposes_default() -> None:
    fake = FlakyTransport({"GetValue"})
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    assert resolver.resolve() == 1
    assert fake.calls[1][3][2] == "battery:1"


def test_transport_error_on_add_setting_fails_and_is_memoized() -> None:
    fake = FlakyTransport({"AddSetting"})
    resolver = DeviceInstanceResolver(fake, "dev", "battery")  # type: ignore[arg-type]

    with pytest.raises(IdentityAllocationError) as exc:
        resolver.resolve()
    assert isinstance(exc.value.__cause__, ConnectionError)
    assert resolver.state is ResolverState.FAILED

    calls = len(fake.calls)
    with pytest.raises(IdentityAllocationError):
        resolver.resolve()
    assert len(fake.calls) == calls
