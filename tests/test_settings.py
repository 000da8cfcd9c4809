from __future__ import annotations

import pytest

from velib.bus import LocalBus
from velib.errors import NameTakenError
from velib.settings import LocalSettings


def test_add_setting_is_add_if_absent(settings: LocalSettings) -> None:
    assert settings.add_setting("dev", "Mode", "a", "s") == 0
    assert settings.add_setting("dev", "Mode", "b", "s") == 0
    assert settings.get("dev", "Mode") == "a"


def test_add_setting_rejects_unknown_types(settings: LocalSettings) -> None:
    assert settings.add_setting("dev", "Mode", "a", "x") == -1
    assert settings.add_setting("", "Mode", "a", "s") == -1
    assert settings.add_setting("dev", "Level", "not a number", "i") == -1
    assert settings.get("dev", "Level") is None


def test_instance_conflicts_bump_to_next_free(settings: LocalSettings) -> None:
    settings.add_setting("a", "ClassAndVrmInstance", "battery:1", "s")
    settings.add_setting("b", "ClassAndVrmInstance", "battery:1", "s")
    settings.add_setting("c", "ClassAndVrmInstance", "battery:1", "s")
    settings.add_setting("d", "ClassAndVrmInstance", "tank:1", "s")

    assert settings.get("b", "ClassAndVrmInstance") == "battery:2"
    assert settings.get("c", "ClassAndVrmInstance") == "battery:3"
    assert settings.get("d", "ClassAndVrmInstance") == "tank:1"


def test_settings_are_busitems(bus: LocalBus, settings: LocalSettings) -> None:
    settings.add_setting("dev", "Level", 3, "i")
    path = "/Settings/Devices/dev/Level"

    assert bus.call(settings.service_name, path, "GetValue") == 3
    assert bus.call(settings.service_name, path, "SetValue", "5") == 0
    assert bus.call(settings.service_name, path, "GetText") == "5"
    assert bus.call(settings.service_name, path, "SetValue", "nope") == -1
    assert settings.get("dev", "Level") == 5


def test_add_setting_over_the_bus(bus: LocalBus, settings: LocalSettings) -> None:
    result = bus.call(settings.service_name, "/Settings/Devices", "AddSetting", "dev", "Name", "x", "s", "", "")
    assert result == 0
    assert "AddSetting" in bus.call(settings.service_name, "/Settings/Devices", "Introspect")


def test_second_settings_service_is_refused(bus: LocalBus, settings: LocalSettings) -> None:
    with pytest.raises(NameTakenError):
        LocalSettings(bus)
