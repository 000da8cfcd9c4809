from __future__ import annotations


def test_public_names_are_exported() -> None:
    import velib

    for name in velib.__all__:
        assert getattr(velib, name) is not None


def test_package_paths_work() -> None:
    from velib.api import create_api_app
    from velib.bus import LocalBus
    from velib.client import BusClient
    from velib.identity import DeviceInstanceResolver
    from velib.runner import BusServer, run
    from velib.service import Service
    from velib.settings import LocalSettings

    assert create_api_app is not None
    assert LocalBus is not None
    assert BusClient is not None
    assert DeviceInstanceResolver is not None
    assert BusServer is not None
    assert run is not None
    assert Service is not None
    assert LocalSettings is not None
