from __future__ import annotations

import contextlib
import socket
import threading
import time
from dataclasses import dataclass

import uvicorn

from .api import create_api_app
from .bus import LocalBus
from .client import BusClient


@dataclass(frozen=True)
class BusServer:
    host: str
    port: int
    url: str
    bus: LocalBus

    def client(self) -> BusClient:
        return BusClient(self.url.rstrip("/"))


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


def run(
    bus: LocalBus | None = None,
    *,
    host: str = "127.0.0.1",
    port: int = 0,
    log_level: str = "info",
    access_log: bool = False,
) -> BusServer:
    """Serve the HTTP bridge for `bus` on a background thread.

    Notes:
    - `port=0` means "pick a free port".
    - Uvicorn's per-request access log is off by default; `/api/events` is
      meant to be polled.
    """

    if bus is None:
        bus = LocalBus()
    if port == 0:
        port = _find_free_port(host)

    app = create_api_app(bus)
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    # Give it a moment so a subsequent client call doesn't race with startup.
    time.sleep(0.05)

    return BusServer(host=host, port=port, url=f"http://{host}:{port}/", bus=bus)
