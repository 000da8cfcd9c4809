from __future__ import annotations

import argparse
import logging
import signal
import threading

from .bus import LocalBus
from .demo import publish_battery, simulate
from .runner import run
from .settings import LocalSettings


def main() -> None:
    p = argparse.ArgumentParser(prog="velib", description="velib: publish a simulated battery on a local bus")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--device-name", default="testing_abc_123")
    p.add_argument("--interval", type=float, default=10.0, help="seconds between voltage updates")
    p.add_argument("--log-level", default="info")
    args = p.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    bus = LocalBus()
    settings = LocalSettings(bus)
    conn = bus.connect()

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    service, voltage = publish_battery(conn, args.device_name)
    with service:
        srv = run(bus, host=args.host, port=args.port, log_level=args.log_level)
        print(srv.url)
        simulate(voltage, stop, interval_s=args.interval)

    conn.close()
    settings.close()


if __name__ == "__main__":
    main()
