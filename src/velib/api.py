from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from starlette.responses import Response

from .bus import ERROR_SERVICE_UNKNOWN, ERROR_UNKNOWN_OBJECT, LocalBus
from .errors import BusError, describe
from .service import ROOT_PATH


_NOT_FOUND = {ERROR_SERVICE_UNKNOWN, ERROR_UNKNOWN_OBJECT}


def _call(bus: LocalBus, name: str, path: str, method: str, *args: Any) -> Any:
    try:
        return bus.call(name, path, method, *args)
    except BusError as e:
        status = 404 if e.name in _NOT_FOUND else 400
        raise HTTPException(status_code=status, detail=describe(e))


def create_api_app(bus: LocalBus) -> FastAPI:
    """HTTP view of a `LocalBus`: enumerate services, read and write their paths."""

    app = FastAPI(title="velib", version="0.1.0")

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/events")
    def events() -> dict[str, int]:
        # Minimal polling endpoint: bumps on every emitted signal.
        return {"globalRevision": bus.revision()}

    @app.get("/api/services")
    def list_services() -> list[str]:
        return [n for n in bus.list_names() if not n.startswith(":")]

    @app.get("/api/services/{name}/items")
    def get_items(name: str) -> dict[str, dict[str, Any]]:
        return _call(bus, name, ROOT_PATH, "GetItems")

    @app.get("/api/services/{name}/value")
    def get_value(name: str, path: str) -> dict[str, Any]:
        return {"path": path, "value": _call(bus, name, path, "GetValue")}

    @app.get("/api/services/{name}/text")
    def get_text(name: str, path: str) -> dict[str, Any]:
        return {"path": path, "text": _call(bus, name, path, "GetText")}

    @app.put("/api/services/{name}/value")
    def set_value(name: str, path: str, body: dict) -> dict[str, Any]:
        if "value" not in body:
            raise HTTPException(status_code=400, detail="body must contain 'value'")
        result = _call(bus, name, path, "SetValue", body["value"])
        return {"ok": result == 0, "result": result}

    @app.get("/api/services/{name}/introspect")
    def introspect(name: str, path: str = ROOT_PATH) -> Response:
        xml = _call(bus, name, path, "Introspect")
        return Response(content=xml, media_type="application/xml")

    return app
