from __future__ import annotations

import os
from typing import Any

import httpx


def default_url() -> str:
    """Where to connect when no URL is given: ``VELIB_URL`` or the local default."""

    url = os.getenv("VELIB_URL", "").strip()
    if not url:
        return "http://127.0.0.1:8000"
    # Allow passing just host:port.
    if "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


class BusClient:
    """HTTP client for a running velib bridge (see `velib.api`).

    Contract (current):
    - GET /api/services
    - GET /api/services/{name}/items
    - GET /api/services/{name}/value?path=...   PUT with {"value": ...}
    - GET /api/services/{name}/text?path=...
    - GET /api/services/{name}/introspect?path=...
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or default_url()).rstrip("/")
        # Tests inject an httpx.MockTransport here.
        self._transport = transport

    def _client(self, timeout_s: float) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout_s, transport=self._transport)

    def _get(self, url: str, *, params: dict[str, str] | None = None, timeout_s: float) -> httpx.Response:
        with self._client(timeout_s) as client:
            res = client.get(url, params=params)
        if res.status_code >= 400:
            raise RuntimeError(f"GET {url} failed: {res.status_code} {res.text}")
        return res

    def list_services(self, *, timeout_s: float = 10.0) -> list[str]:
        return list(self._get("/api/services", timeout_s=timeout_s).json())

    def get_items(self, service: str, *, timeout_s: float = 10.0) -> dict[str, dict[str, Any]]:
        return dict(self._get(f"/api/services/{service}/items", timeout_s=timeout_s).json())

    def get_value(self, service: str, path: str, *, timeout_s: float = 10.0) -> Any:
        data = self._get(f"/api/services/{service}/value", params={"path": path}, timeout_s=timeout_s).json()
        return data.get("value")

    def get_text(self, service: str, path: str, *, timeout_s: float = 10.0) -> str:
        data = self._get(f"/api/services/{service}/text", params={"path": path}, timeout_s=timeout_s).json()
        return str(data.get("text"))

    def set_value(self, service: str, path: str, value: Any, *, timeout_s: float = 10.0) -> int:
        with self._client(timeout_s) as client:
            res = client.put(f"/api/services/{service}/value", params={"path": path}, json={"value": value})
        if res.status_code >= 400:
            raise RuntimeError(f"Failed to set {service}{path}: {res.status_code} {res.text}")
        return int(res.json().get("result", -1))

    def introspect(self, service: str, path: str = "/", *, timeout_s: float = 10.0) -> str:
        return self._get(f"/api/services/{service}/introspect", params={"path": path}, timeout_s=timeout_s).text

    def global_revision(self, *, timeout_s: float = 10.0) -> int:
        return int(self._get("/api/events", timeout_s=timeout_s).json().get("globalRevision", 0))
