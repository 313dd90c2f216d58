from __future__ import annotations

import time
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from certigest.catalog import serialize_catalog
from certigest.config import settings
from certigest.store import RecordStore


router = APIRouter()

_READY_CACHE_TTL_SECONDS = 30.0
_ready_cache: dict[str, object] = {
    "ts": 0.0,
    "ok": None,
    "payload": None,
}


def _cache_set(ok: bool, payload: dict[str, object]) -> None:
    _ready_cache["ts"] = time.time()
    _ready_cache["ok"] = ok
    _ready_cache["payload"] = payload


def _cache_get() -> dict[str, object] | None:
    now = time.time()
    ts = float(_ready_cache.get("ts") or 0.0)
    if now - ts > _READY_CACHE_TTL_SECONDS:
        return None
    payload = _ready_cache.get("payload")
    if isinstance(payload, dict):
        return payload
    return None


def reset_ready_cache() -> None:
    _ready_cache["ts"] = 0.0
    _ready_cache["ok"] = None
    _ready_cache["payload"] = None


@router.get("/")
def root() -> dict[str, str]:
    return {"service": "certigest-backend", "status": "running"}


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.app_env}


@router.get("/catalog")
def catalog() -> dict[str, object]:
    return serialize_catalog()


@router.get("/ready", response_model=None)
def ready(request: Request) -> JSONResponse:
    cached = _cache_get()
    if cached is not None:
        ok = bool(_ready_cache.get("ok"))
        return JSONResponse(status_code=200 if ok else 503, content=cached)

    checks: dict[str, object] = {}
    payload: dict[str, object] = {
        "status": "ready",
        "environment": settings.app_env,
        "checks": checks,
    }

    store = getattr(request.app.state, "store", None)
    try:
        if not isinstance(store, RecordStore):
            raise RuntimeError("record store not initialized")
        store.ping()
        checks["db"] = {"ok": True, "backend": "sqlite"}
    except Exception as exc:
        payload["status"] = "not_ready"
        checks["db"] = {"ok": False, "backend": "sqlite", "error": str(exc)}
        _cache_set(False, payload)
        return JSONResponse(status_code=503, content=payload)

    try:
        root_dir = Path(settings.export_root)
        root_dir.mkdir(parents=True, exist_ok=True)
        token = f"{time.time()}-{uuid4()}"
        probe = root_dir / ".ready_probe"
        probe.write_text(token, encoding="utf-8")
        read_back = probe.read_text(encoding="utf-8")
        probe.unlink(missing_ok=True)
        if read_back != token:
            raise RuntimeError("export directory probe mismatch")
        checks["export"] = {"ok": True, "backend": "local"}
    except Exception as exc:
        payload["status"] = "not_ready"
        checks["export"] = {"ok": False, "backend": "local", "error": str(exc)}
        _cache_set(False, payload)
        return JSONResponse(status_code=503, content=payload)

    _cache_set(True, payload)
    return JSONResponse(status_code=200, content=payload)
