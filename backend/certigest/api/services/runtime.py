from __future__ import annotations

from urllib.parse import quote

from fastapi import HTTPException, Request

from certigest.catalog import SlotDefinition, get_slot
from certigest.formatting import InvalidCycleError, normalize_cycle
from certigest.store import Entity, RecordStore


def get_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "store", None)
    if not isinstance(store, RecordStore) or not store.is_open:
        raise HTTPException(status_code=503, detail="Record store is not available.")
    return store


def require_entity(store: RecordStore, entity_id: str) -> Entity:
    entity = store.get_entity(entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail="Entity not found")
    return entity


def require_slot(slot_id: str) -> SlotDefinition:
    slot = get_slot(slot_id)
    if slot is None:
        raise HTTPException(status_code=404, detail="Certificate slot not found")
    return slot


def require_cycle(cycle: str) -> str:
    try:
        return normalize_cycle(cycle)
    except InvalidCycleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def content_disposition(file_name: str) -> str:
    ascii_name = file_name.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name)}"
