from __future__ import annotations

import logging
import mimetypes

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from certigest.api.contracts import EntityCreateRequest
from certigest.api.services.runtime import (
    content_disposition,
    get_store,
    require_cycle,
    require_entity,
    require_slot,
)
from certigest.auth import require_authenticated_user
from certigest.catalog import describe_acquisition
from certigest.config import settings
from certigest.formatting import InvalidCnpjError
from certigest.progress import entity_checklist, search_entities, serialize_entity, serialize_record_metadata
from certigest.sources import SourceLoaderRegistry
from certigest.store import DuplicateEntityError, RecordStore, new_evidence_record

logger = logging.getLogger("certigest.api")

router = APIRouter(dependencies=[Depends(require_authenticated_user)])
_registry = SourceLoaderRegistry()


@router.post("/entities")
def create_entity_endpoint(
    payload: EntityCreateRequest,
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    try:
        entity = store.create_entity(name=payload.name, cnpj=payload.cnpj)
    except InvalidCnpjError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except DuplicateEntityError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return serialize_entity(entity)


@router.get("/entities")
def list_entities_endpoint(
    search: str | None = Query(default=None, max_length=200),
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    entities = search_entities(store.list_entities(), search)
    return {"entities": [serialize_entity(entity) for entity in entities]}


@router.get("/entities/{entity_id}")
def get_entity_endpoint(entity_id: str, store: RecordStore = Depends(get_store)) -> dict[str, object]:
    return serialize_entity(require_entity(store, entity_id))


@router.delete("/entities/{entity_id}")
def delete_entity_endpoint(entity_id: str, store: RecordStore = Depends(get_store)) -> dict[str, object]:
    if not store.delete_entity(entity_id):
        raise HTTPException(status_code=404, detail="Entity not found")
    return {"id": entity_id, "deleted": True}


@router.get("/entities/{entity_id}/cycles")
def list_entity_cycles(entity_id: str, store: RecordStore = Depends(get_store)) -> dict[str, object]:
    require_entity(store, entity_id)
    return {"entity_id": entity_id, "cycles": store.list_cycles(entity_id)}


@router.get("/entities/{entity_id}/cycles/{cycle}/certificates")
def list_cycle_certificates(
    entity_id: str,
    cycle: str,
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    require_entity(store, entity_id)
    normalized_cycle = require_cycle(cycle)
    records = store.get_records(entity_id, normalized_cycle)
    return {
        "entity_id": entity_id,
        "cycle": normalized_cycle,
        **entity_checklist(records),
    }


@router.put("/entities/{entity_id}/cycles/{cycle}/certificates/{slot_id}")
async def upload_certificate(
    entity_id: str,
    cycle: str,
    slot_id: str,
    file: UploadFile = File(...),
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    require_entity(store, entity_id)
    normalized_cycle = require_cycle(cycle)
    slot = require_slot(slot_id)

    file_name = file.filename or "upload.bin"
    content = await file.read(settings.max_upload_file_bytes + 1)
    if len(content) > settings.max_upload_file_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File '{file_name}' exceeds max size of {settings.max_upload_file_bytes} bytes.",
        )
    if not content:
        raise HTTPException(status_code=422, detail="Uploaded file is empty.")

    record = store.put_record(
        new_evidence_record(
            entity_id=entity_id,
            slot_id=slot.id,
            cycle=normalized_cycle,
            file_name=file_name,
            payload=content,
        )
    )
    supported = _registry.is_supported(record.file_name)
    if not supported:
        logger.warning(
            "evidence_unsupported_format",
            extra={"event": "evidence_unsupported_format", "slot_id": slot.id, "file_name": record.file_name},
        )
    return {
        "entity_id": entity_id,
        "cycle": normalized_cycle,
        "slot_id": slot.id,
        "status": "issued",
        "supported_format": supported,
        "record": serialize_record_metadata(record),
    }


@router.get("/entities/{entity_id}/cycles/{cycle}/certificates/{slot_id}/file")
def download_certificate(
    entity_id: str,
    cycle: str,
    slot_id: str,
    store: RecordStore = Depends(get_store),
) -> Response:
    require_entity(store, entity_id)
    normalized_cycle = require_cycle(cycle)
    slot = require_slot(slot_id)
    record = store.get_record(entity_id, slot.id, normalized_cycle)
    if record is None:
        raise HTTPException(status_code=404, detail="Certificate not issued for this cycle")
    media_type = mimetypes.guess_type(record.file_name)[0] or "application/octet-stream"
    return Response(
        content=record.payload,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(record.file_name)},
    )


@router.get("/entities/{entity_id}/certificates/{slot_id}/hint")
def certificate_hint(
    entity_id: str,
    slot_id: str,
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    entity = require_entity(store, entity_id)
    slot = require_slot(slot_id)
    return describe_acquisition(slot, legal_name=entity.name, cnpj=entity.cnpj)
