from __future__ import annotations

import json
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Response

from certigest.api.services.runtime import content_disposition, get_store, require_cycle, require_entity
from certigest.assembler import NothingMergeableError
from certigest.auth import require_authenticated_user
from certigest.config import settings
from certigest.dossier import DossierOutcome, assembler_from_settings, build_dossier
from certigest.export import ExportSink, ExportSinkError, LocalDirectorySink, MemorySink
from certigest.store import Entity, RecordStore

logger = logging.getLogger("certigest.api")

router = APIRouter(dependencies=[Depends(require_authenticated_user)])


def _run_dossier(*, store: RecordStore, entity: Entity, cycle: str, sink: ExportSink) -> DossierOutcome:
    try:
        outcome = build_dossier(
            store=store,
            entity=entity,
            cycle=cycle,
            sink=sink,
            assembler=assembler_from_settings(settings),
        )
    except NothingMergeableError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "No certificates ready: nothing could be merged into the dossier.",
                "failures": [failure.as_dict() for failure in exc.failures],
            },
        ) from exc
    except ExportSinkError as exc:
        logger.error(
            "dossier_delivery_failed",
            extra={"event": "dossier_delivery_failed", "entity_id": entity.id, "cycle": cycle, "error": str(exc)},
        )
        raise HTTPException(status_code=500, detail={"message": "Dossier delivery failed.", "error": str(exc)}) from exc

    if outcome.incomplete:
        logger.info(
            "dossier_incomplete",
            extra={
                "event": "dossier_incomplete",
                "entity_id": entity.id,
                "cycle": cycle,
                "merged_slots": len(outcome.result.merged_slot_ids),
                "total_slots": outcome.total_slots,
                "failure_count": len(outcome.result.failures),
            },
        )
    return outcome


@router.post("/entities/{entity_id}/cycles/{cycle}/dossier")
def download_dossier(entity_id: str, cycle: str, store: RecordStore = Depends(get_store)) -> Response:
    entity = require_entity(store, entity_id)
    normalized_cycle = require_cycle(cycle)
    sink = MemorySink()
    outcome = _run_dossier(store=store, entity=entity, cycle=normalized_cycle, sink=sink)
    result = outcome.result
    return Response(
        content=sink.content or b"",
        media_type="application/pdf",
        headers={
            "Content-Disposition": content_disposition(outcome.delivery.file_name),
            "X-Dossier-Merged-Count": str(result.merged_count),
            "X-Dossier-Page-Count": str(result.page_count),
            "X-Dossier-Failures": json.dumps([failure.as_dict() for failure in result.failures]),
            "X-Dossier-Incomplete": "true" if outcome.incomplete else "false",
        },
    )


@router.post("/entities/{entity_id}/cycles/{cycle}/dossier/export")
def export_dossier(entity_id: str, cycle: str, store: RecordStore = Depends(get_store)) -> dict[str, object]:
    entity = require_entity(store, entity_id)
    normalized_cycle = require_cycle(cycle)
    sink = LocalDirectorySink(Path(settings.export_root) / entity.id)
    outcome = _run_dossier(store=store, entity=entity, cycle=normalized_cycle, sink=sink)
    return {
        "entity_id": entity.id,
        "cycle": normalized_cycle,
        **outcome.summary(),
    }

