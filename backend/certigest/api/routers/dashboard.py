from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from certigest.api.services.runtime import get_store, require_cycle
from certigest.auth import require_authenticated_user
from certigest.formatting import current_cycle
from certigest.progress import build_dashboard
from certigest.store import RecordStore

router = APIRouter(dependencies=[Depends(require_authenticated_user)])


@router.get("/dashboard")
def dashboard(
    cycle: str | None = Query(default=None),
    store: RecordStore = Depends(get_store),
) -> dict[str, object]:
    selected_cycle = require_cycle(cycle) if cycle else current_cycle()
    return build_dashboard(store, selected_cycle)
