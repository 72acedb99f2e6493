# routes/sync_runs.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledger_sync.config import settings
from ledger_sync.database import get_db
from ledger_sync.exceptions import NotFoundError
from ledger_sync.models.sync import SyncDirection, SyncEntity, SyncRun, SyncRunStatus
from ledger_sync.schemas.sync import (
    SyncRunDetailOut, SyncRunDetailResponse, SyncRunItemOut, SyncRunOut, SyncRunsResponse,
)
from ledger_sync.services.sync_ledger import get_run_items, list_runs
from ledger_sync.utils.onec_auth import require_onec_secret

router = APIRouter(prefix="/api/1c/sync", tags=["Sync runs"], dependencies=[Depends(require_onec_secret)])


# Journal of batch imports and export actions, newest first
@router.get("/runs", response_model=SyncRunsResponse)
def sync_runs(
    entity: Optional[SyncEntity] = Query(None),
    direction: Optional[SyncDirection] = Query(None),
    status: Optional[SyncRunStatus] = Query(None),
    limit: int = Query(settings.SYNC_RUNS_DEFAULT_LIMIT, ge=1, le=settings.SYNC_RUNS_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    runs = list_runs(db, entity, direction, status, limit)
    return {"success": True, "count": len(runs), "runs": [SyncRunOut.model_validate(r) for r in runs]}


# Single run, optionally with its per-item outcomes
@router.get("/runs/{run_id}", response_model=SyncRunDetailResponse)
def sync_run_detail(
    run_id: int,
    include_items: bool = Query(False, alias="includeItems"),
    items_limit: int = Query(
        settings.SYNC_RUN_ITEMS_DEFAULT_LIMIT, alias="itemsLimit", ge=1, le=settings.SYNC_RUN_ITEMS_MAX_LIMIT
    ),
    db: Session = Depends(get_db),
):
    run = db.get(SyncRun, run_id)
    if run is None:
        raise NotFoundError(f"Sync run {run_id} not found")

    detail = SyncRunDetailOut(**SyncRunOut.model_validate(run).model_dump())
    if include_items:
        detail.items = [SyncRunItemOut.model_validate(i) for i in get_run_items(db, run_id, items_limit)]
    return {"success": True, "run": detail}
