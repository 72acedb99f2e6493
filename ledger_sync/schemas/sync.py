from datetime import datetime
from typing import Any, Dict, List, Optional

from ledger_sync.models.sync import SyncDirection, SyncEntity, SyncRunStatus
from ledger_sync.schemas.common import CamelModel


class SyncRunItemOut(CamelModel):
    id: int
    key: str
    status: str
    error: Optional[str] = None
    created_at: Optional[datetime] = None


class SyncRunOut(CamelModel):
    id: int
    request_id: str
    entity: SyncEntity
    direction: SyncDirection
    status: SyncRunStatus
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    total_count: int
    success_count: int
    error_count: int
    meta: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class SyncRunDetailOut(SyncRunOut):
    items: Optional[List[SyncRunItemOut]] = None


class SyncRunsResponse(CamelModel):
    success: bool
    count: int
    runs: List[SyncRunOut]


class SyncRunDetailResponse(CamelModel):
    success: bool
    run: SyncRunDetailOut
