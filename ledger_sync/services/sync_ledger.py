import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from ledger_sync.database import SessionLocal
from ledger_sync.models.sync import SyncRun, SyncRunItem, SyncRunStatus, SyncDirection, SyncEntity
from ledger_sync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def derive_run_status(total: int, success: int, errors: int) -> SyncRunStatus:
    if errors == 0:
        return SyncRunStatus.COMPLETED
    if success == 0 and total > 0:
        return SyncRunStatus.FAILED
    return SyncRunStatus.PARTIAL


class SyncRunLedger:
    """Audit trail of import/export batches.

    Writes go through their own short-lived sessions so that they neither join
    nor roll back the batch transaction. Every public method is best-effort:
    failures are logged and swallowed, callers never see them.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def start_run(
        self,
        entity: SyncEntity,
        direction: SyncDirection,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        db: Session = self.session_factory()
        try:
            run = SyncRun(
                request_id=uuid.uuid4().hex,
                entity=entity,
                direction=direction,
                status=SyncRunStatus.STARTED,
                started_at=utcnow(),
                meta=meta or {},
            )
            db.add(run)
            db.commit()
            return run.id
        except Exception:
            db.rollback()
            logger.exception("Failed to start sync run for %s/%s", entity.value, direction.value)
            return None
        finally:
            db.close()

    def complete_run(
        self,
        run_id: Optional[int],
        results: Iterable,
        meta: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> Optional[SyncRunStatus]:
        if run_id is None:
            return None

        results = list(results)
        total = len(results)
        success = sum(1 for r in results if r.status == "ok")
        errors = total - success
        status = derive_run_status(total, success, errors)

        db: Session = self.session_factory()
        try:
            run = db.get(SyncRun, run_id)
            if run is None:
                logger.warning("Sync run %s disappeared before completion", run_id)
                return None

            db.add_all([
                SyncRunItem(run_id=run_id, key=r.key, status=r.status, error=r.error)
                for r in results
            ])
            run.total_count = total
            run.success_count = success
            run.error_count = errors
            run.status = status
            run.finished_at = utcnow()
            if meta:
                run.meta = {**(run.meta or {}), **meta}
            if notes:
                run.notes = notes
            db.commit()
            return status
        except Exception:
            db.rollback()
            logger.exception("Failed to complete sync run %s", run_id)
            return None
        finally:
            db.close()

    def fail_run(self, run_id: Optional[int], error: str, meta: Optional[Dict[str, Any]] = None) -> None:
        if run_id is None:
            return

        db: Session = self.session_factory()
        try:
            run = db.get(SyncRun, run_id)
            if run is None:
                logger.warning("Sync run %s disappeared before failure was recorded", run_id)
                return
            run.status = SyncRunStatus.FAILED
            run.finished_at = utcnow()
            run.meta = {**(run.meta or {}), **(meta or {}), "error": error}
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to mark sync run %s as failed", run_id)
        finally:
            db.close()


def get_sync_ledger() -> SyncRunLedger:
    return SyncRunLedger(SessionLocal)


def list_runs(
    db: Session,
    entity: Optional[SyncEntity] = None,
    direction: Optional[SyncDirection] = None,
    status: Optional[SyncRunStatus] = None,
    limit: int = 50,
) -> List[SyncRun]:
    query = db.query(SyncRun)
    if entity is not None:
        query = query.filter(SyncRun.entity == entity)
    if direction is not None:
        query = query.filter(SyncRun.direction == direction)
    if status is not None:
        query = query.filter(SyncRun.status == status)
    return query.order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit).all()


def get_run_items(db: Session, run_id: int, limit: int) -> List[SyncRunItem]:
    return (
        db.query(SyncRunItem)
        .filter(SyncRunItem.run_id == run_id)
        .order_by(SyncRunItem.id.asc())
        .limit(limit)
        .all()
    )
