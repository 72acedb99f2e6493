"""Generic batch reconciliation protocol.

A batch is validated as a whole, then every item is upserted inside its own
SAVEPOINT within one session transaction. An item either yields
``ItemResult.ok`` or ``ItemResult.fail``; a failed item rolls back only its own
writes and the loop moves on. The outer transaction commits whatever
succeeded.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_sync.exceptions import SchemaValidationError
from ledger_sync.models.sync import SyncDirection, SyncEntity
from ledger_sync.services.sync_ledger import SyncRunLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemResult:
    key: str
    status: str
    error: Optional[str] = None

    @classmethod
    def ok(cls, key: str) -> "ItemResult":
        return cls(key=key, status="ok")

    @classmethod
    def fail(cls, key: str, error: str) -> "ItemResult":
        return cls(key=key, status="error", error=error)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    def as_dict(self) -> Dict[str, Any]:
        data = {"key": self.key, "status": self.status}
        if self.error is not None:
            data["error"] = self.error
        return data


# Expected per-item breakage: constraint violations, bad numerics
ITEM_ERRORS = (SQLAlchemyError, ValueError, ArithmeticError)


def process_item(db: Session, key: str, step: Callable[[], ItemResult], failure_message: str) -> ItemResult:
    savepoint = db.begin_nested()
    try:
        result = step()
    except ITEM_ERRORS:
        savepoint.rollback()
        logger.exception("%s: %s", failure_message, key)
        return ItemResult.fail(key, failure_message)

    if result.is_ok:
        savepoint.commit()
    else:
        savepoint.rollback()
        logger.warning("Batch item %s rejected: %s", result.key, result.error)
    return result


def process_items(
    db: Session,
    items: Iterable[Any],
    key_of: Callable[[Any], str],
    step: Callable[[Any], ItemResult],
    failure_message: str,
) -> List[ItemResult]:
    return [
        process_item(db, key_of(item), lambda item=item: step(item), failure_message)
        for item in items
    ]


def upsert_where(db: Session, model, match: Dict[str, Any], values: Dict[str, Any]):
    """Create-if-absent else full replace of ``values`` on the row equal to ``match``.

    ``None`` in ``match`` compares with IS NULL, so natural keys with open
    dimensions still find their row.
    """
    query = db.query(model)
    for field, value in match.items():
        column = getattr(model, field)
        query = query.filter(column.is_(None) if value is None else column == value)
    row = query.first()

    if row is None:
        row = model(**match, **values)
        db.add(row)
    else:
        for field, value in values.items():
            setattr(row, field, value)
    db.flush()
    return row


def upsert_by_guid(db: Session, model, guid: str, values: Dict[str, Any]):
    return upsert_where(db, model, {"guid": guid}, values)


def insert_row(db: Session, model, values: Dict[str, Any]):
    row = model(**values)
    db.add(row)
    db.flush()
    return row


def ids_by_guid(db: Session, model, guids: Iterable[str]) -> Dict[str, int]:
    guids = {g for g in guids if g}
    if not guids:
        return {}
    rows = db.query(model.guid, model.id).filter(model.guid.in_(guids)).all()
    return {guid: row_id for guid, row_id in rows}


class GuidCache:
    """GUID -> id lookups that prefer rows already upserted in this batch.

    Only ``remember`` fills the cache. Store hits are not kept, because the row
    may have been flushed by the current item and vanish with its savepoint.
    """

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model
        self._ids: Dict[str, int] = {}

    def remember(self, guid: str, row_id: int) -> None:
        self._ids[guid] = row_id

    def resolve(self, guid: Optional[str]) -> Optional[int]:
        if not guid:
            return None
        if guid in self._ids:
            return self._ids[guid]
        row = self.db.query(self.model.id).filter(self.model.guid == guid).first()
        return row[0] if row is not None else None


def batch_response(results: Sequence[ItemResult]) -> Dict[str, Any]:
    return {"success": True, "count": len(results), "results": [r.as_dict() for r in results]}


def validate_payload(schema: Type[BaseModel], payload: Any) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise SchemaValidationError(json.loads(exc.json(include_url=False)))


def run_batch(
    db: Session,
    ledger: SyncRunLedger,
    entity: SyncEntity,
    schema: Type[BaseModel],
    payload: Any,
    reconcile: Callable[[Session, Any], List[ItemResult]],
    direction: SyncDirection = SyncDirection.IMPORT,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    run_id = ledger.start_run(entity, direction, meta)

    try:
        batch = validate_payload(schema, payload)
    except SchemaValidationError as exc:
        ledger.fail_run(run_id, exc.message, {"details": exc.details})
        raise

    try:
        results = reconcile(db, batch.items)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Unexpected error in %s batch", entity.value)
        ledger.fail_run(run_id, str(exc) or exc.__class__.__name__)
        raise

    failed = sum(1 for r in results if not r.is_ok)
    if failed:
        logger.warning("%s batch finished with %s/%s failed items", entity.value, failed, len(results))
    else:
        logger.info("%s batch finished, %s items", entity.value, len(results))

    ledger.complete_run(run_id, results)
    return batch_response(results)
