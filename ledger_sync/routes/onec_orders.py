# routes/onec_orders.py
# Order hand-off: the ledger system polls queued orders, acknowledges them
# and later pushes their authoritative status.
from typing import Any
from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session
import logging

from ledger_sync.config import settings
from ledger_sync.database import get_db
from ledger_sync.exceptions import LedgerSyncError
from ledger_sync.models.sync import SyncDirection, SyncEntity
from ledger_sync.routes.onec import request_meta
from ledger_sync.schemas.common import BatchResponse
from ledger_sync.schemas.order import (
    OrderAckIn, OrderAckResponse, OrderOut, OrderStatusBatch, QueuedOrdersResponse,
)
from ledger_sync.services.order_exchange import (
    ack_error, acknowledge_order, list_queued, reconcile_order_statuses,
)
from ledger_sync.services.reconciler import ItemResult, run_batch, validate_payload
from ledger_sync.services.sync_ledger import SyncRunLedger, get_sync_ledger
from ledger_sync.utils.onec_auth import require_onec_secret

router = APIRouter(prefix="/api/1c/orders", tags=["1C orders"], dependencies=[Depends(require_onec_secret)])
logger = logging.getLogger(__name__)


# List orders waiting for hand-off, oldest first. Read-only.
@router.get("/queued", response_model=QueuedOrdersResponse)
def queued_orders(
    request: Request,
    include_sent: bool = Query(False, alias="includeSent"),
    limit: int = Query(settings.QUEUE_DEFAULT_LIMIT, ge=1, le=settings.QUEUE_MAX_LIMIT),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    run_id = ledger.start_run(
        SyncEntity.ORDERS_EXPORT,
        SyncDirection.EXPORT,
        {**request_meta(request), "includeSent": include_sent, "limit": limit},
    )
    try:
        orders = list_queued(db, include_sent, limit)
    except Exception as exc:
        logger.exception("Failed to list queued orders")
        ledger.fail_run(run_id, str(exc) or exc.__class__.__name__)
        raise

    exported = [OrderOut.model_validate(order) for order in orders]
    # Release the read transaction before the ledger session writes
    db.rollback()

    ledger.complete_run(run_id, [ItemResult.ok(order.guid) for order in exported])
    return {"success": True, "count": len(exported), "orders": exported}


# Acknowledge an exported order (success or failure of the hand-off)
@router.post("/{guid}/ack", response_model=OrderAckResponse)
def ack_order(
    guid: str,
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    run_id = ledger.start_run(
        SyncEntity.ORDER_ACK,
        SyncDirection.EXPORT,
        {**request_meta(request), "orderGuid": guid},
    )
    try:
        ack = validate_payload(OrderAckIn, payload)
        order = acknowledge_order(db, guid, ack)
    except LedgerSyncError as exc:
        db.rollback()
        ledger.fail_run(run_id, exc.message, {"details": getattr(exc, "details", None)})
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("Unexpected error acknowledging order %s", guid)
        ledger.fail_run(run_id, str(exc) or exc.__class__.__name__)
        raise

    acknowledged = OrderOut.model_validate(order)
    db.rollback()

    error = ack_error(ack)
    result = ItemResult.fail(guid, error) if error else ItemResult.ok(guid)
    ledger.complete_run(run_id, [result])
    return {"success": True, "order": acknowledged}


# Authoritative status push from the ledger system
@router.post("/status/batch", response_model=BatchResponse, response_model_exclude_none=True)
def order_status_batch(
    request: Request,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    ledger: SyncRunLedger = Depends(get_sync_ledger),
):
    return run_batch(db, ledger, SyncEntity.ORDER_STATUS, OrderStatusBatch, payload,
                     reconcile_order_statuses, meta=request_meta(request))
