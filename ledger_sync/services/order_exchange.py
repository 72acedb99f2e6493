"""Order hand-off to the ledger system.

Pulls are read-only. Acknowledgments are expected at least once: repeating
one re-applies the same state but counts another export attempt. Status
pushes from the ledger system overwrite whatever status the order has.
"""
import logging
from typing import List, Sequence

from sqlalchemy.orm import Session, selectinload

from ledger_sync.exceptions import NotFoundError
from ledger_sync.models.order import Order, OrderItem, OrderStatus
from ledger_sync.schemas.order import OrderAckIn, OrderStatusItem
from ledger_sync.services.reconciler import ItemResult, process_items
from ledger_sync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# Statuses the exchange itself drives; anything else came from the ledger system
LOCAL_STATUSES = (OrderStatus.QUEUED, OrderStatus.SENT_TO_1C)


def _with_details(query):
    return query.options(
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.items).selectinload(OrderItem.package),
        selectinload(Order.items).selectinload(OrderItem.unit),
    )


def list_queued(db: Session, include_sent: bool, limit: int) -> List[Order]:
    statuses = [OrderStatus.QUEUED]
    if include_sent:
        statuses.append(OrderStatus.SENT_TO_1C)
    return (
        _with_details(db.query(Order))
        .filter(Order.status.in_(statuses))
        .order_by(Order.queued_at.asc(), Order.id.asc())
        .limit(limit)
        .all()
    )


def ack_error(ack: OrderAckIn) -> str:
    return (ack.error or "").strip()


def acknowledge_order(db: Session, guid: str, ack: OrderAckIn) -> Order:
    order = db.query(Order).filter(Order.guid == guid).first()
    if order is None:
        raise NotFoundError(f"Order {guid} not found")

    error = ack_error(ack)
    order.export_attempts = (order.export_attempts or 0) + 1

    if error:
        order.last_export_error = error
        order.sent_to_1c_at = None
        # a failed resend must not undo a status the ledger system already reported
        if order.status in LOCAL_STATUSES:
            order.status = OrderStatus.QUEUED
        logger.warning("Order %s export failed (attempt %s): %s", guid, order.export_attempts, error)
    else:
        order.status = ack.status or OrderStatus.SENT_TO_1C
        if ack.number_1c is not None:
            order.number_1c = ack.number_1c
        if ack.date_1c is not None:
            order.date_1c = ack.date_1c
        order.sent_to_1c_at = ack.sent_to_1c_at or utcnow()
        order.last_export_error = None
        logger.info("Order %s acknowledged as %s", guid, order.status.value)

    db.commit()
    db.refresh(order)
    return order


def reconcile_order_statuses(db: Session, items: Sequence[OrderStatusItem]) -> List[ItemResult]:
    def apply_status(item: OrderStatusItem) -> ItemResult:
        order = db.query(Order).filter(Order.guid == item.guid).first()
        if order is None:
            return ItemResult.fail(item.guid, f"Order {item.guid} not found")

        order.status = item.status
        for field in ("number_1c", "date_1c", "comment", "total_amount", "currency"):
            value = getattr(item, field)
            if value is not None:
                setattr(order, field, value)
        order.last_status_sync_at = utcnow()
        db.flush()
        return ItemResult.ok(item.guid)

    return process_items(db, items, lambda i: i.guid, apply_status, "Failed to update order status")
