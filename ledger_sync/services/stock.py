import logging
from typing import List, Sequence

from sqlalchemy.orm import Session

from ledger_sync.models.product import Product
from ledger_sync.models.stock import StockBalance, Warehouse
from ledger_sync.schemas.onec import StockItem, WarehouseItem
from ledger_sync.services.reconciler import ItemResult, ids_by_guid, process_items, upsert_by_guid, upsert_where
from ledger_sync.utils.timeutils import as_utc

logger = logging.getLogger(__name__)


def stock_key(item: StockItem) -> str:
    return f"{item.product_guid}:{item.warehouse_guid}"


def reconcile_stock(db: Session, items: Sequence[StockItem]) -> List[ItemResult]:
    # both sides are hard dependencies, load them once for the whole batch
    product_ids = ids_by_guid(db, Product, (item.product_guid for item in items))
    warehouse_ids = ids_by_guid(db, Warehouse, (item.warehouse_guid for item in items))

    def save_balance(item: StockItem) -> ItemResult:
        product_id = product_ids.get(item.product_guid)
        warehouse_id = warehouse_ids.get(item.warehouse_guid)
        if product_id is None or warehouse_id is None:
            return ItemResult.fail(stock_key(item), "Product or warehouse not found")

        upsert_where(
            db,
            StockBalance,
            {"product_id": product_id, "warehouse_id": warehouse_id},
            {
                "quantity": item.quantity,
                "reserved": item.reserved,
                "updated_at": as_utc(item.updated_at),
            },
        )
        return ItemResult.ok(stock_key(item))

    return process_items(db, items, stock_key, save_balance, "Failed to upsert stock")


def reconcile_warehouses(db: Session, items: Sequence[WarehouseItem]) -> List[ItemResult]:
    def save_warehouse(item: WarehouseItem) -> ItemResult:
        upsert_by_guid(db, Warehouse, item.guid, {
            "name": item.name,
            "code": item.code,
            "address": item.address,
            "is_active": item.is_active if item.is_active is not None else True,
            "is_default": bool(item.is_default),
            "is_pickup": bool(item.is_pickup),
        })
        return ItemResult.ok(item.guid)

    return process_items(db, items, lambda w: w.guid, save_warehouse, "Failed to upsert warehouse")
