import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ledger_sync.exceptions import DomainValidationError, NotFoundError
from ledger_sync.models.product import Product, ProductGroup, ProductPackage
from ledger_sync.models.stock import StockBalance, Warehouse

logger = logging.getLogger(__name__)


def _num(value) -> Decimal:
    return Decimal(value) if value is not None else Decimal(0)


# Represents quantity, reserved and available figures for a set of balances
def stock_totals(balances: Iterable[StockBalance]) -> Dict[str, Decimal]:
    balances = list(balances)
    total = sum((_num(b.quantity) for b in balances), Decimal(0))
    reserved = sum((_num(b.reserved) for b in balances), Decimal(0))
    return {"total": total, "reserved": reserved, "available": total - reserved}


def stock_row(balance: StockBalance) -> Dict[str, Any]:
    quantity, reserved = _num(balance.quantity), _num(balance.reserved)
    return {
        "warehouse": balance.warehouse,
        "quantity": quantity,
        "reserved": reserved,
        "available": quantity - reserved,
        "updated_at": balance.updated_at,
    }


def _visible_balances(product: Product, include_inactive_warehouses: bool) -> List[StockBalance]:
    return [
        b for b in product.stocks
        if include_inactive_warehouses or (b.warehouse is not None and b.warehouse.is_active)
    ]


def product_summary(product: Product, include_inactive_warehouses: bool = False) -> Dict[str, Any]:
    return {
        "guid": product.guid,
        "name": product.name,
        "code": product.code,
        "article": product.article,
        "sku": product.sku,
        "is_weight": product.is_weight,
        "is_service": product.is_service,
        "is_active": product.is_active,
        "group": product.group,
        "base_unit": product.base_unit,
        "packages": product.packages,
        "stock": stock_totals(_visible_balances(product, include_inactive_warehouses)),
    }


def _product_query(db: Session):
    return db.query(Product).options(
        selectinload(Product.group),
        selectinload(Product.base_unit),
        selectinload(Product.packages).selectinload(ProductPackage.unit),
        selectinload(Product.stocks).selectinload(StockBalance.warehouse),
    )


def list_products(
    db: Session,
    search: Optional[str] = None,
    group_guid: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Dict[str, Any]], int]:
    query = _product_query(db)

    if group_guid:
        group = db.query(ProductGroup).filter(ProductGroup.guid == group_guid).first()
        if group is None:
            raise NotFoundError(f"Group {group_guid} not found")
        query = query.filter(Product.group_id == group.id)

    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.code.ilike(pattern),
            Product.article.ilike(pattern),
            Product.sku.ilike(pattern),
        ))

    total = query.count()
    products = query.order_by(Product.name.asc(), Product.id.asc()).offset(offset).limit(limit).all()
    return [product_summary(p) for p in products], total


def get_product(db: Session, guid: str, include_inactive_warehouses: bool = False) -> Dict[str, Any]:
    product = _product_query(db).filter(Product.guid == guid).first()
    if product is None:
        raise NotFoundError(f"Product {guid} not found")

    balances = _visible_balances(product, include_inactive_warehouses)
    detail = product_summary(product, include_inactive_warehouses)
    detail["stock"]["by_warehouse"] = [stock_row(b) for b in balances]
    return detail


def get_product_stock(
    db: Session,
    product_guid: str,
    warehouse_guid: Optional[str] = None,
    include_inactive_warehouses: bool = False,
) -> Dict[str, Any]:
    product = db.query(Product).filter(Product.guid == product_guid).first()
    if product is None:
        raise NotFoundError(f"Product {product_guid} not found")

    query = (
        db.query(StockBalance)
        .join(Warehouse, StockBalance.warehouse_id == Warehouse.id)
        .options(selectinload(StockBalance.warehouse))
        .filter(StockBalance.product_id == product.id)
    )

    if warehouse_guid:
        warehouse = db.query(Warehouse).filter(Warehouse.guid == warehouse_guid).first()
        if warehouse is None:
            raise NotFoundError(f"Warehouse {warehouse_guid} not found")
        if not include_inactive_warehouses and not warehouse.is_active:
            raise DomainValidationError(f"Warehouse {warehouse_guid} is inactive")
        query = query.filter(StockBalance.warehouse_id == warehouse.id)

    if not include_inactive_warehouses:
        query = query.filter(Warehouse.is_active.is_(True))

    balances = query.order_by(Warehouse.name.asc()).all()
    totals = stock_totals(balances)
    return {
        "product": {"guid": product.guid, "name": product.name, "is_active": product.is_active},
        "totals": {"quantity": totals["total"], "reserved": totals["reserved"], "available": totals["available"]},
        "items": [stock_row(b) for b in balances],
    }


def list_warehouses(db: Session, include_inactive: bool = False) -> List[Warehouse]:
    query = db.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    return query.order_by(Warehouse.is_default.desc(), Warehouse.name.asc()).all()
