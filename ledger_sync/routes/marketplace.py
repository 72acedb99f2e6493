# routes/marketplace.py
# Buyer-facing surface: catalog, price lookup, commercial context and orders
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from ledger_sync.database import get_db
from ledger_sync.models.order import OrderStatus
from ledger_sync.schemas.marketplace import (
    AgreementsOut, ClientContextOut, ClientCounterpartyOut, ContextUpdateIn, PriceResolveOut, ProductOut,
    ProductStockOut, ProductsPage, WarehouseOut, WarehousesOut,
)
from ledger_sync.schemas.order import OrderCreateIn, OrderOut, OrdersPage
from ledger_sync.services.catalog import get_product, get_product_stock, list_products, list_warehouses
from ledger_sync.services.client_context import (
    buyer_counterparty_id, describe_context, describe_counterparty, get_profile, list_client_agreements,
    update_profile_context,
)
from ledger_sync.services.order_creation import create_order, get_order, list_orders
from ledger_sync.services.price_resolver import ResolvedPrice, resolve_effective_price
from ledger_sync.utils.tokenJWT import get_current_buyer_id

router = APIRouter(prefix="/api/marketplace", tags=["Marketplace"])
logger = logging.getLogger(__name__)

# request field -> profile dimension for PUT /me/context
_CONTEXT_UPDATE_FIELDS = {
    "counterparty_guid": "counterparty",
    "active_agreement_guid": "agreement",
    "active_contract_guid": "contract",
    "active_warehouse_guid": "warehouse",
    "active_price_type_guid": "price_type",
    "active_delivery_address_guid": "delivery_address",
}


# Map a resolved price to its response shape
def _price_to_out(resolved: ResolvedPrice) -> PriceResolveOut:
    return PriceResolveOut(
        product={"guid": resolved.product.guid, "name": resolved.product.name},
        context={
            "at": resolved.at,
            "counterparty_guid": resolved.counterparty_guid,
            "agreement_guid": resolved.agreement_guid,
            "price_type_guid": resolved.price_type_guid,
        },
        match={
            "source": resolved.source.value,
            "level": resolved.level.name,
            "rule_guid": resolved.rule_guid,
            "start_date": resolved.start_date,
            "end_date": resolved.end_date,
            "min_qty": resolved.min_qty,
        },
        price={"value": resolved.price, "currency": resolved.currency},
    )


@router.get("/me/context", response_model=ClientContextOut)
def read_context(user_id: int = Depends(get_current_buyer_id), db: Session = Depends(get_db)):
    return describe_context(get_profile(db, user_id))


@router.put("/me/context", response_model=ClientContextOut)
def write_context(
    body: ContextUpdateIn,
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    supplied = {
        dimension: getattr(body, field)
        for field, dimension in _CONTEXT_UPDATE_FIELDS.items()
        if field in body.model_fields_set
    }
    profile = update_profile_context(db, user_id, supplied)
    logger.info("Client context updated for user %s: %s", user_id, sorted(supplied))
    return describe_context(profile)


@router.get("/me/counterparty", response_model=ClientCounterpartyOut)
def read_counterparty(
    include_inactive: bool = Query(False, alias="includeInactive"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    return describe_counterparty(db, user_id, include_inactive)


@router.get("/me/agreements", response_model=AgreementsOut)
def read_agreements(
    include_inactive: bool = Query(False, alias="includeInactive"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    items = list_client_agreements(db, user_id, include_inactive)
    return {"items": items, "total": len(items)}


@router.get("/warehouses", response_model=WarehousesOut)
def warehouses(
    include_inactive: bool = Query(False, alias="includeInactive"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    items = list_warehouses(db, include_inactive)
    return {"items": [WarehouseOut.model_validate(w) for w in items], "total": len(items)}


@router.get("/products", response_model=ProductsPage)
def products(
    search: Optional[str] = Query(None, min_length=1),
    group_guid: Optional[str] = Query(None, alias="groupGuid"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    include_inactive: bool = Query(False, alias="includeInactive"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    items, total = list_products(db, search.strip() if search else None, group_guid, include_inactive, limit, offset)
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/products/{guid}", response_model=ProductOut)
def product_detail(
    guid: str,
    include_inactive_warehouses: bool = Query(False, alias="includeInactiveWarehouses"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    return get_product(db, guid, include_inactive_warehouses)


@router.get("/products/{guid}/stock", response_model=ProductStockOut)
def product_stock(
    guid: str,
    warehouse_guid: Optional[str] = Query(None, alias="warehouseGuid"),
    include_inactive_warehouses: bool = Query(False, alias="includeInactiveWarehouses"),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    return get_product_stock(db, guid, warehouse_guid, include_inactive_warehouses)


@router.get("/prices/resolve", response_model=PriceResolveOut)
def resolve_price(
    product_guid: str = Query(..., alias="productGuid", min_length=1),
    counterparty_guid: Optional[str] = Query(None, alias="counterpartyGuid"),
    agreement_guid: Optional[str] = Query(None, alias="agreementGuid"),
    price_type_guid: Optional[str] = Query(None, alias="priceTypeGuid"),
    at: Optional[datetime] = Query(None),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    resolved = resolve_effective_price(db, product_guid, counterparty_guid, agreement_guid, price_type_guid, at)
    return _price_to_out(resolved)


@router.post("/orders", response_model=OrderOut, status_code=201)
def place_order(
    body: OrderCreateIn,
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    order = create_order(db, user_id, body)
    return OrderOut.model_validate(order)


@router.get("/orders", response_model=OrdersPage)
def my_orders(
    status: Optional[OrderStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    counterparty_id = buyer_counterparty_id(db, user_id)
    orders, total = list_orders(db, counterparty_id, status, limit, offset)
    return {
        "items": [OrderOut.model_validate(o) for o in orders],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/orders/{guid}", response_model=OrderOut)
def my_order(
    guid: str,
    user_id: int = Depends(get_current_buyer_id),
    db: Session = Depends(get_db),
):
    return OrderOut.model_validate(get_order(db, buyer_counterparty_id(db, user_id), guid))
