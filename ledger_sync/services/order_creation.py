import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ledger_sync.exceptions import DomainValidationError, NotFoundError
from ledger_sync.models.order import Order, OrderItem, OrderStatus
from ledger_sync.models.product import ProductPackage
from ledger_sync.schemas.order import OrderCreateIn, OrderItemIn
from ledger_sync.services.client_context import ResolvedContext, resolve_order_context
from ledger_sync.services.price_resolver import load_active_product, select_effective_price
from ledger_sync.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# line amounts are stored in whole cents and the order total is their sum
CENTS = Decimal("0.01")

# request field -> context dimension
_CONTEXT_FIELDS = {
    "agreement_guid": "agreement",
    "contract_guid": "contract",
    "warehouse_guid": "warehouse",
    "price_type_guid": "price_type",
    "delivery_address_guid": "delivery_address",
}


def supplied_dimensions(body: OrderCreateIn) -> Dict[str, Optional[str]]:
    # only fields present in the request override the profile defaults
    return {
        dimension: getattr(body, field)
        for field, dimension in _CONTEXT_FIELDS.items()
        if field in body.model_fields_set
    }


def _prepare_item(db: Session, ctx: ResolvedContext, item: OrderItemIn, at) -> OrderItem:
    product = load_active_product(db, item.product_guid)

    package: Optional[ProductPackage] = None
    if item.package_guid:
        package = (
            db.query(ProductPackage)
            .filter(ProductPackage.guid == item.package_guid, ProductPackage.product_id == product.id)
            .first()
        )
        if package is None:
            raise NotFoundError(f"Package {item.package_guid} for product {item.product_guid} not found")

    if item.unit_guid and package is None:
        if product.base_unit is None or product.base_unit.guid != item.unit_guid:
            raise DomainValidationError(
                f"Unit {item.unit_guid} is allowed only as the base unit of product {product.guid} or with a package"
            )

    multiplier = Decimal(package.multiplier) if package else Decimal(1)
    quantity_base = item.quantity * multiplier

    resolved = select_effective_price(db, product, ctx.pricing(), at)
    if resolved.min_qty is not None and item.quantity < resolved.min_qty:
        minimum = format(resolved.min_qty.normalize(), "f")
        raise DomainValidationError(f"Quantity for product {product.guid} is below the minimum ({minimum})")

    return OrderItem(
        product_id=product.id,
        package_id=package.id if package else None,
        unit_id=package.unit_id if package else product.base_unit_id,
        quantity=item.quantity,
        quantity_base=quantity_base,
        price=resolved.price,
        line_amount=(quantity_base * resolved.price).quantize(CENTS, rounding=ROUND_HALF_UP),
    )


def create_order(db: Session, user_id: int, body: OrderCreateIn) -> Order:
    ctx = resolve_order_context(db, user_id, supplied_dimensions(body))
    created_at = utcnow()

    items: List[OrderItem] = [_prepare_item(db, ctx, item, created_at) for item in body.items]
    total = sum((item.line_amount for item in items), Decimal(0))

    contract = ctx.effective_contract
    warehouse = ctx.effective_warehouse
    currency = body.currency or (ctx.agreement.currency if ctx.agreement else None)

    order = Order(
        guid=str(uuid.uuid4()),
        status=OrderStatus.QUEUED,
        counterparty_id=ctx.counterparty.id,
        agreement_id=ctx.agreement.id if ctx.agreement else None,
        contract_id=contract.id if contract else None,
        warehouse_id=warehouse.id if warehouse else None,
        delivery_address_id=ctx.delivery_address.id if ctx.delivery_address else None,
        comment=body.comment,
        delivery_date=body.delivery_date,
        currency=currency,
        total_amount=total,
        queued_at=created_at,
        export_attempts=0,
        items=items,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info("Order %s queued for counterparty %s, total %s", order.guid, ctx.counterparty.guid, total)
    return order


def list_orders(db: Session, counterparty_id: int, status: Optional[OrderStatus], limit: int, offset: int):
    query = db.query(Order).filter(Order.counterparty_id == counterparty_id)
    if status is not None:
        query = query.filter(Order.status == status)
    total = query.count()
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()
    return orders, total


def get_order(db: Session, counterparty_id: int, guid: str) -> Order:
    order = db.query(Order).filter(Order.guid == guid, Order.counterparty_id == counterparty_id).first()
    if order is None:
        raise NotFoundError(f"Order {guid} not found")
    return order
