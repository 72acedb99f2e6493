"""Effective price resolution.

Special prices are pricing rules with three optional scoping keys. A rule
applies to a context when every key it pins equals the resolved value of
that dimension. Surviving rules are ranked by the most specific dimension
they pin (agreement > counterparty > price type > nothing), then by the most
recent start date, then by the most recently created row. When no special
price applies, base product prices for the resolved price type or for no
price type are ranked the same way.
"""
import enum
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ledger_sync.exceptions import DomainValidationError, NotFoundError
from ledger_sync.models.counterparty import ClientAgreement, Counterparty, PriceType
from ledger_sync.models.price import ProductPrice, SpecialPrice
from ledger_sync.models.product import Product
from ledger_sync.utils.timeutils import EARLIEST, as_utc, utcnow, within_window

logger = logging.getLogger(__name__)


class MatchLevel(enum.IntEnum):
    GLOBAL = 1
    PRICE_TYPE = 2
    COUNTERPARTY = 3
    AGREEMENT = 4


class PriceSource(str, enum.Enum):
    SPECIAL_PRICE = "SPECIAL_PRICE"
    PRODUCT_PRICE = "PRODUCT_PRICE"


@dataclass(frozen=True)
class PricingContext:
    """Resolved commercial dimensions a price is looked up for."""

    counterparty_id: Optional[int] = None
    agreement_id: Optional[int] = None
    price_type_id: Optional[int] = None


@dataclass(frozen=True)
class PriceScope:
    """Most specific dimension a pricing rule pins, with the id it pins."""

    level: MatchLevel
    ref_id: Optional[int] = None

    @classmethod
    def of_special(cls, rule: SpecialPrice) -> "PriceScope":
        if rule.agreement_id is not None:
            return cls(MatchLevel.AGREEMENT, rule.agreement_id)
        if rule.counterparty_id is not None:
            return cls(MatchLevel.COUNTERPARTY, rule.counterparty_id)
        if rule.price_type_id is not None:
            return cls(MatchLevel.PRICE_TYPE, rule.price_type_id)
        return cls(MatchLevel.GLOBAL)

    @classmethod
    def of_product_price(cls, rule: ProductPrice) -> "PriceScope":
        if rule.price_type_id is not None:
            return cls(MatchLevel.PRICE_TYPE, rule.price_type_id)
        return cls(MatchLevel.GLOBAL)


@dataclass(frozen=True)
class ResolvedPrice:
    product: Product
    source: PriceSource
    level: MatchLevel
    rule_guid: Optional[str]
    price: Decimal
    currency: Optional[str]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    min_qty: Optional[Decimal]
    at: datetime
    counterparty_guid: Optional[str] = None
    agreement_guid: Optional[str] = None
    price_type_guid: Optional[str] = None


def _pins_match(pinned: Optional[int], resolved: Optional[int]) -> bool:
    # NULL on the rule is a wildcard; a pinned key needs the same resolved value
    return pinned is None or pinned == resolved


def special_price_applies(rule: SpecialPrice, context: PricingContext, at: datetime) -> bool:
    return (
        within_window(at, rule.start_date, rule.end_date)
        and _pins_match(rule.agreement_id, context.agreement_id)
        and _pins_match(rule.counterparty_id, context.counterparty_id)
        and _pins_match(rule.price_type_id, context.price_type_id)
    )


def priority(scope: PriceScope, rule) -> Tuple[int, datetime, int]:
    """Total order over applicable rules; larger wins."""
    start = as_utc(rule.start_date) if rule.start_date is not None else EARLIEST
    return (int(scope.level), start, rule.id)


def _best(ranked: Iterable[Tuple[PriceScope, object]]):
    ranked: List[Tuple[PriceScope, object]] = list(ranked)
    if not ranked:
        return None
    return max(ranked, key=lambda pair: priority(*pair))


def load_active(db: Session, model, guid: Optional[str], label: str):
    """Row by GUID that must exist and be active; a blank GUID means none."""
    if not guid or not guid.strip():
        return None
    row = db.query(model).filter(model.guid == guid).first()
    if row is None:
        raise NotFoundError(f"{label} {guid} not found")
    if not row.is_active:
        raise DomainValidationError(f"{label} {guid} is inactive")
    return row


def load_active_product(db: Session, product_guid: str) -> Product:
    product = load_active(db, Product, product_guid, "Product")
    if product is None:
        raise NotFoundError(f"Product {product_guid} not found")
    return product


def select_effective_price(db: Session, product: Product, context: PricingContext, at: datetime) -> ResolvedPrice:
    """Pick the winning rule for an already validated product and context."""
    special_prices = (
        db.query(SpecialPrice)
        .filter(SpecialPrice.product_id == product.id, SpecialPrice.is_active.is_(True))
        .all()
    )
    best = _best(
        (PriceScope.of_special(rule), rule)
        for rule in special_prices
        if special_price_applies(rule, context, at)
    )
    source = PriceSource.SPECIAL_PRICE

    if best is None:
        query = db.query(ProductPrice).filter(
            ProductPrice.product_id == product.id,
            ProductPrice.is_active.is_(True),
        )
        if context.price_type_id is not None:
            query = query.filter(
                (ProductPrice.price_type_id == context.price_type_id) | ProductPrice.price_type_id.is_(None)
            )
        else:
            query = query.filter(ProductPrice.price_type_id.is_(None))

        best = _best(
            (PriceScope.of_product_price(rule), rule)
            for rule in query.all()
            if within_window(at, rule.start_date, rule.end_date)
        )
        source = PriceSource.PRODUCT_PRICE

    if best is None:
        raise NotFoundError(f"No applicable price for product {product.guid}")

    scope, rule = best
    logger.debug("Product %s priced by %s %s at level %s", product.guid, source.value, rule.id, scope.level.name)
    return ResolvedPrice(
        product=product,
        source=source,
        level=scope.level,
        rule_guid=rule.guid,
        price=Decimal(rule.price),
        currency=rule.currency,
        start_date=as_utc(rule.start_date),
        end_date=as_utc(rule.end_date),
        min_qty=Decimal(rule.min_qty) if rule.min_qty is not None else None,
        at=at,
    )


def resolve_effective_price(
    db: Session,
    product_guid: str,
    counterparty_guid: Optional[str] = None,
    agreement_guid: Optional[str] = None,
    price_type_guid: Optional[str] = None,
    at: Optional[datetime] = None,
) -> ResolvedPrice:
    at = as_utc(at) if at is not None else utcnow()

    product = load_active_product(db, product_guid)
    counterparty = load_active(db, Counterparty, counterparty_guid, "Counterparty")
    agreement = load_active(db, ClientAgreement, agreement_guid, "Agreement")
    price_type = load_active(db, PriceType, price_type_guid, "Price type")

    if agreement is not None:
        if counterparty is not None and agreement.counterparty_id and agreement.counterparty_id != counterparty.id:
            raise DomainValidationError(f"Agreement {agreement.guid} does not belong to counterparty {counterparty.guid}")
        if price_type is not None and agreement.price_type_id and agreement.price_type_id != price_type.id:
            raise DomainValidationError(f"Agreement {agreement.guid} does not use price type {price_type.guid}")

    resolved_counterparty = counterparty or (agreement.counterparty if agreement else None)
    resolved_price_type = price_type or (agreement.price_type if agreement else None)

    context = PricingContext(
        counterparty_id=resolved_counterparty.id if resolved_counterparty else None,
        agreement_id=agreement.id if agreement else None,
        price_type_id=resolved_price_type.id if resolved_price_type else None,
    )
    resolved = select_effective_price(db, product, context, at)
    return replace(
        resolved,
        counterparty_guid=resolved_counterparty.guid if resolved_counterparty else None,
        agreement_guid=agreement.guid if agreement else None,
        price_type_guid=resolved_price_type.guid if resolved_price_type else None,
    )
