import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy.orm import Session

from ledger_sync.models.counterparty import ClientAgreement, Counterparty, PriceType
from ledger_sync.models.price import ProductPrice, SpecialPrice
from ledger_sync.models.product import Product
from ledger_sync.schemas.onec import ProductPriceItem, SpecialPriceItem
from ledger_sync.services.reconciler import (
    GuidCache,
    ItemResult,
    process_items,
    upsert_by_guid,
    upsert_where,
)
from ledger_sync.utils.timeutils import as_utc

logger = logging.getLogger(__name__)


def special_price_key(item: SpecialPriceItem) -> str:
    if item.guid:
        return item.guid
    scope = (item.counterparty_guid, item.agreement_guid, item.price_type_guid)
    key = ":".join([item.product_guid, *(guid or "all" for guid in scope)])
    return f"{key}@{item.start_date.isoformat()}" if item.start_date else key


def product_price_key(item: ProductPriceItem) -> str:
    return item.guid or f"{item.product_guid}:{item.price_type_guid or 'all'}"


def _price_values(item: ProductPriceItem) -> Dict[str, Any]:
    return {
        "price": item.price,
        "currency": item.currency,
        "end_date": as_utc(item.end_date),
        "min_qty": item.min_qty,
        "is_active": item.is_active if item.is_active is not None else True,
    }


def _save(db: Session, model, guid, natural_key: Dict[str, Any], values: Dict[str, Any]):
    if guid:
        return upsert_by_guid(db, model, guid, {**natural_key, **values})
    return upsert_where(db, model, {**natural_key, "guid": None}, values)


def reconcile_special_prices(db: Session, items: Sequence[SpecialPriceItem]) -> List[ItemResult]:
    products = GuidCache(db, Product)
    counterparties = GuidCache(db, Counterparty)
    agreements = GuidCache(db, ClientAgreement)
    price_types = GuidCache(db, PriceType)

    def save_price(item: SpecialPriceItem) -> ItemResult:
        key = special_price_key(item)

        product_id = products.resolve(item.product_guid)
        if product_id is None:
            return ItemResult.fail(key, f"Product {item.product_guid} not found")

        # every scoping key is optional, but a supplied one must exist
        scope = {}
        for field, cache, guid, label in (
            ("counterparty_id", counterparties, item.counterparty_guid, "Counterparty"),
            ("agreement_id", agreements, item.agreement_guid, "Agreement"),
            ("price_type_id", price_types, item.price_type_guid, "Price type"),
        ):
            scope[field] = cache.resolve(guid)
            if guid and scope[field] is None:
                return ItemResult.fail(key, f"{label} {guid} not found")

        natural_key = {"product_id": product_id, **scope, "start_date": as_utc(item.start_date)}
        _save(db, SpecialPrice, item.guid, natural_key, _price_values(item))
        return ItemResult.ok(key)

    return process_items(db, items, special_price_key, save_price, "Failed to upsert special price")


def reconcile_product_prices(db: Session, items: Sequence[ProductPriceItem]) -> List[ItemResult]:
    products = GuidCache(db, Product)
    price_types = GuidCache(db, PriceType)

    def save_price(item: ProductPriceItem) -> ItemResult:
        key = product_price_key(item)

        product_id = products.resolve(item.product_guid)
        if product_id is None:
            return ItemResult.fail(key, f"Product {item.product_guid} not found")

        price_type_id = price_types.resolve(item.price_type_guid)
        if item.price_type_guid and price_type_id is None:
            return ItemResult.fail(key, f"Price type {item.price_type_guid} not found")

        natural_key = {
            "product_id": product_id,
            "price_type_id": price_type_id,
            "start_date": as_utc(item.start_date),
        }
        _save(db, ProductPrice, item.guid, natural_key, _price_values(item))
        return ItemResult.ok(key)

    return process_items(db, items, product_price_key, save_price, "Failed to upsert product price")
