import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ledger_sync.models.product import Product, ProductGroup, ProductPackage, Unit
from ledger_sync.schemas.onec import NomenclatureItem, PackageIn, UnitIn
from ledger_sync.services.reconciler import (
    GuidCache,
    ItemResult,
    insert_row,
    process_items,
    upsert_by_guid,
)

logger = logging.getLogger(__name__)


def order_groups(groups: Sequence[NomenclatureItem]) -> List[NomenclatureItem]:
    """Parents present in the same batch come before their children."""
    first_index: Dict[str, int] = {}
    for index, group in enumerate(groups):
        first_index.setdefault(group.guid, index)

    ordered: List[NomenclatureItem] = []
    placed = set()

    def visit(index: int, trail: frozenset) -> None:
        if index in placed or index in trail:
            return
        parent_index = first_index.get(groups[index].parent_guid)
        if parent_index is not None and parent_index != index:
            visit(parent_index, trail | {index})
        placed.add(index)
        ordered.append(groups[index])

    for index in range(len(groups)):
        visit(index, frozenset())
    return ordered


def upsert_unit(db: Session, unit: UnitIn) -> Unit:
    return upsert_by_guid(db, Unit, unit.guid, {
        "name": unit.name,
        "code": unit.code,
        "symbol": unit.symbol,
    })


def _save_package(db: Session, product_id: int, pack: PackageIn) -> ProductPackage:
    unit = upsert_unit(db, pack.unit)
    values = {
        "product_id": product_id,
        "unit_id": unit.id,
        "name": pack.name,
        "multiplier": pack.multiplier,
        "barcode": pack.barcode,
        "is_default": bool(pack.is_default),
        "sort_order": pack.sort_order or 0,
    }
    if pack.guid:
        return upsert_by_guid(db, ProductPackage, pack.guid, values)
    # no natural key without a GUID, so every resend inserts a new row
    return insert_row(db, ProductPackage, values)


def _parent_id(groups: GuidCache, parent_guid: Optional[str], owner: str) -> Optional[int]:
    parent_id = groups.resolve(parent_guid)
    if parent_guid and parent_id is None:
        logger.warning("Group %s for %s not found, saving without parent", parent_guid, owner)
    return parent_id


def reconcile_nomenclature(db: Session, items: Sequence[NomenclatureItem]) -> List[ItemResult]:
    groups = [item for item in items if item.is_group]
    products = [item for item in items if not item.is_group]
    group_cache = GuidCache(db, ProductGroup)

    def save_group(item: NomenclatureItem) -> ItemResult:
        group = upsert_by_guid(db, ProductGroup, item.guid, {
            "name": item.name,
            "code": item.code,
            "is_active": item.is_active if item.is_active is not None else True,
            "parent_id": _parent_id(group_cache, item.parent_guid, item.guid),
        })
        group_cache.remember(group.guid, group.id)
        return ItemResult.ok(item.guid)

    def save_product(item: NomenclatureItem) -> ItemResult:
        base_unit = upsert_unit(db, item.base_unit) if item.base_unit else None

        product = upsert_by_guid(db, Product, item.guid, {
            "name": item.name,
            "code": item.code,
            "article": item.article,
            "sku": item.sku,
            "is_weight": bool(item.is_weight),
            "is_service": bool(item.is_service),
            "is_active": item.is_active if item.is_active is not None else True,
            "group_id": _parent_id(group_cache, item.parent_guid, item.guid),
            "base_unit_id": base_unit.id if base_unit else None,
        })

        for pack in item.packages or []:
            _save_package(db, product.id, pack)
        return ItemResult.ok(item.guid)

    results = process_items(db, order_groups(groups), lambda g: g.guid, save_group, "Failed to upsert group")
    results += process_items(db, products, lambda p: p.guid, save_product, "Failed to upsert product")
    return results
