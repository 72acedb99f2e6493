import logging
from typing import List, Sequence

from sqlalchemy.orm import Session

from ledger_sync.models.counterparty import Counterparty, DeliveryAddress
from ledger_sync.schemas.onec import AddressIn, CounterpartyItem
from ledger_sync.services.reconciler import ItemResult, insert_row, process_items, upsert_by_guid

logger = logging.getLogger(__name__)


def _save_address(db: Session, counterparty_id: int, address: AddressIn) -> DeliveryAddress:
    values = {
        "counterparty_id": counterparty_id,
        "name": address.name,
        "full_address": address.full_address,
        "city": address.city,
        "street": address.street,
        "house": address.house,
        "building": address.building,
        "apartment": address.apartment,
        "postcode": address.postcode,
        "is_default": bool(address.is_default),
        "is_active": address.is_active if address.is_active is not None else True,
    }
    if address.guid:
        return upsert_by_guid(db, DeliveryAddress, address.guid, values)
    return insert_row(db, DeliveryAddress, values)


def reconcile_counterparties(db: Session, items: Sequence[CounterpartyItem]) -> List[ItemResult]:
    def save_counterparty(item: CounterpartyItem) -> ItemResult:
        counterparty = upsert_by_guid(db, Counterparty, item.guid, {
            "name": item.name,
            "full_name": item.full_name,
            "inn": item.inn,
            "kpp": item.kpp,
            "phone": item.phone,
            "email": item.email,
            "is_active": item.is_active if item.is_active is not None else True,
        })
        for address in item.addresses or []:
            _save_address(db, counterparty.id, address)
        return ItemResult.ok(item.guid)

    return process_items(db, items, lambda c: c.guid, save_counterparty, "Failed to upsert counterparty")
