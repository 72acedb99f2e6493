"""Agreement sets: an optional price type, a contract and the agreement on top.

Every link of the agreement is a hard dependency when it is supplied. Lookups
go through per-batch caches first so that a price type or contract created by
an earlier item is visible to later ones.
"""
import logging
from typing import List, Sequence

from sqlalchemy.orm import Session

from ledger_sync.models.counterparty import ClientAgreement, ClientContract, Counterparty, PriceType
from ledger_sync.models.stock import Warehouse
from ledger_sync.schemas.onec import AgreementSetItem
from ledger_sync.services.reconciler import GuidCache, ItemResult, process_items, upsert_by_guid
from ledger_sync.utils.timeutils import as_utc

logger = logging.getLogger(__name__)


def reconcile_agreements(db: Session, items: Sequence[AgreementSetItem]) -> List[ItemResult]:
    counterparties = GuidCache(db, Counterparty)
    price_types = GuidCache(db, PriceType)
    warehouses = GuidCache(db, Warehouse)
    contracts = GuidCache(db, ClientContract)

    def save_set(item: AgreementSetItem) -> ItemResult:
        key = item.agreement.guid
        created = []

        price_type_id = None
        if item.price_type:
            price_type = upsert_by_guid(db, PriceType, item.price_type.guid, {
                "name": item.price_type.name,
                "code": item.price_type.code,
                "is_active": item.price_type.is_active if item.price_type.is_active is not None else True,
            })
            price_type_id = price_type.id
            created.append((price_types, price_type.guid, price_type.id))

        contract_in = item.contract
        contract_counterparty_id = counterparties.resolve(contract_in.counterparty_guid)
        if contract_counterparty_id is None:
            return ItemResult.fail(key, f"Counterparty {contract_in.counterparty_guid} not found")

        contract = upsert_by_guid(db, ClientContract, contract_in.guid, {
            "counterparty_id": contract_counterparty_id,
            "number": contract_in.number,
            "date": as_utc(contract_in.date),
            "valid_from": as_utc(contract_in.valid_from),
            "valid_to": as_utc(contract_in.valid_to),
            "is_active": contract_in.is_active if contract_in.is_active is not None else True,
            "comment": contract_in.comment,
        })
        created.append((contracts, contract.guid, contract.id))

        agreement_in = item.agreement
        if agreement_in.price_type_guid:
            price_type_id = price_types.resolve(agreement_in.price_type_guid)
            if price_type_id is None:
                return ItemResult.fail(key, f"Price type {agreement_in.price_type_guid} not found")

        warehouse_id = None
        if agreement_in.warehouse_guid:
            warehouse_id = warehouses.resolve(agreement_in.warehouse_guid)
            if warehouse_id is None:
                return ItemResult.fail(key, f"Warehouse {agreement_in.warehouse_guid} not found")

        counterparty_id = contract_counterparty_id
        if agreement_in.counterparty_guid:
            counterparty_id = counterparties.resolve(agreement_in.counterparty_guid)
            if counterparty_id is None:
                return ItemResult.fail(key, f"Counterparty {agreement_in.counterparty_guid} not found")
            if counterparty_id != contract_counterparty_id:
                return ItemResult.fail(
                    key,
                    f"Agreement counterparty {agreement_in.counterparty_guid} does not match "
                    f"contract counterparty {contract_in.counterparty_guid}",
                )

        contract_id = contract.id
        if agreement_in.contract_guid and agreement_in.contract_guid != contract_in.guid:
            contract_id = contracts.resolve(agreement_in.contract_guid)
            if contract_id is None:
                return ItemResult.fail(key, f"Contract {agreement_in.contract_guid} not found")

        upsert_by_guid(db, ClientAgreement, agreement_in.guid, {
            "name": agreement_in.name,
            "counterparty_id": counterparty_id,
            "contract_id": contract_id,
            "price_type_id": price_type_id,
            "warehouse_id": warehouse_id,
            "currency": agreement_in.currency,
            "is_active": agreement_in.is_active if agreement_in.is_active is not None else True,
        })

        # only now are the rows above certain to survive the savepoint
        for cache, guid, row_id in created:
            cache.remember(guid, row_id)
        return ItemResult.ok(key)

    return process_items(db, items, lambda i: i.agreement.guid, save_set, "Failed to upsert agreement set")
