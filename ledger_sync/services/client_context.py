"""Buyer commercial context.

A context is the set of counterparty, agreement, contract, warehouse, price
type and delivery address a buyer acts under. Each dimension is taken from
the request when supplied (``None`` meaning "explicitly none") or from the
buyer's ClientProfile defaults otherwise. The counterparty follows from the
agreement, contract and delivery address links and every link must agree.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ledger_sync.exceptions import DomainValidationError, NotFoundError
from ledger_sync.models.client import ClientProfile
from ledger_sync.models.counterparty import (
    ClientAgreement,
    ClientContract,
    Counterparty,
    DeliveryAddress,
    PriceType,
)
from ledger_sync.models.stock import Warehouse
from ledger_sync.services.price_resolver import PricingContext, load_active

logger = logging.getLogger(__name__)

# dimension -> (model, profile attribute, label)
DIMENSIONS = {
    "agreement": (ClientAgreement, "active_agreement", "Agreement"),
    "contract": (ClientContract, "active_contract", "Contract"),
    "warehouse": (Warehouse, "active_warehouse", "Warehouse"),
    "price_type": (PriceType, "active_price_type", "Price type"),
    "delivery_address": (DeliveryAddress, "active_delivery_address", "Delivery address"),
}


@dataclass
class ResolvedContext:
    counterparty: Optional[Counterparty] = None
    agreement: Optional[ClientAgreement] = None
    contract: Optional[ClientContract] = None
    warehouse: Optional[Warehouse] = None
    price_type: Optional[PriceType] = None
    delivery_address: Optional[DeliveryAddress] = None

    # Agreement links fill the dimensions left empty
    @property
    def effective_contract(self) -> Optional[ClientContract]:
        if self.contract is not None:
            return self.contract
        return self.agreement.contract if self.agreement else None

    @property
    def effective_warehouse(self) -> Optional[Warehouse]:
        if self.warehouse is not None:
            return self.warehouse
        return self.agreement.warehouse if self.agreement else None

    @property
    def effective_price_type(self) -> Optional[PriceType]:
        if self.price_type is not None:
            return self.price_type
        return self.agreement.price_type if self.agreement else None

    def pricing(self) -> PricingContext:
        price_type = self.effective_price_type
        return PricingContext(
            counterparty_id=self.counterparty.id if self.counterparty else None,
            agreement_id=self.agreement.id if self.agreement else None,
            price_type_id=price_type.id if price_type else None,
        )


def _active_or_none(row):
    return row if row is not None and row.is_active else None


def _active_counterparty(db: Session, counterparty_id: int) -> Counterparty:
    counterparty = db.get(Counterparty, counterparty_id)
    if counterparty is None:
        raise NotFoundError("Counterparty not found")
    if not counterparty.is_active:
        raise DomainValidationError(f"Counterparty {counterparty.guid} is inactive")
    return counterparty


def get_profile(db: Session, user_id: int) -> ClientProfile:
    profile = db.query(ClientProfile).filter(ClientProfile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("Client profile not found")
    return profile


def buyer_counterparty_id(db: Session, user_id: int) -> int:
    profile = get_profile(db, user_id)
    if profile.counterparty_id is None:
        raise DomainValidationError("No counterparty selected for the client")
    return profile.counterparty_id


def _pick(db: Session, profile: ClientProfile, dimension: str, supplied: Mapping[str, Optional[str]]):
    model, attribute, label = DIMENSIONS[dimension]
    if dimension in supplied:
        return load_active(db, model, supplied[dimension], label)
    return _active_or_none(getattr(profile, attribute))


def _bind_counterparty(db: Session, ctx: ResolvedContext) -> None:
    """Derive the counterparty from agreement, contract and address, rejecting conflicts."""
    owners = (
        (ctx.agreement, "Agreement does not belong to the selected counterparty"),
        (ctx.contract, "Contract does not belong to the selected counterparty"),
        (ctx.delivery_address, "Delivery address does not belong to the selected counterparty"),
    )
    for owner, message in owners:
        if owner is None or owner.counterparty_id is None:
            continue
        if ctx.counterparty is not None and ctx.counterparty.id != owner.counterparty_id:
            raise DomainValidationError(message)
        ctx.counterparty = _active_counterparty(db, owner.counterparty_id)


def _check_agreement_links(ctx: ResolvedContext) -> None:
    agreement = ctx.agreement
    if agreement is None:
        return
    if ctx.contract is not None and agreement.contract_id and agreement.contract_id != ctx.contract.id:
        raise DomainValidationError("Contract does not match the agreement")
    if ctx.warehouse is not None and agreement.warehouse_id and agreement.warehouse_id != ctx.warehouse.id:
        raise DomainValidationError("Warehouse does not match the agreement")
    if ctx.price_type is not None and agreement.price_type_id and agreement.price_type_id != ctx.price_type.id:
        raise DomainValidationError("Price type does not match the agreement")


def resolve_order_context(db: Session, user_id: int, supplied: Mapping[str, Optional[str]]) -> ResolvedContext:
    """Context an order is placed under; a counterparty is mandatory."""
    profile = get_profile(db, user_id)

    ctx = ResolvedContext(counterparty=_active_or_none(profile.counterparty))
    for dimension in DIMENSIONS:
        setattr(ctx, dimension, _pick(db, profile, dimension, supplied))

    _bind_counterparty(db, ctx)
    if ctx.counterparty is None:
        raise DomainValidationError("Cannot create an order without a counterparty")
    _check_agreement_links(ctx)
    return ctx


def profile_context(profile: ClientProfile) -> ResolvedContext:
    """Stored defaults as seen by the buyer; inactive rows are ignored."""
    agreement = _active_or_none(profile.active_agreement)
    contract = _active_or_none(profile.active_contract)
    ctx = ResolvedContext(
        agreement=agreement,
        contract=contract,
        warehouse=_active_or_none(profile.active_warehouse),
        price_type=_active_or_none(profile.active_price_type),
        delivery_address=profile.active_delivery_address,
    )
    ctx.counterparty = (
        profile.counterparty
        or (agreement.counterparty if agreement else None)
        or (ctx.effective_contract.counterparty if ctx.effective_contract else None)
    )
    return ctx


def update_profile_context(db: Session, user_id: int, supplied: Mapping[str, Optional[str]]) -> ClientProfile:
    """Apply a partial update of the buyer defaults.

    Keys absent from ``supplied`` keep their stored value. Switching to another
    counterparty drops the agreement, contract and delivery address unless the
    same request names them.
    """
    profile = db.query(ClientProfile).filter(ClientProfile.user_id == user_id).first()
    if profile is None:
        profile = ClientProfile(user_id=user_id)
        db.add(profile)
        db.flush()
        logger.info("Created client profile for user %s", user_id)

    counterparty = _active_or_none(profile.counterparty)
    if "counterparty" in supplied:
        counterparty = load_active(db, Counterparty, supplied["counterparty"], "Counterparty")

    ctx = ResolvedContext(counterparty=counterparty)
    for dimension in DIMENSIONS:
        setattr(ctx, dimension, _pick(db, profile, dimension, supplied))

    new_counterparty_id = counterparty.id if counterparty else None
    if "counterparty" in supplied and profile.counterparty_id != new_counterparty_id:
        for dimension in ("agreement", "contract", "delivery_address"):
            if dimension not in supplied:
                setattr(ctx, dimension, None)

    _bind_counterparty(db, ctx)
    _check_agreement_links(ctx)

    profile.counterparty_id = ctx.counterparty.id if ctx.counterparty else None
    profile.active_agreement_id = ctx.agreement.id if ctx.agreement else None
    profile.active_contract_id = ctx.contract.id if ctx.contract else None
    profile.active_warehouse_id = ctx.warehouse.id if ctx.warehouse else None
    profile.active_price_type_id = ctx.price_type.id if ctx.price_type else None
    profile.active_delivery_address_id = ctx.delivery_address.id if ctx.delivery_address else None
    db.commit()
    db.refresh(profile)
    return profile


def agreement_summary(agreement: ClientAgreement) -> Dict[str, Any]:
    return {
        "guid": agreement.guid,
        "name": agreement.name,
        "currency": agreement.currency,
        "is_active": agreement.is_active,
        "counterparty_guid": agreement.counterparty.guid if agreement.counterparty else None,
        "contract_guid": agreement.contract.guid if agreement.contract else None,
        "warehouse_guid": agreement.warehouse.guid if agreement.warehouse else None,
        "price_type_guid": agreement.price_type.guid if agreement.price_type else None,
    }


def _visible(query, model, include_inactive: bool):
    return query if include_inactive else query.filter(model.is_active.is_(True))


def list_client_agreements(db: Session, user_id: int, include_inactive: bool = False) -> List[Dict[str, Any]]:
    """Agreements of the buyer's counterparty, the candidates for ``PUT /me/context``."""
    counterparty_id = buyer_counterparty_id(db, user_id)
    query = db.query(ClientAgreement).filter(ClientAgreement.counterparty_id == counterparty_id)
    agreements = (
        _visible(query, ClientAgreement, include_inactive)
        .order_by(ClientAgreement.name, ClientAgreement.id)
        .all()
    )
    return [agreement_summary(a) for a in agreements]


def describe_counterparty(db: Session, user_id: int, include_inactive: bool = False) -> Dict[str, Any]:
    counterparty = db.get(Counterparty, buyer_counterparty_id(db, user_id))
    if counterparty is None:
        raise NotFoundError("Counterparty not found")

    addresses = _visible(
        db.query(DeliveryAddress).filter(DeliveryAddress.counterparty_id == counterparty.id),
        DeliveryAddress, include_inactive,
    ).order_by(DeliveryAddress.is_default.desc(), DeliveryAddress.updated_at.desc(), DeliveryAddress.id.desc())
    contracts = _visible(
        db.query(ClientContract).filter(ClientContract.counterparty_id == counterparty.id),
        ClientContract, include_inactive,
    ).order_by(ClientContract.date.desc(), ClientContract.id.desc())

    return {
        "counterparty": {
            "guid": counterparty.guid,
            "name": counterparty.name,
            "full_name": counterparty.full_name,
            "inn": counterparty.inn,
            "kpp": counterparty.kpp,
            "phone": counterparty.phone,
            "email": counterparty.email,
            "is_active": counterparty.is_active,
            "addresses": addresses.all(),
            "contracts": contracts.all(),
            "agreements": list_client_agreements(db, user_id, include_inactive),
        },
    }


def describe_context(profile: ClientProfile) -> Dict[str, Any]:
    ctx = profile_context(profile)
    agreement, contract = ctx.agreement, ctx.effective_contract
    warehouse, price_type = ctx.effective_warehouse, ctx.effective_price_type
    address = ctx.delivery_address

    return {
        "profile": {
            "user_id": profile.user_id,
            "created_at": profile.created_at,
            "updated_at": profile.updated_at,
        },
        "context": {
            "counterparty": ctx.counterparty,
            "agreement": agreement_summary(agreement) if agreement else None,
            "contract": contract,
            "warehouse": warehouse,
            "price_type": price_type,
            "delivery_address": address,
        },
    }
