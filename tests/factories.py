"""Row builders for seeding the test database."""
from datetime import datetime, timezone
from decimal import Decimal

from ledger_sync.models.client import ClientProfile
from ledger_sync.models.counterparty import (
    ClientAgreement, ClientContract, Counterparty, DeliveryAddress, PriceType,
)
from ledger_sync.models.price import ProductPrice, SpecialPrice
from ledger_sync.models.product import Product, ProductPackage, Unit
from ledger_sync.models.stock import StockBalance, Warehouse

SECRET = "test-secret"


def ts(year, month=1, day=1):
    return datetime(year, month, day, tzinfo=timezone.utc)


def add(db, *rows):
    db.add_all(rows)
    db.commit()
    return rows[0] if len(rows) == 1 else rows


def make_product(db, guid="prod-1", name="Cement M500", is_active=True, unit_guid="unit-pc", packages=()):
    unit = db.query(Unit).filter(Unit.guid == unit_guid).first()
    if unit is None:
        unit = add(db, Unit(guid=unit_guid, name="piece", symbol="pc"))
    product = add(db, Product(guid=guid, name=name, is_active=is_active, base_unit_id=unit.id))
    for pack_guid, multiplier in packages:
        add(db, ProductPackage(guid=pack_guid, product_id=product.id, unit_id=unit.id,
                               name=f"Pack x{multiplier}", multiplier=Decimal(str(multiplier))))
    return product


def make_warehouse(db, guid="wh-1", name="Main", is_active=True, is_default=False):
    return add(db, Warehouse(guid=guid, name=name, is_active=is_active, is_default=is_default))


def make_counterparty(db, guid="cp-1", name="Acme LLC", is_active=True):
    return add(db, Counterparty(guid=guid, name=name, is_active=is_active))


def make_price_type(db, guid="pt-retail", name="Retail", is_active=True):
    return add(db, PriceType(guid=guid, name=name, is_active=is_active))


def make_contract(db, counterparty, guid="ct-1", number="C-1"):
    return add(db, ClientContract(guid=guid, counterparty_id=counterparty.id, number=number, date=ts(2026)))


def make_agreement(db, guid="ag-1", counterparty=None, contract=None, price_type=None, warehouse=None,
                   currency="RUB", is_active=True):
    return add(db, ClientAgreement(
        guid=guid,
        name=f"Agreement {guid}",
        counterparty_id=counterparty.id if counterparty else None,
        contract_id=contract.id if contract else None,
        price_type_id=price_type.id if price_type else None,
        warehouse_id=warehouse.id if warehouse else None,
        currency=currency,
        is_active=is_active,
    ))


def make_address(db, counterparty, guid="addr-1", full_address="1 Main St"):
    return add(db, DeliveryAddress(guid=guid, counterparty_id=counterparty.id, full_address=full_address))


def make_product_price(db, product, price, price_type=None, guid=None, start=None, end=None, min_qty=None):
    return add(db, ProductPrice(
        guid=guid, product_id=product.id, price_type_id=price_type.id if price_type else None,
        price=Decimal(str(price)), currency="RUB", start_date=start, end_date=end,
        min_qty=Decimal(str(min_qty)) if min_qty is not None else None,
    ))


def make_special_price(db, product, price, counterparty=None, agreement=None, price_type=None,
                       guid=None, start=None, end=None, min_qty=None, is_active=True):
    return add(db, SpecialPrice(
        guid=guid, product_id=product.id,
        counterparty_id=counterparty.id if counterparty else None,
        agreement_id=agreement.id if agreement else None,
        price_type_id=price_type.id if price_type else None,
        price=Decimal(str(price)), currency="RUB", start_date=start, end_date=end,
        min_qty=Decimal(str(min_qty)) if min_qty is not None else None,
        is_active=is_active,
    ))


def make_stock(db, product, warehouse, quantity, reserved=None):
    return add(db, StockBalance(
        product_id=product.id, warehouse_id=warehouse.id,
        quantity=Decimal(str(quantity)),
        reserved=Decimal(str(reserved)) if reserved is not None else None,
        updated_at=ts(2026, 3, 1),
    ))


def make_profile(db, user_id=1, counterparty=None, agreement=None, price_type=None, warehouse=None):
    return add(db, ClientProfile(
        user_id=user_id,
        counterparty_id=counterparty.id if counterparty else None,
        active_agreement_id=agreement.id if agreement else None,
        active_price_type_id=price_type.id if price_type else None,
        active_warehouse_id=warehouse.id if warehouse else None,
    ))
