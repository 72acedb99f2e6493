# schemas/onec.py
# Payloads pushed by the ledger system into the /api/1c batch endpoints
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import Field

from ledger_sync.schemas.common import CamelModel, SecretEnvelope


class UnitIn(CamelModel):
    guid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    symbol: Optional[str] = None


class PackageIn(CamelModel):
    guid: Optional[str] = None
    name: str = Field(..., min_length=1)
    unit: UnitIn
    multiplier: Decimal = Field(..., gt=0)
    barcode: Optional[str] = None
    is_default: Optional[bool] = None
    sort_order: Optional[int] = None


class NomenclatureItem(CamelModel):
    guid: str = Field(..., min_length=1)
    is_group: bool
    parent_guid: Optional[str] = None
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    is_active: Optional[bool] = None
    article: Optional[str] = None
    sku: Optional[str] = None
    is_weight: Optional[bool] = None
    is_service: Optional[bool] = None
    base_unit: Optional[UnitIn] = None
    packages: Optional[List[PackageIn]] = None


class NomenclatureBatch(SecretEnvelope):
    items: List[NomenclatureItem] = Field(..., min_length=1)


class StockItem(CamelModel):
    product_guid: str = Field(..., min_length=1)
    warehouse_guid: str = Field(..., min_length=1)
    quantity: Decimal
    reserved: Optional[Decimal] = None
    updated_at: datetime


class StockBatch(SecretEnvelope):
    items: List[StockItem] = Field(..., min_length=1)


class AddressIn(CamelModel):
    guid: Optional[str] = None
    name: Optional[str] = None
    full_address: str = Field(..., min_length=1)
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None
    building: Optional[str] = None
    apartment: Optional[str] = None
    postcode: Optional[str] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class CounterpartyItem(CamelModel):
    guid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    full_name: Optional[str] = None
    inn: Optional[str] = None
    kpp: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None
    addresses: Optional[List[AddressIn]] = None


class CounterpartiesBatch(SecretEnvelope):
    items: List[CounterpartyItem] = Field(..., min_length=1)


class WarehouseItem(CamelModel):
    guid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    is_pickup: Optional[bool] = None


class WarehousesBatch(SecretEnvelope):
    items: List[WarehouseItem] = Field(..., min_length=1)


class PriceTypeIn(CamelModel):
    guid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    is_active: Optional[bool] = None


class ContractIn(CamelModel):
    guid: str = Field(..., min_length=1)
    counterparty_guid: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    date: datetime
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: Optional[bool] = None
    comment: Optional[str] = None


class AgreementIn(CamelModel):
    guid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    counterparty_guid: Optional[str] = None
    contract_guid: Optional[str] = None
    price_type_guid: Optional[str] = None
    warehouse_guid: Optional[str] = None
    currency: Optional[str] = None
    is_active: Optional[bool] = None


# price type, contract and agreement arrive together, dependencies first
class AgreementSetItem(CamelModel):
    price_type: Optional[PriceTypeIn] = None
    contract: ContractIn
    agreement: AgreementIn


class AgreementsBatch(SecretEnvelope):
    items: List[AgreementSetItem] = Field(..., min_length=1)


class ProductPriceItem(CamelModel):
    guid: Optional[str] = None
    product_guid: str = Field(..., min_length=1)
    price_type_guid: Optional[str] = None
    price: Decimal
    currency: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_qty: Optional[Decimal] = None
    is_active: Optional[bool] = None


class ProductPricesBatch(SecretEnvelope):
    items: List[ProductPriceItem] = Field(..., min_length=1)


class SpecialPriceItem(ProductPriceItem):
    counterparty_guid: Optional[str] = None
    agreement_guid: Optional[str] = None


class SpecialPricesBatch(SecretEnvelope):
    items: List[SpecialPriceItem] = Field(..., min_length=1)
