from datetime import datetime
from typing import List, Optional

from ledger_sync.schemas.common import CamelModel


# Catalog references
class GroupOut(CamelModel):
    guid: str
    name: str
    code: Optional[str] = None
    is_active: bool


class UnitOut(CamelModel):
    guid: str
    name: str
    code: Optional[str] = None
    symbol: Optional[str] = None


class PackageOut(CamelModel):
    guid: Optional[str] = None
    name: str
    multiplier: float
    barcode: Optional[str] = None
    is_default: bool
    sort_order: int
    unit: Optional[UnitOut] = None


class WarehouseOut(CamelModel):
    guid: str
    name: str
    code: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    is_default: bool
    is_pickup: bool
    updated_at: Optional[datetime] = None


class WarehouseStockOut(CamelModel):
    warehouse: WarehouseOut
    quantity: float
    reserved: float
    available: float
    updated_at: Optional[datetime] = None


class StockSummaryOut(CamelModel):
    total: float
    reserved: float
    available: float
    by_warehouse: Optional[List[WarehouseStockOut]] = None


class ProductOut(CamelModel):
    guid: str
    name: str
    code: Optional[str] = None
    article: Optional[str] = None
    sku: Optional[str] = None
    is_weight: bool
    is_service: bool
    is_active: bool
    group: Optional[GroupOut] = None
    base_unit: Optional[UnitOut] = None
    packages: List[PackageOut]
    stock: StockSummaryOut


class ProductsPage(CamelModel):
    items: List[ProductOut]
    total: int
    limit: int
    offset: int


class StockProductRef(CamelModel):
    guid: str
    name: str
    is_active: bool


class StockTotalsOut(CamelModel):
    quantity: float
    reserved: float
    available: float


class ProductStockOut(CamelModel):
    product: StockProductRef
    totals: StockTotalsOut
    items: List[WarehouseStockOut]


class WarehousesOut(CamelModel):
    items: List[WarehouseOut]
    total: int


# Price resolution
class PriceProductRef(CamelModel):
    guid: str
    name: str


class PriceContextOut(CamelModel):
    at: datetime
    counterparty_guid: Optional[str] = None
    agreement_guid: Optional[str] = None
    price_type_guid: Optional[str] = None


class PriceMatchOut(CamelModel):
    source: str
    level: str
    rule_guid: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_qty: Optional[float] = None


class PriceValueOut(CamelModel):
    value: float
    currency: Optional[str] = None


class PriceResolveOut(CamelModel):
    product: PriceProductRef
    context: PriceContextOut
    match: PriceMatchOut
    price: PriceValueOut


# Buyer context
class CounterpartyOut(CamelModel):
    guid: str
    name: str
    is_active: bool


class AgreementOut(CamelModel):
    guid: str
    name: str
    currency: Optional[str] = None
    is_active: bool
    counterparty_guid: Optional[str] = None
    contract_guid: Optional[str] = None
    warehouse_guid: Optional[str] = None
    price_type_guid: Optional[str] = None


class ContractOut(CamelModel):
    guid: str
    number: str
    is_active: bool


class PriceTypeOut(CamelModel):
    guid: str
    name: str
    is_active: bool


class DeliveryAddressOut(CamelModel):
    guid: Optional[str] = None
    full_address: str
    is_active: bool
    is_default: bool


class ContextOut(CamelModel):
    counterparty: Optional[CounterpartyOut] = None
    agreement: Optional[AgreementOut] = None
    contract: Optional[ContractOut] = None
    warehouse: Optional[WarehouseOut] = None
    price_type: Optional[PriceTypeOut] = None
    delivery_address: Optional[DeliveryAddressOut] = None


class ProfileOut(CamelModel):
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClientContextOut(CamelModel):
    profile: ProfileOut
    context: ContextOut


# Partial update: omitted keys keep the stored default, null clears it
class ContextUpdateIn(CamelModel):
    counterparty_guid: Optional[str] = None
    active_agreement_guid: Optional[str] = None
    active_contract_guid: Optional[str] = None
    active_warehouse_guid: Optional[str] = None
    active_price_type_guid: Optional[str] = None
    active_delivery_address_guid: Optional[str] = None


# Counterparty card with everything a buyer may pick under it
class ContractDetailOut(ContractOut):
    date: Optional[datetime] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    comment: Optional[str] = None


class AddressDetailOut(DeliveryAddressOut):
    name: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    house: Optional[str] = None


class CounterpartyDetailOut(CounterpartyOut):
    full_name: Optional[str] = None
    inn: Optional[str] = None
    kpp: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    addresses: List[AddressDetailOut] = []
    contracts: List[ContractDetailOut] = []
    agreements: List[AgreementOut] = []


class ClientCounterpartyOut(CamelModel):
    counterparty: CounterpartyDetailOut


class AgreementsOut(CamelModel):
    items: List[AgreementOut]
    total: int
