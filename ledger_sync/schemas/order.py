from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import Field

from ledger_sync.models.order import OrderStatus
from ledger_sync.schemas.common import CamelModel, SecretEnvelope


# Input schema for a single order line
class OrderItemIn(CamelModel):
    product_guid: str = Field(..., min_length=1)
    package_guid: Optional[str] = None
    unit_guid: Optional[str] = None
    quantity: Decimal = Field(..., gt=0)


# Input schema for a buyer order. For the *_guid fields null means "none" and
# an omitted field falls back to the buyer's profile default.
class OrderCreateIn(CamelModel):
    agreement_guid: Optional[str] = None
    contract_guid: Optional[str] = None
    warehouse_guid: Optional[str] = None
    delivery_address_guid: Optional[str] = None
    price_type_guid: Optional[str] = None
    delivery_date: Optional[datetime] = None
    comment: Optional[str] = None
    currency: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)


class CounterpartyRef(CamelModel):
    guid: str
    name: str
    inn: Optional[str] = None
    kpp: Optional[str] = None


class AgreementRef(CamelModel):
    guid: str
    name: str
    currency: Optional[str] = None


class ContractRef(CamelModel):
    guid: str
    number: str


class WarehouseRef(CamelModel):
    guid: str
    name: str


class AddressRef(CamelModel):
    guid: Optional[str] = None
    full_address: str


class ProductRef(CamelModel):
    guid: str
    name: str
    code: Optional[str] = None
    article: Optional[str] = None


class PackageRef(CamelModel):
    guid: Optional[str] = None
    name: str
    multiplier: float


class UnitRef(CamelModel):
    guid: str
    name: str
    symbol: Optional[str] = None


# Output schema for an order line
class OrderItemOut(CamelModel):
    product: ProductRef
    package: Optional[PackageRef] = None
    unit: Optional[UnitRef] = None
    quantity: float
    quantity_base: float
    price: float
    line_amount: float
    discount_percent: Optional[float] = None


# Order as seen by the buyer and by the ledger system
class OrderOut(CamelModel):
    guid: str
    status: OrderStatus
    number_1c: Optional[str] = Field(None, alias="number1c")
    date_1c: Optional[datetime] = Field(None, alias="date1c")
    comment: Optional[str] = None
    delivery_date: Optional[datetime] = None
    total_amount: float
    currency: Optional[str] = None
    queued_at: Optional[datetime] = None
    sent_to_1c_at: Optional[datetime] = Field(None, alias="sentTo1cAt")
    last_status_sync_at: Optional[datetime] = None
    export_attempts: int
    last_export_error: Optional[str] = None
    counterparty: CounterpartyRef
    agreement: Optional[AgreementRef] = None
    contract: Optional[ContractRef] = None
    warehouse: Optional[WarehouseRef] = None
    delivery_address: Optional[AddressRef] = None
    items: List[OrderItemOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrdersPage(CamelModel):
    items: List[OrderOut]
    total: int
    limit: int
    offset: int


class QueuedOrdersResponse(CamelModel):
    success: bool
    count: int
    orders: List[OrderOut]


# Acknowledgment from the ledger system; a non-empty error means the hand-off failed
class OrderAckIn(SecretEnvelope):
    status: Optional[OrderStatus] = None
    number_1c: Optional[str] = Field(None, alias="number1c")
    date_1c: Optional[datetime] = Field(None, alias="date1c")
    sent_to_1c_at: Optional[datetime] = Field(None, alias="sentTo1cAt")
    error: Optional[str] = None


class OrderAckResponse(CamelModel):
    success: bool
    order: OrderOut


class OrderStatusItem(CamelModel):
    guid: str = Field(..., min_length=1)
    status: OrderStatus
    number_1c: Optional[str] = Field(None, alias="number1c")
    date_1c: Optional[datetime] = Field(None, alias="date1c")
    comment: Optional[str] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None


class OrderStatusBatch(SecretEnvelope):
    items: List[OrderStatusItem] = Field(..., min_length=1)
