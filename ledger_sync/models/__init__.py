from ledger_sync.models.product import ProductGroup, Unit, Product, ProductPackage
from ledger_sync.models.stock import Warehouse, StockBalance
from ledger_sync.models.counterparty import (
    Counterparty, DeliveryAddress, PriceType, ClientContract, ClientAgreement,
)
from ledger_sync.models.price import SpecialPrice, ProductPrice
from ledger_sync.models.order import Order, OrderItem, OrderStatus
from ledger_sync.models.client import ClientProfile
from ledger_sync.models.sync import SyncRun, SyncRunItem, SyncRunStatus, SyncDirection, SyncEntity
