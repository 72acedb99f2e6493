# ledger_sync/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Text, Enum, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

# Lifecycle of an order handed off to the ledger system.
# QUEUED and SENT_TO_1C are driven locally, the rest are reported by the ledger system.
class OrderStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SENT_TO_1C = "SENT_TO_1C"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    PARTIALLY_SHIPPED = "PARTIALLY_SHIPPED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # External correlation identifier shared with the ledger system
    guid = Column(String, unique=True, nullable=False, index=True)
    status = Column(Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.QUEUED, index=True)

    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=False, index=True)
    agreement_id = Column(Integer, ForeignKey("client_agreements.id"), nullable=True)
    contract_id = Column(Integer, ForeignKey("client_contracts.id"), nullable=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    delivery_address_id = Column(Integer, ForeignKey("delivery_addresses.id"), nullable=True)

    comment = Column(Text, nullable=True)
    delivery_date = Column(DateTime(timezone=True), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False, default=0)
    currency = Column(String, nullable=True)

    # Hand-off bookkeeping
    queued_at = Column(DateTime(timezone=True), nullable=True, index=True)
    sent_to_1c_at = Column(DateTime(timezone=True), nullable=True)
    last_status_sync_at = Column(DateTime(timezone=True), nullable=True)
    export_attempts = Column(Integer, nullable=False, default=0)
    last_export_error = Column(Text, nullable=True)

    # Assigned by the ledger system
    number_1c = Column(String, nullable=True)
    date_1c = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    counterparty = relationship("Counterparty")
    agreement = relationship("ClientAgreement")
    contract = relationship("ClientContract")
    warehouse = relationship("Warehouse")
    delivery_address = relationship("DeliveryAddress")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    package_id = Column(Integer, ForeignKey("product_packages.id"), nullable=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)

    quantity = Column(Numeric(18, 4), nullable=False)
    # quantity converted to the product's base unit
    quantity_base = Column(Numeric(18, 4), nullable=False)
    price = Column(Numeric(18, 4), nullable=False)
    line_amount = Column(Numeric(18, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=True)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    package = relationship("ProductPackage")
    unit = relationship("Unit")
