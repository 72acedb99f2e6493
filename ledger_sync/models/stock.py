# ledger_sync/models/stock.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, DateTime, UniqueConstraint, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    address = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_pickup = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# Balance of one product in one warehouse as last reported by the ledger system.
# Available quantity is derived (quantity - reserved) and never stored.
class StockBalance(Base):
    __tablename__ = "stock_balances"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = Column(Numeric(18, 4), nullable=False, default=0)
    reserved = Column(Numeric(18, 4), nullable=True)

    # Timestamp reported by the ledger system for this balance
    updated_at = Column(DateTime(timezone=True), nullable=False)

    product = relationship("Product", back_populates="stocks")
    warehouse = relationship("Warehouse")

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_stock_product_warehouse"),
    )
