# ledger_sync/models/price.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, DateTime, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

# Pricing rule scoped by any combination of counterparty, agreement and price type.
# A NULL scoping column matches every value of that dimension.
class SpecialPrice(Base):
    __tablename__ = "special_prices"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=True)
    agreement_id = Column(Integer, ForeignKey("client_agreements.id"), nullable=True)
    price_type_id = Column(Integer, ForeignKey("price_types.id"), nullable=True)

    price = Column(Numeric(18, 4), nullable=False)
    currency = Column(String, nullable=True)

    # Either bound may be open
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    min_qty = Column(Numeric(18, 4), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product")


# Base list price, optionally bound to a price type
class ProductPrice(Base):
    __tablename__ = "product_prices"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    price_type_id = Column(Integer, ForeignKey("price_types.id"), nullable=True)

    price = Column(Numeric(18, 4), nullable=False)
    currency = Column(String, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    min_qty = Column(Numeric(18, 4), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product")
