# ledger_sync/models/counterparty.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Text, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

# Legal entity buying in the marketplace, as known to the ledger system
class Counterparty(Base):
    __tablename__ = "counterparties"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    inn = Column(String, nullable=True)
    kpp = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    addresses = relationship("DeliveryAddress", back_populates="counterparty", cascade="all, delete-orphan")
    contracts = relationship("ClientContract", back_populates="counterparty")
    agreements = relationship(
        "ClientAgreement",
        back_populates="counterparty",
        foreign_keys="ClientAgreement.counterparty_id",
    )


class DeliveryAddress(Base):
    __tablename__ = "delivery_addresses"

    id = Column(Integer, primary_key=True, index=True)
    # Addresses without a GUID are insert-only
    guid = Column(String, unique=True, nullable=True, index=True)
    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=False, index=True)

    name = Column(String, nullable=True)
    full_address = Column(String, nullable=False)
    city = Column(String, nullable=True)
    street = Column(String, nullable=True)
    house = Column(String, nullable=True)
    building = Column(String, nullable=True)
    apartment = Column(String, nullable=True)
    postcode = Column(String, nullable=True)

    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    counterparty = relationship("Counterparty", back_populates="addresses")


class PriceType(Base):
    __tablename__ = "price_types"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


# Contract signed with a counterparty; the counterparty link is mandatory
class ClientContract(Base):
    __tablename__ = "client_contracts"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=False, index=True)
    number = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=True)
    valid_to = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    comment = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    counterparty = relationship("Counterparty", back_populates="contracts")


# Commercial agreement: binds counterparty, contract, warehouse and price type
# together. Every link is optional.
class ClientAgreement(Base):
    __tablename__ = "client_agreements"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=True, index=True)
    contract_id = Column(Integer, ForeignKey("client_contracts.id"), nullable=True)
    price_type_id = Column(Integer, ForeignKey("price_types.id"), nullable=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)

    currency = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    counterparty = relationship("Counterparty", back_populates="agreements", foreign_keys=[counterparty_id])
    contract = relationship("ClientContract")
    price_type = relationship("PriceType")
    warehouse = relationship("Warehouse")
