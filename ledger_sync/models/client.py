# ledger_sync/models/client.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

# Marketplace buyer's commercial defaults. Each active_* link is used when an
# order does not name that dimension explicitly.
class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = Column(Integer, primary_key=True, index=True)
    # Account id issued by the authentication service (bearer token subject)
    user_id = Column(Integer, unique=True, nullable=False, index=True)

    counterparty_id = Column(Integer, ForeignKey("counterparties.id"), nullable=True)
    active_agreement_id = Column(Integer, ForeignKey("client_agreements.id"), nullable=True)
    active_contract_id = Column(Integer, ForeignKey("client_contracts.id"), nullable=True)
    active_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    active_price_type_id = Column(Integer, ForeignKey("price_types.id"), nullable=True)
    active_delivery_address_id = Column(Integer, ForeignKey("delivery_addresses.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    counterparty = relationship("Counterparty")
    active_agreement = relationship("ClientAgreement")
    active_contract = relationship("ClientContract")
    active_warehouse = relationship("Warehouse")
    active_price_type = relationship("PriceType")
    active_delivery_address = relationship("DeliveryAddress")
