import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, Enum, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base


class SyncDirection(str, enum.Enum):
    IMPORT = "IMPORT"
    EXPORT = "EXPORT"


class SyncRunStatus(str, enum.Enum):
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class SyncEntity(str, enum.Enum):
    NOMENCLATURE = "NOMENCLATURE"
    STOCK = "STOCK"
    COUNTERPARTIES = "COUNTERPARTIES"
    WAREHOUSES = "WAREHOUSES"
    AGREEMENTS = "AGREEMENTS"
    PRODUCT_PRICES = "PRODUCT_PRICES"
    SPECIAL_PRICES = "SPECIAL_PRICES"
    ORDERS_EXPORT = "ORDERS_EXPORT"
    ORDER_ACK = "ORDER_ACK"
    ORDER_STATUS = "ORDER_STATUS"


# One audited execution of a batch import or export action.
# Rows are created when the batch starts, finalised at the end and never deleted.
class SyncRun(Base):
    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(64), nullable=False, index=True)
    entity = Column(Enum(SyncEntity, name="sync_entity"), nullable=False, index=True)
    direction = Column(Enum(SyncDirection, name="sync_direction"), nullable=False, index=True)
    status = Column(Enum(SyncRunStatus, name="sync_run_status"), nullable=False, default=SyncRunStatus.STARTED, index=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    total_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    error_count = Column(Integer, nullable=False, default=0)

    # JSON container for flexible context data (client ip, filters, error message)
    meta = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship("SyncRunItem", back_populates="run", order_by="SyncRunItem.id")


# Outcome for a single key inside a run
class SyncRunItem(Base):
    __tablename__ = "sync_run_items"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(Integer, ForeignKey("sync_runs.id"), nullable=False, index=True)
    key = Column(String, nullable=False)
    status = Column(String(10), nullable=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    run = relationship("SyncRun", back_populates="items")
