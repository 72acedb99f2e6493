# ledger_sync/models/product.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from ledger_sync.database import Base

# Catalog folder from the ledger system; groups may nest through parent_id
class ProductGroup(Base):
    __tablename__ = "product_groups"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Soft link: a missing parent leaves the group at the top level
    parent_id = Column(Integer, ForeignKey("product_groups.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    parent = relationship("ProductGroup", remote_side=[id])


# Unit of measure (piece, kg, box...)
class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    symbol = Column(String, nullable=True)


# Model Product
# A single nomenclature position. Inactive products are hidden from listings
# and cannot be priced or ordered.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, nullable=True, index=True)
    article = Column(String, nullable=True)
    sku = Column(String, nullable=True)

    is_weight = Column(Boolean, nullable=False, default=False)
    is_service = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    group_id = Column(Integer, ForeignKey("product_groups.id"), nullable=True)
    base_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    group = relationship("ProductGroup")
    base_unit = relationship("Unit")
    packages = relationship(
        "ProductPackage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by=lambda: [ProductPackage.is_default.desc(), ProductPackage.sort_order, ProductPackage.name],
    )
    stocks = relationship("StockBalance", back_populates="product")


# Packaging of a product expressed in base units through multiplier.
# At most one package per product is expected to carry is_default (not enforced).
class ProductPackage(Base):
    __tablename__ = "product_packages"

    id = Column(Integer, primary_key=True, index=True)
    # Packages may arrive without a GUID; those rows are insert-only
    guid = Column(String, unique=True, nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    name = Column(String, nullable=False)
    multiplier = Column(Numeric(18, 6), CheckConstraint("multiplier > 0"), nullable=False, default=1)
    barcode = Column(String, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="packages")
    unit = relationship("Unit")
