"""Product model."""
from sqlalchemy import Column, String, Text, Boolean, Integer, Numeric, DateTime, CheckConstraint, Index, false
from sqlalchemy.sql import func
from storefront.database import Base, BigIntPK


class Product(Base):
    """
    Catalog product.

    ``stock`` is the authoritative available unit count. It is only changed
    through the inventory service so it never goes negative. Products are
    archived instead of deleted because order items keep referencing them.
    """

    __tablename__ = 'product'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(100), nullable=False)
    image_url = Column(String(500), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    archived = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('price >= 0', name='ck_product_price_nonneg'),
        CheckConstraint('stock >= 0', name='ck_product_stock_nonneg'),
        Index('ix_product_category_name', 'category', 'name'),
    )

    @property
    def purchasable(self):
        return self.active and not self.archived

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
