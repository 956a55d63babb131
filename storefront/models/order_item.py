"""Order Item model."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from storefront.database import Base, BigIntPK


class OrderItem(Base):
    """Order Item - quantity plus the unit price snapshotted at creation."""

    __tablename__ = 'order_item'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('customer_order.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_quantity_pos'),
        CheckConstraint('price >= 0', name='ck_order_item_price_nonneg'),
    )

    @property
    def subtotal(self):
        return (Decimal(self.price) * self.quantity).quantize(Decimal('0.01'))

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
