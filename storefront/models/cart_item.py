"""Cart Item model."""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntPK


class CartItem(Base):
    """Cart Item - at most one row per (cart, product)."""

    __tablename__ = 'cart_item'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    cart_id = Column(BigInteger, ForeignKey('cart.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    cart = relationship('Cart', back_populates='items')
    product = relationship('Product')

    __table_args__ = (
        UniqueConstraint('cart_id', 'product_id', name='uq_cart_item_cart_product'),
        CheckConstraint('quantity > 0', name='ck_cart_item_quantity_pos'),
    )

    def __repr__(self):
        return f"<CartItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
