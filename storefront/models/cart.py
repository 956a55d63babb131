"""Cart model - one per user or per guest session."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base, BigIntPK


class Cart(Base):
    """
    Shopping cart.

    Owned by exactly one of a user id or an opaque guest session id
    (enforced by a CHECK constraint). Created lazily on first use.
    """

    __tablename__ = 'cart'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id', ondelete='CASCADE'), nullable=True, unique=True)
    session_id = Column(String(128), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship('User')
    items = relationship(
        'CartItem',
        back_populates='cart',
        cascade='all, delete-orphan',
        order_by='CartItem.id',
    )

    __table_args__ = (
        CheckConstraint('(user_id IS NULL) <> (session_id IS NULL)', name='ck_cart_single_owner'),
    )

    def is_owned_by(self, owner):
        """Check the cart belongs to the given CartOwner."""
        if owner.user_id is not None:
            return self.user_id == owner.user_id
        return self.session_id is not None and self.session_id == owner.session_id

    def __repr__(self):
        return f"<Cart(id={self.id}, user_id={self.user_id}, session_id={self.session_id!r})>"
