"""
Inventory ledger - authoritative per-product stock.

Every mutation here runs inside the caller's transaction and never commits
on its own, so a reservation is persisted together with the order (or
cancellation) it supports, or not at all.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.models import Product
from storefront.exceptions import (
    InvalidArgumentError, NotFoundError, ProductUnavailableError, InsufficientStockError
)

logger = logging.getLogger(__name__)


class StockIssueKind(enum.Enum):
    NOT_FOUND = 'product not found'
    INACTIVE = 'product inactive'
    INSUFFICIENT_STOCK = 'insufficient stock'


@dataclass(frozen=True)
class StockIssue:
    """A reason a product cannot be bought in the requested quantity."""
    kind: StockIssueKind
    product_id: int
    product_name: Optional[str]
    requested: int
    available: int = 0

    @property
    def message(self) -> str:
        if self.kind is StockIssueKind.NOT_FOUND:
            return f'Product with ID {self.product_id} not found'
        if self.kind is StockIssueKind.INACTIVE:
            return f'Product "{self.product_name}" is not available'
        return (
            f'Insufficient stock for "{self.product_name}". '
            f'Available: {self.available}, Requested: {self.requested}'
        )

    def to_error(self):
        """The exception a mutating caller raises for this issue."""
        if self.kind is StockIssueKind.NOT_FOUND:
            return NotFoundError(self.message)
        if self.kind is StockIssueKind.INACTIVE:
            return ProductUnavailableError(self.product_name)
        return InsufficientStockError(self.product_name, self.requested, self.available)


def _get_product(session: Session, product_id: int, lock: bool = False) -> Optional[Product]:
    """Load a non-archived product, always refreshing from the database."""
    query = session.query(Product).filter(
        Product.id == product_id,
        Product.archived.is_(False)
    )
    if lock:
        query = query.with_for_update()
    return query.populate_existing().first()


def check_availability(session: Session, product_id: int, quantity: int) -> Optional[StockIssue]:
    """
    Read-only purchasability check.

    Returns None when ``quantity`` units can be bought, otherwise a StockIssue
    so callers can aggregate several problems instead of failing on the first.
    """
    product = _get_product(session, product_id)
    if not product:
        return StockIssue(StockIssueKind.NOT_FOUND, product_id, None, quantity)
    if not product.active:
        return StockIssue(StockIssueKind.INACTIVE, product_id, product.name, quantity, product.stock)
    if product.stock < quantity:
        return StockIssue(
            StockIssueKind.INSUFFICIENT_STOCK, product_id, product.name, quantity, product.stock
        )
    return None


def reserve(session: Session, product_id: int, quantity: int) -> Product:
    """
    Decrement stock by ``quantity``.

    The row is locked FOR UPDATE and the decrement is conditional on
    ``stock >= quantity``, so of two racing reservations for the last unit
    only one matches the update. The loser gets InsufficientStockError and
    stock is left unchanged.
    """
    if quantity is None or quantity < 1:
        raise InvalidArgumentError('Quantity must be greater than 0')

    product = _get_product(session, product_id, lock=True)
    if not product:
        raise NotFoundError(f'Product with ID {product_id} not found')
    if not product.active:
        raise ProductUnavailableError(product.name)

    result = session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.refresh(product)
        logger.warning(
            f"Reservation of {quantity} x product {product_id} rejected, available {product.stock}"
        )
        raise InsufficientStockError(product.name, quantity, product.stock)

    session.refresh(product)
    logger.debug(f"Reserved {quantity} x product {product_id}, stock now {product.stock}")
    return product


def release(session: Session, product_id: int, quantity: int) -> Product:
    """Increment stock by ``quantity``; archived products still get their units back."""
    if quantity is None or quantity < 1:
        raise InvalidArgumentError('Quantity must be greater than 0')

    result = session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(f'Product with ID {product_id} not found')

    product = session.get(Product, product_id, populate_existing=True)
    logger.debug(f"Released {quantity} x product {product_id}, stock now {product.stock}")
    return product


def adjust_stock(session: Session, product_id: int, delta: int) -> Product:
    """Admin stock correction by a signed delta; the result may not go below zero."""
    product = _get_product(session, product_id, lock=True)
    if not product:
        raise NotFoundError(f'Product with ID {product_id} not found')

    if delta == 0:
        return product

    result = session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock + delta >= 0)
        .values(stock=Product.stock + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.refresh(product)
        raise InsufficientStockError(
            product.name, -delta, product.stock,
            message=f'Insufficient stock for "{product.name}". '
                    f'Available: {product.stock}, cannot remove {-delta}',
        )

    session.refresh(product)
    return product
