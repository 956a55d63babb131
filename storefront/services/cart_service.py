"""Cart Service - persistent carts for users and guest sessions."""
import logging
from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.context import CartOwner, RequestContext
from storefront.database import unit_of_work
from storefront.exceptions import (
    ForbiddenError, InsufficientStockError, InvalidArgumentError, NotFoundError, UnauthorizedError
)
from storefront.models import Cart, CartItem, Product
from storefront.services import inventory_service
from storefront.services.inventory_service import StockIssueKind
from storefront.utils.formatters import CENT, iso, money_str

logger = logging.getLogger(__name__)


def find_cart(session: Session, owner: CartOwner, lock: bool = False) -> Optional[Cart]:
    if owner.user_id is not None:
        query = session.query(Cart).filter(Cart.user_id == owner.user_id)
    else:
        query = session.query(Cart).filter(Cart.session_id == owner.session_id)
    if lock:
        query = query.with_for_update()
    return query.populate_existing().first()


def get_or_create_cart(session: Session, owner: CartOwner, lock: bool = False) -> Cart:
    """
    Get the owner's cart or create an empty one.
    One cart per user, one cart per guest session.
    """
    cart = find_cart(session, owner, lock=lock)
    if not cart:
        cart = Cart(user_id=owner.user_id, session_id=owner.session_id)
        session.add(cart)
        # Solo flush: the caller's unit of work decides whether it is kept
        session.flush()
        logger.info(f"Created cart {cart.id} for {owner.describe()}")
    return cart


def _touch(cart: Cart) -> None:
    cart.updated_at = datetime.now(timezone.utc)


def _validate_product_id(product_id: Any) -> int:
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise InvalidArgumentError('productId must be an integer')
    return product_id


def _validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError('Quantity must be an integer')
    if quantity < 1:
        raise InvalidArgumentError('Quantity must be greater than 0')
    return quantity


def _item_issue_message(item: CartItem, issue) -> str:
    name = item.product.name if item.product else f'#{item.product_id}'
    if issue.kind is StockIssueKind.NOT_FOUND:
        return f'Product "{name}" is no longer available'
    if issue.kind is StockIssueKind.INACTIVE:
        return f'Product "{name}" is no longer active'
    return (
        f'Insufficient stock for "{name}". '
        f'Available: {issue.available}, In cart: {item.quantity}'
    )


# =====================================================
# QUERIES
# =====================================================

def get_cart(session: Session, ctx: RequestContext) -> Cart:
    """Get (or lazily create) the caller's cart."""
    owner = ctx.cart_owner()
    with unit_of_work(session):
        cart = get_or_create_cart(session, owner)
    return cart


def get_summary(session: Session, ctx: RequestContext) -> Dict[str, Any]:
    """
    Totals computed live from current product prices.
    Cart totals are advisory; only order totals are snapshotted.
    """
    cart = get_cart(session, ctx)
    total_items = 0
    total_amount = Decimal('0.00')
    for item in cart.items:
        total_items += item.quantity
        total_amount += Decimal(item.product.price) * item.quantity

    return {
        'totalItems': total_items,
        'totalAmount': money_str(total_amount.quantize(CENT)),
        'itemCount': len(cart.items),
        'isEmpty': len(cart.items) == 0,
    }


def find_cart_issues(session: Session, cart: Cart) -> List[str]:
    """Check every line against current stock and activity."""
    issues = []
    for item in cart.items:
        issue = inventory_service.check_availability(session, item.product_id, item.quantity)
        if issue:
            issues.append(_item_issue_message(item, issue))
    return issues


def validate_cart(session: Session, ctx: RequestContext) -> Dict[str, Any]:
    """Is the caller's cart still fulfillable?"""
    cart = get_cart(session, ctx)
    issues = find_cart_issues(session, cart)
    return {'isValid': not issues, 'issues': issues}


# =====================================================
# COMMANDS
# =====================================================

def add_item(session: Session, ctx: RequestContext, product_id: int, quantity: int) -> Cart:
    """
    Add a product to the cart.

    An existing line for the same product is incremented, and the new total
    is re-checked against current stock.
    """
    product_id = _validate_product_id(product_id)
    quantity = _validate_quantity(quantity)
    owner = ctx.cart_owner()

    with unit_of_work(session):
        issue = inventory_service.check_availability(session, product_id, quantity)
        if issue:
            raise issue.to_error()

        cart = get_or_create_cart(session, owner, lock=True)
        item = session.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product_id
        ).first()

        if item:
            new_quantity = item.quantity + quantity
            issue = inventory_service.check_availability(session, product_id, new_quantity)
            if issue and issue.kind is StockIssueKind.INSUFFICIENT_STOCK:
                raise InsufficientStockError(
                    issue.product_name, new_quantity, issue.available,
                    message=f'Cannot add {quantity} items. Total would be {new_quantity}, '
                            f'but only {issue.available} available',
                )
            if issue:
                raise issue.to_error()
            logger.info(
                f"Product {product_id} already in cart {cart.id}, "
                f"quantity {item.quantity} -> {new_quantity}"
            )
            item.quantity = new_quantity
        else:
            session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
            logger.info(f"Added {quantity} x product {product_id} to cart {cart.id}")

        _touch(cart)

    session.refresh(cart)
    return cart


def update_item_quantity(session: Session, ctx: RequestContext, item_id: int, quantity: int) -> Cart:
    """Set a line's quantity. Zero or negative is rejected, not treated as removal."""
    owner = ctx.cart_owner()

    with unit_of_work(session):
        item = session.query(CartItem).filter(CartItem.id == item_id).first()
        if not item:
            raise NotFoundError(f'Cart item with ID {item_id} not found')
        if not item.cart.is_owned_by(owner):
            raise ForbiddenError('You can only modify your own cart items')

        quantity = _validate_quantity(quantity)
        issue = inventory_service.check_availability(session, item.product_id, quantity)
        if issue:
            raise issue.to_error()

        item.quantity = quantity
        _touch(item.cart)
        cart = item.cart

    session.refresh(cart)
    return cart


def remove_item(session: Session, ctx: RequestContext, item_id: int) -> Cart:
    """Remove a line from one of the caller's carts."""
    owner = ctx.cart_owner()

    with unit_of_work(session):
        query = session.query(CartItem).join(Cart, CartItem.cart_id == Cart.id).filter(CartItem.id == item_id)
        if owner.user_id is not None:
            query = query.filter(Cart.user_id == owner.user_id)
        else:
            query = query.filter(Cart.session_id == owner.session_id)
        item = query.first()
        if not item:
            raise NotFoundError(f'Cart item with ID {item_id} not found')

        cart = item.cart
        session.delete(item)
        _touch(cart)

    session.refresh(cart)
    return cart


def clear_cart(session: Session, ctx: RequestContext) -> Dict[str, str]:
    """Delete every line of the caller's cart; a missing or empty cart is a no-op."""
    owner = ctx.cart_owner()

    with unit_of_work(session):
        cart = find_cart(session, owner)
        if cart:
            clear_items(session, cart)

    return {'message': 'Cart cleared successfully'}


def clear_items(session: Session, cart: Cart) -> None:
    """Delete the cart's lines inside the caller's transaction."""
    session.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
    session.expire(cart, ['items'])
    _touch(cart)


def merge_guest_cart(session: Session, ctx: RequestContext) -> Cart:
    """
    Fold the guest session cart into the authenticated user's cart.

    For a product present in both carts the result is the larger of the two
    quantities, not their sum: the same intent entered twice should not be
    doubled. Lines whose product can no longer cover the quantity are
    skipped. The guest cart is deleted. Everything happens in one
    transaction with the guest cart row locked, so merging the same session
    twice concurrently cannot apply it twice.
    """
    if not ctx.is_authenticated:
        raise UnauthorizedError('User authentication is required to merge carts')
    if not ctx.session_id:
        raise InvalidArgumentError('Session ID is required to merge carts')

    user_owner = CartOwner(user_id=ctx.user_id)
    guest_owner = CartOwner(session_id=ctx.session_id)

    with unit_of_work(session):
        guest_cart = find_cart(session, guest_owner, lock=True)
        user_cart = get_or_create_cart(session, user_owner, lock=True)

        if guest_cart:
            existing = {item.product_id: item for item in user_cart.items}
            merged = 0
            for guest_item in guest_cart.items:
                product = session.query(Product).filter(Product.id == guest_item.product_id).populate_existing().first()
                if not product or not product.purchasable:
                    logger.info(f"Skipping product {guest_item.product_id} while merging: not purchasable")
                    continue

                user_item = existing.get(guest_item.product_id)
                if user_item:
                    new_quantity = max(user_item.quantity, guest_item.quantity)
                    if product.stock >= new_quantity:
                        user_item.quantity = new_quantity
                        merged += 1
                elif product.stock >= guest_item.quantity:
                    session.add(CartItem(
                        cart_id=user_cart.id,
                        product_id=guest_item.product_id,
                        quantity=guest_item.quantity
                    ))
                    merged += 1

            session.delete(guest_cart)
            _touch(user_cart)
            logger.info(
                f"Merged guest cart {guest_cart.id} into cart {user_cart.id} "
                f"({merged} of {len(guest_cart.items)} lines applied)"
            )

    session.refresh(user_cart)
    return user_cart


# =====================================================
# SERIALIZATION
# =====================================================

def serialize_cart(cart: Cart) -> Dict[str, Any]:
    items = sorted(cart.items, key=lambda i: i.id, reverse=True)
    total_amount = Decimal('0.00')
    total_items = 0
    lines = []
    for item in items:
        product = item.product
        subtotal = (Decimal(product.price) * item.quantity).quantize(CENT)
        total_amount += subtotal
        total_items += item.quantity
        lines.append({
            'id': item.id,
            'productId': item.product_id,
            'quantity': item.quantity,
            'addedAt': iso(item.added_at),
            'subtotal': money_str(subtotal),
            'product': {
                'id': product.id,
                'name': product.name,
                'price': money_str(product.price),
                'stock': product.stock,
                'category': product.category,
                'imageUrl': product.image_url,
                'isActive': product.purchasable,
            },
        })

    return {
        'id': cart.id,
        'userId': cart.user_id,
        'sessionId': cart.session_id,
        'items': lines,
        'totalItems': total_items,
        'totalAmount': money_str(total_amount),
        'createdAt': iso(cart.created_at),
        'updatedAt': iso(cart.updated_at),
    }
