"""
Order service with transactional logic.
Handles checkout, direct order creation, cancellation and the status lifecycle.
"""
import enum
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session

from storefront.context import CartOwner, RequestContext
from storefront.database import unit_of_work
from storefront.exceptions import (
    EmptyCartError, CheckoutBlockedError, ForbiddenError, InvalidArgumentError,
    InvalidStateError, NotFoundError
)
from storefront.models import Order, OrderItem, OrderStatus
from storefront.services import cart_service, inventory_service
from storefront.utils.formatters import CENT, iso, money_str
from storefront.utils.pagination import (
    SortOrder, paginated, parse_amount, parse_datetime, parse_enum, parse_page
)

logger = logging.getLogger(__name__)

CHECKOUT_NOTES = 'Order created from cart'


class OrderSortBy(enum.Enum):
    CREATED_AT = 'createdAt'
    UPDATED_AT = 'updatedAt'
    TOTAL = 'total'
    STATUS = 'status'


_SORT_COLUMNS = {
    OrderSortBy.CREATED_AT: Order.created_at,
    OrderSortBy.UPDATED_AT: Order.updated_at,
    OrderSortBy.TOTAL: Order.total,
    OrderSortBy.STATUS: Order.status,
}


# =====================================================
# HELPERS
# =====================================================

def _load_order(session: Session, order_id: int, lock: bool = False) -> Order:
    query = session.query(Order).filter(Order.id == order_id)
    if lock:
        query = query.with_for_update()
    order = query.populate_existing().first()
    if not order:
        raise NotFoundError(f'Order with ID {order_id} not found')
    return order


def _check_access(ctx: RequestContext, order: Order, message: str) -> None:
    if not ctx.is_admin and order.user_id != ctx.user_id:
        raise ForbiddenError(message)


def _normalize_lines(items: Iterable[Dict[str, Any]]) -> List[Tuple[int, int]]:
    """[{productId, quantity}, ...] -> [(product_id, quantity), ...]"""
    lines = []
    for raw in items or []:
        if not isinstance(raw, dict):
            raise InvalidArgumentError('Each order item must be an object')
        product_id = raw.get('productId')
        quantity = raw.get('quantity')
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise InvalidArgumentError('productId must be an integer')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidArgumentError('Quantity must be greater than 0')
        lines.append((product_id, quantity))
    if not lines:
        raise InvalidArgumentError('Order must contain at least one item')
    return lines


def _validate_notes(notes: Any) -> Optional[str]:
    if notes is not None and not isinstance(notes, str):
        raise InvalidArgumentError('notes must be a string')
    return notes


def _place_order(session: Session, user_id: int, lines: List[Tuple[int, int]], notes: Optional[str]) -> Order:
    """
    Reserve stock for every line and create the order with price snapshots.

    Runs inside the caller's unit of work: if any reservation fails, nothing
    reserved before it survives the rollback. Lines are reserved in product
    id order so concurrent orders lock rows in the same order.
    """
    order_lines = []
    total = Decimal('0.00')

    for product_id, quantity in sorted(lines, key=lambda line: line[0]):
        product = inventory_service.reserve(session, product_id, quantity)
        # Snapshot: the price at this moment, not the one the cart displayed
        unit_price = Decimal(product.price).quantize(CENT)
        subtotal = (unit_price * quantity).quantize(CENT)
        total += subtotal
        order_lines.append((product_id, quantity, unit_price))

    order = Order(
        user_id=user_id,
        status=OrderStatus.PENDING,
        total=total.quantize(CENT),
        notes=notes,
    )
    session.add(order)
    session.flush()

    for product_id, quantity, unit_price in order_lines:
        session.add(OrderItem(
            order_id=order.id,
            product_id=product_id,
            quantity=quantity,
            price=unit_price,
        ))
    session.flush()
    return order


def _cancel_locked(session: Session, order: Order) -> None:
    """Give every line's units back and mark the order CANCELLED."""
    for item in order.items:
        inventory_service.release(session, item.product_id, item.quantity)
    order.status = OrderStatus.CANCELLED


def _reload(session: Session, order: Order) -> Order:
    session.refresh(order)
    return order


# =====================================================
# WORKFLOWS
# =====================================================

def checkout(session: Session, ctx: RequestContext) -> Order:
    """
    Convert the caller's cart into an order.

    1. Empty cart -> EmptyCartError.
    2. Any validation issue -> CheckoutBlockedError with the full issue list.
    3. In one transaction: reserve every line (stock is re-checked here, the
       validation above is only a pre-flight), create the order, clear the cart.

    A lost stock race rolls everything back and leaves the cart intact.
    """
    user_id = ctx.require_user()

    with unit_of_work(session):
        cart = cart_service.find_cart(session, CartOwner(user_id=user_id), lock=True)
        if not cart or not cart.items:
            raise EmptyCartError()

        issues = cart_service.find_cart_issues(session, cart)
        if issues:
            logger.warning(f"Checkout blocked for user {user_id}: {issues}")
            raise CheckoutBlockedError(issues)

        lines = [(item.product_id, item.quantity) for item in cart.items]
        order = _place_order(session, user_id, lines, CHECKOUT_NOTES)
        cart_service.clear_items(session, cart)

    logger.info(f"Checkout completed: order {order.id} for user {user_id}, total {order.total}")
    return _reload(session, order)


def create_order(
    session: Session,
    ctx: RequestContext,
    items: List[Dict[str, Any]],
    notes: Optional[str] = None
) -> Order:
    """Create an order from explicit items, bypassing the cart."""
    user_id = ctx.require_user()
    lines = _normalize_lines(items)
    notes = _validate_notes(notes)

    with unit_of_work(session):
        order = _place_order(session, user_id, lines, notes)

    logger.info(f"Order {order.id} created for user {user_id}, total {order.total}")
    return _reload(session, order)


def cancel_order(session: Session, ctx: RequestContext, order_id: int) -> Order:
    """
    Cancel a non-terminal order and restore its stock.

    The order row is locked for the whole transaction, so a second cancel
    waits and then sees CANCELLED: stock is restored exactly once.
    """
    ctx.require_user()

    with unit_of_work(session):
        order = _load_order(session, order_id, lock=True)
        _check_access(ctx, order, 'You can only cancel your own orders')

        if order.status == OrderStatus.DELIVERED:
            raise InvalidStateError('Cannot cancel delivered orders')
        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateError('Order is already cancelled')

        _cancel_locked(session, order)

    logger.info(f"Order {order_id} cancelled by user {ctx.user_id}")
    return _reload(session, order)


_UNSET = object()


def update_order(
    session: Session,
    ctx: RequestContext,
    order_id: int,
    notes: Any = _UNSET,
    status: Optional[OrderStatus] = None
) -> Order:
    """
    Update notes and, for administrators, status.

    Completed or cancelled orders cannot be modified at all. A status change
    must follow the lifecycle edges; moving to CANCELLED runs the
    cancellation so stock is restored.
    """
    ctx.require_user()
    if notes is not _UNSET:
        notes = _validate_notes(notes)

    with unit_of_work(session):
        order = _load_order(session, order_id, lock=True)
        _check_access(ctx, order, 'You can only modify your own orders')

        if status is not None and not ctx.is_admin:
            raise ForbiddenError('Only administrators can change order status')
        if order.is_terminal:
            raise InvalidStateError('Cannot modify completed or cancelled orders')

        if status is not None and status != order.status:
            if not order.can_transition_to(status):
                raise InvalidStateError(
                    f'Cannot change order status from {order.status.value} to {status.value}'
                )
            if status == OrderStatus.CANCELLED:
                _cancel_locked(session, order)
            else:
                order.status = status
            logger.info(f"Order {order_id} status -> {status.value}")

        if notes is not _UNSET:
            order.notes = notes

    return _reload(session, order)


def update_order_status(session: Session, order_id: int, status: OrderStatus) -> Order:
    """
    Administrative status set.

    Never moves an order away from DELIVERED or CANCELLED, whatever the target.
    """
    with unit_of_work(session):
        order = _load_order(session, order_id, lock=True)

        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateError('Cannot change status of cancelled order')
        if order.status == OrderStatus.DELIVERED:
            raise InvalidStateError('Cannot change status of delivered order')
        if not order.can_transition_to(status):
            raise InvalidStateError(
                f'Cannot change order status from {order.status.value} to {status.value}'
            )

        if status == OrderStatus.CANCELLED:
            _cancel_locked(session, order)
        else:
            order.status = status

    logger.info(f"Order {order_id} status set to {status.value}")
    return _reload(session, order)


# =====================================================
# QUERIES
# =====================================================

def get_order(session: Session, ctx: RequestContext, order_id: int) -> Order:
    ctx.require_user()
    order = _load_order(session, order_id)
    _check_access(ctx, order, 'You can only access your own orders')
    return order


def list_orders(
    session: Session,
    ctx: RequestContext,
    page=None,
    limit=None,
    status=None,
    user_id=None,
    start_date=None,
    end_date=None,
    min_total=None,
    max_total=None,
    sort_by=None,
    sort_order=None,
    own_only: bool = False,
    max_limit: int = 100
) -> Dict[str, Any]:
    """
    Paginated order listing.

    Non-admins (and anyone listing with ``own_only``) only ever see their own
    orders; admins may filter by ``user_id`` or see everything.
    """
    ctx.require_user()
    page_request = parse_page(page, limit, max_limit=max_limit)
    status = parse_enum(OrderStatus, status, 'status')
    sort_by = parse_enum(OrderSortBy, sort_by, 'sortBy', default=OrderSortBy.CREATED_AT)
    sort_order = parse_enum(SortOrder, sort_order, 'sortOrder', default=SortOrder.DESC)
    start = parse_datetime(start_date, 'startDate')
    end = parse_datetime(end_date, 'endDate')
    min_total = parse_amount(min_total, 'minTotal')
    max_total = parse_amount(max_total, 'maxTotal')

    query = session.query(Order)
    if own_only or not ctx.is_admin:
        query = query.filter(Order.user_id == ctx.user_id)
    elif user_id not in (None, ''):
        try:
            query = query.filter(Order.user_id == int(user_id))
        except (TypeError, ValueError):
            raise InvalidArgumentError('userId must be an integer')

    if status:
        query = query.filter(Order.status == status)
    if start:
        query = query.filter(Order.created_at >= start)
    if end:
        query = query.filter(Order.created_at <= end)
    if min_total is not None:
        query = query.filter(Order.total >= min_total)
    if max_total is not None:
        query = query.filter(Order.total <= max_total)

    total = query.count()

    direction = asc if sort_order == SortOrder.ASC else desc
    orders = (
        query.order_by(direction(_SORT_COLUMNS[sort_by]), direction(Order.id))
        .offset(page_request.offset)
        .limit(page_request.limit)
        .all()
    )

    return paginated([serialize_order(o) for o in orders], total, page_request)


def get_stats(session: Session, ctx: RequestContext, own_only: bool = False) -> Dict[str, Any]:
    """Order counts and revenue; non-admins only see their own figures."""
    ctx.require_user()
    filters = []
    if own_only or not ctx.is_admin:
        filters.append(Order.user_id == ctx.user_id)

    total_orders = session.query(func.count(Order.id)).filter(*filters).scalar() or 0
    pending = session.query(func.count(Order.id)).filter(
        *filters, Order.status == OrderStatus.PENDING
    ).scalar() or 0
    completed = session.query(func.count(Order.id)).filter(
        *filters, Order.status == OrderStatus.DELIVERED
    ).scalar() or 0
    revenue = session.query(func.coalesce(func.sum(Order.total), 0)).filter(*filters).scalar()

    revenue = Decimal(str(revenue or 0)).quantize(CENT)
    average = (revenue / total_orders).quantize(CENT) if total_orders else Decimal('0.00')

    return {
        'totalOrders': total_orders,
        'pendingOrders': pending,
        'completedOrders': completed,
        'totalRevenue': money_str(revenue),
        'averageOrderValue': money_str(average),
    }


# =====================================================
# SERIALIZATION
# =====================================================

def serialize_order(order: Order) -> Dict[str, Any]:
    user = order.user
    return {
        'id': order.id,
        'userId': order.user_id,
        'status': order.status.value,
        'total': money_str(order.total),
        'notes': order.notes,
        'createdAt': iso(order.created_at),
        'updatedAt': iso(order.updated_at),
        'user': {
            'id': user.id,
            'email': user.email,
            'username': user.username,
            'firstName': user.first_name,
            'lastName': user.last_name,
        } if user else None,
        'items': [
            {
                'id': item.id,
                'productId': item.product_id,
                'quantity': item.quantity,
                'price': money_str(item.price),
                'subtotal': money_str(item.subtotal),
                'product': {
                    'id': item.product.id,
                    'name': item.product.name,
                    'category': item.product.category,
                    'imageUrl': item.product.image_url,
                } if item.product else None,
            }
            for item in order.items
        ],
    }
