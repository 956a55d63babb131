"""Orders blueprint - order lifecycle and reporting."""
from flask import Blueprint, g, jsonify, request

from storefront.blueprints.metrics import record_order_event
from storefront.database import get_session
from storefront.decorators.permissions import require_role
from storefront.exceptions import InvalidArgumentError
from storefront.middleware import require_login
from storefront.models import OrderStatus
from storefront.services import order_service
from storefront.utils.http import json_body, page_args
from storefront.utils.pagination import parse_enum

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _list(own_only=False):
    args = request.args
    return order_service.list_orders(
        get_session(),
        g.ctx,
        status=args.get('status'),
        user_id=args.get('userId'),
        start_date=args.get('startDate'),
        end_date=args.get('endDate'),
        min_total=args.get('minTotal'),
        max_total=args.get('maxTotal'),
        sort_by=args.get('sortBy'),
        sort_order=args.get('sortOrder'),
        own_only=own_only,
        **page_args()
    )


def _status_arg(data):
    status = data.get('status')
    if status is not None and not isinstance(status, str):
        raise InvalidArgumentError('status must be a string')
    return parse_enum(OrderStatus, status, 'status')


@orders_bp.route('', methods=['POST'])
@require_login
def create_order():
    """Body: {"items": [{"productId": int, "quantity": int}], "notes": str}"""
    data = json_body()
    order = order_service.create_order(get_session(), g.ctx, data.get('items'), data.get('notes'))
    record_order_event('created')
    return jsonify(order_service.serialize_order(order)), 201


@orders_bp.route('', methods=['GET'])
@require_login
def list_orders():
    """Non-admins only ever see their own orders."""
    return jsonify(_list())


@orders_bp.route('/stats', methods=['GET'])
@require_login
def stats():
    return jsonify(order_service.get_stats(get_session(), g.ctx))


@orders_bp.route('/me', methods=['GET'])
@require_login
def my_orders():
    return jsonify(_list(own_only=True))


@orders_bp.route('/admin/all', methods=['GET'])
@require_role('ADMIN')
def admin_all_orders():
    return jsonify(_list())


@orders_bp.route('/admin/stats', methods=['GET'])
@require_role('ADMIN')
def admin_stats():
    return jsonify(order_service.get_stats(get_session(), g.ctx))


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def get_order(order_id):
    order = order_service.get_order(get_session(), g.ctx, order_id)
    return jsonify(order_service.serialize_order(order))


@orders_bp.route('/<int:order_id>', methods=['PATCH', 'PUT'])
@require_login
def update_order(order_id):
    """Body: {"notes": str, "status": str}; status changes are admin-only."""
    data = json_body()
    kwargs = {'status': _status_arg(data)}
    if 'notes' in data:
        kwargs['notes'] = data['notes']
    order = order_service.update_order(get_session(), g.ctx, order_id, **kwargs)
    if kwargs['status'] is not None:
        record_order_event('cancelled' if kwargs['status'] is OrderStatus.CANCELLED else 'status_changed')
    return jsonify(order_service.serialize_order(order))


@orders_bp.route('/<int:order_id>/status', methods=['PATCH', 'PUT'])
@require_role('ADMIN')
def update_status(order_id):
    status = _status_arg(json_body())
    if status is None:
        raise InvalidArgumentError('status is required')
    order = order_service.update_order_status(get_session(), order_id, status)
    record_order_event('cancelled' if status is OrderStatus.CANCELLED else 'status_changed')
    return jsonify(order_service.serialize_order(order))


@orders_bp.route('/<int:order_id>/cancel', methods=['POST', 'PATCH'])
@require_login
def cancel_order(order_id):
    order = order_service.cancel_order(get_session(), g.ctx, order_id)
    record_order_event('cancelled')
    return jsonify(order_service.serialize_order(order))
