"""Cart blueprint - guest (session header) and user carts, plus checkout."""
from flask import Blueprint, g, jsonify

from storefront.blueprints.metrics import record_checkout, record_order_event
from storefront.database import get_session
from storefront.exceptions import ShopError
from storefront.middleware import require_login
from storefront.services import cart_service, order_service
from storefront.utils.http import json_body

cart_bp = Blueprint('cart', __name__, url_prefix='/cart')


@cart_bp.route('', methods=['GET'])
def get_cart():
    """Caller's cart; created empty on first access."""
    cart = cart_service.get_cart(get_session(), g.ctx)
    return jsonify(cart_service.serialize_cart(cart))


@cart_bp.route('/summary', methods=['GET'])
def summary():
    return jsonify(cart_service.get_summary(get_session(), g.ctx))


@cart_bp.route('/items', methods=['POST'])
def add_item():
    """Body: {"productId": int, "quantity": int}"""
    data = json_body()
    cart = cart_service.add_item(get_session(), g.ctx, data.get('productId'), data.get('quantity'))
    return jsonify(cart_service.serialize_cart(cart)), 201


@cart_bp.route('/items/<int:item_id>', methods=['PATCH', 'PUT'])
def update_item(item_id):
    """Body: {"quantity": int}"""
    cart = cart_service.update_item_quantity(get_session(), g.ctx, item_id, json_body().get('quantity'))
    return jsonify(cart_service.serialize_cart(cart))


@cart_bp.route('/items/<int:item_id>', methods=['DELETE'])
def remove_item(item_id):
    cart = cart_service.remove_item(get_session(), g.ctx, item_id)
    return jsonify(cart_service.serialize_cart(cart))


@cart_bp.route('', methods=['DELETE'])
def clear():
    return jsonify(cart_service.clear_cart(get_session(), g.ctx))


@cart_bp.route('/validate', methods=['GET', 'POST'])
def validate():
    return jsonify(cart_service.validate_cart(get_session(), g.ctx))


@cart_bp.route('/merge', methods=['POST'])
@require_login
def merge():
    """Fold the guest cart named by the session header into the user's cart."""
    cart = cart_service.merge_guest_cart(get_session(), g.ctx)
    return jsonify(cart_service.serialize_cart(cart))


@cart_bp.route('/checkout', methods=['POST'])
@require_login
def checkout():
    try:
        order = order_service.checkout(get_session(), g.ctx)
    except ShopError as e:
        record_checkout(e.kind)
        raise
    record_checkout('success')
    record_order_event('created')
    return jsonify(order_service.serialize_order(order)), 201
