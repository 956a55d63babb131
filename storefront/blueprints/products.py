"""Products blueprint - public catalog reads and admin management."""
from flask import Blueprint, jsonify, request

from storefront.database import get_session
from storefront.decorators.permissions import require_role
from storefront.services import product_service
from storefront.utils.http import json_body, page_args

products_bp = Blueprint('products', __name__, url_prefix='/products')


@products_bp.route('', methods=['GET'])
def list_products():
    """
    Catalog listing.

    Query args: page, limit, search, category, minPrice, maxPrice, isActive,
    inStock, sortBy (name|price|category|createdAt|updatedAt), sortOrder.
    """
    args = request.args
    result = product_service.list_products(
        get_session(),
        search=args.get('search'),
        category=args.get('category'),
        min_price=args.get('minPrice'),
        max_price=args.get('maxPrice'),
        is_active=args.get('isActive'),
        in_stock=args.get('inStock'),
        sort_by=args.get('sortBy'),
        sort_order=args.get('sortOrder'),
        **page_args()
    )
    return jsonify(result)


@products_bp.route('/categories', methods=['GET'])
def categories():
    return jsonify(product_service.get_categories(get_session()))


@products_bp.route('/category/<string:category>', methods=['GET'])
def by_category(category):
    products = product_service.get_by_category(get_session(), category)
    return jsonify([product_service.serialize_product(p) for p in products])


@products_bp.route('/search', methods=['GET'])
def search():
    """Search by name, description or category (first 20 matches)."""
    products = product_service.search_products(get_session(), request.args.get('q', ''))
    return jsonify([product_service.serialize_product(p) for p in products])


@products_bp.route('/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = product_service.get_product(get_session(), product_id)
    return jsonify(product_service.serialize_product(product))


@products_bp.route('', methods=['POST'])
@require_role('ADMIN')
def create_product():
    product = product_service.create_product(get_session(), json_body())
    return jsonify(product_service.serialize_product(product)), 201


@products_bp.route('/<int:product_id>', methods=['PATCH', 'PUT'])
@require_role('ADMIN')
def update_product(product_id):
    product = product_service.update_product(get_session(), product_id, json_body())
    return jsonify(product_service.serialize_product(product))


@products_bp.route('/<int:product_id>', methods=['DELETE'])
@require_role('ADMIN')
def delete_product(product_id):
    return jsonify(product_service.delete_product(get_session(), product_id))


@products_bp.route('/<int:product_id>/stock', methods=['PATCH'])
@require_role('ADMIN')
def update_stock(product_id):
    """Body: {"quantity": <signed delta>}"""
    product = product_service.update_stock(get_session(), product_id, json_body().get('quantity'))
    return jsonify(product_service.serialize_product(product))
