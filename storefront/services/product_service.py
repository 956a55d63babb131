"""Product catalog service - CRUD, listing and stock adjustment."""
import enum
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.orm import Session

from storefront.database import unit_of_work
from storefront.exceptions import InvalidArgumentError, NotFoundError
from storefront.models import Product
from storefront.services import inventory_service
from storefront.utils.formatters import iso, money_str, to_money
from storefront.utils.pagination import SortOrder, paginated, parse_amount, parse_enum, parse_page

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


class ProductSortBy(enum.Enum):
    NAME = 'name'
    PRICE = 'price'
    CATEGORY = 'category'
    CREATED_AT = 'createdAt'
    UPDATED_AT = 'updatedAt'


_SORT_COLUMNS = {
    ProductSortBy.NAME: Product.name,
    ProductSortBy.PRICE: Product.price,
    ProductSortBy.CATEGORY: Product.category,
    ProductSortBy.CREATED_AT: Product.created_at,
    ProductSortBy.UPDATED_AT: Product.updated_at,
}

# API field -> model attribute
_FIELDS = {
    'name': 'name',
    'description': 'description',
    'price': 'price',
    'stock': 'stock',
    'category': 'category',
    'imageUrl': 'image_url',
    'isActive': 'active',
}


def _parse_bool(value: Any, field: str) -> Optional[bool]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ('true', '1', 'yes'):
        return True
    if lowered in ('false', '0', 'no'):
        return False
    raise InvalidArgumentError(f'{field} must be a boolean')


def _clean_fields(data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    """Validate an incoming product payload and map it onto model attributes."""
    if not isinstance(data, dict):
        raise InvalidArgumentError('Request body must be a JSON object')

    values = {}
    for key, attr in _FIELDS.items():
        if key in data:
            values[attr] = data[key]

    if not partial:
        for required in ('name', 'price', 'category'):
            if values.get(required) in (None, ''):
                raise InvalidArgumentError(f'{required} is required')

    if 'name' in values:
        name = (values['name'] or '').strip() if isinstance(values['name'], str) else ''
        if not name:
            raise InvalidArgumentError('name must be a non-empty string')
        values['name'] = name

    if 'category' in values:
        category = (values['category'] or '').strip() if isinstance(values['category'], str) else ''
        if not category:
            raise InvalidArgumentError('category must be a non-empty string')
        values['category'] = category

    if 'price' in values:
        try:
            price = to_money(values['price'])
        except ValueError:
            raise InvalidArgumentError('price must be a number')
        if price < 0:
            raise InvalidArgumentError('price must be greater than or equal to 0')
        values['price'] = price

    if 'stock' in values:
        stock = values['stock']
        if stock is None:
            stock = 0
        if isinstance(stock, bool) or not isinstance(stock, int):
            raise InvalidArgumentError('stock must be an integer')
        if stock < 0:
            raise InvalidArgumentError('stock must be greater than or equal to 0')
        values['stock'] = stock

    if 'active' in values:
        active = _parse_bool(values['active'], 'isActive')
        values['active'] = True if active is None else active

    return values


def _active_catalog(session: Session):
    return session.query(Product).filter(Product.archived.is_(False))


# =====================================================
# QUERIES
# =====================================================

def get_product(session: Session, product_id: int) -> Product:
    product = _active_catalog(session).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product with ID {product_id} not found')
    return product


def list_products(
    session: Session,
    page=None,
    limit=None,
    search=None,
    category=None,
    min_price=None,
    max_price=None,
    is_active=None,
    in_stock=None,
    sort_by=None,
    sort_order=None,
    max_limit: int = 100
) -> Dict[str, Any]:
    """Filtered, sorted, paginated catalog listing (default: name ascending)."""
    page_request = parse_page(page, limit, max_limit=max_limit)
    sort_by = parse_enum(ProductSortBy, sort_by, 'sortBy', default=ProductSortBy.NAME)
    sort_order = parse_enum(SortOrder, sort_order, 'sortOrder', default=SortOrder.ASC)
    min_price = parse_amount(min_price, 'minPrice')
    max_price = parse_amount(max_price, 'maxPrice')
    is_active = _parse_bool(is_active, 'isActive')
    in_stock = _parse_bool(in_stock, 'inStock')

    query = _active_catalog(session)

    if search:
        term = f'%{search.strip()}%'
        query = query.filter(or_(Product.name.ilike(term), Product.description.ilike(term)))
    if category:
        query = query.filter(Product.category == category)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if is_active is not None:
        query = query.filter(Product.active.is_(is_active))
    if in_stock is True:
        query = query.filter(Product.stock > 0)
    elif in_stock is False:
        query = query.filter(Product.stock == 0)

    total = query.count()

    direction = asc if sort_order == SortOrder.ASC else desc
    products = (
        query.order_by(direction(_SORT_COLUMNS[sort_by]), asc(Product.id))
        .offset(page_request.offset)
        .limit(page_request.limit)
        .all()
    )

    return paginated([serialize_product(p) for p in products], total, page_request)


def get_categories(session: Session) -> List[Dict[str, Any]]:
    """Distinct categories of active products, most populated first."""
    rows = (
        session.query(Product.category, func.count(Product.id).label('count'))
        .filter(Product.active.is_(True), Product.archived.is_(False))
        .group_by(Product.category)
        .order_by(desc('count'), asc(Product.category))
        .all()
    )
    return [{'category': category, 'count': count} for category, count in rows]


def get_by_category(session: Session, category: str) -> List[Product]:
    return (
        _active_catalog(session)
        .filter(Product.category == category, Product.active.is_(True))
        .order_by(Product.name)
        .all()
    )


def search_products(session: Session, term: str) -> List[Product]:
    """Active products whose name, description or category matches ``term``."""
    if not term or not term.strip():
        raise InvalidArgumentError('Search term is required')
    pattern = f'%{term.strip()}%'
    return (
        _active_catalog(session)
        .filter(
            Product.active.is_(True),
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.category.ilike(pattern),
            )
        )
        .order_by(Product.name)
        .limit(SEARCH_LIMIT)
        .all()
    )


# =====================================================
# COMMANDS (admin)
# =====================================================

def create_product(session: Session, data: Dict[str, Any]) -> Product:
    values = _clean_fields(data, partial=False)
    values.setdefault('stock', 0)
    values.setdefault('active', True)

    with unit_of_work(session):
        product = Product(**values)
        session.add(product)
        session.flush()

    logger.info(f"Product {product.id} created: {product.name}")
    session.refresh(product)
    return product


def update_product(session: Session, product_id: int, data: Dict[str, Any]) -> Product:
    values = _clean_fields(data, partial=True)

    with unit_of_work(session):
        product = get_product(session, product_id)
        for attr, value in values.items():
            setattr(product, attr, value)

    logger.info(f"Product {product_id} updated: {sorted(values)}")
    session.refresh(product)
    return product


def delete_product(session: Session, product_id: int) -> Dict[str, str]:
    """
    Archive a product.

    Order items keep pointing at it, so the row stays; catalog reads and the
    inventory ledger treat it as gone.
    """
    with unit_of_work(session):
        product = get_product(session, product_id)
        product.archived = True
        product.active = False

    logger.info(f"Product {product_id} archived")
    return {'message': 'Product deleted successfully'}


def update_stock(session: Session, product_id: int, quantity: Any) -> Product:
    """Apply a signed stock delta."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError('quantity must be an integer')

    with unit_of_work(session):
        product = inventory_service.adjust_stock(session, product_id, quantity)

    logger.info(f"Stock of product {product_id} adjusted by {quantity}, now {product.stock}")
    return product


# =====================================================
# SERIALIZATION
# =====================================================

def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'name': product.name,
        'description': product.description,
        'price': money_str(product.price),
        'stock': product.stock,
        'category': product.category,
        'imageUrl': product.image_url,
        'isActive': product.active,
        'createdAt': iso(product.created_at),
        'updatedAt': iso(product.updated_at),
    }
