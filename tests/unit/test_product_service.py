"""
Unit tests for the product catalog service.
"""

import pytest
from decimal import Decimal

from storefront.exceptions import InsufficientStockError, InvalidArgumentError, NotFoundError
from storefront.models import Product
from storefront.services import order_service, product_service


@pytest.fixture
def catalog(make_product):
    return [
        make_product('Wireless Headphones', '199.99', 50, 'Electronics'),
        make_product('Gaming Keyboard', '149.99', 0, 'Electronics'),
        make_product('Fitness Watch', '299.99', 25, 'Wearables'),
        make_product('Yoga Mat', '79.99', 35, 'Fitness'),
        make_product('Old Speaker', '59.99', 5, 'Electronics', active=False),
    ]


class TestCreateUpdate:

    def test_create_product(self, session):
        product = product_service.create_product(session, {
            'name': 'Desk Lamp',
            'description': 'LED lamp',
            'price': 24.5,
            'stock': 12,
            'category': 'Home',
            'imageUrl': 'https://example.com/lamp.png',
        })

        assert product.id is not None
        assert product.price == Decimal('24.50')
        assert product.image_url == 'https://example.com/lamp.png'
        assert product.active is True

    @pytest.mark.parametrize('payload', [
        {'price': '10', 'category': 'Home'},
        {'name': 'X', 'price': -1, 'category': 'Home'},
        {'name': 'X', 'price': 'abc', 'category': 'Home'},
        {'name': 'X', 'price': 1, 'category': 'Home', 'stock': -5},
        {'name': 'X', 'price': 1, 'category': 'Home', 'stock': 1.5},
    ])
    def test_invalid_payloads(self, session, payload):
        with pytest.raises(InvalidArgumentError):
            product_service.create_product(session, payload)

    def test_partial_update(self, session, catalog):
        product = product_service.update_product(session, catalog[0].id, {'price': '179.99', 'isActive': False})

        assert product.price == Decimal('179.99')
        assert product.active is False
        assert product.name == 'Wireless Headphones'

    def test_update_missing(self, session):
        with pytest.raises(NotFoundError):
            product_service.update_product(session, 999, {'name': 'Ghost'})


class TestSoftDelete:

    def test_delete_archives(self, session, catalog, refetch):
        product_service.delete_product(session, catalog[0].id)

        archived = refetch(catalog[0])
        assert archived.archived is True
        assert archived.active is False
        with pytest.raises(NotFoundError):
            product_service.get_product(session, catalog[0].id)

    def test_ordered_product_can_be_deleted(self, session, user_ctx, catalog):
        order = order_service.create_order(session, user_ctx, [{'productId': catalog[0].id, 'quantity': 1}])

        product_service.delete_product(session, catalog[0].id)

        order = order_service.get_order(session, user_ctx, order.id)
        assert order.items[0].product.name == 'Wireless Headphones'
        assert session.query(Product).filter_by(id=catalog[0].id).count() == 1


class TestListing:

    def test_default_sort_is_name_ascending(self, session, catalog):
        result = product_service.list_products(session)

        assert [p['name'] for p in result['data']] == [
            'Fitness Watch', 'Gaming Keyboard', 'Old Speaker', 'Wireless Headphones', 'Yoga Mat'
        ]
        assert result['total'] == 5

    def test_filters(self, session, catalog):
        result = product_service.list_products(
            session, category='Electronics', is_active='true', in_stock='true'
        )
        assert [p['name'] for p in result['data']] == ['Wireless Headphones']

        result = product_service.list_products(session, min_price='100', max_price='200')
        assert {p['name'] for p in result['data']} == {'Wireless Headphones', 'Gaming Keyboard'}

        result = product_service.list_products(session, search='watch')
        assert [p['name'] for p in result['data']] == ['Fitness Watch']

    def test_sort_by_price_desc_with_pagination(self, session, catalog):
        result = product_service.list_products(session, sort_by='price', sort_order='desc', page=2, limit=2)

        assert [p['price'] for p in result['data']] == ['149.99', '79.99']
        assert result['totalPages'] == 3
        assert result['hasPrevious'] is True

    @pytest.mark.parametrize('kwargs', [
        {'page': 0},
        {'limit': 101},
        {'limit': 'ten'},
        {'sort_by': 'stock'},
        {'sort_order': 'sideways'},
        {'min_price': '-1'},
        {'in_stock': 'maybe'},
    ])
    def test_invalid_arguments(self, session, kwargs):
        with pytest.raises(InvalidArgumentError):
            product_service.list_products(session, **kwargs)

    def test_categories_with_counts(self, session, catalog):
        assert product_service.get_categories(session) == [
            {'category': 'Electronics', 'count': 2},
            {'category': 'Fitness', 'count': 1},
            {'category': 'Wearables', 'count': 1},
        ]

    def test_by_category_only_active(self, session, catalog):
        names = [p.name for p in product_service.get_by_category(session, 'Electronics')]
        assert names == ['Gaming Keyboard', 'Wireless Headphones']

    def test_search_matches_category_too(self, session, catalog):
        names = [p.name for p in product_service.search_products(session, 'wear')]
        assert names == ['Fitness Watch']

    def test_search_limit(self, session, make_product):
        for i in range(25):
            make_product(f'Cable {i:02d}', '5.00', 1, 'Accessories')

        assert len(product_service.search_products(session, 'cable')) == 20

    def test_empty_search_term(self, session):
        with pytest.raises(InvalidArgumentError):
            product_service.search_products(session, '  ')


class TestStockAdjustment:

    def test_update_stock(self, session, catalog):
        assert product_service.update_stock(session, catalog[0].id, -20).stock == 30
        assert product_service.update_stock(session, catalog[0].id, 5).stock == 35

    def test_update_stock_below_zero(self, session, catalog, refetch):
        with pytest.raises(InsufficientStockError):
            product_service.update_stock(session, catalog[1].id, -1)

        assert refetch(catalog[1]).stock == 0

    def test_update_stock_requires_integer(self, session, catalog):
        with pytest.raises(InvalidArgumentError):
            product_service.update_stock(session, catalog[0].id, '5')
