"""
Integration tests for the product catalog endpoints.
"""


class TestCatalogReads:

    def test_list_is_public(self, client, headphones, keyboard):
        response = client.get('/products?sortBy=price&sortOrder=desc')

        assert response.status_code == 200
        data = response.get_json()
        assert [p['name'] for p in data['data']] == ['Mechanical Keyboard', 'Wireless Headphones']
        assert data['hasNext'] is False

    def test_get_missing_product(self, client):
        response = client.get('/products/12345')

        assert response.status_code == 404
        assert response.get_json()['message'] == 'Product with ID 12345 not found'

    def test_categories_search_and_by_category(self, client, headphones, yoga_mat):
        assert client.get('/products/categories').get_json() == [
            {'category': 'Electronics', 'count': 1},
            {'category': 'Fitness', 'count': 1},
        ]
        assert [p['name'] for p in client.get('/products/search?q=yoga').get_json()] == ['Yoga Mat']
        assert [p['name'] for p in client.get('/products/category/Electronics').get_json()] == ['Wireless Headphones']


class TestCatalogAdmin:

    def test_create_requires_admin(self, client, user_headers):
        payload = {'name': 'Lamp', 'price': '19.99', 'category': 'Home'}

        assert client.post('/products', json=payload).status_code == 401
        assert client.post('/products', json=payload, headers=user_headers).status_code == 403

    def test_admin_crud(self, client, admin_headers):
        created = client.post('/products', headers=admin_headers, json={
            'name': 'Lamp', 'price': '19.99', 'stock': 4, 'category': 'Home',
        })
        assert created.status_code == 201
        product_id = created.get_json()['id']

        updated = client.patch(f'/products/{product_id}', headers=admin_headers, json={'price': 17.5})
        assert updated.get_json()['price'] == '17.50'

        stock = client.patch(f'/products/{product_id}/stock', headers=admin_headers, json={'quantity': -4})
        assert stock.get_json()['stock'] == 0

        negative = client.patch(f'/products/{product_id}/stock', headers=admin_headers, json={'quantity': -1})
        assert negative.status_code == 409

        assert client.delete(f'/products/{product_id}', headers=admin_headers).status_code == 200
        assert client.get(f'/products/{product_id}').status_code == 404

    def test_archived_product_cannot_be_added_to_cart(self, client, admin_headers, guest_headers, headphones):
        client.delete(f'/products/{headphones.id}', headers=admin_headers)

        response = client.post('/cart/items', headers=guest_headers,
                               json={'productId': headphones.id, 'quantity': 1})
        assert response.status_code == 404
