"""
Integration tests for the cart endpoints, guest and authenticated.
"""


class TestGuestCart:

    def test_requires_user_or_session(self, client):
        response = client.get('/cart')

        assert response.status_code == 400
        assert response.get_json()['error'] == 'InvalidArgument'

    def test_add_and_read(self, client, guest_headers, headphones):
        response = client.post('/cart/items', headers=guest_headers,
                               json={'productId': headphones.id, 'quantity': 2})

        assert response.status_code == 201
        cart = response.get_json()
        assert cart['totalItems'] == 2
        assert cart['totalAmount'] == '199.98'
        assert cart['items'][0]['product']['name'] == 'Wireless Headphones'

        summary = client.get('/cart/summary', headers=guest_headers).get_json()
        assert summary == {'totalItems': 2, 'totalAmount': '199.98', 'itemCount': 1, 'isEmpty': False}

    def test_insufficient_stock_is_409(self, client, guest_headers, headphones):
        response = client.post('/cart/items', headers=guest_headers,
                               json={'productId': headphones.id, 'quantity': 11})

        assert response.status_code == 409
        data = response.get_json()
        assert data['error'] == 'InsufficientStock'
        assert data['available'] == 10
        assert data['requested'] == 11

    def test_quantity_must_be_positive(self, client, guest_headers, headphones):
        response = client.post('/cart/items', headers=guest_headers,
                               json={'productId': headphones.id, 'quantity': 0})
        assert response.status_code == 400

    def test_guest_cannot_checkout(self, client, guest_headers, headphones):
        client.post('/cart/items', headers=guest_headers, json={'productId': headphones.id, 'quantity': 1})

        assert client.post('/cart/checkout', headers=guest_headers).status_code == 401


class TestUserCart:

    def test_update_remove_clear(self, client, user_headers, headphones, keyboard):
        cart = client.post('/cart/items', headers=user_headers,
                           json={'productId': headphones.id, 'quantity': 1}).get_json()
        item_id = cart['items'][0]['id']
        client.post('/cart/items', headers=user_headers, json={'productId': keyboard.id, 'quantity': 1})

        cart = client.patch(f'/cart/items/{item_id}', headers=user_headers, json={'quantity': 3}).get_json()
        assert {i['productId']: i['quantity'] for i in cart['items']} == {headphones.id: 3, keyboard.id: 1}

        cart = client.delete(f'/cart/items/{item_id}', headers=user_headers).get_json()
        assert [i['productId'] for i in cart['items']] == [keyboard.id]

        assert client.delete('/cart', headers=user_headers).status_code == 200
        assert client.get('/cart/summary', headers=user_headers).get_json()['isEmpty'] is True

    def test_cannot_touch_another_users_item(self, client, user_headers, other_headers, headphones):
        cart = client.post('/cart/items', headers=user_headers,
                           json={'productId': headphones.id, 'quantity': 1}).get_json()
        item_id = cart['items'][0]['id']

        assert client.patch(f'/cart/items/{item_id}', headers=other_headers,
                            json={'quantity': 2}).status_code == 403
        assert client.delete(f'/cart/items/{item_id}', headers=other_headers).status_code == 404

    def test_validate(self, client, session, user_headers, headphones):
        client.post('/cart/items', headers=user_headers, json={'productId': headphones.id, 'quantity': 4})
        headphones.stock = 1
        session.commit()

        result = client.get('/cart/validate', headers=user_headers).get_json()

        assert result['isValid'] is False
        assert result['issues'] == ['Insufficient stock for "Wireless Headphones". Available: 1, In cart: 4']

    def test_merge_after_login(self, client, user_headers, guest_headers, headphones, keyboard):
        client.post('/cart/items', headers=guest_headers, json={'productId': headphones.id, 'quantity': 3})
        client.post('/cart/items', headers=guest_headers, json={'productId': keyboard.id, 'quantity': 2})
        client.post('/cart/items', headers=user_headers, json={'productId': headphones.id, 'quantity': 5})

        response = client.post('/cart/merge', headers={**user_headers, **guest_headers})

        assert response.status_code == 200
        quantities = {i['productId']: i['quantity'] for i in response.get_json()['items']}
        assert quantities == {headphones.id: 5, keyboard.id: 2}

    def test_merge_without_session_header(self, client, user_headers):
        assert client.post('/cart/merge', headers=user_headers).status_code == 400


class TestCheckoutApi:

    def test_checkout(self, client, session, user_headers, headphones, refetch):
        client.post('/cart/items', headers=user_headers, json={'productId': headphones.id, 'quantity': 3})

        response = client.post('/cart/checkout', headers=user_headers)

        assert response.status_code == 201
        order = response.get_json()
        assert order['status'] == 'PENDING'
        assert order['total'] == '299.97'
        assert order['items'][0]['price'] == '99.99'
        assert refetch(headphones).stock == 7
        assert client.get('/cart', headers=user_headers).get_json()['items'] == []

    def test_empty_cart(self, client, user_headers):
        response = client.post('/cart/checkout', headers=user_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == 'EmptyCart'

    def test_blocked_checkout_lists_issues(self, client, session, user_headers, headphones, refetch):
        client.post('/cart/items', headers=user_headers, json={'productId': headphones.id, 'quantity': 3})
        headphones.active = False
        session.commit()

        response = client.post('/cart/checkout', headers=user_headers)

        assert response.status_code == 400
        data = response.get_json()
        assert data['error'] == 'CheckoutBlocked'
        assert data['issues'] == ['Product "Wireless Headphones" is no longer active']
        assert refetch(headphones).stock == 10


class TestMalformedCartInput:

    def test_non_integer_product_id_is_400(self, client, guest_headers, headphones):
        for body in ({'productId': [headphones.id], 'quantity': 1},
                     {'productId': 'abc', 'quantity': 1},
                     {'quantity': 1}):
            response = client.post('/cart/items', headers=guest_headers, json=body)

            assert response.status_code == 400
            assert response.get_json()['message'] == 'productId must be an integer'
