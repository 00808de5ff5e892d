from datetime import date

from raadarenda.models.models import Card, Order, OrderItem
from raadarenda.utils import orders as order_service
from raadarenda.utils.helpers import generate_order_number


def _order_payload(product, quantity=2, start='2030-06-10', end='2030-06-12', **overrides):
    payload = {
        'items': [{'product_id': product.id, 'quantity': quantity}],
        'rental_start_date': start,
        'rental_end_date': end,
        'delivery_type': 'SELF_PICKUP',
        'payment_method': 'PAYME',
    }
    payload.update(overrides)
    return payload


def _add_card(db, user):
    card = Card(user_id=user.id, card_number='**** **** **** 1234', card_holder='AZAMAT',
                expiry_month=12, expiry_year=30, card_type='uzcard', is_default=True)
    db.session.add(card)
    db.session.commit()
    return card


def test_create_order_prices_with_tiers(client, auth_headers, make_product):
    product = make_product(daily_price=1000, tiers=[(3, None, 800)])

    response = client.post('/api/orders', json=_order_payload(product), headers=auth_headers)
    body = response.get_json()

    assert response.status_code == 201
    data = body['data']
    assert data['status'] == 'CONFIRMED'
    assert data['rental_days'] == 3
    assert data['subtotal'] == 4800
    assert data['total_savings'] == 1200
    assert data['total_amount'] == 4800
    assert data['payment_status'] == 'PENDING'
    assert data['items'][0]['product_name'] == product.name
    assert data['items'][0]['daily_price'] == 800
    assert len(data['order_number']) == 12


def test_order_snapshot_survives_product_changes(client, db, auth_headers, product):
    client.post('/api/orders', json=_order_payload(product), headers=auth_headers)

    product.name = 'Переименованный'
    product.daily_price = 5000
    db.session.commit()

    item = OrderItem.query.first()
    assert item.product_name == 'Стул Кьявари'
    assert item.daily_price == 1000


def test_create_order_records_history(client, auth_headers, product):
    created = client.post('/api/orders', json=_order_payload(product), headers=auth_headers).get_json()

    response = client.get(f"/api/orders/{created['data']['id']}", headers=auth_headers)
    history = response.get_json()['data']['status_history']

    assert [entry['status'] for entry in history] == ['CONFIRMED']
    assert history[0]['notes'] == 'Order created'


def test_create_order_rejects_overbooking(client, auth_headers, user, product, make_order):
    make_order(user, product, 8, date(2030, 6, 11), date(2030, 6, 11))

    response = client.post('/api/orders', json=_order_payload(product, quantity=3), headers=auth_headers)
    body = response.get_json()

    assert response.status_code == 400
    assert body['success'] is False
    assert body['product_id'] == product.id
    assert body['available_quantity'] == 2
    assert Order.query.count() == 1


def test_create_order_rejects_reversed_dates(client, auth_headers, product):
    response = client.post('/api/orders', json=_order_payload(product, start='2030-06-12', end='2030-06-10'),
                           headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Неверные даты аренды'


def test_delivery_requires_own_address(client, auth_headers, make_user, make_address, product):
    response = client.post('/api/orders', json=_order_payload(product, delivery_type='DELIVERY'),
                           headers=auth_headers)
    assert response.status_code == 400

    stranger = make_user(phone_number='+998909999999')
    foreign = make_address(stranger)
    response = client.post('/api/orders', json=_order_payload(product, delivery_type='DELIVERY',
                                                              delivery_address_id=foreign.id),
                           headers=auth_headers)
    assert response.status_code == 400
    assert Order.query.count() == 0


def test_delivery_in_tashkent_is_free(client, auth_headers, user, make_address, product):
    address = make_address(user, is_default=True)

    response = client.post('/api/orders', json=_order_payload(product, delivery_type='DELIVERY',
                                                              delivery_address_id=address.id),
                           headers=auth_headers)
    data = response.get_json()['data']

    assert response.status_code == 201
    assert data['delivery_fee'] == 0
    assert data['delivery_address']['city'] == 'Ташкент'


def test_unknown_product_rejected(client, auth_headers, product):
    payload = _order_payload(product)
    payload['items'].append({'product_id': 999, 'quantity': 1})

    response = client.post('/api/orders', json=payload, headers=auth_headers)
    assert response.status_code == 404


def test_inactive_product_rejected(client, auth_headers, make_product):
    product = make_product(is_active=False)
    response = client.post('/api/orders', json=_order_payload(product), headers=auth_headers)
    assert response.status_code == 404


def test_card_payment_in_staging_marks_paid(client, db, auth_headers, user, product):
    card = _add_card(db, user)

    response = client.post('/api/orders', json=_order_payload(product, card_id=card.id), headers=auth_headers)
    data = response.get_json()['data']

    assert response.status_code == 201
    assert data['payment_status'] == 'PAID'
    assert data['transaction_id'].startswith('STAGING_')


def test_failed_payment_rolls_back_order(app, client, db, auth_headers, user, product):
    card = _add_card(db, user)
    app.config['PAYMENT_MODE'] = 'production'

    response = client.post('/api/orders', json=_order_payload(product, card_id=card.id), headers=auth_headers)

    assert response.status_code == 400
    assert Order.query.count() == 0
    assert OrderItem.query.count() == 0


def test_foreign_card_rejected(client, db, auth_headers, make_user, product):
    stranger = make_user(phone_number='+998909999999')
    card = _add_card(db, stranger)

    response = client.post('/api/orders', json=_order_payload(product, card_id=card.id), headers=auth_headers)
    assert response.status_code == 404


def test_create_order_validation_errors(client, auth_headers, product):
    payload = _order_payload(product, payment_method='CASH')
    payload['items'] = []

    response = client.post('/api/orders', json=payload, headers=auth_headers)
    body = response.get_json()

    assert response.status_code == 400
    fields = {error['field'] for error in body['errors']}
    assert 'items' in fields
    assert 'payment_method' in fields


def test_create_order_requires_login(client, product):
    response = client.post('/api/orders', json=_order_payload(product))
    assert response.status_code == 401


def test_my_orders_only_lists_own_orders(client, auth_headers, user, make_user, product, make_order):
    make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))
    make_order(user, product, 1, date(2030, 6, 3), date(2030, 6, 4), status='RETURNED')
    make_order(make_user(phone_number='+998909999999'), product, 1, date(2030, 6, 1), date(2030, 6, 2))

    body = client.get('/api/orders/my-orders?limit=1', headers=auth_headers).get_json()
    assert len(body['data']) == 1
    assert body['pagination']['total_count'] == 2
    assert body['pagination']['total_pages'] == 2
    assert body['pagination']['has_more'] is True

    body = client.get('/api/orders/my-orders?status=RETURNED', headers=auth_headers).get_json()
    assert [order['status'] for order in body['data']] == ['RETURNED']


def test_cannot_read_someone_elses_order(client, auth_headers, make_user, product, make_order):
    order = make_order(make_user(phone_number='+998909999999'), product, 1, date(2030, 6, 1), date(2030, 6, 2))
    response = client.get(f'/api/orders/{order.id}', headers=auth_headers)
    assert response.status_code == 404


def test_order_number_sequence_per_day(app, user, product, make_order):
    assert generate_order_number(date(2024, 1, 1)) == '202401010001'
    make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))
    assert generate_order_number(date(2024, 1, 1)) == '202401010002'
    assert generate_order_number(date(2024, 1, 2)) == '202401020001'


def test_same_product_twice_is_rejected(client, auth_headers, product):
    payload = _order_payload(product)
    payload['items'] = [{'product_id': product.id, 'quantity': 2}, {'product_id': product.id, 'quantity': 3}]

    response = client.post('/api/orders', json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()['errors'][0]['field'] == 'items'
    assert Order.query.count() == 0


def test_quote_rejects_same_product_twice(client, product):
    response = client.post('/api/cart/quote', json={
        'items': [{'product_id': product.id, 'quantity': 2}, {'product_id': product.id, 'quantity': 3}],
        'rental_start_date': '2030-06-10',
        'rental_end_date': '2030-06-10',
    })
    assert response.status_code == 400


def test_taken_order_number_is_retried(client, auth_headers, user, product, make_order, monkeypatch):
    taken = make_order(user, product, 1, date(2030, 1, 1), date(2030, 1, 1)).order_number
    numbers = iter([taken, '203006100001'])
    monkeypatch.setattr(order_service, 'generate_order_number', lambda: next(numbers))

    response = client.post('/api/orders', json=_order_payload(product), headers=auth_headers)

    assert response.status_code == 201
    assert response.get_json()['data']['order_number'] == '203006100001'
    assert Order.query.count() == 2


def test_order_number_conflict_gives_up(client, auth_headers, user, product, make_order, monkeypatch):
    taken = make_order(user, product, 1, date(2030, 1, 1), date(2030, 1, 1)).order_number
    monkeypatch.setattr(order_service, 'generate_order_number', lambda: taken)

    response = client.post('/api/orders', json=_order_payload(product), headers=auth_headers)

    assert response.status_code == 409
    assert response.get_json()['success'] is False
    assert Order.query.count() == 1


def test_order_number_follows_highest_sequence(app, user, product, make_order, db):
    order = make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))
    order.order_number = '202401010007'
    db.session.commit()

    assert generate_order_number(date(2024, 1, 1)) == '202401010008'
