import io
from datetime import date

from PIL import Image

from raadarenda.models.models import (
    Category, DeliveryZone, Favorite, OrderStatusHistory, PricingTier, Product, Session,
)
from raadarenda.utils.auth import ADMIN_COOKIE_NAME, create_session


def _png(size=(1600, 1200)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color=(10, 120, 200)).save(buffer, format='PNG')
    buffer.seek(0)
    return buffer


# Auth

def test_admin_routes_require_cookie(client):
    response = client.get('/api/admin/dashboard')
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Требуется авторизация администратора'


def test_admin_login_with_wrong_key(client):
    response = client.post('/api/admin/auth', json={'api_key': 'nope'})
    assert response.status_code == 401
    assert client.get_cookie(ADMIN_COOKIE_NAME) is None


def test_admin_login_sets_cookie_and_logout_clears(admin_client):
    cookie = admin_client.get_cookie(ADMIN_COOKIE_NAME)
    assert cookie is not None
    assert cookie.value.startswith('admin:')
    assert cookie.http_only

    assert admin_client.get('/api/admin/auth').status_code == 200
    assert admin_client.delete('/api/admin/auth').status_code == 200
    assert admin_client.get('/api/admin/auth').status_code == 401


def test_forged_cookie_rejected(client):
    client.set_cookie(ADMIN_COOKIE_NAME, 'admin:9999999999999:deadbeef')
    assert client.get('/api/admin/dashboard').status_code == 401


# Dashboard

def test_dashboard(admin_client, user, product, make_order):
    make_order(user, product, 2, date(2030, 6, 1), date(2030, 6, 2))
    make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2), status='CANCELLED')

    data = admin_client.get('/api/admin/dashboard').get_json()['data']

    assert data['today']['orders'] == 2
    assert data['today']['revenue'] == 2000
    assert data['today']['pending_orders'] == 1
    assert data['totals'] == {'products': 1, 'categories': 1, 'customers': 1}
    assert {row['status']: row['count'] for row in data['orders_by_status']} == {'CONFIRMED': 1, 'CANCELLED': 1}
    assert len(data['revenue_by_day']) == 7
    assert data['revenue_by_day'][-1]['revenue'] == 2000
    assert data['recent_orders'][0]['customer_name'] == 'Azamat'


# Categories

def test_category_crud(admin_client):
    created = admin_client.post('/api/admin/categories', json={'name': 'Текстиль', 'display_order': 3})
    assert created.status_code == 201
    category_id = created.get_json()['data']['id']

    assert admin_client.put('/api/admin/categories', json={'name': 'x'}).status_code == 400
    updated = admin_client.put('/api/admin/categories', json={'id': category_id, 'name': 'Скатерти'})
    assert updated.get_json()['data']['name'] == 'Скатерти'

    listing = admin_client.get('/api/admin/categories').get_json()['data']
    assert listing[0]['products_count'] == 0

    assert admin_client.delete(f'/api/admin/categories?id={category_id}').status_code == 200
    assert admin_client.delete(f'/api/admin/categories?id={category_id}').status_code == 404


def test_category_delete_with_products_needs_confirmation(admin_client, category, make_product):
    make_product()
    make_product(name='Стол')

    response = admin_client.delete(f'/api/admin/categories?id={category.id}')
    body = response.get_json()

    assert response.status_code == 400
    assert body['requires_confirmation'] is True
    assert body['products_count'] == 2
    assert Category.query.count() == 1


def test_forced_category_delete(admin_client, db, user, category, make_product, make_order):
    ordered = make_product(name='Стул', tiers=[(3, None, 800)])
    unused = make_product(name='Стол', tiers=[(3, None, 2500)])
    db.session.add(Favorite(user_id=user.id, product_id=unused.id))
    db.session.commit()
    make_order(user, ordered, 1, date(2030, 6, 1), date(2030, 6, 2))
    ordered_id, unused_id = ordered.id, unused.id

    response = admin_client.delete(f'/api/admin/categories?id={category.id}&force=true')

    assert response.status_code == 200
    assert Category.query.count() == 0
    assert db.session.get(Product, unused_id) is None
    kept = db.session.get(Product, ordered_id)
    assert kept.is_active is False
    assert kept.category_id is None
    assert PricingTier.query.count() == 0
    assert Favorite.query.count() == 0


# Products

def _product_payload(category, **overrides):
    payload = {
        'name': 'Шатёр 5x5',
        'category_id': category.id,
        'photos': ['https://cdn.example.com/tent.jpg'],
        'daily_price': 150000,
        'total_stock': 4,
        'specifications': {'width': '5 м', 'material': 'ПВХ'},
        'pricing_tiers': [{'min_days': 3, 'max_days': None, 'daily_price': 120000}],
        'quantity_pricing': [{'min_quantity': 2, 'max_quantity': None, 'price_per_unit': 140000}],
    }
    payload.update(overrides)
    return payload


def test_create_and_update_product(admin_client, category):
    response = admin_client.post('/api/admin/products', json=_product_payload(category))
    data = response.get_json()['data']

    assert response.status_code == 201
    assert data['specifications']['material'] == 'ПВХ'
    assert data['pricing_tiers'][0]['daily_price'] == 120000

    response = admin_client.put(f"/api/admin/products/{data['id']}", json={
        'daily_price': 160000, 'pricing_tiers': [],
    })
    updated = response.get_json()['data']
    assert updated['daily_price'] == 160000
    assert updated['pricing_tiers'] == []
    assert updated['quantity_pricing'][0]['price_per_unit'] == 140000
    assert updated['name'] == 'Шатёр 5x5'


def test_create_product_validation(admin_client, category):
    photos = [f'https://cdn.example.com/{i}.jpg' for i in range(4)]
    assert admin_client.post('/api/admin/products', json=_product_payload(category, photos=photos)).status_code == 400
    assert admin_client.post('/api/admin/products', json=_product_payload(category, daily_price=0)).status_code == 400
    assert admin_client.post('/api/admin/products', json=_product_payload(category, category_id=999)).status_code == 404


def test_admin_product_list_includes_inactive(admin_client, make_product):
    make_product(name='Активный')
    make_product(name='Скрытый', is_active=False)

    body = admin_client.get('/api/admin/products?is_active=false').get_json()
    assert [p['name'] for p in body['data']] == ['Скрытый']
    assert admin_client.get('/api/admin/products').get_json()['pagination']['total_count'] == 2


def test_delete_product_with_orders_deactivates(admin_client, db, user, product, make_order):
    make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))

    response = admin_client.delete(f'/api/admin/products/{product.id}')

    assert response.status_code == 200
    assert response.get_json()['message'] == 'Товар деактивирован (есть история заказов)'
    assert db.session.get(Product, product.id).is_active is False


def test_delete_unordered_product(admin_client, db, make_product):
    product = make_product(tiers=[(3, None, 800)])
    product_id = product.id

    assert admin_client.delete(f'/api/admin/products/{product_id}').status_code == 200
    assert db.session.get(Product, product_id) is None
    assert PricingTier.query.count() == 0


# Customers

def test_customers_with_stats(admin_client, user, make_user, product, make_order):
    make_user(phone_number='+998909999999', name='Dilnoza')
    make_order(user, product, 2, date(2030, 6, 1), date(2030, 6, 2))
    make_order(user, product, 1, date(2030, 6, 3), date(2030, 6, 4))

    body = admin_client.get('/api/admin/customers?search=Azamat').get_json()
    assert body['pagination']['total_count'] == 1
    assert body['data'][0]['total_orders'] == 2
    assert body['data'][0]['total_spent'] == 3000

    detail = admin_client.get(f'/api/admin/customers/{user.id}').get_json()['data']
    assert len(detail['orders']) == 2


def test_deactivating_customer_ends_sessions(admin_client, user):
    create_session(user.id, 'iphone')

    response = admin_client.put(f'/api/admin/customers/{user.id}', json={'is_active': False})

    assert response.status_code == 200
    assert response.get_json()['data']['is_active'] is False
    assert Session.query.filter_by(user_id=user.id).count() == 0


# Orders

def test_order_status_flow(admin_client, user, product, make_order):
    order = make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))

    for status in ('PREPARING', 'DELIVERED', 'RETURNED'):
        response = admin_client.post(f'/api/admin/orders/{order.id}/status', json={'status': status})
        assert response.status_code == 200

    response = admin_client.post(f'/api/admin/orders/{order.id}/status', json={'status': 'CONFIRMED'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Заказ завершён и не может быть изменён'

    response = admin_client.post(f'/api/admin/orders/{order.id}/status',
                                 json={'status': 'RETURNED', 'notes': 'Проверено'})
    assert response.status_code == 200

    statuses = [entry.status for entry in OrderStatusHistory.query.filter_by(order_id=order.id)]
    assert statuses == ['PREPARING', 'DELIVERED', 'RETURNED', 'RETURNED']


def test_cancelling_paid_order_refunds(admin_client, db, user, product, make_order):
    order = make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))
    order.payment_status = 'PAID'
    order.transaction_id = 'STAGING_1'
    db.session.commit()

    data = admin_client.post(f'/api/admin/orders/{order.id}/status',
                             json={'status': 'CANCELLED'}).get_json()['data']

    assert data['status'] == 'CANCELLED'
    assert data['payment_status'] == 'REFUNDED'
    assert data['customer']['name'] == 'Azamat'


def test_cancelled_order_releases_stock(admin_client, user, product, make_order):
    order = make_order(user, product, 10, date(2030, 6, 1), date(2030, 6, 2))
    admin_client.post(f'/api/admin/orders/{order.id}/status', json={'status': 'CANCELLED'})

    data = admin_client.get(
        f'/api/products/{product.id}/availability?start_date=2030-06-01&end_date=2030-06-02'
    ).get_json()['data']
    assert data['available_quantity'] == 10


def test_admin_orders_filter_and_search(admin_client, user, product, make_order):
    first = make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2))
    make_order(user, product, 1, date(2030, 6, 1), date(2030, 6, 2), status='DELIVERED')

    body = admin_client.get('/api/admin/orders?status=DELIVERED').get_json()
    assert [o['status'] for o in body['data']] == ['DELIVERED']

    body = admin_client.get(f'/api/admin/orders?search={first.order_number}').get_json()
    assert [o['id'] for o in body['data']] == [first.id]

    assert admin_client.get('/api/admin/orders/999').status_code == 404


# Settings and delivery zones

def test_settings_update(admin_client):
    assert admin_client.get('/api/admin/settings').get_json()['data']['name'] == '4Event'

    response = admin_client.put('/api/admin/settings', json={'telegram_url': 'https://t.me/fourevent',
                                                             'name': None})
    data = response.get_json()['data']
    assert data['telegram_url'] == 'https://t.me/fourevent'
    assert data['name'] == '4Event'


def test_delivery_zone_crud(admin_client):
    created = admin_client.post('/api/admin/delivery-zones', json={'name': 'Самарканд', 'price': 50000})
    zone_id = created.get_json()['data']['id']
    assert created.status_code == 201

    duplicate = admin_client.post('/api/admin/delivery-zones', json={'name': 'Самарканд', 'price': 1})
    assert duplicate.status_code == 400
    assert duplicate.get_json()['message'] == 'Зона доставки с таким названием уже существует'

    other = admin_client.post('/api/admin/delivery-zones', json={'name': 'Бухара', 'price': 70000}).get_json()['data']
    renamed = admin_client.put(f"/api/admin/delivery-zones/{other['id']}", json={'name': 'Самарканд'})
    assert renamed.status_code == 400
    assert renamed.get_json()['message'] == 'Зона доставки с таким названием уже существует'

    updated = admin_client.put(f'/api/admin/delivery-zones/{zone_id}', json={'price': 60000})
    assert updated.get_json()['data']['price'] == 60000

    assert admin_client.delete(f'/api/admin/delivery-zones/{zone_id}').status_code == 200
    assert DeliveryZone.query.count() == 1


# Uploads

def test_upload_single_file(admin_client):
    response = admin_client.post('/api/admin/upload', data={'file': (_png(), 'tent.png', 'image/png')},
                                 content_type='multipart/form-data')
    url = response.get_json()['data']['url']

    assert response.status_code == 200
    served = admin_client.get(url)
    assert served.status_code == 200
    assert Image.open(io.BytesIO(served.data)).size == (800, 600)


def test_upload_multiple_files(admin_client):
    response = admin_client.post('/api/admin/upload', data={
        'files': [(_png(), 'a.png', 'image/png'), (_png((600, 900)), 'b.png', 'image/png')],
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    assert len(response.get_json()['data']['urls']) == 2


def test_upload_without_files(admin_client):
    response = admin_client.post('/api/admin/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
