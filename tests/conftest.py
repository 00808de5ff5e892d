from datetime import date

import pytest

from raadarenda import create_app
from raadarenda.config import TestingConfig
from raadarenda.extensions import db as _db
from raadarenda.models.models import (
    Address, Category, Order, OrderItem, PricingTier, Product, QuantityPricing, User,
)
from raadarenda.utils.auth import create_session


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig)
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def admin_client(client):
    response = client.post('/api/admin/auth', json={'api_key': 'test-admin-key'})
    assert response.status_code == 200
    return client


@pytest.fixture
def make_user(db):
    def _make_user(phone_number='+998901234567', name=None, is_active=True):
        user = User(phone_number=phone_number, name=name, is_active=is_active)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user(name='Azamat')


@pytest.fixture
def auth_headers(user):
    token = create_session(user.id, 'test-device')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def category(db):
    category = Category(name='Мебель', display_order=1)
    db.session.add(category)
    db.session.commit()
    return category


@pytest.fixture
def make_product(db, category):
    def _make_product(name='Стул Кьявари', daily_price=1000, total_stock=10,
                      tiers=(), quantity_brackets=(), photos=None, is_active=True):
        product = Product(
            name=name,
            category_id=category.id,
            daily_price=daily_price,
            total_stock=total_stock,
            photos=photos if photos is not None else ['https://cdn.example.com/chair.jpg'],
            is_active=is_active,
        )
        product.pricing_tiers = [
            PricingTier(min_days=lo, max_days=hi, daily_price=price) for lo, hi, price in tiers
        ]
        product.quantity_pricing = [
            QuantityPricing(min_quantity=lo, max_quantity=hi, price_per_unit=price)
            for lo, hi, price in quantity_brackets
        ]
        db.session.add(product)
        db.session.commit()
        return product
    return _make_product


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def make_address(db):
    def _make_address(user, title='Дом', city='Ташкент', is_default=False):
        address = Address(user_id=user.id, title=title, full_address=f'{city}, ул. Навои 1',
                          city=city, is_default=is_default)
        db.session.add(address)
        db.session.commit()
        return address
    return _make_address


@pytest.fixture
def make_order(db):
    counter = {'n': 0}

    def _make_order(user, product, quantity, start, end, status='CONFIRMED'):
        counter['n'] += 1
        order = Order(
            order_number=f'20240101{counter["n"]:04d}',
            user_id=user.id,
            status=status,
            delivery_type='SELF_PICKUP',
            rental_start_date=start,
            rental_end_date=end,
            rental_days=(end - start).days + 1,
            payment_method='PAYME',
            subtotal=product.daily_price * quantity,
            total_amount=product.daily_price * quantity,
        )
        order.items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            daily_price=product.daily_price,
            total_price=product.daily_price * quantity,
        ))
        db.session.add(order)
        db.session.commit()
        return order
    return _make_order


@pytest.fixture
def rental_window():
    return date(2030, 6, 10), date(2030, 6, 12)
