from ..extensions import db
from ..utils.time_utils import utcnow

ORDER_STATUSES = ('CONFIRMED', 'PREPARING', 'DELIVERED', 'RETURNED', 'CANCELLED')
ACTIVE_ORDER_STATUSES = ('CONFIRMED', 'PREPARING', 'DELIVERED')
FINAL_ORDER_STATUSES = ('RETURNED', 'CANCELLED')
DELIVERY_TYPES = ('DELIVERY', 'SELF_PICKUP')
PAYMENT_METHODS = ('PAYME', 'CLICK', 'UZUM')
PAYMENT_STATUSES = ('PENDING', 'PAID', 'REFUNDED')

order_status_enum = db.Enum(*ORDER_STATUSES, name='order_status')


class OTP(db.Model):
    __tablename__ = 'otps'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    phone_number = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(255))
    language = db.Column(db.String(2), nullable=False, default='ru')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    sessions = db.relationship('Session', backref='user', cascade='all, delete-orphan')
    addresses = db.relationship('Address', backref='user', cascade='all, delete-orphan',
                                order_by='Address.created_at')
    cards = db.relationship('Card', backref='user', cascade='all, delete-orphan')
    favorites = db.relationship('Favorite', backref='user', cascade='all, delete-orphan')
    orders = db.relationship('Order', backref='user', order_by='Order.created_at.desc()')


class Session(db.Model):
    __tablename__ = 'sessions'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_token = db.Column(db.String(64), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    device_id = db.Column(db.String(255), nullable=False)
    device_info = db.Column(db.String(512))
    expires = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class Address(db.Model):
    __tablename__ = 'addresses'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    full_address = db.Column(db.String(500), nullable=False)
    city = db.Column(db.String(100), nullable=False)
    district = db.Column(db.String(100))
    street = db.Column(db.String(255))
    building = db.Column(db.String(50))
    apartment = db.Column(db.String(50))
    entrance = db.Column(db.String(50))
    floor = db.Column(db.String(50))
    latitude = db.Column(db.Numeric(10, 7))
    longitude = db.Column(db.Numeric(10, 7))
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class Card(db.Model):
    __tablename__ = 'cards'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    card_number = db.Column(db.String(32), nullable=False)  # masked
    card_holder = db.Column(db.String(255), nullable=False)
    expiry_month = db.Column(db.Integer, nullable=False)
    expiry_year = db.Column(db.Integer, nullable=False)
    card_type = db.Column(db.String(20), nullable=False, default='unknown')
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class Category(db.Model):
    __tablename__ = 'categories'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.String(1024))
    icon_name = db.Column(db.String(100))
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    products = db.relationship('Product', backref='category')


class Product(db.Model):
    __tablename__ = 'products'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    # Null after a forced category delete left the product behind for its order history
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), index=True)
    photos = db.Column(db.JSON, nullable=False, default=list)
    spec_width = db.Column(db.String(50))
    spec_height = db.Column(db.String(50))
    spec_depth = db.Column(db.String(50))
    spec_weight = db.Column(db.String(50))
    spec_color = db.Column(db.String(50))
    spec_material = db.Column(db.String(100))
    daily_price = db.Column(db.Integer, nullable=False)  # UZS, minor units not used
    total_stock = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    pricing_tiers = db.relationship('PricingTier', backref='product', cascade='all, delete-orphan',
                                    order_by='PricingTier.min_days')
    quantity_pricing = db.relationship('QuantityPricing', backref='product', cascade='all, delete-orphan',
                                       order_by='QuantityPricing.min_quantity')
    favorites = db.relationship('Favorite', backref='product', cascade='all, delete-orphan')
    order_items = db.relationship('OrderItem', backref='product', lazy='dynamic')


class PricingTier(db.Model):
    __tablename__ = 'pricing_tiers'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    min_days = db.Column(db.Integer, nullable=False)
    max_days = db.Column(db.Integer)
    daily_price = db.Column(db.Integer, nullable=False)


class QuantityPricing(db.Model):
    __tablename__ = 'quantity_pricing'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    min_quantity = db.Column(db.Integer, nullable=False)
    max_quantity = db.Column(db.Integer)
    price_per_unit = db.Column(db.Integer, nullable=False)


class Favorite(db.Model):
    __tablename__ = 'favorites'
    __table_args__ = (db.UniqueConstraint('user_id', 'product_id', name='uq_favorites_user_product'),)
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class Order(db.Model):
    __tablename__ = 'orders'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    order_number = db.Column(db.String(20), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(order_status_enum, nullable=False, default='CONFIRMED')
    delivery_type = db.Column(db.Enum(*DELIVERY_TYPES, name='delivery_type'), nullable=False)
    delivery_address_id = db.Column(db.Integer, db.ForeignKey('addresses.id', ondelete='SET NULL'))
    delivery_fee = db.Column(db.Integer, nullable=False, default=0)
    subtotal = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    total_savings = db.Column(db.Integer, nullable=False, default=0)
    rental_start_date = db.Column(db.Date, nullable=False, index=True)
    rental_end_date = db.Column(db.Date, nullable=False, index=True)
    rental_days = db.Column(db.Integer, nullable=False, default=1)
    payment_method = db.Column(db.Enum(*PAYMENT_METHODS, name='payment_method'), nullable=False)
    payment_status = db.Column(db.Enum(*PAYMENT_STATUSES, name='payment_status'), nullable=False, default='PENDING')
    transaction_id = db.Column(db.String(100))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan')
    delivery_address = db.relationship('Address')
    status_history = db.relationship('OrderStatusHistory', backref='order', cascade='all, delete-orphan',
                                     order_by='OrderStatusHistory.created_at.desc()')


class OrderItem(db.Model):
    __tablename__ = 'order_items'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    # Snapshot of the product at checkout time
    product_name = db.Column(db.String(255), nullable=False)
    product_photo = db.Column(db.String(1024))
    quantity = db.Column(db.Integer, nullable=False)
    daily_price = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Integer, nullable=False)
    savings = db.Column(db.Integer, nullable=False, default=0)


class OrderStatusHistory(db.Model):
    __tablename__ = 'order_status_history'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    status = db.Column(order_status_enum, nullable=False)
    notes = db.Column(db.Text)
    created_by = db.Column(db.String(50), nullable=False, default='system')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class DeliveryZone(db.Model):
    __tablename__ = 'delivery_zones'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    price = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class BusinessSettings(db.Model):
    __tablename__ = 'business_settings'
    id = db.Column(db.String(20), primary_key=True, default='default')
    name = db.Column(db.String(255), nullable=False, default='RaadArenda')
    phone = db.Column(db.String(20), nullable=False, default='')
    address = db.Column(db.String(500), nullable=False, default='')
    latitude = db.Column(db.Numeric(10, 7))
    longitude = db.Column(db.Numeric(10, 7))
    working_hours = db.Column(db.String(100), nullable=False, default='09:00 - 18:00')
    telegram_url = db.Column(db.String(255))
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
