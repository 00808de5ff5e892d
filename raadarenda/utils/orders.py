"""
Checkout and order lifecycle.

create_order runs in one transaction: product rows are locked, availability is
re-checked against committed orders, lines are priced through a Cart and the
order with its item snapshots and first history entry is written. Any
ApiError raised here leaves the caller to roll back.
"""
import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.models import (
    FINAL_ORDER_STATUSES, Address, Card, Order, OrderItem, OrderStatusHistory, Product,
)
from .availability import get_available_quantity, lock_products
from .cart import Cart
from .delivery import calculate_delivery_fee
from .errors import ApiError
from .helpers import generate_order_number
from .payments import process_payment, refund_payment

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


def load_active_products(product_ids, lock=False):
    """Map id -> Product for the requested ids; 404 if any is missing or inactive."""
    ids = sorted(set(product_ids))
    products = lock_products(ids) if lock else Product.query.filter(Product.id.in_(ids)).all()
    by_id = {p.id: p for p in products if p.is_active}
    if len(by_id) != len(ids):
        raise ApiError(404, 'productNotFound')
    return by_id


def build_cart(items, rental_start_date, rental_end_date, products, delivery_fee=0):
    if rental_start_date > rental_end_date:
        raise ApiError(400, 'invalidDates')

    # Cart.add_item replaces a line for the same product
    if len({item.product_id for item in items}) != len(items):
        raise ApiError(400, 'validationError')

    cart = Cart(delivery_fee=delivery_fee)
    for item in items:
        cart.add_item(products[item.product_id], item.quantity, rental_start_date, rental_end_date)
    return cart


def check_availability(cart):
    for line in cart.items:
        available = get_available_quantity(line.product, line.rental_start_date, line.rental_end_date)
        if line.quantity > available:
            raise ApiError(400, 'insufficientStock', product_id=line.product_id, available_quantity=available)


def _insert_order(user, data):
    """Validate, lock, price and flush one order. Returns (order, card)."""
    if data.rental_start_date > data.rental_end_date:
        raise ApiError(400, 'invalidDates')

    address = None
    if data.delivery_type == 'DELIVERY':
        if data.delivery_address_id is None:
            raise ApiError(400, 'addressRequired')
        address = Address.query.filter_by(id=data.delivery_address_id, user_id=user.id).first()
        if not address:
            raise ApiError(400, 'addressRequired')

    card = None
    if data.card_id is not None:
        card = Card.query.filter_by(id=data.card_id, user_id=user.id).first()
        if not card:
            raise ApiError(404, 'cardNotFound')

    products = load_active_products([item.product_id for item in data.items], lock=True)
    delivery_fee = calculate_delivery_fee(data.delivery_type, address.city if address else None)
    cart = build_cart(data.items, data.rental_start_date, data.rental_end_date, products, delivery_fee)
    check_availability(cart)

    order = Order(
        order_number=generate_order_number(),
        user_id=user.id,
        status='CONFIRMED',
        delivery_type=data.delivery_type,
        delivery_address_id=address.id if address else None,
        delivery_fee=cart.delivery_fee,
        subtotal=cart.subtotal,
        total_amount=cart.total,
        total_savings=cart.total_savings,
        rental_start_date=data.rental_start_date,
        rental_end_date=data.rental_end_date,
        rental_days=cart.items[0].rental_days,
        payment_method=data.payment_method,
        payment_status='PENDING',
        notes=data.notes,
    )

    for line in cart.items:
        photos = line.product.photos or []
        order.items.append(OrderItem(
            product_id=line.product_id,
            product_name=line.product.name,
            product_photo=photos[0] if photos else None,
            quantity=line.quantity,
            daily_price=line.daily_price,
            total_price=line.total_price,
            savings=line.savings,
        ))

    order.status_history.append(OrderStatusHistory(status='CONFIRMED', notes='Order created'))
    db.session.add(order)
    db.session.flush()
    return order, card


def create_order(user, data):
    """
    Place an order for the user from a validated OrderCreateSchema.

    A concurrent checkout may take the same daily order number first; the
    unique constraint rejects the insert and the whole checkout is redone.
    """
    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        try:
            order, card = _insert_order(user, data)
            break
        except IntegrityError as e:
            db.session.rollback()
            logger.warning(f"Order insert conflict for user {user.id} (attempt {attempt}): {str(e)}")
    else:
        raise ApiError(409, 'orderNumberConflict')

    if card:
        result = process_payment(card.id, order.total_amount, order.order_number,
                                 f'Order {order.order_number}')
        if not result.success:
            logger.error(f"Payment failed for order {order.order_number}: {result.error}")
            raise ApiError(400, 'paymentFailed')
        order.payment_status = 'PAID'
        order.transaction_id = result.transaction_id

    db.session.commit()
    logger.info(f"Order {order.order_number} created for user {user.id}")
    return order


def change_order_status(order, status, notes=None, created_by='admin'):
    """
    Move an order to a new status and record it in the history.

    Returned and cancelled orders are closed: a different status is refused,
    repeating the current one only adds a history note. Cancelling a paid
    order refunds it.
    """
    if order.status in FINAL_ORDER_STATUSES and status != order.status:
        raise ApiError(400, 'orderFinalized')

    if status == 'CANCELLED' and order.status != 'CANCELLED' and order.payment_status == 'PAID':
        result = refund_payment(order.transaction_id, order.total_amount)
        if result.success:
            order.payment_status = 'REFUNDED'
        else:
            logger.error(f"Refund failed for order {order.order_number}: {result.error}")

    order.status = status
    db.session.add(OrderStatusHistory(order_id=order.id, status=status, notes=notes, created_by=created_by))
    db.session.commit()
    logger.info(f"Order {order.order_number} status set to {status} by {created_by}")
    return order
