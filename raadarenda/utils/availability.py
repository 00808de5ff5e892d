from sqlalchemy import func

from ..extensions import db
from ..models.models import ACTIVE_ORDER_STATUSES, Order, OrderItem, Product


def get_reserved_quantity(product_id, start_date, end_date):
    """
    Sum the units of a product held by orders that are still out (confirmed,
    preparing or delivered) and whose inclusive rental window overlaps
    [start_date, end_date].
    """
    reserved = db.session.query(func.coalesce(func.sum(OrderItem.quantity), 0)).select_from(OrderItem).join(
        Order, OrderItem.order_id == Order.id
    ).filter(
        OrderItem.product_id == product_id,
        Order.status.in_(ACTIVE_ORDER_STATUSES),
        Order.rental_start_date <= end_date,
        Order.rental_end_date >= start_date,
    ).scalar()
    return int(reserved or 0)


def get_available_quantity(product, start_date, end_date):
    reserved = get_reserved_quantity(product.id, start_date, end_date)
    return max(0, product.total_stock - reserved)


def lock_products(product_ids):
    """
    Load products with a row lock so the availability check and the order
    insert run serialized per product. SQLite ignores FOR UPDATE.
    """
    return Product.query.filter(Product.id.in_(product_ids)).with_for_update().all()
