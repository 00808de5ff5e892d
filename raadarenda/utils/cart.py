"""
Rental cart aggregation.

Mirrors the storefront cart: every mutation re-prices the touched line through
the pricing engine and recomputes the cart totals. Nothing here touches the
database; checkout builds its order lines from a Cart.
"""
from .pricing import calculate_price, calculate_rental_days
from .time_utils import format_date


class CartItem:
    def __init__(self, product, quantity, rental_start_date, rental_end_date):
        self.product = product
        self.quantity = quantity
        self.rental_start_date = rental_start_date
        self.rental_end_date = rental_end_date
        self.rental_days = 1
        self.daily_price = product.daily_price
        self.total_price = 0
        self.savings = 0
        self.reprice()

    @property
    def product_id(self):
        return self.product.id

    def reprice(self):
        self.rental_days = calculate_rental_days(self.rental_start_date, self.rental_end_date)
        quote = calculate_price(
            self.product.daily_price,
            self.rental_days,
            self.quantity,
            self.product.pricing_tiers,
            self.product.quantity_pricing,
        )
        self.daily_price = quote.daily_price_used
        self.total_price = quote.total_price
        self.savings = quote.savings

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product.name,
            'quantity': self.quantity,
            'rental_start_date': format_date(self.rental_start_date),
            'rental_end_date': format_date(self.rental_end_date),
            'rental_days': self.rental_days,
            'base_daily_price': self.product.daily_price,
            'daily_price': self.daily_price,
            'total_price': self.total_price,
            'savings': self.savings,
        }


class Cart:
    def __init__(self, delivery_fee=0):
        self.items = []
        self.delivery_fee = delivery_fee
        self.subtotal = 0
        self.total_savings = 0
        self.total = delivery_fee
        self.item_count = 0

    def _find(self, product_id):
        for index, item in enumerate(self.items):
            if item.product_id == product_id:
                return index
        return -1

    def get_item(self, product_id):
        index = self._find(product_id)
        return self.items[index] if index >= 0 else None

    def add_item(self, product, quantity, rental_start_date, rental_end_date):
        """Add a line, replacing any existing line for the same product."""
        item = CartItem(product, quantity, rental_start_date, rental_end_date)
        index = self._find(product.id)
        if index >= 0:
            self.items[index] = item
        else:
            self.items.append(item)
        self.recalculate_totals()
        return item

    def update_item(self, product_id, quantity=None, rental_start_date=None, rental_end_date=None):
        index = self._find(product_id)
        if index < 0:
            return None

        item = self.items[index]
        if quantity is not None:
            item.quantity = quantity
        if rental_start_date is not None:
            item.rental_start_date = rental_start_date
        if rental_end_date is not None:
            item.rental_end_date = rental_end_date
        item.reprice()

        self.recalculate_totals()
        return item

    def remove_item(self, product_id):
        self.items = [item for item in self.items if item.product_id != product_id]
        self.recalculate_totals()

    def clear(self):
        self.items = []
        self.delivery_fee = 0
        self.recalculate_totals()

    def set_delivery_fee(self, fee):
        self.delivery_fee = fee
        self.total = self.subtotal + fee

    def recalculate_totals(self):
        self.subtotal = sum(item.total_price for item in self.items)
        self.total_savings = sum(item.savings for item in self.items)
        self.total = self.subtotal + self.delivery_fee
        self.item_count = sum(item.quantity for item in self.items)

    def to_dict(self):
        return {
            'items': [item.to_dict() for item in self.items],
            'subtotal': self.subtotal,
            'total_savings': self.total_savings,
            'delivery_fee': self.delivery_fee,
            'total': self.total,
            'item_count': self.item_count,
        }
