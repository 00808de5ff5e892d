# Response helpers and serializers
import math

from flask import jsonify, request
from sqlalchemy import func

from ..extensions import db
from ..models.models import BusinessSettings, Order
from .i18n import t
from .time_utils import format_date, format_datetime, utcnow


def _float(value):
    return float(value) if value is not None else None


def get_json_body():
    """Request JSON as a dict; malformed or missing bodies become {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def success_response(data=None, message_key=None, status_code=200, pagination=None, **extra):
    body = {'success': True}
    if message_key:
        body['message'] = t(message_key)
    if data is not None:
        body['data'] = data
    if pagination is not None:
        body['pagination'] = pagination
    body.update(extra)
    return jsonify(body), status_code


def pagination_dict(page, limit, total_count):
    total_pages = math.ceil(total_count / limit) if limit else 0
    return {
        'current_page': page,
        'limit': limit,
        'total_count': total_count,
        'total_pages': total_pages,
        'has_more': page < total_pages,
    }


def generate_order_number(today=None):
    """YYYYMMDD followed by a 4-digit sequence, one above the highest issued that day."""
    today = today or utcnow().date()
    prefix = today.strftime('%Y%m%d')
    last = db.session.query(func.max(Order.order_number)).filter(Order.order_number.like(f'{prefix}%')).scalar()
    sequence = int(last[len(prefix):]) + 1 if last else 1
    return f'{prefix}{sequence:04d}'


def user_to_dict(user):
    return {
        'id': user.id,
        'phone_number': user.phone_number,
        'name': user.name,
        'language': user.language,
        'created_at': format_datetime(user.created_at),
    }


def address_to_dict(address):
    return {
        'id': address.id,
        'user_id': address.user_id,
        'title': address.title,
        'full_address': address.full_address,
        'city': address.city,
        'district': address.district,
        'street': address.street,
        'building': address.building,
        'apartment': address.apartment,
        'entrance': address.entrance,
        'floor': address.floor,
        'latitude': _float(address.latitude),
        'longitude': _float(address.longitude),
        'is_default': address.is_default,
        'created_at': format_datetime(address.created_at),
    }


def card_to_dict(card):
    return {
        'id': card.id,
        'card_number': card.card_number,
        'card_holder': card.card_holder,
        'expiry_month': card.expiry_month,
        'expiry_year': card.expiry_year,
        'card_type': card.card_type,
        'is_default': card.is_default,
        'created_at': format_datetime(card.created_at),
    }


def category_to_dict(category, products_count=None):
    result = {
        'id': category.id,
        'name': category.name,
        'image_url': category.image_url,
        'icon_name': category.icon_name,
        'display_order': category.display_order,
        'is_active': category.is_active,
        'created_at': format_datetime(category.created_at),
    }
    if products_count is not None:
        result['products_count'] = products_count
    return result


def product_to_dict(product, admin=False):
    """Convert a product with its pricing brackets to a dictionary"""
    result = {
        'id': product.id,
        'name': product.name,
        'description': product.description,
        'category_id': product.category_id,
        'photos': product.photos or [],
        'specifications': {
            'width': product.spec_width,
            'height': product.spec_height,
            'depth': product.spec_depth,
            'weight': product.spec_weight,
            'color': product.spec_color,
            'material': product.spec_material,
        },
        'daily_price': product.daily_price,
        'pricing_tiers': [
            {
                'min_days': tier.min_days,
                'max_days': tier.max_days,
                'daily_price': tier.daily_price,
            }
            for tier in product.pricing_tiers
        ],
        'quantity_pricing': [
            {
                'min_quantity': bracket.min_quantity,
                'max_quantity': bracket.max_quantity,
                'price_per_unit': bracket.price_per_unit,
            }
            for bracket in product.quantity_pricing
        ],
        'total_stock': product.total_stock,
        'is_active': product.is_active,
        'created_at': format_datetime(product.created_at),
    }
    if admin:
        result['category_name'] = product.category.name if product.category else None
        result['updated_at'] = format_datetime(product.updated_at)
    return result


def order_item_to_dict(item):
    return {
        'id': item.id,
        'product_id': item.product_id,
        'product_name': item.product_name,
        'product_photo': item.product_photo,
        'quantity': item.quantity,
        'daily_price': item.daily_price,
        'total_price': item.total_price,
        'savings': item.savings,
    }


def status_history_to_dict(entry):
    return {
        'id': entry.id,
        'status': entry.status,
        'notes': entry.notes,
        'created_by': entry.created_by,
        'created_at': format_datetime(entry.created_at),
    }


def order_to_dict(order, include_history=False, include_customer=False):
    """Convert an order with its item snapshots to a dictionary"""
    result = {
        'id': order.id,
        'order_number': order.order_number,
        'user_id': order.user_id,
        'status': order.status,
        'items': [order_item_to_dict(item) for item in order.items],
        'delivery_type': order.delivery_type,
        'delivery_address': address_to_dict(order.delivery_address) if order.delivery_address else None,
        'delivery_fee': order.delivery_fee,
        'subtotal': order.subtotal,
        'total_amount': order.total_amount,
        'total_savings': order.total_savings,
        'rental_start_date': format_date(order.rental_start_date),
        'rental_end_date': format_date(order.rental_end_date),
        'rental_days': order.rental_days,
        'payment_method': order.payment_method,
        'payment_status': order.payment_status,
        'transaction_id': order.transaction_id,
        'notes': order.notes,
        'created_at': format_datetime(order.created_at),
        'updated_at': format_datetime(order.updated_at),
    }
    if include_history:
        result['status_history'] = [status_history_to_dict(entry) for entry in order.status_history]
    if include_customer:
        result['customer'] = {
            'id': order.user.id,
            'phone_number': order.user.phone_number,
            'name': order.user.name,
        }
    return result


def customer_to_dict(user, total_orders, total_spent):
    result = user_to_dict(user)
    result.update({
        'is_active': user.is_active,
        'total_orders': total_orders,
        'total_spent': total_spent,
    })
    return result


def delivery_zone_to_dict(zone):
    return {
        'id': zone.id,
        'name': zone.name,
        'price': zone.price,
        'is_active': zone.is_active,
    }


def business_settings_to_dict(settings):
    return {
        'name': settings.name,
        'phone': settings.phone,
        'address': settings.address,
        'latitude': _float(settings.latitude),
        'longitude': _float(settings.longitude),
        'working_hours': settings.working_hours,
        'telegram_url': settings.telegram_url,
    }


def get_business_settings():
    """The singleton settings row, created with defaults on first access."""
    settings = db.session.get(BusinessSettings, 'default')
    if not settings:
        settings = BusinessSettings(
            id='default',
            name='4Event',
            phone='+998888008002',
            address='Ташкент, Узбекистан',
            working_hours='09:00 - 18:00',
        )
        db.session.add(settings)
        db.session.commit()
    return settings
