import logging

from flask import Blueprint, request
from sqlalchemy import or_

from ..extensions import db
from ..models.models import Category, DeliveryZone, Product
from ..schemas import CartQuoteSchema, ProductListQuery, ProductSearchQuery
from ..utils.availability import get_reserved_quantity
from ..utils.delivery import calculate_delivery_fee
from ..utils.errors import error_response
from ..utils.helpers import (
    business_settings_to_dict, category_to_dict, delivery_zone_to_dict, get_business_settings,
    get_json_body, pagination_dict, product_to_dict, success_response,
)
from ..utils.orders import build_cart, load_active_products
from ..utils.time_utils import format_date, parse_date

logger = logging.getLogger(__name__)

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')

SORT_COLUMNS = {
    'name': Product.name,
    'price': Product.daily_price,
    'created_at': Product.created_at,
}


@catalog_bp.route('/categories', methods=['GET'])
def get_categories():
    categories = Category.query.filter_by(is_active=True).order_by(
        Category.display_order.asc(), Category.id.asc()
    ).all()
    return success_response(data=[category_to_dict(c) for c in categories])


@catalog_bp.route('/products', methods=['GET'])
def get_products():
    """List active products with optional category, search and sorting"""
    filters = ProductListQuery.model_validate(request.args.to_dict())
    try:
        query = Product.query.filter(Product.is_active.is_(True))

        if filters.category_id is not None:
            query = query.filter(Product.category_id == filters.category_id)
        if filters.search:
            query = query.filter(Product.name.ilike(f'%{filters.search}%'))

        column = SORT_COLUMNS[filters.sort_by]
        query = query.order_by(column.asc() if filters.sort_order == 'asc' else column.desc(), Product.id.asc())

        paginated = query.paginate(page=filters.page, per_page=filters.limit, error_out=False)

        return success_response(
            data=[product_to_dict(p) for p in paginated.items],
            pagination=pagination_dict(filters.page, filters.limit, paginated.total),
        )
    except Exception as e:
        logger.error(f"Error in get_products: {str(e)}")
        return error_response('internalServerError', 500)


@catalog_bp.route('/products/search', methods=['GET'])
def search_products():
    filters = ProductSearchQuery.model_validate(request.args.to_dict())
    pattern = f'%{filters.q}%'
    products = Product.query.filter(
        Product.is_active.is_(True),
        or_(Product.name.ilike(pattern), Product.description.ilike(pattern)),
    ).order_by(Product.name.asc()).limit(filters.limit).all()
    return success_response(data=[product_to_dict(p) for p in products])


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return error_response('productNotFound', 404)
    return success_response(data=product_to_dict(product))


@catalog_bp.route('/products/<int:product_id>/availability', methods=['GET'])
def get_product_availability(product_id):
    """How many units are free for the inclusive date range"""
    start_date = parse_date(request.args.get('start_date'))
    end_date = parse_date(request.args.get('end_date'))
    if not start_date or not end_date or start_date > end_date:
        return error_response('invalidDates', 400)

    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return error_response('productNotFound', 404)

    reserved = get_reserved_quantity(product.id, start_date, end_date)
    available = max(0, product.total_stock - reserved)

    return success_response(data={
        'product_id': product.id,
        'start_date': format_date(start_date),
        'end_date': format_date(end_date),
        'total_stock': product.total_stock,
        'reserved_quantity': reserved,
        'available_quantity': available,
        'available': available > 0,
    })


@catalog_bp.route('/cart/quote', methods=['POST'])
def quote_cart():
    """Price a cart without reserving anything"""
    data = CartQuoteSchema.model_validate(get_json_body())
    products = load_active_products([item.product_id for item in data.items])
    delivery_fee = calculate_delivery_fee(data.delivery_type, data.city)
    cart = build_cart(data.items, data.rental_start_date, data.rental_end_date, products, delivery_fee)
    return success_response(data=cart.to_dict())


@catalog_bp.route('/business/info', methods=['GET'])
def get_business_info():
    settings = get_business_settings()
    data = business_settings_to_dict(settings)
    data['delivery_info'] = {
        'available_city': 'Ташкент',
        'delivery_fee': 0,
        'note': 'Бесплатная доставка по Ташкенту',
    }
    return success_response(data=data)


@catalog_bp.route('/delivery/zones', methods=['GET'])
def get_delivery_zones():
    zones = DeliveryZone.query.filter_by(is_active=True).order_by(DeliveryZone.name.asc()).all()
    return success_response(data=[delivery_zone_to_dict(z) for z in zones])
