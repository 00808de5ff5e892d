import logging
from datetime import datetime, timedelta

from flask import Blueprint, request
from sqlalchemy import func, or_

from ..extensions import db
from ..models.models import (
    Category, DeliveryZone, Favorite, Order, OrderItem, PricingTier, Product, QuantityPricing, User,
)
from ..schemas import (
    AdminListQuery, AdminLoginSchema, AdminOrderQuery, AdminProductQuery, CategorySchema,
    CategoryUpdateSchema, CustomerUpdateSchema, DeliveryZoneSchema, DeliveryZoneUpdateSchema,
    OrderStatusSchema, ProductSchema, ProductUpdateSchema, SettingsSchema,
)
from ..utils.auth import (
    admin_required, clear_admin_cookie, create_admin_token, invalidate_all_user_sessions,
    is_admin_request, set_admin_cookie, verify_admin_key,
)
from ..utils.errors import error_response
from ..utils.helpers import (
    business_settings_to_dict, category_to_dict, customer_to_dict, delivery_zone_to_dict,
    get_business_settings, get_json_body, order_to_dict, pagination_dict, product_to_dict,
    success_response,
)
from ..utils.orders import change_order_status
from ..utils.time_utils import format_datetime, utcnow
from ..utils.uploads import MAX_FILES, store_image

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


# Auth

@admin_bp.route('/auth', methods=['POST'])
def admin_login():
    """Exchange the admin API key for a signed session cookie"""
    data = AdminLoginSchema.model_validate(get_json_body())
    if not verify_admin_key(data.api_key):
        logger.warning("Admin login rejected")
        return error_response('adminInvalidKey', 401)

    response, status = success_response(data={'authenticated': True}, message_key='adminLoginSuccess')
    set_admin_cookie(response, create_admin_token())
    return response, status


@admin_bp.route('/auth', methods=['GET'])
def admin_session_status():
    if not is_admin_request():
        return error_response('adminAuthRequired', 401)
    return success_response(data={'authenticated': True})


@admin_bp.route('/auth', methods=['DELETE'])
def admin_logout():
    # Tokens are stateless; the cookie is all there is to clear
    response, status = success_response(message_key='logoutSuccess')
    clear_admin_cookie(response)
    return response, status


# Dashboard

def _revenue_since(start, end=None):
    query = db.session.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
        Order.created_at >= start,
        Order.status != 'CANCELLED',
    )
    if end is not None:
        query = query.filter(Order.created_at < end)
    return int(query.scalar() or 0)


@admin_bp.route('/dashboard', methods=['GET'])
@admin_required
def get_dashboard():
    """Today/week/month figures, status breakdown and recent orders"""
    try:
        today = utcnow().date()
        today_start = datetime.combine(today, datetime.min.time())
        tomorrow_start = today_start + timedelta(days=1)
        week_start = today_start - timedelta(days=today.weekday())
        month_start = today_start.replace(day=1)

        orders_by_status = db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()

        revenue_by_day = []
        for offset in range(6, -1, -1):
            day_start = today_start - timedelta(days=offset)
            revenue_by_day.append({
                'date': day_start.date().isoformat(),
                'revenue': _revenue_since(day_start, day_start + timedelta(days=1)),
            })

        recent_orders = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()

        return success_response(data={
            'today': {
                'orders': Order.query.filter(Order.created_at >= today_start,
                                             Order.created_at < tomorrow_start).count(),
                'revenue': _revenue_since(today_start, tomorrow_start),
                'pending_orders': Order.query.filter_by(status='CONFIRMED').count(),
                'returns_due': Order.query.filter_by(status='DELIVERED', rental_end_date=today).count(),
            },
            'week': {'revenue': _revenue_since(week_start)},
            'month': {'revenue': _revenue_since(month_start)},
            'totals': {
                'products': Product.query.filter_by(is_active=True).count(),
                'categories': Category.query.filter_by(is_active=True).count(),
                'customers': User.query.count(),
            },
            'orders_by_status': [{'status': status, 'count': count} for status, count in orders_by_status],
            'revenue_by_day': revenue_by_day,
            'recent_orders': [
                {
                    'id': order.id,
                    'order_number': order.order_number,
                    'status': order.status,
                    'customer_name': order.user.name or order.user.phone_number,
                    'items_count': len(order.items),
                    'total_amount': order.total_amount,
                    'created_at': format_datetime(order.created_at),
                }
                for order in recent_orders
            ],
        })
    except Exception as e:
        logger.error(f"Error in get_dashboard: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


# Categories

@admin_bp.route('/categories', methods=['GET'])
@admin_required
def admin_get_categories():
    counts = dict(
        db.session.query(Product.category_id, func.count(Product.id)).group_by(Product.category_id).all()
    )
    categories = Category.query.order_by(Category.display_order.asc(), Category.id.asc()).all()
    return success_response(data=[category_to_dict(c, products_count=counts.get(c.id, 0)) for c in categories])


@admin_bp.route('/categories', methods=['POST'])
@admin_required
def admin_create_category():
    data = CategorySchema.model_validate(get_json_body())
    category = Category(**data.model_dump())
    db.session.add(category)
    db.session.commit()
    logger.info(f"Category {category.id} created")
    return success_response(data=category_to_dict(category), status_code=201)


@admin_bp.route('/categories', methods=['PUT'])
@admin_required
def admin_update_category():
    body = get_json_body()
    if not body.get('id'):
        return error_response('categoryIdRequired', 400)

    data = CategoryUpdateSchema.model_validate(body)
    category = db.session.get(Category, data.id)
    if not category:
        return error_response('categoryNotFound', 404)

    for field, value in data.model_dump(exclude_unset=True, exclude={'id'}).items():
        if field in ('name', 'display_order', 'is_active') and value is None:
            continue
        setattr(category, field, value)
    db.session.commit()
    return success_response(data=category_to_dict(category))


@admin_bp.route('/categories', methods=['DELETE'])
@admin_required
def admin_delete_category():
    """
    Delete a category. When it still has products the caller must confirm with
    force=true; then pricing and favorites of those products go, products with
    order history are deactivated and detached, the rest are deleted.
    """
    category_id = request.args.get('id', type=int)
    if not category_id:
        return error_response('categoryIdRequired', 400)

    category = db.session.get(Category, category_id)
    if not category:
        return error_response('categoryNotFound', 404)

    products = Product.query.filter_by(category_id=category.id).all()
    if not products:
        db.session.delete(category)
        db.session.commit()
        return success_response(message_key='categoryDeleted')

    if request.args.get('force') != 'true':
        return error_response(
            'categoryHasProducts', 400,
            params={'count': len(products)},
            products_count=len(products),
            requires_confirmation=True,
        )

    try:
        product_ids = [p.id for p in products]
        PricingTier.query.filter(PricingTier.product_id.in_(product_ids)).delete(synchronize_session=False)
        QuantityPricing.query.filter(QuantityPricing.product_id.in_(product_ids)).delete(synchronize_session=False)
        Favorite.query.filter(Favorite.product_id.in_(product_ids)).delete(synchronize_session=False)

        ordered_ids = {
            row[0] for row in
            db.session.query(OrderItem.product_id).filter(OrderItem.product_id.in_(product_ids)).distinct()
        }
        for product in products:
            db.session.expire(product, ['pricing_tiers', 'quantity_pricing', 'favorites'])
            if product.id in ordered_ids:
                product.is_active = False
                product.category_id = None
            else:
                db.session.delete(product)

        db.session.flush()
        db.session.delete(category)
        db.session.commit()

        logger.info(f"Category {category_id} deleted with {len(products)} products "
                    f"({len(ordered_ids)} deactivated)")
        return success_response(message_key='categoryWithProductsDeleted')
    except Exception as e:
        logger.error(f"Error in admin_delete_category: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


# Products

def _apply_product_fields(product, data):
    fields = data.model_dump(exclude_unset=True, exclude={'specifications', 'pricing_tiers', 'quantity_pricing'})
    for field, value in fields.items():
        if value is None and field in ('name', 'category_id', 'photos', 'daily_price', 'total_stock', 'is_active'):
            continue
        setattr(product, field, value)

    if data.specifications is not None:
        for field, value in data.specifications.model_dump().items():
            setattr(product, f'spec_{field}', value)

    if data.pricing_tiers is not None:
        product.pricing_tiers = [PricingTier(**tier.model_dump()) for tier in data.pricing_tiers]
    if data.quantity_pricing is not None:
        product.quantity_pricing = [QuantityPricing(**bracket.model_dump()) for bracket in data.quantity_pricing]


@admin_bp.route('/products', methods=['GET'])
@admin_required
def admin_get_products():
    filters = AdminProductQuery.model_validate(request.args.to_dict())

    query = Product.query
    if filters.category_id is not None:
        query = query.filter(Product.category_id == filters.category_id)
    if filters.is_active is not None:
        query = query.filter(Product.is_active.is_(filters.is_active))
    if filters.search:
        query = query.filter(Product.name.ilike(f'%{filters.search}%'))

    paginated = query.order_by(Product.created_at.desc(), Product.id.desc()).paginate(
        page=filters.page, per_page=filters.limit, error_out=False
    )
    return success_response(
        data=[product_to_dict(p, admin=True) for p in paginated.items],
        pagination=pagination_dict(filters.page, filters.limit, paginated.total),
    )


@admin_bp.route('/products', methods=['POST'])
@admin_required
def admin_create_product():
    data = ProductSchema.model_validate(get_json_body())
    if not db.session.get(Category, data.category_id):
        return error_response('categoryNotFound', 404)

    try:
        product = Product()
        _apply_product_fields(product, data)
        db.session.add(product)
        db.session.commit()

        logger.info(f"Product {product.id} created")
        return success_response(data=product_to_dict(product, admin=True), status_code=201)
    except Exception as e:
        logger.error(f"Error in admin_create_product: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


@admin_bp.route('/products/<int:product_id>', methods=['GET'])
@admin_required
def admin_get_product(product_id):
    product = db.session.get(Product, product_id)
    if not product:
        return error_response('productNotFound', 404)
    return success_response(data=product_to_dict(product, admin=True))


@admin_bp.route('/products/<int:product_id>', methods=['PUT'])
@admin_required
def admin_update_product(product_id):
    data = ProductUpdateSchema.model_validate(get_json_body())
    product = db.session.get(Product, product_id)
    if not product:
        return error_response('productNotFound', 404)
    if data.category_id is not None and not db.session.get(Category, data.category_id):
        return error_response('categoryNotFound', 404)

    try:
        _apply_product_fields(product, data)
        db.session.commit()
        return success_response(data=product_to_dict(product, admin=True))
    except Exception as e:
        logger.error(f"Error in admin_update_product: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


@admin_bp.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required
def admin_delete_product(product_id):
    """Delete a product, or only deactivate it when orders reference it"""
    product = db.session.get(Product, product_id)
    if not product:
        return error_response('productNotFound', 404)

    if product.order_items.count() > 0:
        product.is_active = False
        db.session.commit()
        return success_response(message_key='productDeactivated')

    db.session.delete(product)
    db.session.commit()
    return success_response(message_key='productDeleted')


# Customers

def _customer_stats_query():
    return db.session.query(
        User,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_amount), 0),
    ).outerjoin(Order, Order.user_id == User.id).group_by(User.id)


@admin_bp.route('/customers', methods=['GET'])
@admin_required
def admin_get_customers():
    filters = AdminListQuery.model_validate(request.args.to_dict())

    query = User.query
    stats = _customer_stats_query()
    if filters.search:
        pattern = f'%{filters.search}%'
        condition = or_(User.phone_number.ilike(pattern), User.name.ilike(pattern))
        query = query.filter(condition)
        stats = stats.filter(condition)
    total_count = query.count()

    rows = stats.order_by(User.created_at.desc(), User.id.desc()).offset(
        (filters.page - 1) * filters.limit
    ).limit(filters.limit).all()

    return success_response(
        data=[customer_to_dict(user, orders, int(spent)) for user, orders, spent in rows],
        pagination=pagination_dict(filters.page, filters.limit, total_count),
    )


@admin_bp.route('/customers/<int:user_id>', methods=['GET'])
@admin_required
def admin_get_customer(user_id):
    row = _customer_stats_query().filter(User.id == user_id).first()
    if not row:
        return error_response('customerNotFound', 404)

    user, orders, spent = row
    data = customer_to_dict(user, orders, int(spent))
    data['orders'] = [order_to_dict(o) for o in user.orders]
    return success_response(data=data)


@admin_bp.route('/customers/<int:user_id>', methods=['PUT'])
@admin_required
def admin_update_customer(user_id):
    data = CustomerUpdateSchema.model_validate(get_json_body())
    user = db.session.get(User, user_id)
    if not user:
        return error_response('customerNotFound', 404)

    changes = data.model_dump(exclude_unset=True)
    if 'name' in changes:
        user.name = changes['name']
    if changes.get('is_active') is not None:
        user.is_active = changes['is_active']
    db.session.commit()

    if not user.is_active:
        invalidate_all_user_sessions(user.id)

    _, orders, spent = _customer_stats_query().filter(User.id == user.id).first()
    return success_response(data=customer_to_dict(user, orders, int(spent)))


# Orders

@admin_bp.route('/orders', methods=['GET'])
@admin_required
def admin_get_orders():
    filters = AdminOrderQuery.model_validate(request.args.to_dict())

    query = Order.query.join(User, Order.user_id == User.id)
    if filters.status:
        query = query.filter(Order.status == filters.status)
    if filters.search:
        pattern = f'%{filters.search}%'
        query = query.filter(or_(
            Order.order_number.ilike(pattern),
            User.phone_number.ilike(pattern),
            User.name.ilike(pattern),
        ))

    paginated = query.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
        page=filters.page, per_page=filters.limit, error_out=False
    )
    return success_response(
        data=[order_to_dict(o, include_customer=True) for o in paginated.items],
        pagination=pagination_dict(filters.page, filters.limit, paginated.total),
    )


@admin_bp.route('/orders/<int:order_id>', methods=['GET'])
@admin_required
def admin_get_order(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        return error_response('orderNotFound', 404)
    return success_response(data=order_to_dict(order, include_history=True, include_customer=True))


@admin_bp.route('/orders/<int:order_id>/status', methods=['POST'])
@admin_required
def admin_update_order_status(order_id):
    data = OrderStatusSchema.model_validate(get_json_body())
    order = db.session.get(Order, order_id)
    if not order:
        return error_response('orderNotFound', 404)

    change_order_status(order, data.status, data.notes, created_by='admin')
    return success_response(
        data=order_to_dict(order, include_history=True, include_customer=True),
        message_key='orderUpdated',
    )


# Settings

@admin_bp.route('/settings', methods=['GET'])
@admin_required
def admin_get_settings():
    return success_response(data=business_settings_to_dict(get_business_settings()))


@admin_bp.route('/settings', methods=['PUT'])
@admin_required
def admin_update_settings():
    data = SettingsSchema.model_validate(get_json_body())
    settings = get_business_settings()
    for field, value in data.model_dump(exclude_unset=True).items():
        if field in ('name', 'phone', 'address', 'working_hours') and value is None:
            continue
        setattr(settings, field, value)
    db.session.commit()
    return success_response(data=business_settings_to_dict(settings), message_key='settingsUpdated')


# Delivery zones

@admin_bp.route('/delivery-zones', methods=['GET'])
@admin_required
def admin_get_delivery_zones():
    zones = DeliveryZone.query.order_by(DeliveryZone.name.asc()).all()
    return success_response(data=[delivery_zone_to_dict(z) for z in zones])


@admin_bp.route('/delivery-zones', methods=['POST'])
@admin_required
def admin_create_delivery_zone():
    data = DeliveryZoneSchema.model_validate(get_json_body())
    if DeliveryZone.query.filter_by(name=data.name).first():
        return error_response('deliveryZoneExists', 400)

    zone = DeliveryZone(**data.model_dump())
    db.session.add(zone)
    db.session.commit()
    return success_response(data=delivery_zone_to_dict(zone), status_code=201)


@admin_bp.route('/delivery-zones/<int:zone_id>', methods=['PUT'])
@admin_required
def admin_update_delivery_zone(zone_id):
    data = DeliveryZoneUpdateSchema.model_validate(get_json_body())
    zone = db.session.get(DeliveryZone, zone_id)
    if not zone:
        return error_response('deliveryZoneNotFound', 404)
    if data.name and DeliveryZone.query.filter(DeliveryZone.name == data.name, DeliveryZone.id != zone.id).first():
        return error_response('deliveryZoneExists', 400)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(zone, field, value)
    db.session.commit()
    return success_response(data=delivery_zone_to_dict(zone))


@admin_bp.route('/delivery-zones/<int:zone_id>', methods=['DELETE'])
@admin_required
def admin_delete_delivery_zone(zone_id):
    zone = db.session.get(DeliveryZone, zone_id)
    if not zone:
        return error_response('deliveryZoneNotFound', 404)

    db.session.delete(zone)
    db.session.commit()
    return success_response()


# Uploads

@admin_bp.route('/upload', methods=['POST'])
@admin_required
def admin_upload():
    """Accepts 'file' (single) or 'files' (up to 5) multipart fields"""
    files = request.files.getlist('files') or request.files.getlist('file')
    files = [f for f in files if f and f.filename]
    if not files:
        return error_response('noFilesUploaded', 400)
    if len(files) > MAX_FILES:
        return error_response('badRequest', 400)

    urls = [store_image(f) for f in files]
    if 'files' in request.files:
        return success_response(data={'urls': urls})
    return success_response(data={'url': urls[0]})
