import logging

from flask import Blueprint, g, request

from ..models.models import Order
from ..schemas import MyOrdersQuery, OrderCreateSchema
from ..utils.auth import login_required
from ..utils.errors import error_response
from ..utils.helpers import get_json_body, order_to_dict, pagination_dict, success_response
from ..utils.orders import create_order as place_order

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['POST'])
@login_required
def create_order():
    """Create a rental order from the checkout cart"""
    data = OrderCreateSchema.model_validate(get_json_body())
    order = place_order(g.user, data)
    return success_response(data=order_to_dict(order), message_key='orderCreated', status_code=201)


@orders_bp.route('/my-orders', methods=['GET'])
@login_required
def get_my_orders():
    filters = MyOrdersQuery.model_validate(request.args.to_dict())

    query = Order.query.filter_by(user_id=g.user.id)
    if filters.status:
        query = query.filter(Order.status == filters.status)

    paginated = query.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
        page=filters.page, per_page=filters.limit, error_out=False
    )
    return success_response(
        data=[order_to_dict(o) for o in paginated.items],
        pagination=pagination_dict(filters.page, filters.limit, paginated.total),
    )


@orders_bp.route('/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = Order.query.filter_by(id=order_id, user_id=g.user.id).first()
    if not order:
        return error_response('orderNotFound', 404)
    return success_response(data=order_to_dict(order, include_history=True))
