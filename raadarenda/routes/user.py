import logging

from flask import Blueprint, g

from ..extensions import db
from ..models.models import Address, Card, Favorite, Product
from ..schemas import AddressSchema, AddressUpdateSchema, CardSchema, FavoriteSchema, ProfileUpdateSchema
from ..utils.auth import login_required
from ..utils.cards import MAX_CARDS, detect_card_type, mask_card_number
from ..utils.errors import error_response
from ..utils.helpers import (
    address_to_dict, card_to_dict, get_json_body, product_to_dict, success_response, user_to_dict,
)

logger = logging.getLogger(__name__)

user_bp = Blueprint('user', __name__, url_prefix='/api/user')

MAX_ADDRESSES = 5


def _set_default(model, user_id, item):
    """Clear the flag on every row of the user, then set it on one, in a single commit."""
    model.query.filter_by(user_id=user_id).update({'is_default': False}, synchronize_session='fetch')
    item.is_default = True
    db.session.commit()


def _delete_with_default_promotion(model, item):
    """Delete a row; if it was the default, the newest remaining row takes over."""
    was_default = item.is_default
    user_id = item.user_id
    db.session.delete(item)
    db.session.flush()

    if was_default:
        replacement = model.query.filter_by(user_id=user_id).order_by(
            model.created_at.desc(), model.id.desc()
        ).first()
        if replacement:
            replacement.is_default = True

    db.session.commit()


# Profile

@user_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return success_response(data=user_to_dict(g.user))


@user_bp.route('/profile', methods=['PUT', 'POST'])
@login_required
def update_profile():
    data = ProfileUpdateSchema.model_validate(get_json_body())
    try:
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == 'language' and value is None:
                continue
            setattr(g.user, field, value)
        db.session.commit()
        return success_response(data=user_to_dict(g.user), message_key='profileUpdated')
    except Exception as e:
        logger.error(f"Error in update_profile: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


# Addresses

@user_bp.route('/addresses', methods=['GET'])
@login_required
def get_addresses():
    addresses = Address.query.filter_by(user_id=g.user.id).order_by(
        Address.is_default.desc(), Address.created_at.desc(), Address.id.desc()
    ).all()
    return success_response(data=[address_to_dict(a) for a in addresses])


@user_bp.route('/addresses', methods=['POST'])
@login_required
def create_address():
    data = AddressSchema.model_validate(get_json_body())
    try:
        count = Address.query.filter_by(user_id=g.user.id).count()
        if count >= MAX_ADDRESSES:
            return error_response('maxAddressesReached', 400)

        address = Address(user_id=g.user.id, is_default=count == 0, **data.model_dump())
        db.session.add(address)
        db.session.commit()

        logger.info(f"Address {address.id} created for user {g.user.id}")
        return success_response(data=address_to_dict(address), message_key='addressCreated', status_code=201)
    except Exception as e:
        logger.error(f"Error in create_address: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


def _get_own_address(address_id):
    return Address.query.filter_by(id=address_id, user_id=g.user.id).first()


@user_bp.route('/addresses/<int:address_id>', methods=['PUT'])
@login_required
def update_address(address_id):
    data = AddressUpdateSchema.model_validate(get_json_body())
    address = _get_own_address(address_id)
    if not address:
        return error_response('addressNotFound', 404)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(address, field, value)
    db.session.commit()
    return success_response(data=address_to_dict(address), message_key='addressUpdated')


@user_bp.route('/addresses/<int:address_id>', methods=['DELETE'])
@login_required
def delete_address(address_id):
    address = _get_own_address(address_id)
    if not address:
        return error_response('addressNotFound', 404)

    try:
        _delete_with_default_promotion(Address, address)
        return success_response(message_key='addressDeleted')
    except Exception as e:
        logger.error(f"Error in delete_address: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


@user_bp.route('/addresses/<int:address_id>/default', methods=['POST'])
@login_required
def set_default_address(address_id):
    address = _get_own_address(address_id)
    if not address:
        return error_response('addressNotFound', 404)

    try:
        _set_default(Address, g.user.id, address)
        return success_response(data=address_to_dict(address), message_key='addressSetDefault')
    except Exception as e:
        logger.error(f"Error in set_default_address: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


# Favorites

@user_bp.route('/favorites', methods=['GET'])
@login_required
def get_favorites():
    favorites = Favorite.query.filter_by(user_id=g.user.id).order_by(Favorite.created_at.desc()).all()
    return success_response(data=[
        product_to_dict(f.product) for f in favorites if f.product and f.product.is_active
    ])


@user_bp.route('/favorites', methods=['POST'])
@login_required
def add_favorite():
    data = FavoriteSchema.model_validate(get_json_body())

    product = db.session.get(Product, data.product_id)
    if not product or not product.is_active:
        return error_response('productNotFound', 404)

    if Favorite.query.filter_by(user_id=g.user.id, product_id=product.id).first():
        return error_response('alreadyInFavorites', 400)

    db.session.add(Favorite(user_id=g.user.id, product_id=product.id))
    db.session.commit()
    return success_response(data=product_to_dict(product), message_key='addedToFavorites', status_code=201)


@user_bp.route('/favorites/<int:product_id>', methods=['DELETE'])
@login_required
def remove_favorite(product_id):
    favorite = Favorite.query.filter_by(user_id=g.user.id, product_id=product_id).first()
    if not favorite:
        return error_response('notFound', 404)

    db.session.delete(favorite)
    db.session.commit()
    return success_response(message_key='removedFromFavorites')


# Cards

@user_bp.route('/cards', methods=['GET'])
@login_required
def get_cards():
    cards = Card.query.filter_by(user_id=g.user.id).order_by(
        Card.is_default.desc(), Card.created_at.desc(), Card.id.desc()
    ).all()
    return success_response(data=[card_to_dict(c) for c in cards])


@user_bp.route('/cards', methods=['POST'])
@login_required
def add_card():
    """Store a card; only the masked number is kept"""
    data = CardSchema.model_validate(get_json_body())
    try:
        count = Card.query.filter_by(user_id=g.user.id).count()
        if count >= MAX_CARDS:
            return error_response('maxCardsReached', 400)

        card = Card(
            user_id=g.user.id,
            card_number=mask_card_number(data.card_number),
            card_holder=data.card_holder.upper(),
            expiry_month=data.expiry_month,
            expiry_year=data.expiry_year,
            card_type=detect_card_type(data.card_number),
            is_default=count == 0,
        )
        db.session.add(card)
        db.session.commit()

        logger.info(f"Card {card.id} added for user {g.user.id}")
        return success_response(data=card_to_dict(card), message_key='cardAdded', status_code=201)
    except Exception as e:
        logger.error(f"Error in add_card: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


def _get_own_card(card_id):
    return Card.query.filter_by(id=card_id, user_id=g.user.id).first()


@user_bp.route('/cards/<int:card_id>', methods=['DELETE'])
@login_required
def delete_card(card_id):
    card = _get_own_card(card_id)
    if not card:
        return error_response('cardNotFound', 404)

    _delete_with_default_promotion(Card, card)
    return success_response(message_key='cardDeleted')


@user_bp.route('/cards/<int:card_id>/default', methods=['POST'])
@login_required
def set_default_card(card_id):
    card = _get_own_card(card_id)
    if not card:
        return error_response('cardNotFound', 404)

    _set_default(Card, g.user.id, card)
    return success_response(data=card_to_dict(card), message_key='cardSetDefault')
