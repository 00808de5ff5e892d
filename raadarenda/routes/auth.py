import logging

from flask import Blueprint, g, request

from ..extensions import db
from ..models.models import User
from ..schemas import SendOtpSchema, VerifyOtpSchema
from ..utils.auth import create_session, generate_otp, invalidate_session, login_required, verify_otp
from ..utils.errors import error_response
from ..utils.helpers import get_json_body, success_response, user_to_dict
from ..utils.i18n import get_language
from ..utils.sms import send_otp_sms

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/send-otp', methods=['POST'])
def send_otp():
    """Generate an OTP for the phone number and send it by SMS"""
    data = SendOtpSchema.model_validate(get_json_body())
    try:
        code = generate_otp(data.phone_number)

        if not send_otp_sms(data.phone_number, code, get_language()):
            logger.error(f"OTP SMS delivery failed for {data.phone_number}")
            return error_response('internalServerError', 500)

        logger.info(f"OTP generated for mobile: {data.phone_number}")
        return success_response(message_key='otpSent')
    except Exception as e:
        logger.error(f"Error in send_otp: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


@auth_bp.route('/verify-otp', methods=['POST'])
def verify_otp_route():
    """Verify the OTP, creating the user on first login, and open a session"""
    data = VerifyOtpSchema.model_validate(get_json_body())
    try:
        ok, error_key = verify_otp(data.phone_number, data.code)
        if not ok:
            return error_response(error_key, 400)

        user = User.query.filter_by(phone_number=data.phone_number).first()
        if not user:
            user = User(phone_number=data.phone_number, language=get_language())
            db.session.add(user)
            db.session.commit()
            logger.info(f"New user created: {user.id}")
        elif not user.is_active:
            return error_response('accountInactive', 403)

        session_token = create_session(user.id, data.device_id, request.headers.get('User-Agent'))

        logger.info(f"Session created for user {user.id}")
        return success_response(
            data={'user': user_to_dict(user), 'session_token': session_token},
            message_key='loginSuccess',
        )
    except Exception as e:
        logger.error(f"Error in verify_otp: {str(e)}")
        db.session.rollback()
        return error_response('internalServerError', 500)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    invalidate_session(g.session_token)
    return success_response(message_key='logoutSuccess')
