"""
Phone OTP login, bearer sessions and the signed admin cookie.
"""
import hashlib
import hmac
import logging
import re
import secrets
import time
from datetime import timedelta
from functools import wraps

from flask import current_app, g, request
from sqlalchemy import or_

from ..extensions import db
from ..models.models import OTP, Session
from .errors import ApiError
from .time_utils import utcnow

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+998\d{9}$')
TEST_PHONE_NUMBERS = ('998111111111', '998000000000')
FIXED_OTP_CODE = '123456'
OTP_EXPIRY_MINUTES = 5
MAX_OTP_ATTEMPTS = 3

SESSION_EXPIRY_DAYS = 30

ADMIN_COOKIE_NAME = 'admin_session'
ADMIN_TOKEN_TTL_MS = 24 * 60 * 60 * 1000


def is_valid_phone(phone_number):
    return bool(phone_number) and PHONE_PATTERN.match(phone_number) is not None


def normalize_phone(phone_number):
    return re.sub(r'[+\s-]', '', phone_number or '')


def is_test_phone(phone_number):
    return normalize_phone(phone_number) in TEST_PHONE_NUMBERS


def is_production():
    return current_app.config.get('APP_ENV') == 'production'


def generate_otp_code(phone_number):
    if is_test_phone(phone_number) or not is_production():
        return FIXED_OTP_CODE
    return str(secrets.randbelow(900000) + 100000)


def generate_otp(phone_number):
    """Store a fresh OTP for the phone and return the code."""
    now = utcnow()
    OTP.query.filter(
        OTP.phone_number == phone_number,
        or_(OTP.expires_at < now, OTP.verified.is_(True)),
    ).delete(synchronize_session=False)

    code = generate_otp_code(phone_number)
    db.session.add(OTP(
        phone_number=phone_number,
        code=code,
        expires_at=now + timedelta(minutes=OTP_EXPIRY_MINUTES),
    ))
    db.session.commit()
    return code


def verify_otp(phone_number, code):
    """
    Check a code against the newest unverified, unexpired OTP for the phone.

    Returns (ok, error_key). A wrong code burns one attempt; once the record
    has used MAX_OTP_ATTEMPTS it is rejected even for the right code.
    """
    otp = OTP.query.filter(
        OTP.phone_number == phone_number,
        OTP.verified.is_(False),
        OTP.expires_at > utcnow(),
    ).order_by(OTP.created_at.desc(), OTP.id.desc()).first()

    if not otp:
        return False, 'otpNotFound'

    if otp.attempts >= MAX_OTP_ATTEMPTS:
        return False, 'otpAttemptsExceeded'

    if not hmac.compare_digest(otp.code.encode(), (code or '').encode()):
        otp.attempts += 1
        db.session.commit()
        return False, 'otpInvalid'

    otp.verified = True
    db.session.commit()
    return True, None


def create_session(user_id, device_id, device_info=None):
    """One session per (user, device): logging in again replaces the old token."""
    Session.query.filter_by(user_id=user_id, device_id=device_id).delete(synchronize_session=False)

    session = Session(
        session_token=secrets.token_hex(32),
        user_id=user_id,
        device_id=device_id,
        device_info=(device_info or '')[:512] or None,
        expires=utcnow() + timedelta(days=SESSION_EXPIRY_DAYS),
    )
    db.session.add(session)
    db.session.commit()
    return session.session_token


def get_session_user(session_token):
    """Resolve a bearer token to (user, error_key)."""
    if not session_token:
        return None, 'unauthorized'

    session = Session.query.filter_by(session_token=session_token).first()
    if not session:
        return None, 'unauthorized'

    if session.expires < utcnow():
        db.session.delete(session)
        db.session.commit()
        return None, 'sessionExpired'

    user = session.user
    if not user or not user.is_active:
        return None, 'accountInactive'

    return user, None


def invalidate_session(session_token):
    deleted = Session.query.filter_by(session_token=session_token).delete(synchronize_session=False)
    db.session.commit()
    return deleted > 0


def invalidate_all_user_sessions(user_id):
    deleted = Session.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def get_bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return None


def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        user, error_key = get_session_user(token)
        if error_key:
            raise ApiError(401, error_key)
        g.user = user
        g.session_token = token
        return f(*args, **kwargs)
    return decorated


# Admin

def _admin_secret():
    return current_app.config.get('ADMIN_SESSION_SECRET') or current_app.config.get('ADMIN_API_KEY')


def _sign(payload, secret):
    return hmac.new(secret.encode('utf-8'), payload.encode('utf-8'), hashlib.sha256).hexdigest()


def _now_ms():
    return int(time.time() * 1000)


def verify_admin_key(api_key):
    admin_key = current_app.config.get('ADMIN_API_KEY')
    if not admin_key:
        logger.error("ADMIN_API_KEY not configured")
        return False
    return hmac.compare_digest(str(api_key or '').encode(), admin_key.encode())


def create_admin_token(now=None):
    """Signed 'admin:<ms timestamp>:<hex hmac>' token, valid for 24 hours."""
    secret = _admin_secret()
    if not secret:
        raise RuntimeError('ADMIN_SESSION_SECRET or ADMIN_API_KEY must be configured')
    timestamp = now if now is not None else _now_ms()
    payload = f'admin:{timestamp}'
    return f'{payload}:{_sign(payload, secret)}'


def validate_admin_token(token, now=None):
    secret = _admin_secret()
    if not token or not secret:
        return False

    parts = token.split(':')
    if len(parts) != 3:
        return False

    prefix, timestamp_str, signature = parts
    if prefix != 'admin':
        return False

    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return False

    elapsed = (now if now is not None else _now_ms()) - timestamp
    if elapsed > ADMIN_TOKEN_TTL_MS:
        return False

    expected = _sign(f'{prefix}:{timestamp_str}', secret)
    return hmac.compare_digest(signature.encode(), expected.encode())


def set_admin_cookie(response, token):
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        token,
        max_age=ADMIN_TOKEN_TTL_MS // 1000,
        path='/',
        httponly=True,
        secure=is_production(),
        samesite='Strict',
    )
    return response


def clear_admin_cookie(response):
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        '',
        max_age=0,
        path='/',
        httponly=True,
        secure=is_production(),
        samesite='Strict',
    )
    return response


def is_admin_request():
    return validate_admin_token(request.cookies.get(ADMIN_COOKIE_NAME))


def admin_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if not is_admin_request():
            raise ApiError(401, 'adminAuthRequired')
        return f(*args, **kwargs)
    return decorated
