import logging

import requests
from flask import current_app

from .i18n import translate

logger = logging.getLogger(__name__)

_eskiz_token = {'value': None}


def send_sms(phone_number, message):
    """Send an SMS through the configured provider. Returns True on success."""
    provider = current_app.config.get('SMS_PROVIDER', 'mock')
    if provider == 'eskiz':
        return send_eskiz_sms(phone_number, message)
    return send_mock_sms(phone_number, message)


def send_mock_sms(phone_number, message):
    logger.info(f"[MOCK SMS] To: {phone_number} Message: {message}")
    return True


def _eskiz_login(config):
    response = requests.post(
        f"{config['ESKIZ_API_URL']}/auth/login",
        data={'email': config['ESKIZ_EMAIL'], 'password': config['ESKIZ_PASSWORD']},
        timeout=10,
    )
    response.raise_for_status()
    token = response.json().get('data', {}).get('token')
    _eskiz_token['value'] = token
    return token


def send_eskiz_sms(phone_number, message):
    config = current_app.config
    if not config.get('ESKIZ_EMAIL') or not config.get('ESKIZ_PASSWORD'):
        logger.error("Eskiz credentials not configured")
        return False

    try:
        token = _eskiz_token['value'] or _eskiz_login(config)
        payload = {
            'mobile_phone': phone_number.lstrip('+'),
            'message': message,
            'from': config.get('ESKIZ_FROM'),
        }
        url = f"{config['ESKIZ_API_URL']}/message/sms/send"
        response = requests.post(url, headers={'Authorization': f'Bearer {token}'}, data=payload, timeout=10)

        # Tokens expire after 30 days; re-login once
        if response.status_code == 401:
            token = _eskiz_login(config)
            response = requests.post(url, headers={'Authorization': f'Bearer {token}'}, data=payload, timeout=10)

        if response.status_code != 200:
            logger.error(f"Eskiz API error: {response.status_code} {response.text}")
            return False

        logger.info(f"SMS sent to {phone_number}")
        return True
    except requests.RequestException as e:
        logger.error(f"Failed to send SMS: {str(e)}")
        return False


def send_otp_sms(phone_number, code, language='ru'):
    return send_sms(phone_number, translate('otpSmsTemplate', language, code=code))
