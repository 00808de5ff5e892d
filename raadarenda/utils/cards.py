import re

MAX_CARDS = 5


def _digits(card_number):
    return re.sub(r'\D', '', card_number or '')


def mask_card_number(card_number):
    return f'**** **** **** {_digits(card_number)[-4:]}'


def detect_card_type(card_number):
    """Uzbek domestic schemes first, then the international ones by IIN prefix."""
    digits = _digits(card_number)
    if digits.startswith('8600'):
        return 'uzcard'
    if digits.startswith('9860'):
        return 'humo'
    if digits.startswith('4'):
        return 'visa'
    if re.match(r'^(5[1-5]|2[2-7])', digits):
        return 'mastercard'
    return 'unknown'
