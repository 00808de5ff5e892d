"""
Card payments for orders.

Staging mode simulates every charge and refund as a success. Production mode
has no gateway wired in yet, so every charge fails deterministically.
"""
import logging
import time
from collections import namedtuple

import shortuuid
from flask import current_app

logger = logging.getLogger(__name__)

PaymentResult = namedtuple('PaymentResult', ['success', 'transaction_id', 'message', 'error'])


def get_payment_mode():
    mode = current_app.config.get('PAYMENT_MODE', 'staging')
    return 'production' if mode == 'production' else 'staging'


def is_staging():
    return get_payment_mode() == 'staging'


def gateway_configured():
    config = current_app.config
    return bool(config.get('PAYME_MERCHANT_ID') or config.get('CLICK_MERCHANT_ID'))


def _mock_transaction_id(prefix):
    return f"{prefix}_{int(time.time() * 1000)}_{shortuuid.ShortUUID().random(length=6)}"


def process_payment(card_id, amount, order_number, description=''):
    """Charge a stored card for an order."""
    if is_staging():
        transaction_id = _mock_transaction_id('STAGING')
        logger.info(f"[Payment][Staging] Mock charge card={card_id} amount={amount} "
                    f"order={order_number}: {transaction_id}")
        return PaymentResult(True, transaction_id, 'Payment processed successfully (staging mode)', None)

    logger.info(f"[Payment][Production] Charge card={card_id} amount={amount} order={order_number}")

    if not gateway_configured():
        return PaymentResult(False, None, 'Payment gateway not configured',
                             'No payment gateway credentials found in environment variables')

    return PaymentResult(False, None, 'Payment gateway integration pending',
                         'Production payment processing not yet implemented')


def refund_payment(transaction_id, amount):
    if is_staging():
        refund_id = _mock_transaction_id('REFUND')
        logger.info(f"[Payment][Staging] Mock refund {transaction_id} amount={amount}: {refund_id}")
        return PaymentResult(True, refund_id, 'Refund processed successfully (staging mode)', None)

    logger.info(f"[Payment][Production] Refund {transaction_id} amount={amount}")
    return PaymentResult(False, None, 'Refund integration pending',
                         'Production refund processing not yet implemented')
