import logging

from flask import jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ..extensions import db
from .i18n import t

logger = logging.getLogger(__name__)

HTTP_ERROR_KEYS = {
    400: 'badRequest',
    401: 'unauthorized',
    403: 'forbidden',
    404: 'notFound',
    405: 'methodNotAllowed',
    413: 'fileTooLarge',
}


class ApiError(Exception):
    """An error that maps to a translated JSON envelope."""

    def __init__(self, status_code, message_key, params=None, **extra):
        super().__init__(message_key)
        self.status_code = status_code
        self.message_key = message_key
        self.params = params or {}
        self.extra = extra


def error_response(message_key, status_code=400, errors=None, params=None, **extra):
    body = {
        'success': False,
        'message': t(message_key, **(params or {})),
    }
    if errors is not None:
        body['errors'] = errors
    body.update(extra)
    return jsonify(body), status_code


def validation_errors(exc):
    """Flatten a pydantic ValidationError into [{field, message}]."""
    return [
        {
            'field': '.'.join(str(part) for part in err.get('loc', ())) or None,
            'message': err.get('msg'),
        }
        for err in exc.errors()
    ]


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        db.session.rollback()
        return error_response(e.message_key, e.status_code, params=e.params, **e.extra)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return error_response('validationError', 400, errors=validation_errors(e))

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return error_response(HTTP_ERROR_KEYS.get(e.code, 'badRequest'), e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.error(f"Unhandled error: {str(e)}", exc_info=True)
        db.session.rollback()
        return error_response('internalServerError', 500)
