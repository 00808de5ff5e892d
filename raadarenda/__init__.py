import logging
import os
import time
import uuid

from flask import Flask, g, request, send_from_directory

from .extensions import cors, db
from .utils.i18n import get_language

SENSITIVE_FIELDS = ('code', 'otp', 'api_key', 'card_number')

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def mask_sensitive(data):
    if not isinstance(data, dict):
        return data
    return {k: ('***' if k in SENSITIVE_FIELDS else v) for k, v in data.items()}


def register_request_logging(app):
    @app.before_request
    def start_timer():
        g.request_started = time.time()
        g.request_id = uuid.uuid4().hex[:8]

        if request.path.startswith('/api/'):
            logger.info(
                f"[{g.request_id}] {request.method} {request.path} "
                f"auth={'Authorization' in request.headers} lang={get_language()}"
            )
            if request.method in ('POST', 'PUT') and request.is_json:
                logger.debug(f"[{g.request_id}] body={mask_sensitive(request.get_json(silent=True))}")

    @app.after_request
    def log_response(response):
        request_id = g.get('request_id')
        if request_id:
            response.headers['X-Request-ID'] = request_id
        if request.path.startswith('/api/') and 'request_started' in g:
            duration_ms = int((time.time() - g.request_started) * 1000)
            logger.info(f"[{request_id}] {request.method} {request.path} -> {response.status_code} ({duration_ms}ms)")
        return response


def create_app(config_object="raadarenda.config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if app.config.get('APP_ENV') == 'production' and not app.config.get('ADMIN_API_KEY'):
        raise RuntimeError('ADMIN_API_KEY must be set in production')

    db.init_app(app)
    cors.init_app(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    # Register Blueprints
    from .routes.admin import admin_bp
    from .routes.auth import auth_bp
    from .routes.catalog import catalog_bp
    from .routes.orders import orders_bp
    from .routes.user import user_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(admin_bp)

    from .utils.errors import register_error_handlers
    register_error_handlers(app)
    register_request_logging(app)

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(os.path.abspath(app.config['UPLOAD_FOLDER']), filename)

    with app.app_context():
        from . import models  # noqa: F401
        db.create_all()

    logger.info(f"App started (env={app.config.get('APP_ENV')}, payments={app.config.get('PAYMENT_MODE')})")
    return app
