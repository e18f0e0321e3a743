import logging
import sys

from flask import Flask, jsonify, session
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .extensions import db, migrate, csrf, login_manager
from .models.user import User
from .models.customer import Customer
from .models.broker import Broker
from .models.review import Review
from .models.audit_log import AuditLog
from .services import ReviewPipelineError, init_pipeline
from .services.errors import UNAVAILABLE

logger = logging.getLogger(__name__)


def create_app(config_object=None, **pipeline_overrides):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    proxies = app.config.get('TRUSTED_PROXY_COUNT', 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies, x_proto=proxies)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)
    login_manager.session_protection = app.config.get('SESSION_PROTECTION')

    @login_manager.user_loader
    def load_user(user_id):
        # Сессию выдаёт сервис авторизации сайта; здесь только читаем её
        auth_type = session.get('auth_type')
        if auth_type == 'admin':
            return db.session.get(User, int(user_id))
        if auth_type == 'customer':
            return db.session.get(Customer, int(user_id))
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(ok=False, error='unauthorized', category='input',
                       message='Please sign in to continue.'), 401

    csp = {
        'default-src': "'self'",
        'object-src': "'none'",
        'base-uri': "'self'",
        'form-action': "'self'",
    }
    Talisman(
        app,
        content_security_policy=csp,
        force_https=app.config.get('FORCE_HTTPS', True),
        session_cookie_secure=app.config.get('FORCE_HTTPS', True),
    )

    _register_error_handlers(app)

    from .views.reviews import reviews_bp
    from .admin import admin_bp
    app.register_blueprint(reviews_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')

    from .cli_commands import register_commands
    register_commands(app)

    init_pipeline(app, **pipeline_overrides)

    with app.app_context():
        db.create_all()
    return app


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(app.config.get('LOG_FORMAT')))
        package_logger.addHandler(handler)


def _register_error_handlers(app):
    @app.errorhandler(ReviewPipelineError)
    def handle_pipeline_error(error):
        if error.category == UNAVAILABLE:
            logger.warning("Request failed, service side: %s", error.code)
        else:
            logger.info("Request refused: %s (%s)", error.code, error.message)
        return jsonify(error.to_dict()), error.http_status
