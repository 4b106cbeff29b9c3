from flask import Flask, current_app, has_request_context, request
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_babel import Babel
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
babel = Babel()
limiter = Limiter(key_func=get_remote_address)


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    # for each connection.
    if type(dbapi_connection).__module__.startswith('sqlite3'):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def create_app(config_class=Config, test_config=None):
    app = Flask(__name__)
    app.config.update(config_class().model_dump())
    if test_config:
        app.config.update(test_config)
    app.config.setdefault('RATELIMIT_STORAGE_URI', app.config.get('RATELIMIT_STORAGE_URL') or 'memory://')
    app.json.sort_keys = False

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    def get_locale():
        if not has_request_context():
            return None

        # 1. Check for language in cookie first
        lang = request.cookies.get("language")
        if lang and lang in app.config["LANGUAGES"]:
            current_app.logger.debug(
                f"Locale selector: found language in cookie: {lang}")
            return lang

        # 2. Fallback to the client's preferred language
        return request.accept_languages.best_match(app.config["LANGUAGES"])

    babel.init_app(app, locale_selector=get_locale)

    from vaultshare.routes import register_blueprints
    register_blueprints(app)

    from vaultshare.errors import register_error_handlers
    register_error_handlers(app)

    from vaultshare.utils.audit_log import init_audit_logging
    init_audit_logging(app)

    from vaultshare.cli import register_commands
    register_commands(app)

    from vaultshare import models  # noqa: F401

    if app.config.get('SCHEDULER_ENABLED'):
        from vaultshare.utils.scheduler import init_scheduler
        init_scheduler(app)

    return app


@login_manager.request_loader
def load_user_from_request(req):
    """Resolve the caller from the identity provider's forwarded headers.

    The first request seen for a subject provisions its Profile row.
    """
    from vaultshare.models import Profile

    user_id = (req.headers.get(current_app.config['IDENTITY_HEADER']) or '').strip()
    if not user_id:
        return None

    email = (req.headers.get(current_app.config['IDENTITY_EMAIL_HEADER']) or '').strip().lower()
    profile = Profile.query.filter_by(user_id=user_id).first()
    if profile is None:
        profile = Profile(user_id=user_id, email=email or None)
        db.session.add(profile)
        db.session.commit()
    elif email and profile.email != email:
        # the identity provider is authoritative for the address
        profile.email = email
        db.session.commit()
    return profile


@login_manager.unauthorized_handler
def unauthorized():
    from flask import jsonify
    return jsonify({'error': 'unauthorized', 'message': 'Authentication required.'}), 401
