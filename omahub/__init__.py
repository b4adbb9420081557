"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException
from omahub.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # CSRF for cookie-authenticated requests (checked in require_login / csrf_checked)
    from omahub.middleware import csrf, load_current_user
    csrf.init_app(app)

    # Flask-Mail for order confirmations
    from omahub.services.email_service import init_mail
    init_mail(app)

    # Redis cache
    from omahub.services.cache_service import init_cache
    init_cache(app)

    # Prometheus metrics instrumentation
    from omahub.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production' or app.config.get('FLASK_ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    @app.before_request
    def before_request_handler():
        """Resolve the acting user for each request."""
        load_current_user()

    # Error Handlers
    from omahub.exceptions import OmaHubError

    @app.errorhandler(OmaHubError)
    def handle_omahub_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"OmaHubError [{error.status_code}] {request.path}: {error.message}")
        else:
            app.logger.info(f"OmaHubError [{error.status_code}] {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'error': 'Invalid or missing CSRF token'}), 400

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'error': 'Not Found'}), 404

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'error': 'Internal server error'}), 500

    # Register blueprints
    from omahub.blueprints.auth import auth_bp
    from omahub.blueprints.basket import basket_bp
    from omahub.blueprints.orders import orders_bp
    from omahub.blueprints.studio import studio_bp
    from omahub.blueprints.brands import brands_bp
    from omahub.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(basket_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(studio_bp)
    app.register_blueprint(brands_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from omahub.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")

    return app
