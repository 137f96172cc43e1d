"""Flask application factory."""
from flask import Flask, jsonify
from rera_quotes.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for approval notifications
    from rera_quotes.services.notification_service import init_mail
    init_mail(app)

    # Redis cache for reference data
    from rera_quotes.services.cache_service import init_cache
    init_cache(app)

    # Production: trust the reverse proxy headers
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # Initialize database
    init_db(app)

    # Load the current user before each request
    from rera_quotes.middleware import load_user

    @app.before_request
    def before_request_handler():
        load_user()

    # Error Handlers
    from rera_quotes.exceptions import QuotationError

    @app.errorhandler(QuotationError)
    def handle_quotation_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"QuotationError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"QuotationError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({'status': 'error', 'message': 'Method Not Allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from rera_quotes.blueprints.pricing import pricing_bp
    from rera_quotes.blueprints.quotations import quotations_bp
    from rera_quotes.blueprints.approvals import approvals_bp

    app.register_blueprint(pricing_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(approvals_bp)

    # Register CLI commands
    from rera_quotes.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    app.logger.info(f"MAIL_DEFAULT_SENDER={app.config.get('MAIL_DEFAULT_SENDER')}")

    return app
