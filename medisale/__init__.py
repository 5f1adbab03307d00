"""Flask application factory."""
from flask import Flask, jsonify, request
from medisale.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from medisale.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Initialize database
    init_db(app)

    # Load the authenticated staff member before each request
    from medisale.middleware import load_current_user

    @app.before_request
    def before_request_handler():
        """Load user context for each request."""
        load_current_user()

    # Error Handlers
    from medisale.exceptions import SaleError

    @app.errorhandler(SaleError)
    def handle_sale_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"SaleError [{error.status_code}] {error.category}: {error.message} ({error.detail})")
        else:
            app.logger.warning(f"SaleError [{error.status_code}] {error.category}: {error.message}")

        include_detail = app.config.get('ENV') != 'production'
        return jsonify(error.to_dict(include_detail=include_detail)), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'category': 'not_found', 'message': 'Ressource introuvable'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'category': 'method_not_allowed', 'message': 'Méthode non autorisée'}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException) and error.code < 500:
            return jsonify({'status': 'error', 'category': 'http', 'message': error.description}), error.code

        app.logger.error(f"Unhandled Exception on {request.path}: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'category': 'unknown', 'message': 'Erreur interne du serveur'}), 500

    # Register blueprints
    from medisale.blueprints.sales import sales_bp
    from medisale.blueprints.dossiers import dossiers_bp
    from medisale.blueprints.metrics import metrics_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(dossiers_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from medisale.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MediSale started (env={app.config.get('ENV')}, db={app.config.get('SQLALCHEMY_DATABASE_URI', '').split('@')[-1]})")

    return app
