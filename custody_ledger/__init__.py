# custody_ledger/__init__.py

from flask import Flask, jsonify
from config import Config, ProductionConfig, engine_options_for
from custody_ledger.extensions import db, login_manager, socketio, migrate, limiter
from custody_ledger.ledger import ConcurrencyError, CustodyLedgerEngine, SystemClock
from custody_ledger.models import Ledger
from custody_ledger.notifications import SocketIONotifier
import os
import logging
from logging.handlers import RotatingFileHandler
from sqlalchemy.exc import SQLAlchemyError, OperationalError, DisconnectionError
from werkzeug.exceptions import HTTPException


def configure_logging(app):
    if app.config.get('LOG_TO_STDOUT'):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        app.logger.addHandler(stream_handler)
    else:
        if not os.path.exists('logs'):
            os.mkdir('logs')
        file_handler = RotatingFileHandler('logs/custody_ledger.log',
                                           maxBytes=10240000,
                                           backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

    # app.logger is the 'custody_ledger' logger, so module loggers propagate here
    app.logger.setLevel(logging.INFO)
    app.logger.info('Custody Ledger startup')


def create_app(config_class=Config):
    """Application factory.

    Args:
        config_class: a config class, or a mapping of overrides applied on
            top of ``Config`` (handy in tests)
    """
    app = Flask(__name__)
    if isinstance(config_class, dict):
        app.config.from_object(Config)
        app.config.update(config_class)
        if 'SQLALCHEMY_DATABASE_URI' in config_class and 'SQLALCHEMY_ENGINE_OPTIONS' not in config_class:
            app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options_for(
                config_class['SQLALCHEMY_DATABASE_URI']
            )
    else:
        app.config.from_object(config_class)

    # Force production config if FLASK_ENV is production
    if os.environ.get('FLASK_ENV') == 'production':
        app.config.from_object(ProductionConfig)
        if not app.config['SQLALCHEMY_DATABASE_URI']:
            raise ValueError("DATABASE_URL must be set in production")
        configure_logging(app)
    elif not app.testing:
        configure_logging(app)

    # Initialize Flask extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)

    # Register the Socket.IO handlers before init_app so every app gets them
    from custody_ledger import socket_events  # noqa: F401

    # Initialize SocketIO with a Redis message queue when configured
    socketio.init_app(
        app,
        message_queue=app.config.get('SOCKETIO_MESSAGE_QUEUE'),
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE')
    )

    limiter.init_app(app)

    # Shared by every request so timestamps never go backwards
    app.extensions['custody_ledger'] = {
        'clock': SystemClock(),
        'notifier': SocketIONotifier(),
    }

    # Registers the Flask-Login request loader
    from custody_ledger.auth import identity  # noqa: F401

    from custody_ledger.api import bp as api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    # Register CLI commands
    from custody_ledger.cli import init_cli
    init_cli(app)

    with app.app_context():
        db.create_all()

        # Ensure the default ledger exists
        owner = app.config.get('DEFAULT_LEDGER_OWNER')
        if owner and not Ledger.query.filter_by(owner=owner).first():
            services = app.extensions['custody_ledger']
            engine = CustodyLedgerEngine.create_ledger(
                owner,
                clock=services['clock'],
                notifier=services['notifier']
            )
            app.logger.info(f'Created default ledger {engine.ledger.id} for {owner}')

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        app.logger.error(f'Database error occurred: {str(error)}')
        db.session.rollback()
        if isinstance(error, OperationalError):
            return jsonify({'error': 'Database connection error. Please try again later.'}), 503
        elif isinstance(error, DisconnectionError):
            db.session.remove()  # Clean up the session
            return jsonify({'error': 'Lost connection to database. Please retry.'}), 500
        return jsonify({'error': 'An unexpected database error occurred.'}), 500

    @app.errorhandler(ConcurrencyError)
    def handle_concurrency_error(error):
        return jsonify({'error': 'ConcurrencyError', 'message': str(error)}), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'error': error.name,
            'message': error.description
        }), error.code

    @app.teardown_appcontext
    def cleanup(resp_or_exc):
        """Ensure proper cleanup of database sessions"""
        db.session.remove()

    return app
