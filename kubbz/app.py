import os
import logging

import click
from flask import Flask, jsonify
from flask_cors import CORS
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from .config import config
from .models import db, User
from .publisher import EventPublisher
from .tournament_catalog import TournamentCatalog
from .registration_ledger import RegistrationLedger
from .registration_service import RegistrationService
from .participant_query import ParticipantQuery
from .accounts import AccountService
from .leaderboard import Leaderboard
from .winners import WinnerGallery
from .gallery import ImageGallery
from shared.errors import KubbzError

logger = logging.getLogger(__name__)

login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))


def configure_logging(app: Flask):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    logging.getLogger('kubbz').setLevel(level)


def create_app(config_name: str = None) -> Flask:
    """Application factory for the Kubbz API."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    # Initialize services
    publisher = EventPublisher.from_url(app.config.get('REDIS_URL'))
    catalog = TournamentCatalog(publisher)
    ledger = RegistrationLedger()
    registrations = RegistrationService(catalog, ledger, publisher)

    # Create tables
    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.publisher = publisher
    app.catalog = catalog
    app.registrations = registrations
    app.participants = ParticipantQuery(catalog, ledger)
    app.accounts = AccountService(registrations)
    app.leaderboard = Leaderboard()
    app.winners = WinnerGallery()
    app.gallery = ImageGallery()

    register_error_handlers(app)
    register_routes(app)
    register_commands(app)

    logger.info(f"Kubbz API created with '{config_name}' configuration")
    return app


def register_routes(app: Flask):
    from .routes import auth, tournaments, community
    app.register_blueprint(auth.bp)
    app.register_blueprint(tournaments.bp)
    app.register_blueprint(community.bp)

    @app.route('/')
    def index():
        return jsonify({'message': 'Welcome to Kubbz API'})

    @app.route('/health')
    def health_check():
        """Health check endpoint. Redis is optional."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except Exception as e:
            logger.error(f"Health check could not reach the database: {e}")
            db.session.rollback()
            db_ok = False

        if not app.publisher.enabled:
            redis_state = 'disabled'
        else:
            redis_state = 'connected' if app.publisher.ping() else 'disconnected'

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503

        return jsonify({
            'status': status,
            'database': 'connected' if db_ok else 'disconnected',
            'redis': redis_state
        }), code


def register_error_handlers(app: Flask):

    @app.errorhandler(KubbzError)
    def handle_kubbz_error(error: KubbzError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({'error': error.description, 'kind': 'http_error'}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception(f"Unhandled error: {error}")
        return jsonify({'error': 'Something went wrong!', 'kind': 'internal_error'}), 500


def register_commands(app: Flask):

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command('reconcile-counters')
    def reconcile_counters():
        """Recompute every tournament's participant counter from its registrations."""
        drifted = app.registrations.reconcile_counters()
        if not drifted:
            click.echo("All participant counters match the registrations.")
            return
        for tournament_id, drift in sorted(drifted.items()):
            click.echo(f"Tournament {tournament_id}: corrected by {drift:+d}")

    @app.cli.command('create-admin')
    @click.argument('username')
    @click.argument('email')
    @click.password_option()
    def create_admin(username, email, password):
        """Create an administrator account."""
        user = app.accounts.register(username, email, password, is_admin=True)
        click.echo(f"Admin {user.username} created with id {user.id}.")
