"""Campus Attendance - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from campus_attendance.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Wire services
    register_services(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Campus Attendance',
            'version': '1.0.0'
        })

    return app

def register_services(app: Flask) -> None:
    """Create the token store and inject it into the services."""
    from campus_attendance.services.token_store import create_token_store
    from campus_attendance.services.session_service import SessionService
    from campus_attendance.services.attendance_service import AttendanceService

    token_store = create_token_store(app.config)

    app.extensions['short_token_store'] = token_store
    app.extensions['session_service'] = SessionService(
        token_store,
        refresh_interval_seconds=app.config['QR_REFRESH_INTERVAL_SECONDS']
    )
    app.extensions['attendance_service'] = AttendanceService(
        token_store,
        max_distance_meters=app.config['MAX_DISTANCE_METERS'],
        freshness_seconds=app.config['QR_VALIDITY_SECONDS'],
        max_future_skew_seconds=app.config['QR_MAX_FUTURE_SKEW_SECONDS']
    )

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from campus_attendance.api.sessions import sessions_bp
    from campus_attendance.api.qr import qr_bp
    from campus_attendance.api.attendance import attendance_bp

    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(qr_bp, url_prefix='/api/qr')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from campus_attendance.utils.errors import AttendanceError
    from campus_attendance.utils.helpers import attendance_error_response, handle_error
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        return attendance_error_response(error)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has expired'}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({'error': 'Invalid token'}), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({'error': 'Unauthorized'}), 401

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    # Service modules log under the package logger
    package_logger = logging.getLogger('campus_attendance')
    package_logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        package_logger.addHandler(file_handler)

        app.logger.setLevel(level)
        app.logger.info('Campus Attendance startup')

def setup_database(app: Flask) -> None:
    """Setup database connections."""
    with app.app_context():
        # Import all models so metadata is complete
        from campus_attendance.models import (
            User, UserRole,
            AttendanceSession, ShortToken, AttendanceRecord
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-db')
    def seed_db():
        """Seed database with demo users."""
        from campus_attendance.services.seed_service import SeedService

        created = SeedService.seed_all()
        click.echo(f'Database seeded: {created} users created.')

    @app.cli.command('issue-token')
    @click.argument('email')
    def issue_token(email):
        """Print an access token for a user (development stand-in for the identity provider)."""
        from campus_attendance.services.seed_service import SeedService

        token = SeedService.issue_token(email)
        if token is None:
            raise click.ClickException(f'No user with email {email}')
        click.echo(token)

    @app.cli.command('sweep-tokens')
    def sweep_tokens():
        """Delete expired short tokens."""
        count = app.extensions['short_token_store'].sweep_expired()
        click.echo(f'Swept {count} expired tokens.')
