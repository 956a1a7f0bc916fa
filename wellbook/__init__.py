# Import important modules and create app package
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_mail import Mail

from wellbook.config import Config

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()


def create_app(config_class=Config):
    # Initialize app
    app = Flask(__name__)
    app.config.from_object(config_class)

    # SQLite waits on locks for at most the booking timeout
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        engine_options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
        connect_args = dict(engine_options.get('connect_args') or {})
        connect_args.setdefault('timeout', app.config['BOOKING_TIMEOUT_SECONDS'])
        engine_options['connect_args'] = connect_args
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options

    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'unauthenticated', 'message': 'Please log in to access this resource.'}), 401

    register_error_handlers(app)

    # Register blueprints
    from wellbook.booking.routes import booking_bp
    from wellbook.appointments.routes import appointments_bp
    from wellbook.staff.routes import staff_bp
    from wellbook.admin.routes import admin_bp

    app.register_blueprint(booking_bp)
    app.register_blueprint(appointments_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(admin_bp)

    from wellbook.cli import register_commands
    register_commands(app)

    # Create database tables
    with app.app_context():
        from wellbook import models  # noqa: F401
        db.create_all()
        app.logger.debug("Database tables created")

    return app


def register_error_handlers(app):
    from wellbook.errors import BookingError, ServiceUnavailable

    @app.errorhandler(BookingError)
    def handle_booking_error(error):
        response = jsonify(error.to_dict())
        response.status_code = error.http_status
        if isinstance(error, ServiceUnavailable):
            response.headers['Retry-After'] = str(error.retry_after)
        return response
