"""
Hotel Booking API
=================
Hotels, rooms, bookings and payments over a relational database.
Run with ``flask --app app run`` or ``python app.py``.
"""

import logging
import os
from datetime import datetime
from decimal import Decimal

import click
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from auth_service import create_user
from config import Config
from errors import APIError, db_error_details
from models import db, Amenity, Hotel, Room, RoomType, ROLE_ADMIN, ROOM_AVAILABLE
from routes import BLUEPRINTS

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Application factory; the database handle is bound here and released per app context"""
    app = Flask(__name__)
    app.config.from_object(Config)
    if isinstance(test_config, type):
        app.config.from_object(test_config)
    elif test_config:
        app.config.update(test_config)

    configure_logging(app)

    # ============================================
    # DATABASE
    # ============================================
    db.init_app(app)

    # ============================================
    # SECURITY CONFIGURATION
    # ============================================
    app.config.update(
        SESSION_COOKIE_SECURE=app.config['JWT_COOKIE_SECURE'],
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
    )

    # CORS configuration; credentials so the token cookie travels
    CORS(app,
         supports_credentials=True,
         origins=app.config['CORS_ORIGINS'],
         allow_headers=['Content-Type', 'Authorization'],
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    )

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    register_error_handlers(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        """Health check endpoint"""
        return jsonify({'status': 'healthy', 'timestamp': datetime.now().isoformat()})

    @app.route('/')
    def index():
        """Root endpoint"""
        return jsonify({'message': 'Hotel Booking API', 'status': 'running'})

    return app


def configure_logging(app):
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


# ============================================
# ERROR HANDLERS
# ============================================

def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        logger.exception('Unhandled database error')
        return jsonify({'error': 'Database error', 'details': db_error_details(error)}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description}), error.code


# ============================================
# DATABASE INITIALIZATION
# ============================================

DEMO_CATALOGUE = {
    'amenities': ['Wi-Fi', 'Air conditioning', 'Mini bar', 'Sea view', 'Jacuzzi'],
    'room_types': {
        'Standard': ['Wi-Fi', 'Air conditioning'],
        'Deluxe': ['Wi-Fi', 'Air conditioning', 'Mini bar'],
        'Suite': ['Wi-Fi', 'Air conditioning', 'Mini bar', 'Sea view', 'Jacuzzi'],
    },
    'hotels': [
        ('Grand Plaza', 'New York', Decimal('4.5')),
        ('Seaside Resort', 'Miami', Decimal('4.2')),
    ],
    # (room_number, room type, price per night)
    'rooms': [
        (101, 'Standard', Decimal('80.00')),
        (102, 'Standard', Decimal('80.00')),
        (201, 'Deluxe', Decimal('150.00')),
        (301, 'Suite', Decimal('300.00')),
    ],
}


def seed_demo_catalogue(session):
    """Insert demo hotels, room types, amenities and rooms; returns False if data exists"""
    if session.query(Hotel).first() is not None:
        return False

    amenities = {name: Amenity(amenity_name=name) for name in DEMO_CATALOGUE['amenities']}
    room_types = {
        name: RoomType(room_type=name, amenities=[amenities[a] for a in amenity_names])
        for name, amenity_names in DEMO_CATALOGUE['room_types'].items()
    }
    session.add_all(list(amenities.values()) + list(room_types.values()))
    session.flush()

    for hotel_name, location, rating in DEMO_CATALOGUE['hotels']:
        hotel = Hotel(hotel_name=hotel_name, location=location, rating=rating)
        session.add(hotel)
        session.flush()
        for number, type_name, price in DEMO_CATALOGUE['rooms']:
            session.add(Room(
                hotel_id=hotel.hotel_id,
                room_number=number,
                room_type_id=room_types[type_name].room_type_id,
                price=price,
                availability=ROOM_AVAILABLE
            ))
    session.commit()
    return True


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables"""
        db.create_all()
        click.echo('Database tables created!')

    @app.cli.command('seed-db')
    def seed_db_command():
        """Insert a demo catalogue into an empty database"""
        db.create_all()
        if seed_demo_catalogue(db.session):
            click.echo('Demo catalogue inserted')
        else:
            click.echo('Database already has hotels, nothing inserted')

    @app.cli.command('create-admin')
    @click.argument('name')
    @click.argument('email')
    @click.argument('password')
    def create_admin_command(name, email, password):
        """Create an admin account"""
        try:
            user = create_user(db.session, name, email, password, ROLE_ADMIN)
        except APIError as e:
            raise click.ClickException(e.message)
        click.echo(f"Admin {user['email']} created (id {user['user_id']})")


# ============================================
# MAIN ENTRY POINT
# ============================================

if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()

    debug_mode = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    logger.info('Hotel Booking API running on http://%s:%s (debug=%s)', host, port, debug_mode)
    app.run(debug=debug_mode, host=host, port=port)
