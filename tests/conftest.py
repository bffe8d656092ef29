"""
Shared fixtures: a fresh app on in-memory SQLite per test, seeded with one
hotel, three rooms, a guest and an admin.
"""
from datetime import date
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from config import TestingConfig
from models import (db, Amenity, Booking, Hotel, Payment, Room, RoomType, User,
                    ROLE_ADMIN, ROLE_USER, ROOM_BOOKED)

GUEST_EMAIL = 'guest@example.com'
GUEST_PASSWORD = 'guestpass'
ADMIN_EMAIL = 'admin@example.com'
ADMIN_PASSWORD = 'adminpass'

# hashing is slow on purpose, do it once per session
_GUEST_HASH = generate_password_hash(GUEST_PASSWORD, method='pbkdf2:sha256')
_ADMIN_HASH = generate_password_hash(ADMIN_PASSWORD, method='pbkdf2:sha256')


def _seed(session):
    wifi = Amenity(amenity_id=1, amenity_name='Wi-Fi')
    minibar = Amenity(amenity_id=2, amenity_name='Mini bar')
    standard = RoomType(room_type_id=1, room_type='Standard', amenities=[wifi])
    deluxe = RoomType(room_type_id=2, room_type='Deluxe', amenities=[wifi, minibar])
    hotel = Hotel(hotel_id=1, hotel_name='Grand Plaza', location='New York', rating=Decimal('4.5'))
    session.add_all([wifi, minibar, standard, deluxe, hotel])
    session.flush()

    session.add_all([
        Room(room_id=1, room_number=101, hotel_id=1, room_type_id=1, price=Decimal('100.00')),
        Room(room_id=2, room_number=102, hotel_id=1, room_type_id=1, price=Decimal('100.00')),
        Room(room_id=3, room_number=201, hotel_id=1, room_type_id=2, price=Decimal('250.00')),
        User(user_id=1, name='Guest', email=GUEST_EMAIL, password=_GUEST_HASH, role=ROLE_USER),
        User(user_id=2, name='Admin', email=ADMIN_EMAIL, password=_ADMIN_HASH, role=ROLE_ADMIN),
    ])
    session.commit()


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        _seed(db.session)
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email=GUEST_EMAIL, password=GUEST_PASSWORD, admin=False):
    path = '/api/auth/admin/login' if admin else '/api/auth/login'
    return client.post(path, json={'email': email, 'password': password})


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = login(client, ADMIN_EMAIL, ADMIN_PASSWORD, admin=True)
    assert response.status_code == 200
    return client


@pytest.fixture
def guest_client(app):
    client = app.test_client()
    response = login(client)
    assert response.status_code == 200
    return client


def book(client, room_id=1, user_id=1, check_in='2026-11-01', check_out='2026-11-03'):
    return client.post('/api/bookings', json={
        'user_id': user_id,
        'room_id': room_id,
        'check_in_date': check_in,
        'check_out_date': check_out
    })


def room_availability(app, room_id):
    with app.app_context():
        return db.session.get(Room, room_id).availability


def assert_availability_consistent(app):
    """A room is booked iff exactly one booking references it"""
    with app.app_context():
        for room in db.session.query(Room).all():
            count = db.session.query(Booking).filter_by(room_id=room.room_id).count()
            assert count <= 1, f'room {room.room_id} has {count} bookings'
            assert (room.availability == ROOM_BOOKED) == (count == 1), room.room_id


def add_payment(app, booking_id, amount, paid_on=date(2026, 10, 20)):
    with app.app_context():
        db.session.add(Payment(booking_id=booking_id, amount=Decimal(amount), payment_date=paid_on))
        db.session.commit()
