# Database Models for the Hotel Booking API
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

ROLE_ADMIN = 'admin'
ROLE_USER = 'user'

ROOM_AVAILABLE = 'available'
ROOM_BOOKED = 'booked'

PAYMENT_PAID = 'paid'
PAYMENT_UNPAID = 'unpaid'


room_type_amenities = db.Table(
    'room_type_amenities',
    db.Column('room_type_id', db.Integer, db.ForeignKey('room_types.room_type_id'), primary_key=True),
    db.Column('amenity_id', db.Integer, db.ForeignKey('amenities.amenity_id'), primary_key=True),
)


class User(db.Model):
    """User model - guests book rooms, admins manage users"""
    __tablename__ = 'users'

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_USER)

    def set_password(self, password):
        self.password = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        return check_password_hash(self.password, password)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def to_dict(self):
        # password is never serialised
        return {
            'user_id': self.user_id,
            'name': self.name,
            'email': self.email,
            'role': self.role
        }


class Hotel(db.Model):
    __tablename__ = 'hotels'

    hotel_id = db.Column(db.Integer, primary_key=True)
    hotel_name = db.Column(db.String(100), nullable=False)
    location = db.Column(db.String(255), default='')
    rating = db.Column(db.Numeric(2, 1), nullable=True)

    def to_dict(self):
        return {
            'hotel_id': self.hotel_id,
            'hotel_name': self.hotel_name,
            'location': self.location,
            'rating': float(self.rating) if self.rating is not None else None
        }


class Amenity(db.Model):
    __tablename__ = 'amenities'

    amenity_id = db.Column(db.Integer, primary_key=True)
    amenity_name = db.Column(db.String(100), nullable=False)

    def to_dict(self):
        return {
            'amenity_id': self.amenity_id,
            'amenity_name': self.amenity_name
        }


class RoomType(db.Model):
    __tablename__ = 'room_types'

    room_type_id = db.Column(db.Integer, primary_key=True)
    room_type = db.Column(db.String(50), nullable=False)

    amenities = db.relationship('Amenity', secondary=room_type_amenities, lazy='selectin',
                                order_by='Amenity.amenity_id')

    def to_dict(self, with_amenities=False):
        data = {
            'room_type_id': self.room_type_id,
            'room_type': self.room_type
        }
        if with_amenities:
            data['amenities'] = [a.to_dict() for a in self.amenities]
        return data


class Room(db.Model):
    """Room model - availability is owned by the booking workflow"""
    __tablename__ = 'rooms'

    room_id = db.Column(db.Integer, primary_key=True)
    room_number = db.Column(db.Integer, nullable=False)
    hotel_id = db.Column(db.Integer, db.ForeignKey('hotels.hotel_id'), nullable=False)
    room_type_id = db.Column(db.Integer, db.ForeignKey('room_types.room_type_id'), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)  # per night
    availability = db.Column(db.String(10), nullable=False, default=ROOM_AVAILABLE)

    # Unique constraint: room_number per hotel
    __table_args__ = (
        db.UniqueConstraint('hotel_id', 'room_number', name='unique_room_per_hotel'),
    )

    def to_dict(self):
        return {
            'room_id': self.room_id,
            'room_number': self.room_number,
            'hotel_id': self.hotel_id,
            'room_type_id': self.room_type_id,
            'price': float(self.price),
            'availability': self.availability
        }


class Booking(db.Model):
    """Booking model - one active booking per room"""
    __tablename__ = 'booking'

    booking_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.room_id'), nullable=False)
    check_in_date = db.Column(db.Date, nullable=False)
    check_out_date = db.Column(db.Date, nullable=False)
    payment_status = db.Column(db.String(10), nullable=False, default=PAYMENT_UNPAID)

    room = db.relationship('Room', lazy=True)

    @property
    def nights(self):
        # a same-day stay is charged as one night
        return max((self.check_out_date - self.check_in_date).days, 1)

    def to_dict(self):
        return {
            'booking_id': self.booking_id,
            'user_id': self.user_id,
            'room_id': self.room_id,
            'check_in_date': self.check_in_date.isoformat(),
            'check_out_date': self.check_out_date.isoformat(),
            'payment_status': self.payment_status
        }


class Payment(db.Model):
    __tablename__ = 'payment'

    payment_id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('booking.booking_id'), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)

    def to_dict(self):
        return {
            'payment_id': self.payment_id,
            'booking_id': self.booking_id,
            'amount': float(self.amount),
            'payment_date': self.payment_date.isoformat()
        }
