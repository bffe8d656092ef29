"""
HTTP routes for the Hotel Booking API.

Each route hands ``db.session`` to a service function and renders the
result; errors are raised as ``errors.APIError`` and rendered by the
handler registered in ``app.create_app``.
"""

from flask import Blueprint, g, jsonify, request

import auth_service
import booking_service
import catalog_service
import payment_service
from errors import ValidationError
from models import db
from security import admin_required, clear_token_cookie, login_required, set_token_cookie

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')
bookings_bp = Blueprint('bookings', __name__, url_prefix='/api/bookings')
payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')
auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

BLUEPRINTS = (catalog_bp, bookings_bp, payments_bp, auth_bp)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


# ============================================
# HOTEL / ROOM / ROOM TYPE ROUTES
# ============================================

@catalog_bp.route('/hotels')
def get_hotels():
    return jsonify(catalog_service.list_hotels(db.session))


@catalog_bp.route('/hotels/<int:hotel_id>')
def get_hotel(hotel_id):
    return jsonify(catalog_service.get_hotel(db.session, hotel_id))


@catalog_bp.route('/hotels/<int:hotel_id>/rooms')
@catalog_bp.route('/rooms/hotel/<int:hotel_id>')
def get_hotel_rooms(hotel_id):
    return jsonify(catalog_service.list_rooms_by_hotel(db.session, hotel_id))


@catalog_bp.route('/rooms')
def get_rooms():
    return jsonify(catalog_service.list_rooms(db.session, request.args.get('availability')))


@catalog_bp.route('/rooms/<int:room_id>')
def get_room(room_id):
    return jsonify(catalog_service.get_room(db.session, room_id))


@catalog_bp.route('/room-types')
def get_room_types():
    return jsonify(catalog_service.list_room_types(db.session))


@catalog_bp.route('/room-types/<int:room_type_id>')
def get_room_type(room_type_id):
    """Room type with its amenities"""
    return jsonify(catalog_service.get_room_type(db.session, room_type_id))


@catalog_bp.route('/amenities')
def get_amenities():
    return jsonify(catalog_service.list_amenities(db.session))


@catalog_bp.route('/users/<int:user_id>/bookings')
def get_user_bookings_alias(user_id):
    return jsonify(booking_service.list_bookings_by_user(db.session, user_id))


# ============================================
# BOOKING ROUTES
# ============================================

@bookings_bp.route('', methods=['GET'])
def get_bookings():
    return jsonify(booking_service.list_bookings(db.session))


@bookings_bp.route('/user/<int:user_id>')
def get_user_bookings(user_id):
    return jsonify(booking_service.list_bookings_by_user(db.session, user_id))


@bookings_bp.route('/admin')
@admin_required
def get_admin_bookings():
    return jsonify(booking_service.list_bookings_admin_detailed(db.session))


@bookings_bp.route('/stats')
@admin_required
def get_dashboard_stats():
    return jsonify(booking_service.dashboard_stats(db.session))


@bookings_bp.route('', methods=['POST'])
def create_booking():
    data = _json_body()
    booking = booking_service.create_booking(
        db.session,
        data.get('user_id'),
        data.get('room_id'),
        data.get('check_in_date'),
        data.get('check_out_date')
    )
    return jsonify(booking), 201


@bookings_bp.route('/<int:booking_id>', methods=['DELETE'])
def cancel_booking(booking_id):
    return jsonify(booking_service.cancel_booking(db.session, booking_id))


# ============================================
# PAYMENT ROUTES
# ============================================

@payments_bp.route('', methods=['POST'])
def process_payment():
    data = _json_body()
    result = payment_service.process_payment(
        db.session,
        data.get('booking_id'),
        data.get('amount'),
        data.get('payment_date')
    )
    return jsonify({'message': 'Payment processed successfully', **result})


@payments_bp.route('/booking/<int:booking_id>')
def get_payment_status(booking_id):
    return jsonify(payment_service.get_payment_status(db.session, booking_id))


@payments_bp.route('/booking/<int:booking_id>/history')
def get_payment_history(booking_id):
    return jsonify(payment_service.list_payments_for_booking(db.session, booking_id))


# ============================================
# AUTHENTICATION ROUTES
# ============================================

def _login_response(user, message):
    response = jsonify({'message': message, 'user': user.to_dict()})
    return set_token_cookie(response, user)


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login - sets the session cookie"""
    data = _json_body()
    user = auth_service.authenticate(db.session, data.get('email'), data.get('password'))
    return _login_response(user, 'Login successful')


@auth_bp.route('/admin/login', methods=['POST'])
def admin_login():
    data = _json_body()
    user = auth_service.authenticate(db.session, data.get('email'), data.get('password'), admin=True)
    return _login_response(user, 'Admin login successful')


@auth_bp.route('/logout', methods=['POST'])
def logout():
    return clear_token_cookie(jsonify({'message': 'Logged out'}))


@auth_bp.route('/me')
@login_required
def current_user():
    """Shape consumed by the frontend auth store"""
    return jsonify({'user': g.current_user.to_dict(), 'isAuthenticated': True})


@auth_bp.route('/register', methods=['POST'])
def register():
    data = _json_body()
    user = auth_service.register(db.session, data.get('name'), data.get('email'), data.get('password'))
    return jsonify({'message': 'User registered successfully', **user}), 201


# ============================================
# ADMIN USER MANAGEMENT ROUTES
# ============================================

@auth_bp.route('/admin/users', methods=['GET'])
@admin_required
def list_users():
    return jsonify(auth_service.list_users(db.session))


@auth_bp.route('/admin/users', methods=['POST'])
@admin_required
def create_user():
    data = _json_body()
    user = auth_service.create_user(
        db.session,
        data.get('name'),
        data.get('email'),
        data.get('password'),
        data.get('role')
    )
    return jsonify({'message': 'User created successfully', **user}), 201


@auth_bp.route('/admin/users/<int:user_id>', methods=['GET'])
@admin_required
def get_user(user_id):
    return jsonify(auth_service.get_user(db.session, user_id).to_dict())


@auth_bp.route('/admin/users/<int:user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    user = auth_service.update_user(db.session, user_id, _json_body())
    return jsonify({'message': 'User updated successfully', **user})


@auth_bp.route('/admin/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    return jsonify(auth_service.delete_user(db.session, user_id))
