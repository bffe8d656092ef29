"""
Booking workflow
================
Creating and cancelling bookings keeps ``rooms.availability`` in step with
the booking table: a room is ``booked`` exactly while a booking references
it. Both mutations run as one database transaction on the injected session.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from errors import (APIError, ConflictError, NotFoundError, PersistenceError,
                    ValidationError, db_error_details, parse_date, parse_id,
                    require_fields)
from models import (Booking, Hotel, Payment, Room, RoomType, User,
                    PAYMENT_UNPAID, ROLE_USER, ROOM_AVAILABLE, ROOM_BOOKED)

logger = logging.getLogger(__name__)


# ============================================
# MUTATIONS
# ============================================

def create_booking(session, user_id, room_id, check_in_date, check_out_date):
    """Book a room and mark it booked, atomically"""
    require_fields({
        'user_id': user_id,
        'room_id': room_id,
        'check_in_date': check_in_date,
        'check_out_date': check_out_date
    }, 'user_id', 'room_id', 'check_in_date', 'check_out_date')

    user_id = parse_id(user_id, 'user_id')
    room_id = parse_id(room_id, 'room_id')
    check_in = parse_date(check_in_date, 'check_in_date')
    check_out = parse_date(check_out_date, 'check_out_date')
    if check_out <= check_in:
        raise ValidationError('Check-out date must be after check-in date')

    try:
        if session.get(User, user_id) is None:
            raise NotFoundError('User not found')

        # Conditional update: of two concurrent callers only one sees a row change
        claimed = session.query(Room).filter_by(
            room_id=room_id,
            availability=ROOM_AVAILABLE
        ).update({'availability': ROOM_BOOKED}, synchronize_session=False)

        if not claimed:
            if session.query(Room.room_id).filter_by(room_id=room_id).first() is None:
                raise NotFoundError('Room not found')
            logger.warning('Room %s is already booked', room_id)
            raise ConflictError('Room is already booked')

        booking = Booking(
            user_id=user_id,
            room_id=room_id,
            check_in_date=check_in,
            check_out_date=check_out,
            payment_status=PAYMENT_UNPAID
        )
        session.add(booking)
        session.commit()
    except APIError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Failed to create booking for room %s', room_id)
        raise PersistenceError('Failed to create booking', details=db_error_details(e)) from e

    logger.info('Booking %s created: user %s, room %s', booking.booking_id, user_id, room_id)
    return booking.to_dict()


def delete_booking_rows(session, booking_id):
    """
    Remove a booking, its payments and release its room without committing.
    Returns the freed room_id, or None when the booking does not exist.
    """
    row = session.query(Booking.room_id).filter_by(booking_id=booking_id).with_for_update().first()
    if row is None:
        return None

    room_id = row.room_id
    session.query(Payment).filter_by(booking_id=booking_id).delete(synchronize_session=False)
    session.query(Booking).filter_by(booking_id=booking_id).delete(synchronize_session=False)
    session.query(Room).filter_by(room_id=room_id).update(
        {'availability': ROOM_AVAILABLE}, synchronize_session=False
    )
    return room_id


def cancel_booking(session, booking_id):
    """Hard-delete a booking with its payments and free the room"""
    booking_id = parse_id(booking_id, 'booking_id')
    try:
        room_id = delete_booking_rows(session, booking_id)
        if room_id is None:
            raise NotFoundError('Booking not found')
        session.commit()
    except APIError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Failed to cancel booking %s', booking_id)
        raise PersistenceError('Failed to cancel booking', details=db_error_details(e)) from e

    logger.info('Booking %s cancelled, room %s available again', booking_id, room_id)
    return {'message': 'Booking cancelled successfully', 'booking_id': booking_id}


# ============================================
# QUERIES
# ============================================

def list_bookings(session):
    rows = session.query(Booking, Room.room_number, Hotel.hotel_name, User.name) \
        .join(Room, Booking.room_id == Room.room_id) \
        .join(Hotel, Room.hotel_id == Hotel.hotel_id) \
        .join(User, Booking.user_id == User.user_id) \
        .order_by(Booking.booking_id) \
        .all()

    return [
        dict(booking.to_dict(), room_number=room_number, hotel_name=hotel_name, user_name=user_name)
        for booking, room_number, hotel_name, user_name in rows
    ]


def list_bookings_by_user(session, user_id):
    user_id = parse_id(user_id, 'user_id')
    rows = session.query(Booking, Room.room_number, Hotel.hotel_name, RoomType.room_type) \
        .join(Room, Booking.room_id == Room.room_id) \
        .join(Hotel, Room.hotel_id == Hotel.hotel_id) \
        .join(RoomType, Room.room_type_id == RoomType.room_type_id) \
        .filter(Booking.user_id == user_id) \
        .order_by(Booking.check_in_date.desc()) \
        .all()

    return [
        {
            'booking_id': booking.booking_id,
            'room_id': booking.room_id,
            'check_in_date': booking.check_in_date.isoformat(),
            'check_out_date': booking.check_out_date.isoformat(),
            'payment_status': booking.payment_status,
            'room_number': room_number,
            'hotel_name': hotel_name,
            'room_type': room_type
        }
        for booking, room_number, hotel_name, room_type in rows
    ]


def list_bookings_admin_detailed(session):
    """Every booking with guest, room and payment details for the admin table"""
    # Payments are summed per booking so a booking with several payments is listed once
    paid = session.query(
        Payment.booking_id.label('booking_id'),
        func.sum(Payment.amount).label('amount_paid')
    ).group_by(Payment.booking_id).subquery()

    rows = session.query(
        Booking,
        User.name,
        User.email,
        Hotel.hotel_name,
        Room.room_number,
        Room.price,
        RoomType.room_type,
        func.coalesce(paid.c.amount_paid, 0)
    ).join(Room, Booking.room_id == Room.room_id) \
        .join(Hotel, Room.hotel_id == Hotel.hotel_id) \
        .join(RoomType, Room.room_type_id == RoomType.room_type_id) \
        .join(User, Booking.user_id == User.user_id) \
        .outerjoin(paid, paid.c.booking_id == Booking.booking_id) \
        .order_by(Booking.booking_id.desc()) \
        .all()

    result = []
    for booking, user_name, user_email, hotel_name, room_number, price, room_type, amount_paid in rows:
        data = booking.to_dict()
        data.update({
            'user_name': user_name,
            'user_email': user_email,
            'hotel_name': hotel_name,
            'room_number': room_number,
            'room_type': room_type,
            'price': float(price),
            'duration_days': (booking.check_out_date - booking.check_in_date).days,
            'amount_paid': float(amount_paid or 0)
        })
        result.append(data)
    return result


def occupancy_rate(booked_rooms, total_rooms):
    """Percentage of booked rooms, rounded half up; 0 when there are no rooms"""
    if not total_rooms:
        return 0
    rate = Decimal(booked_rooms * 100) / Decimal(total_rooms)
    return int(rate.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def dashboard_stats(session):
    total_bookings = session.query(func.count(Booking.booking_id)).scalar()
    total_revenue = session.query(func.coalesce(func.sum(Payment.amount), 0)).scalar()
    total_users = session.query(func.count(User.user_id)).filter(User.role == ROLE_USER).scalar()
    total_rooms = session.query(func.count(Room.room_id)).scalar()
    booked_rooms = session.query(func.count(Room.room_id)) \
        .filter(Room.availability == ROOM_BOOKED).scalar()

    return {
        'total_bookings': total_bookings,
        'total_revenue': float(total_revenue) if total_revenue else 0,
        'total_users': total_users,
        'total_rooms': total_rooms,
        'booked_rooms': booked_rooms,
        'occupancy_rate': occupancy_rate(booked_rooms, total_rooms)
    }
