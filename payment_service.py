"""
Payment workflow
================
Payments are recorded against a booking and the booking's ``payment_status``
is derived from them: a booking is ``paid`` once the payments add up to the
room price times the number of nights, ``unpaid`` otherwise.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from errors import (APIError, NotFoundError, PersistenceError, ValidationError,
                    db_error_details, parse_date, parse_id, require_fields)
from models import Booking, Payment, PAYMENT_PAID, PAYMENT_UNPAID

logger = logging.getLogger(__name__)


# Numeric(10, 2) holds up to 8 digits before the point
MAX_AMOUNT = Decimal(10) ** 8


def parse_amount(value):
    """Amount rounded half up to cents; must be positive after rounding"""
    if isinstance(value, bool):
        raise ValidationError('Invalid amount')
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError('Amount must be a positive number')
        amount = amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError('Invalid amount')
    if amount <= 0:
        raise ValidationError('Amount must be a positive number')
    if amount >= MAX_AMOUNT:
        raise ValidationError('Amount is too large')
    return amount


def _get_booking(session, booking_id):
    booking = session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError('Booking not found')
    return booking


def amount_due(booking):
    return Decimal(booking.room.price) * booking.nights


def total_paid(session, booking_id):
    total = session.query(func.coalesce(func.sum(Payment.amount), 0)) \
        .filter(Payment.booking_id == booking_id).scalar()
    return Decimal(str(total))


def sync_payment_status(session, booking_id):
    """
    Recompute a booking's payment status from its payments.

    Writes the booking only when the derived status differs, so repeated
    calls without new payments are no-ops. Does not commit.
    """
    booking = _get_booking(session, booking_id)
    new_status = PAYMENT_PAID if total_paid(session, booking_id) >= amount_due(booking) else PAYMENT_UNPAID

    if booking.payment_status != new_status:
        logger.info('Booking %s payment status %s -> %s', booking_id, booking.payment_status, new_status)
        booking.payment_status = new_status
        session.flush()
    return new_status


def process_payment(session, booking_id, amount, payment_date):
    """Record a payment and resync the booking status in one transaction"""
    require_fields({
        'booking_id': booking_id,
        'amount': amount,
        'payment_date': payment_date
    }, 'booking_id', 'amount', 'payment_date')

    booking_id = parse_id(booking_id, 'booking_id')
    amount = parse_amount(amount)
    payment_date = parse_date(payment_date, 'payment_date')

    try:
        _get_booking(session, booking_id)
        session.add(Payment(booking_id=booking_id, amount=amount, payment_date=payment_date))
        session.flush()
        status = sync_payment_status(session, booking_id)
        session.commit()
    except APIError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Error processing payment for booking %s', booking_id)
        raise PersistenceError('Failed to process payment', details=db_error_details(e)) from e

    logger.info('Payment of %s recorded for booking %s', amount, booking_id)
    return {'payment_status': status}


def get_payment_status(session, booking_id):
    """Status is always recomputed on read, never taken from the stored column"""
    booking_id = parse_id(booking_id, 'booking_id')
    try:
        status = sync_payment_status(session, booking_id)
        session.commit()
    except APIError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Error getting payment status for booking %s', booking_id)
        raise PersistenceError('Failed to get payment status', details=db_error_details(e)) from e
    return {'payment_status': status}


def list_payments_for_booking(session, booking_id):
    booking_id = parse_id(booking_id, 'booking_id')
    booking = _get_booking(session, booking_id)
    payments = session.query(Payment).filter_by(booking_id=booking_id) \
        .order_by(Payment.payment_date, Payment.payment_id).all()

    return {
        'booking_id': booking_id,
        'payment_status': booking.payment_status,
        'amount_due': float(amount_due(booking)),
        'total_paid': float(sum((p.amount for p in payments), Decimal('0'))),
        'payments': [p.to_dict() for p in payments]
    }
