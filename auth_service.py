"""Accounts: login, registration and admin user management"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from booking_service import delete_booking_rows
from errors import (APIError, ConflictError, InvalidCredentials, NotFoundError,
                    PersistenceError, ValidationError, db_error_details, parse_id,
                    require_fields, require_strings)
from models import Booking, User, ROLE_ADMIN, ROLE_USER

logger = logging.getLogger(__name__)

ROLES = (ROLE_ADMIN, ROLE_USER)


def _normalize_email(email):
    return email.strip().lower()


def _check_role(role):
    if role not in ROLES:
        raise ValidationError('Role must be admin or user')
    return role


def _email_taken(session, email, exclude_user_id=None):
    query = session.query(User.user_id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.user_id != exclude_user_id)
    return query.first() is not None


def _commit(session, action, conflict_message):
    """Commit; a unique-email violation lost to a concurrent request becomes a conflict"""
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning('Failed to %s: %s', action, db_error_details(e))
        raise ConflictError(conflict_message) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Failed to %s', action)
        raise PersistenceError(f'Failed to {action}', details=db_error_details(e)) from e


# ============================================
# AUTHENTICATION
# ============================================

def authenticate(session, email, password, admin=False):
    """Return the matching User or raise InvalidCredentials"""
    if not email or not password:
        raise ValidationError('Email and password are required')
    require_strings({'email': email, 'password': password}, 'email', 'password')

    query = session.query(User).filter(User.email == _normalize_email(email))
    if admin:
        query = query.filter(User.role == ROLE_ADMIN)
    user = query.first()

    if user is None or not user.check_password(password):
        logger.warning('Failed %slogin for %s', 'admin ' if admin else '', email)
        raise InvalidCredentials('Invalid admin credentials' if admin else 'Invalid credentials')

    logger.info('User %s logged in', user.user_id)
    return user


def register(session, name, email, password):
    if not name or not email or not password:
        raise ValidationError('Name, email and password are required')
    return create_user(session, name, email, password, ROLE_USER)


# ============================================
# ADMIN USER MANAGEMENT
# ============================================

def list_users(session):
    return [u.to_dict() for u in session.query(User).order_by(User.user_id).all()]


def get_user(session, user_id):
    user = session.get(User, parse_id(user_id, 'user_id'))
    if user is None:
        raise NotFoundError('User not found')
    return user


def create_user(session, name, email, password, role=ROLE_USER):
    fields = {'name': name, 'email': email, 'password': password, 'role': role}
    require_fields(fields, 'name', 'email', 'password')
    require_strings(fields, 'name', 'email', 'password', 'role')
    role = _check_role(role or ROLE_USER)
    email = _normalize_email(email)

    if _email_taken(session, email):
        raise ConflictError('User already exists')

    user = User(name=name.strip(), email=email, role=role)
    user.set_password(password)
    session.add(user)
    _commit(session, 'create user', 'User already exists')

    logger.info('User %s created with role %s', user.user_id, role)
    return user.to_dict()


def update_user(session, user_id, data):
    """Partial update; every field is checked before the user is touched"""
    user = get_user(session, user_id)
    require_strings(data, 'name', 'email', 'role', 'password')

    changes = {}
    if 'name' in data:
        if not data['name'] or not data['name'].strip():
            raise ValidationError('Name cannot be empty')
        changes['name'] = data['name'].strip()
    if 'email' in data:
        if not data['email']:
            raise ValidationError('Email cannot be empty')
        email = _normalize_email(data['email'])
        if _email_taken(session, email, exclude_user_id=user.user_id):
            raise ConflictError('Email already in use')
        changes['email'] = email
    if 'role' in data:
        changes['role'] = _check_role(data['role'])

    for field, value in changes.items():
        setattr(user, field, value)
    # password is changed only when a new one is given
    if data.get('password'):
        user.set_password(data['password'])

    _commit(session, 'update user', 'Email already in use')
    logger.info('User %s updated', user.user_id)
    return user.to_dict()


def delete_user(session, user_id):
    """Delete a user; their bookings are cancelled in the same transaction"""
    user_id = get_user(session, user_id).user_id
    try:
        booking_ids = [b.booking_id for b in
                       session.query(Booking.booking_id).filter_by(user_id=user_id).all()]
        for booking_id in booking_ids:
            delete_booking_rows(session, booking_id)
        session.query(User).filter_by(user_id=user_id).delete(synchronize_session=False)
        session.commit()
    except APIError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception('Failed to delete user %s', user_id)
        raise PersistenceError('Failed to delete user', details=db_error_details(e)) from e

    logger.info('User %s deleted along with %d booking(s)', user_id, len(booking_ids))
    return {'message': 'User deleted successfully', 'user_id': user_id}
