"""
Session tokens and route guards.

Login mints a JWT carrying ``{id, role}`` and stores it in an HttpOnly
cookie; the decorators below read it back on every guarded request.
"""

from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import current_app, g, request

from errors import Forbidden, Unauthorized
from models import db, User


# ============================================
# JWT HELPERS
# ============================================

def create_jwt_token(user_id: int, role: str) -> str:
    """Create a JWT token for the user"""
    payload = {
        'id': user_id,
        'role': role,
        'exp': datetime.utcnow() + timedelta(hours=current_app.config['JWT_EXPIRATION_HOURS']),
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'],
                      algorithm=current_app.config['JWT_ALGORITHM'])


def verify_jwt_token(token: str) -> dict:
    """Verify JWT token and return payload if valid"""
    try:
        return jwt.decode(token, current_app.config['JWT_SECRET'],
                          algorithms=[current_app.config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def set_token_cookie(response, user):
    config = current_app.config
    response.set_cookie(
        config['JWT_COOKIE_NAME'],
        create_jwt_token(user.user_id, user.role),
        max_age=config['JWT_EXPIRATION_HOURS'] * 3600,
        httponly=True,
        secure=config['JWT_COOKIE_SECURE'],
        samesite='Lax'
    )
    return response


def clear_token_cookie(response):
    response.delete_cookie(current_app.config['JWT_COOKIE_NAME'],
                           httponly=True, samesite='Lax')
    return response


def _request_token():
    token = request.cookies.get(current_app.config['JWT_COOKIE_NAME'])
    if token:
        return token
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:]
    return None


def get_current_user():
    """Get current user from the session token, or None"""
    token = _request_token()
    if not token:
        return None
    payload = verify_jwt_token(token)
    if not payload or 'id' not in payload:
        return None
    return db.session.get(User, payload['id'])


def load_current_user():
    token = _request_token()
    if not token:
        raise Unauthorized('Authentication required')
    user = get_current_user()
    if user is None:
        raise Unauthorized('Invalid or expired token')
    g.current_user = user
    return user


# ============================================
# DECORATORS
# ============================================

def login_required(f):
    """Authentication decorator"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        load_current_user()
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Authentication decorator for admin-only routes"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = load_current_user()
        if not user.is_admin:
            raise Forbidden('Unauthorized: Admin access only')
        return f(*args, **kwargs)
    return decorated_function
