# Configuration for the Hotel Booking API
import os
import secrets

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _database_url():
    url = os.environ.get('DATABASE_URL')
    if not url:
        return 'sqlite:///hotel.db'
    # Fix for SQLAlchemy compatibility with psycopg3
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+psycopg://', 1)
    if url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+psycopg://', 1)
    return url


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)

    # ============================================
    # DATABASE
    # ============================================
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # ============================================
    # JWT SESSION COOKIE
    # ============================================
    JWT_SECRET = os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRATION_HOURS = int(os.environ.get('JWT_EXPIRATION_HOURS', 24))
    JWT_COOKIE_NAME = 'token'
    JWT_COOKIE_SECURE = os.environ.get('FLASK_ENV') == 'production'

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173').split(',')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET = 'test-jwt-secret'
    JWT_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = 'WARNING'
