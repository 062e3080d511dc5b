import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the package directory or the backend directory
env_path = Path(__file__).parent / '.env'
if not env_path.exists():
    env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/domora')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'domora')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:5173,http://localhost:8080').split(',')
        if origin.strip()
    ]

    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or MAIL_USERNAME or 'noreply@domora.app'


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    MONGO_DB_NAME = 'domora_test'
    MAIL_SUPPRESS_SEND = True
    LOG_LEVEL = 'WARNING'
    BCRYPT_LOG_ROUNDS = 4
