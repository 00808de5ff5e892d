import os
from dotenv import load_dotenv
load_dotenv()


def _env_list(name, default=""):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    APP_ENV = os.getenv("APP_ENV", "development")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///raadarenda.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY")
    JSON_AS_ASCII = False

    CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

    # Admin auth
    ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")
    ADMIN_SESSION_SECRET = os.getenv("ADMIN_SESSION_SECRET") or os.getenv("ADMIN_API_KEY")

    # SMS
    SMS_PROVIDER = os.getenv("SMS_PROVIDER", "mock")
    ESKIZ_EMAIL = os.getenv("ESKIZ_EMAIL")
    ESKIZ_PASSWORD = os.getenv("ESKIZ_PASSWORD")
    ESKIZ_FROM = os.getenv("ESKIZ_FROM", "4546")
    ESKIZ_API_URL = os.getenv("ESKIZ_API_URL", "https://notify.eskiz.uz/api")

    # Payments
    PAYMENT_MODE = os.getenv("PAYMENT_MODE", "staging")
    PAYME_MERCHANT_ID = os.getenv("PAYME_MERCHANT_ID", "")
    PAYME_SECRET_KEY = os.getenv("PAYME_SECRET_KEY", "")
    CLICK_MERCHANT_ID = os.getenv("CLICK_MERCHANT_ID", "")
    CLICK_SERVICE_ID = os.getenv("CLICK_SERVICE_ID", "")
    CLICK_SECRET_KEY = os.getenv("CLICK_SECRET_KEY", "")

    # Uploads, first configured backend wins
    UPLOADTHING_TOKEN = os.getenv("UPLOADTHING_TOKEN")
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024


class TestingConfig(Config):
    TESTING = True
    APP_ENV = "development"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    ADMIN_API_KEY = "test-admin-key"
    ADMIN_SESSION_SECRET = "test-session-secret"
    SMS_PROVIDER = "mock"
    PAYMENT_MODE = "staging"
    UPLOADTHING_TOKEN = None
    CLOUDINARY_CLOUD_NAME = None
    CLOUDINARY_API_KEY = None
    CLOUDINARY_API_SECRET = None
