import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as hotel.db unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "hotel.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "hotel_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = 30 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Password policy
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))
    PASSWORD_REQUIRE_SYMBOL = os.getenv("PASSWORD_REQUIRE_SYMBOL", "false").lower() == "true"

    # Booking policy
    BOOKING_ACTIVE_STATUSES = ("pending", "confirmed")
    BOOKING_PRIVILEGED_ROLES = ("admin", "manager")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Create tables on startup instead of running migrations (tests only)
    AUTO_CREATE_TABLES = False

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SESSION_COOKIE_SECURE = False
    LOG_LEVEL = "DEBUG"
    AUTO_CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
