import os
from dataclasses import dataclass

from flask import current_app


def _env_flag(name):
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: Supabase and most PaaS providers hand out
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    # --- Stripe ---
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_BEDROOM_MONTHLY_PRICE_ID = os.environ.get("STRIPE_BEDROOM_MONTHLY_PRICE_ID")
    STRIPE_PRO_MONTHLY_PRICE_ID = os.environ.get("STRIPE_PRO_MONTHLY_PRICE_ID")
    STRIPE_PRO_PLUS_MONTHLY_PRICE_ID = os.environ.get("STRIPE_PRO_PLUS_MONTHLY_PRICE_ID")
    APP_BASE_URL = os.environ.get("APP_BASE_URL")

    # --- Feature flags (snapshotted into FeatureFlags by create_app) ---
    # Beta mode: hosted tracks are free and no checkout is ever started.
    DISABLE_PAYMENTS = _env_flag("DISABLE_PAYMENTS")
    # Registration is invite-only while this is non-empty.
    INVITE_CODE = (os.environ.get("INVITE_CODE") or "").strip() or None

    # --- Supabase ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                 # e.g. https://xyz.supabase.co
    SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY") # service_role key for storage

    # --- Uploads ---
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024

    # --- Errors ---
    # Append database error text to 500 responses (never in production).
    EXPOSE_ERROR_DETAIL = True

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "APP_BASE_URL",
        ]
        # Stripe keys are only required while payments are enabled
        if not _env_flag("DISABLE_PAYMENTS"):
            required += ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5001")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, rate limits off, fake Stripe keys."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    STRIPE_SECRET_KEY = "sk_test_fake"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    STRIPE_BEDROOM_MONTHLY_PRICE_ID = "price_bedroom_test"
    STRIPE_PRO_MONTHLY_PRICE_ID = "price_pro_test"
    STRIPE_PRO_PLUS_MONTHLY_PRICE_ID = "price_pro_plus_test"
    APP_BASE_URL = "http://localhost:5000"
    DISABLE_PAYMENTS = False  # default off in tests; build a dedicated app to flip it
    INVITE_CODE = None
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    EXPOSE_ERROR_DETAIL = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}


@dataclass(frozen=True)
class FeatureFlags:
    """Deployment-wide switches, resolved once at startup."""

    payments_disabled: bool = False
    invite_code: str = None

    @property
    def invite_required(self):
        return bool(self.invite_code)

    @classmethod
    def from_config(cls, config):
        invite_code = (config.get("INVITE_CODE") or "").strip() or None
        return cls(
            payments_disabled=bool(config.get("DISABLE_PAYMENTS")),
            invite_code=invite_code,
        )


def get_feature_flags():
    """Return the FeatureFlags the current app was built with."""
    return current_app.extensions["feature_flags"]
