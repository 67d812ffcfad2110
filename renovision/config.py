import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")
    # Script tag src in the embed snippet; defaults to <APP_BASE_URL>/widget/embed.js
    WIDGET_SCRIPT_URL = os.environ.get("WIDGET_SCRIPT_URL")

    # --- Tenancy ---
    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", 14))
    DEFAULT_COMMISSION_RATE = float(os.environ.get("DEFAULT_COMMISSION_RATE", 0.02))

    # --- Email (SMTP) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")          # e.g. hello@renovationvision.io
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")          # App password
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "Renovation Vision")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME
    MAIL_TIMEOUT = int(os.environ.get("MAIL_TIMEOUT", 30))

    # --- Follow-up emails ---
    # Hour of day (server local time) the follow-up worker wakes up.
    # Platform cron equivalent: "0 10 * * *" -> flask send-follow-ups
    FOLLOW_UP_HOUR = int(os.environ.get("FOLLOW_UP_HOUR", 10))
    FOLLOW_UP_LOCK_TTL_MINUTES = int(os.environ.get("FOLLOW_UP_LOCK_TTL_MINUTES", 120))

    # --- Image generation ---
    IMAGE_PROVIDER = os.environ.get("IMAGE_PROVIDER", "gemini").lower()  # gemini | runway
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
    GEMINI_IMAGE_MODEL = os.environ.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
    RUNWAYML_API_KEY = os.environ.get("RUNWAYML_API_KEY")
    RUNWAY_API_URL = os.environ.get("RUNWAY_API_URL", "https://api.dev.runwayml.com")
    RUNWAY_API_VERSION = os.environ.get("RUNWAY_API_VERSION", "2024-11-06")
    RUNWAY_MODEL = os.environ.get("RUNWAY_MODEL", "gen4_image")
    IMAGE_GENERATION_TIMEOUT = int(os.environ.get("IMAGE_GENERATION_TIMEOUT", 180))

    # --- Storage (Supabase, optional; local disk otherwise) ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                # e.g. https://xyz.supabase.co
    SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY") # service_role key for storage
    SUPABASE_STORAGE_BUCKET = os.environ.get("SUPABASE_STORAGE_BUCKET", "renovation-images")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Uploads ---
    MAX_CONTENT_LENGTH = 12 * 1024 * 1024  # hard cap above the 10 MB image limit

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "APP_BASE_URL",
        ]
        provider = os.environ.get("IMAGE_PROVIDER", "gemini").lower()
        if provider == "runway":
            required.append("RUNWAYML_API_KEY")
        else:
            required.append("GEMINI_API_KEY")
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — in-memory SQLite, CSRF disabled."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    APP_BASE_URL = "http://localhost:5000"
    WIDGET_SCRIPT_URL = None
    MAIL_USERNAME = None
    MAIL_PASSWORD = None
    MAIL_FROM_ADDRESS = "hello@renovationvision.test"
    IMAGE_PROVIDER = "gemini"
    GEMINI_API_KEY = "gemini-test-key"
    RUNWAYML_API_KEY = "runway-test-key"
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    WTF_CSRF_ENABLED = False  # disable CSRF for test requests
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode; everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production on Railway."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    # Railway cron runs `flask send-follow-ups`; tolerate a slow SMTP relay
    FOLLOW_UP_LOCK_TTL_MINUTES = int(os.environ.get("FOLLOW_UP_LOCK_TTL_MINUTES", 180))


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
