import os
import sys
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent.parent

# Hosts and names that only ever show up in live database URLs
PRODUCTION_MARKERS = (
    "railway.app",
    "railway.internal",
    "rlwy.net",
    "supabase.co",
    "amazonaws.com",
    "azure.com",
    "production",
    "live",
)
TEST_MARKERS = ("sqlite://", "studio_test", "localhost", "127.0.0.1", "test")

DEV_DATABASE_URL = "sqlite:///studio_dev.db"
TEST_DATABASE_URL = "sqlite:///:memory:"


def running_tests() -> bool:
    return "pytest" in sys.modules or os.environ.get("TESTING") == "True"


def is_production_database(db_url: str) -> bool:
    """True when the URL points at something that looks live."""
    lowered = (db_url or "").lower()
    return any(marker in lowered for marker in PRODUCTION_MARKERS)


def is_test_database(db_url: str) -> bool:
    lowered = (db_url or "").lower()
    return any(marker in lowered for marker in TEST_MARKERS)


def normalize_database_url(db_url):
    """PyMySQL is the driver for MySQL URLs; every other scheme passes through."""
    if db_url and db_url.startswith("mysql://"):
        return db_url.replace("mysql://", "mysql+pymysql://", 1)
    return db_url


def resolve_database_url(testing, flask_env=None):
    """
    Pick the database URL for this process.

    Test runs use TEST_DATABASE_URL (in-memory SQLite by default) and refuse
    to start against anything that looks live. Other runs need DATABASE_URL,
    except in development where a local SQLite file is used.
    """
    if testing or flask_env == "testing":
        url = os.environ.get("TEST_DATABASE_URL") or TEST_DATABASE_URL

        if is_production_database(url):
            print(f" ABORT: test run pointed at a live database: {url}")
            sys.exit(1)
        if not is_test_database(url):
            print(f"  WARNING: {url} does not look like a test database")

        # Keep the live URL out of reach for the rest of the run
        live_url = os.environ.get("DATABASE_URL")
        if live_url and is_production_database(live_url):
            os.environ.pop("DATABASE_URL", None)
            print("  Removed live DATABASE_URL from the test environment")

        print(" TESTING MODE: studio test database")
        return normalize_database_url(url)

    url = os.environ.get("DATABASE_URL")
    if not url:
        if flask_env != "development":
            raise ValueError("DATABASE_URL must be set outside development and tests")
        url = DEV_DATABASE_URL
        print(f"  DATABASE_URL not set, using {DEV_DATABASE_URL}")

    if is_production_database(url):
        print("  WARNING: connected to a live studio database")
    print(f" {(flask_env or 'production').upper()} MODE: studio database ready")
    return normalize_database_url(url)


# Under pytest only tests/.env.test is read
if running_tests():
    env_file = ROOT_DIR / "tests" / ".env.test"
    if env_file.exists():
        load_dotenv(env_file, override=True)
        print(f" Loaded test environment from: {env_file}")
    os.environ.setdefault("TESTING", "True")
else:
    load_dotenv()

TESTING = os.environ.get("TESTING") == "True"
FLASK_ENV = os.environ.get("FLASK_ENV")


def _as_bool(value, default=False):
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SQLALCHEMY_DATABASE_URI = resolve_database_url(TESTING, FLASK_ENV)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get("SECRET_KEY", "studio-dev-secret")
    JWT_EXPIRY_HOURS = int(os.environ.get("JWT_EXPIRY_HOURS", "12"))

    TESTING = TESTING

    STUDIO_NAME = os.environ.get("STUDIO_NAME", "Krampus Tattoo Studio")

    # Outbound chat relay (WhatsApp/Telegram bot bridge)
    WHATSAPP_WEBHOOK_URL = os.environ.get("WHATSAPP_WEBHOOK_URL")
    WHATSAPP_TARGET_NUMBER = os.environ.get("WHATSAPP_TARGET_NUMBER")
    RELAY_TIMEOUT_SECONDS = float(os.environ.get("RELAY_TIMEOUT_SECONDS", "10"))

    # Outbound email
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    RESEND_FROM_EMAIL = os.environ.get("RESEND_FROM_EMAIL", "onboarding@resend.dev")

    # Daily summary job
    ENABLE_SCHEDULER = _as_bool(os.environ.get("ENABLE_SCHEDULER"))
    DAILY_SUMMARY_HOUR = int(os.environ.get("DAILY_SUMMARY_HOUR", "20"))
