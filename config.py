# ==========================================================================================================
# -------------- Configuration file for the BrightPlanet Ventures backend ------------------------------------
# ==========================================================================================================
import os
from decimal import Decimal
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _normalize_database_url(url):
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+pg8000://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+pg8000://", 1)
    return url


class Config:

    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    SECRET_KEY = os.getenv("SECRET_KEY")
    if not SECRET_KEY:
        if FLASK_ENV == "production":
            raise ValueError("SECRET_KEY must be set in production")
        SECRET_KEY = "dev_key_change_me"

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'brightplanet.db')}"

    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_database_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    if SQLALCHEMY_DATABASE_URI.startswith("postgresql"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        }

    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")
    PORT = int(os.getenv("PORT", "5000"))
    FRONTEND_BUILD_DIR = os.getenv(
        "FRONTEND_BUILD_DIR", os.path.join(basedir, "frontend", "build")
    )
    BACKEND_URL = os.getenv("BACKEND_URL", f"http://localhost:{PORT}")
    REQUEST_TIMEOUT_SECONDS = int(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

    # Saving plan: fixed monthly installments
    INSTALLMENT_COUNT = 20
    INSTALLMENT_AMOUNT = Decimal("1000.00")
    SAVING_PLAN_LABEL = "₹1000 per month for 20 months"

    # List endpoints
    LIST_LIMIT = 100
    PIN_REQUEST_LIST_LIMIT = 50

    WALLET_DRIFT_TOLERANCE = Decimal("0.01")


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    FLASK_ENV = "testing"
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
