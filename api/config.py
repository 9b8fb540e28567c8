from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# -------------------------------------------------------------------
# Paths
# -------------------------------------------------------------------
BASE_DIR = os.path.dirname(os.path.abspath(__file__))     # api/
ROOT_DIR = os.path.dirname(BASE_DIR)                      # project root

# =========================
# Config & Initialization
# =========================
# Load root .env first, then any CWD .env.
load_dotenv(os.path.join(ROOT_DIR, ".env"))
load_dotenv()

APP_NAME = os.getenv("APP_NAME", "ARMi Account API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
PORT = int(os.getenv("PORT", "5050"))
DEBUG = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")
FLASK_SECRET = os.getenv("FLASK_SECRET", "armi_dev_secret")

DEBUG_CONSOLE_ENABLED = os.getenv("DEBUG_CONSOLE_ENABLED", "false").lower() in ("1", "true", "yes")
DEBUG_EVENTS_MAX = int(os.getenv("DEBUG_EVENTS_MAX", "500"))

# Supabase (identity + PostgREST)
SUPABASE_URL = os.getenv("ARMI_SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.getenv("ARMI_SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("ARMI_SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_TIMEOUT_SECS = float(os.getenv("ARMI_SUPABASE_TIMEOUT_SECS", "5"))

# "sql" talks to Postgres directly, "supabase" goes through the RPC function.
ACCOUNT_DATA_BACKEND = os.getenv("ARMI_ACCOUNT_DATA_BACKEND", "sql").strip().lower()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:////tmp/armi_account_data.db")

# RevenueCat (entitlements)
REVENUECAT_API_KEY = os.getenv("REVENUECAT_API_KEY", "")
REVENUECAT_BASE_URL = os.getenv("REVENUECAT_BASE_URL", "https://api.revenuecat.com/v1").rstrip("/")
REVENUECAT_TIMEOUT_SECS = float(os.getenv("REVENUECAT_TIMEOUT_SECS", "10"))
ENTITLEMENT_ID = os.getenv("ENTITLEMENT_ID", "ARMi Pro")

# Client side
API_BASE_URL = os.getenv("ARMI_API_BASE_URL", "http://localhost:5050").rstrip("/")
API_TIMEOUT_SECS = float(os.getenv("ARMI_API_TIMEOUT_SECS", "30"))
SESSION_PATH = os.getenv("ARMI_SESSION_PATH", "/tmp/armi_session.json")

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("armi")
