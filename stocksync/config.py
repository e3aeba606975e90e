"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("STOCKSYNC_DATA_DIR", str(PROJECT_ROOT / "data")))
OUTPUT_DIR = Path(os.getenv("STOCKSYNC_OUTPUT_DIR", str(PROJECT_ROOT / "output")))

# Ensure directories exist
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

# Logging
LOG_DIR = OUTPUT_DIR / "logs"
LOG_FILE = LOG_DIR / "app.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(5 * 1024 * 1024)))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))

# Ensure log directory exists
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Store backend: "sql" (SQLAlchemy, local or Postgres) or "rest" (PostgREST-compatible API)
STORE_BACKEND = os.getenv("STORE_BACKEND", "sql").lower()
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'stocksync.sqlite'}")
DATABASE_SEED_ON_CREATE = os.getenv("DATABASE_SEED_ON_CREATE", "true").lower() == "true"

# REST store (hosted database with row-level security)
STORE_REST_URL = os.getenv("STORE_REST_URL", "").rstrip("/")
STORE_API_KEY = os.getenv("STORE_API_KEY", "")
STORE_ACCESS_TOKEN = os.getenv("STORE_ACCESS_TOKEN", "")
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "15.0"))

# Tenant / actor used when a command does not pass one explicitly
DEFAULT_OWNER_ID = os.getenv("DEFAULT_OWNER_ID", "")
DEFAULT_ACTOR_ID = os.getenv("DEFAULT_ACTOR_ID", "") or None

# Variant hierarchy: rank1, rank2, ... (comma separated option names)
VARIANT_OPTION_ORDER = [
    name.strip()
    for name in os.getenv("VARIANT_OPTION_ORDER", "Color,Size").split(",")
    if name.strip()
]

# HTTP server
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SERVER_PORT", "8000"))

# OpenTelemetry
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "false").lower() == "true"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4318/v1/traces")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
SERVICE_NAME = os.getenv("SERVICE_NAME", "stocksync")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "development")
