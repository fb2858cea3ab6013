"""
Configuration for the People I've Met application.

Contains:
- Server configuration (environment-based)
- Hosted store credentials (Supabase table + storage APIs)
- Portrait upload limits

Everything is read from environment variables with sensible defaults,
except the two Supabase values which have no usable default. Those are
checked by require_store_config() when the server starts.
"""

import os

# =============================================================================
# Server Configuration (from environment variables)
# =============================================================================

# Network binding
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5001"))

# Debug mode (enables hot reload, verbose logging)
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-secret-change-in-production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Audit log and run id live here (relative to the working directory)
LOG_DIR = os.getenv("LOG_DIR", "logs")
DATA_DIR = os.getenv("DATA_DIR", "data")

# =============================================================================
# Hosted Store (Supabase)
# =============================================================================

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_API_KEY = os.getenv("SUPABASE_API_KEY", "")

PEOPLE_TABLE = os.getenv("PEOPLE_TABLE", "people")
PORTRAIT_BUCKET = os.getenv("PORTRAIT_BUCKET", "portraits")

# =============================================================================
# Portrait Limits
# =============================================================================

# Uploads above this size are re-encoded before they reach storage
MAX_PHOTO_SIZE_KB = int(os.getenv("MAX_PHOTO_SIZE_KB", "300"))
# Long edge bound applied while re-encoding
MAX_PHOTO_DIMENSION = int(os.getenv("MAX_PHOTO_DIMENSION", "1920"))


def is_store_configured() -> bool:
    """Check if both Supabase values are present."""
    return bool(SUPABASE_URL and SUPABASE_API_KEY)


def require_store_config() -> None:
    """Fail fast when the hosted store is not configured."""
    if not is_store_configured():
        raise RuntimeError(
            "Missing Supabase environment variables: SUPABASE_URL or SUPABASE_API_KEY"
        )
