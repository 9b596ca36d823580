import os
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger
from hlsrelay.utils.logger import config as configure_logger

# Load .env as early as possible so all downstream imports see the intended env
load_dotenv()

# Configure logger after env is loaded (LOG_LEVEL honored)
configure_logger()


def _as_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    v = val.strip().lower()
    return v in ("1", "true", "yes", "on")


def _as_seconds(name: str, default: float) -> float:
    """Read a non-negative duration in seconds from the environment.

    Unparseable values fall back to ``default`` with a warning; negative values
    are clamped to 0.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}; defaulting to {default}.")
        return default
    return max(0.0, value)


def _as_list(val: str | None) -> list[str]:
    if not val:
        return []
    return [part.strip() for part in val.split(",") if part.strip()]


# --- Server ---
HLSRELAY_RELOAD = _as_bool(os.getenv("HLSRELAY_RELOAD", None), False)
HLSRELAY_HOST = os.getenv("HLSRELAY_HOST", "0.0.0.0").strip() or "0.0.0.0"
try:
    HLSRELAY_PORT = int(os.getenv("HLSRELAY_PORT", "3000") or 3000)
except ValueError:
    logger.warning("Invalid HLSRELAY_PORT; defaulting to 3000.")
    HLSRELAY_PORT = 3000

# --- Registry / content cache lifetimes ---
# Registry entries (token -> origin URL) expire after this many seconds.
URL_TTL_SECONDS = _as_seconds("URL_TTL_SECONDS", 3600.0)
# Content cache eviction age; also the freshness window for segments.
CONTENT_CACHE_TTL_SECONDS = _as_seconds("CONTENT_CACHE_TTL_SECONDS", 3600.0)
# Live playlists move on, so manifests are only reused for a short window.
MANIFEST_FRESH_SECONDS = _as_seconds("MANIFEST_FRESH_SECONDS", 30.0)
SWEEP_INTERVAL_SECONDS = max(1.0, _as_seconds("SWEEP_INTERVAL_SECONDS", 300.0))
logger.debug(
    f"URL_TTL_SECONDS={URL_TTL_SECONDS}, CONTENT_CACHE_TTL_SECONDS={CONTENT_CACHE_TTL_SECONDS}, "
    f"MANIFEST_FRESH_SECONDS={MANIFEST_FRESH_SECONDS}, SWEEP_INTERVAL_SECONDS={SWEEP_INTERVAL_SECONDS}"
)

# --- Upstream ---
UPSTREAM_TIMEOUT_SECONDS = _as_seconds("UPSTREAM_TIMEOUT_SECONDS", 30.0) or 30.0
UPSTREAM_USER_AGENT = os.getenv("UPSTREAM_USER_AGENT", "").strip()

# --- Static player page (served as-is when the directory exists) ---
STATIC_DIR = Path(os.getenv("STATIC_DIR", "public")).expanduser()

# --- CORS ---
CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", ""))
CORS_ALLOW_CREDENTIALS = _as_bool(os.getenv("CORS_ALLOW_CREDENTIALS", None), False)
logger.debug(
    f"CORS_ORIGINS={CORS_ORIGINS}, CORS_ALLOW_CREDENTIALS={CORS_ALLOW_CREDENTIALS}"
)
