"""
Django settings: tunefeed_api project.
"""

from pathlib import Path
import os
import tempfile
import environ
import logging

# ---------------------------------------
# Paths
# ---------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# ---------------------------------------
# Env
# ---------------------------------------
env = environ.Env()
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))  # Explicit path to .env file

# --- Last.fm (similarity / popularity fallback source) ---
LASTFM_API_KEY           = env("LASTFM_API_KEY", default="")
LASTFM_TIMEOUT           = env.float("LASTFM_TIMEOUT", default=25.0)
LASTFM_ENABLE_HTTP_CACHE = env.bool("LASTFM_ENABLE_HTTP_CACHE", default=True)
LASTFM_CACHE_TTL         = env.int("LASTFM_CACHE_TTL", default=60 * 60 * 24)
LASTFM_CACHE_NAME        = env("LASTFM_CACHE_NAME", default=str(BASE_DIR / "lfm_cache"))

# --- Recommender env knobs (all optional) ---
RECS_DEFAULT_LIMIT        = env.int("RECS_DEFAULT_LIMIT", default=10)
RECS_WEIGHT_COLLABORATIVE = env.float("RECS_WEIGHT_COLLABORATIVE", default=0.6)
RECS_WEIGHT_CONTENT       = env.float("RECS_WEIGHT_CONTENT", default=0.3)
RECS_WEIGHT_POPULAR       = env.float("RECS_WEIGHT_POPULAR", default=0.1)
RECS_MAX_BLEND            = env.int("RECS_MAX_BLEND", default=50)
RECS_FEATURE_TOLERANCE    = env.float("RECS_FEATURE_TOLERANCE", default=0.2)
RECS_WINDOW_FEATURES      = env.list("RECS_WINDOW_FEATURES", default=["energy", "danceability", "valence"])
RECS_SIMILAR_USERS        = env.int("RECS_SIMILAR_USERS", default=10)
RECS_RECENT_LIKES         = env.int("RECS_RECENT_LIKES", default=5)
RECS_PARALLEL_GENERATORS  = env.bool("RECS_PARALLEL_GENERATORS", default=True)
# Seconds; unset means wait for every generator
RECS_GENERATOR_TIMEOUT    = env.float("RECS_GENERATOR_TIMEOUT", default=None)

# ---------------------------------------
# Core
# ---------------------------------------
SECRET_KEY = env("DJANGO_SECRET_KEY", default="dev-insecure-secret")
DEBUG = env.bool("DEBUG", default=True)

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["*"])

# ---------------------------------------
# Apps
# ---------------------------------------
INSTALLED_APPS = [
    # Django
    "django.contrib.auth",
    "django.contrib.contenttypes",

    # Local app
    "discovery",
]

# ---------------------------------------
# Database (SQLite for dev)
# ---------------------------------------
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
    )
}
# File-backed test DB, kept out of the source tree, so generator worker
# threads see rows committed by transactional tests
DATABASES["default"].setdefault("TEST", {})
if DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3":
    DATABASES["default"]["TEST"].setdefault("NAME", os.path.join(tempfile.gettempdir(), "tunefeed_test.sqlite3"))

# ---------------------------------------
# I18N
# ---------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
# ---------------------------------------
# Logging (dev-friendly)
# ---------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
    "root": {"handlers": ["console"], "level": "INFO"},
    "loggers": {
        "discovery": {
            "handlers": ["console"],
            "level": env("DISCOVERY_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
logging.getLogger("urllib3").setLevel(logging.ERROR)
logging.getLogger("urllib3.connectionpool").setLevel(logging.ERROR)
