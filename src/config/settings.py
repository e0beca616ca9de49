"""Django settings for the talent-match project."""

from pathlib import Path

import environ

env = environ.Env()

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BASE_DIR.parent
environ.Env.read_env(PROJECT_ROOT / ".env")

SECRET_KEY = env("SECRET_KEY", default="dev-secret-key")
DEBUG = env.bool("DEBUG", default=True)
ALLOWED_HOSTS = [host.strip() for host in env.list("ALLOWED_HOSTS", default=["*"]) if host.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.postgres",
    "rest_framework",
    "pgvector.django",
    "src.candidates",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "src.config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "src.config.wsgi.application"
ASGI_APPLICATION = "src.config.asgi.application"

USE_SQLITE = env.bool("USE_SQLITE", default=False)
if USE_SQLITE:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": env("DB_NAME", default="talent_match"),
            "USER": env("DB_USER", default="talent_match"),
            "PASSWORD": env("DB_PASSWORD", default="talent_match"),
            "HOST": env("DB_HOST", default="localhost"),
            "PORT": env("DB_PORT", default="5432"),
        }
    }

# Batch abort flags are set by one request and polled by another, so the cache must be
# shared across worker processes.
CACHES = {
    "default": {
        "BACKEND": env("CACHE_BACKEND", default="django.core.cache.backends.redis.RedisCache"),
        "LOCATION": env("CACHE_LOCATION", default="redis://localhost:6379/2"),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
MEDIA_URL = env("MEDIA_URL", default="/media/")
MEDIA_ROOT = env("MEDIA_ROOT", default=str(PROJECT_ROOT / "media"))
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOG_LEVEL = env("LOG_LEVEL", default="INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose"},
    },
    "loggers": {
        "src": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "django": {"handlers": ["console"], "level": env("DJANGO_LOG_LEVEL", default="WARNING")},
    },
}

# Models
OPENAI_API_KEY = env("OPENAI_API_KEY", default="")
EXTRACTION_MODEL = env("EXTRACTION_MODEL", default="gpt-4o-mini")
RANKING_MODEL = env("RANKING_MODEL", default="gpt-4o")
EMBEDDING_MODEL_NAME = env("EMBEDDING_MODEL_NAME", default="text-embedding-3-small")
EMBEDDING_DIM = env.int("EMBEDDING_DIM", default=1536)

# Ingestion
RESUME_STORAGE_PREFIX = env("RESUME_STORAGE_PREFIX", default="resumes/")
RESUME_MIN_CHARS = env.int("RESUME_MIN_CHARS", default=50)
RESUME_MAX_CHARS = env.int("RESUME_MAX_CHARS", default=3000)
EXTRACTION_MAX_ATTEMPTS = env.int("EXTRACTION_MAX_ATTEMPTS", default=3)
EXTRACTION_BACKOFF_BASE_SECONDS = env.float("EXTRACTION_BACKOFF_BASE_SECONDS", default=1.0)
INGESTION_DELAY_SECONDS = env.float("INGESTION_DELAY_SECONDS", default=0.5)
BATCH_MAX_ITEMS = env.int("BATCH_MAX_ITEMS", default=50)
SCORE_ON_INGEST = env.bool("SCORE_ON_INGEST", default=True)
DRIVE_API_BASE = env("DRIVE_API_BASE", default="https://www.googleapis.com/drive/v3")
DOWNLOAD_TIMEOUT_SECONDS = env.int("DOWNLOAD_TIMEOUT_SECONDS", default=30)

# Matching / ranking
JOB_DESCRIPTION_MIN_CHARS = env.int("JOB_DESCRIPTION_MIN_CHARS", default=50)
MATCH_THRESHOLD = env.float("MATCH_THRESHOLD", default=0.1)
MATCH_COUNT = env.int("MATCH_COUNT", default=5)
RANKING_PROFILE_MAX_CHARS = env.int("RANKING_PROFILE_MAX_CHARS", default=10000)
RANKING_DELAY_SECONDS = env.float("RANKING_DELAY_SECONDS", default=6.5)

REDIS_URL = env("REDIS_URL", default="redis://localhost:6379/0")
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default=REDIS_URL)
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://localhost:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = env("CELERY_TIMEZONE", default="UTC")
CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=False)
