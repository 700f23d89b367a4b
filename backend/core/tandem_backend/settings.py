from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1", "testserver"]),
    CORS_ALLOWED_ORIGINS=(list, []),
    CSRF_TRUSTED_ORIGINS=(list, []),
)
environ.Env.read_env(BASE_DIR / ".env")

SECRET_KEY = env("SECRET_KEY", default="django-insecure-change-me")
DEBUG = env("DEBUG")
ALLOWED_HOSTS = env("ALLOWED_HOSTS")

USE_X_FORWARDED_HOST = env.bool("USE_X_FORWARDED_HOST", default=True)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "corsheaders",
    "rest_framework",
    "rest_framework.authtoken",
    "tenancy.apps.TenancyConfig",
    "members.apps.MembersConfig",
    "records.apps.RecordsConfig",
    "safety.apps.SafetyConfig",
    "verification.apps.VerificationConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]
ROOT_URLCONF = "tandem_backend.urls"

TEMPLATES = []

DATABASE_ENGINE = env("DATABASE_ENGINE", default="django.db.backends.sqlite3").strip()
if DATABASE_ENGINE == "django.db.backends.sqlite3":
    DATABASES = {
        "default": {
            "ENGINE": DATABASE_ENGINE,
            "NAME": env("SQLITE_NAME", default=str(BASE_DIR / "db.sqlite3")),
            # File-backed test database: worker threads of the concurrency checks
            # open their own connections and must see committed fixtures.
            "TEST": {
                "NAME": env("SQLITE_TEST_NAME", default=str(BASE_DIR / "test_db.sqlite3")),
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DATABASE_ENGINE,
            "NAME": env("DATABASE_NAME", default="tandem_db"),
            "USER": env("DATABASE_USER", default="tandem_user"),
            "PASSWORD": env("DATABASE_PASSWORD", default=""),
            "HOST": env("DATABASE_HOST", default="127.0.0.1"),
            "PORT": env("DATABASE_PORT", default="5432"),
            "CONN_MAX_AGE": env.int("DATABASE_CONN_MAX_AGE", default=60),
            "OPTIONS": {"sslmode": env("DATABASE_SSLMODE", default="disable")},
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CORS_ALLOWED_ORIGINS = env("CORS_ALLOWED_ORIGINS")
CSRF_TRUSTED_ORIGINS = env("CSRF_TRUSTED_ORIGINS")

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework.authentication.TokenAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
}

TENANCY_SINGLE_CHECK_BUDGET_MS = env.float("TENANCY_SINGLE_CHECK_BUDGET_MS", default=100.0)
TENANCY_CONCURRENT_CHECK_BUDGET_MS = env.float("TENANCY_CONCURRENT_CHECK_BUDGET_MS", default=1000.0)
TENANCY_CONCURRENT_SUBJECTS = env.int("TENANCY_CONCURRENT_SUBJECTS", default=10)
TENANCY_CAS_MAX_ATTEMPTS = env.int("TENANCY_CAS_MAX_ATTEMPTS", default=5)
TENANCY_INVITE_TTL_DAYS = env.int("TENANCY_INVITE_TTL_DAYS", default=7)
TENANCY_INVITE_MAX_TTL_DAYS = env.int("TENANCY_INVITE_MAX_TTL_DAYS", default=30)
TENANCY_HARNESS_MEMBERS = env.int("TENANCY_HARNESS_MEMBERS", default=52)
TENANCY_HARNESS_PAIRINGS = env.int("TENANCY_HARNESS_PAIRINGS", default=26)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "mask_subject_identifiers": {
            "()": "tenancy.logging.MaskSubjectIdentifierFilter",
        },
    },
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "filters": ["mask_subject_identifiers"],
        },
    },
    "root": {
        "handlers": ["console"],
        "level": env("LOG_LEVEL", default="WARNING"),
    },
    "loggers": {
        "tenancy.audit": {
            "handlers": ["console"],
            "level": env("TENANCY_AUDIT_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
