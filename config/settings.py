from pathlib import Path
import os
from datetime import timedelta

import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
APPEND_SLASH = True

ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]


INSTALLED_APPS = []  # montado a partir de SHARED_APPS + TENANT_APPS

# apps que moram no PUBLIC schema (mínimo)
SHARED_APPS = (
    "django_tenants",
    "django.contrib.contenttypes",
    "corsheaders",
    "tenants",   # Tenant/Domain
    "commons",   # health/time endpoints
)

# apps que moram nos schemas de cada tenant
TENANT_APPS = (
    "django.contrib.contenttypes",        # precisa repetir
    "django.contrib.auth",

    "rest_framework",
    "drf_spectacular",

    "facturacion",
)

INSTALLED_APPS = list(SHARED_APPS) + [a for a in TENANT_APPS if a not in SHARED_APPS]

TENANT_MODEL = "tenants.Tenant"
TENANT_DOMAIN_MODEL = "tenants.Domain"


MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "commons.middleware.RequestLogMiddleware",
    "django_tenants.middleware.main.TenantMainMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"                  # urls para tenants
PUBLIC_SCHEMA_URLCONF = "config.urls_public"  # urls do schema público

CORS_ALLOW_ALL_ORIGINS = True

DATABASES = {
    "default": {
        "ENGINE": "django_tenants.postgresql_backend",
        "NAME": os.getenv("PGDATABASE", "backoffice"),
        "USER": os.getenv("PGUSER", "postgres"),
        "PASSWORD": os.getenv("PGPASSWORD", ""),
        "HOST": os.getenv("PGHOST", "127.0.0.1"),
        "PORT": os.getenv("PGPORT", "5432"),
        "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
        "TEST": {
            "NAME": "test_backoffice",
        },
    }
}

# Tenants premium com banco dedicado: PREMIUM_DB_ALIASES=alias1,alias2 e
# PREMIUM_DB_<ALIAS>_NAME / _HOST / _PORT / _USER / _PASSWORD.
for _alias in [a.strip() for a in os.getenv("PREMIUM_DB_ALIASES", "").split(",") if a.strip()]:
    _prefix = f"PREMIUM_DB_{_alias.upper()}"
    DATABASES[_alias] = {
        "ENGINE": "django_tenants.postgresql_backend",
        "NAME": os.getenv(f"{_prefix}_NAME", _alias),
        "USER": os.getenv(f"{_prefix}_USER", DATABASES["default"]["USER"]),
        "PASSWORD": os.getenv(f"{_prefix}_PASSWORD", DATABASES["default"]["PASSWORD"]),
        "HOST": os.getenv(f"{_prefix}_HOST", DATABASES["default"]["HOST"]),
        "PORT": os.getenv(f"{_prefix}_PORT", DATABASES["default"]["PORT"]),
        "CONN_MAX_AGE": DATABASES["default"]["CONN_MAX_AGE"],
    }

DATABASE_ROUTERS = (
    "django_tenants.routers.TenantSyncRouter",
)

DEFAULT_AUTO_FIELD = "django.db.models.AutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": ["rest_framework.throttling.UserRateThrottle"],
    "DEFAULT_THROTTLE_RATES": {"user": "60/min"},
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "SIGNING_KEY": SECRET_KEY,
    "AUTH_HEADER_TYPES": ("Bearer",),
}

LANGUAGE_CODE = "es-co"
TIME_ZONE = "America/Bogota"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"

SPECTACULAR_SETTINGS = {
    "TITLE": "Backoffice Facturación API",
    "VERSION": "1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# =============================
# DIAN
# =============================
# timeout (s) da chamada HTTP ao provedor; sem retry interno. Validado em
# facturacion.dian_factory (valor inválido volta ao padrão)
DIAN_TIMEOUT_SEGUNDOS = os.getenv("DIAN_TIMEOUT_SEGUNDOS", "30")

sentry_sdk.init(
    dsn=os.getenv("SENTRY_DSN", ""),
    integrations=[DjangoIntegration()],
    traces_sample_rate=0.1,
    send_default_pii=False,
)

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
            ],
        },
    },
]

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "backoffice-default",
    }
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.json.JsonFormatter",
        },
        "simple": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "level": "INFO",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "backoffice.facturacion": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": True,
        },
    },
}

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_HSTS_SECONDS = 63072000
SECURE_CONTENT_TYPE_NOSNIFF = True
