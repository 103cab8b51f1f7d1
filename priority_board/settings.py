"""
Django settings for the priority board project.
"""

import environ
from pathlib import Path
import os

BASE_DIR = Path(__file__).resolve().parent.parent

# Values come from the environment or a .env file next to manage.py
env = environ.Env(
    DEBUG=(bool, False),
    LOG_LEVEL=(str, "INFO"),
)

environ.Env.read_env(os.path.join(BASE_DIR, ".env"))

# ========== Debug ==========
DEBUG = env("DEBUG")
SECRET_KEY = env("SECRET_KEY", default="django-insecure-priority-board-development-key")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["127.0.0.1", "localhost", "testserver"])

# ========== Database ==========
DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

# -------------------------------------------------
# Applications
# -------------------------------------------------
INSTALLED_APPS = [
    # Django
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",

    # Third-party
    "ninja",

    # Project apps
    "priorities.apps.PrioritiesConfig",
]

# -------------------------------------------------
# Middleware
# -------------------------------------------------
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# -------------------------------------------------
# URLs / WSGI
# -------------------------------------------------
ROOT_URLCONF = "priority_board.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [os.path.join(BASE_DIR, "templates")],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "priority_board.wsgi.application"

# -------------------------------------------------
# I18N / TZ
# -------------------------------------------------
LANGUAGE_CODE = "pt-br"
TIME_ZONE = env("TIME_ZONE", default="America/Sao_Paulo")
USE_I18N = True
USE_TZ = True

# -------------------------------------------------
# Static
# -------------------------------------------------
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -------------------------------------------------
# Reports
# -------------------------------------------------
PRIORITY_REPORT_TITLE = env("PRIORITY_REPORT_TITLE", default="Gerenciamento de Prioridade")
PRIORITY_REPORT_SUBTITLE = env("PRIORITY_REPORT_SUBTITLE", default="Tabelionato e Registro Civil de Tramandaí")

# -------------------------------------------------
# Logging
# -------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "priorities": {
            "handlers": ["console"],
            "level": env("LOG_LEVEL"),
            "propagate": False,
        },
    },
}
