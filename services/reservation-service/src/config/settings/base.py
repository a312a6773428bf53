"""Base settings for Reservation Service."""
import os
import sys
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(BASE_DIR.parent.parent.parent))

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', '*').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'django_filters',
    'apps.core',
    'apps.api',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'shared.common.middleware.RequestIDMiddleware',
    'shared.common.middleware.LoggingMiddleware',
]

ROOT_URLCONF = 'config.urls'
TEMPLATES = [{'BACKEND': 'django.template.backends.django.DjangoTemplates', 'DIRS': [], 'APP_DIRS': True, 'OPTIONS': {'context_processors': ['django.template.context_processors.debug', 'django.template.context_processors.request', 'django.contrib.auth.context_processors.auth', 'django.contrib.messages.context_processors.messages']}}]
WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'reservation_service_db'),
        'USER': os.environ.get('DB_USER', 'reservation_service_user'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'reservation_service_password'),
        'HOST': os.environ.get('DB_HOST', 'pgbouncer'),
        'PORT': os.environ.get('DB_PORT', '6432'),
    }
}

AUTH_PASSWORD_VALIDATORS = [{'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'}]
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Authentication and authorization are handled upstream of this service
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_PAGINATION_CLASS': 'apps.api.views.pagination.StandardResultsSetPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_FILTER_BACKENDS': ['django_filters.rest_framework.DjangoFilterBackend', 'rest_framework.filters.OrderingFilter'],
    'EXCEPTION_HANDLER': 'shared.common.exceptions.custom_exception_handler',
}

CORS_ALLOW_ALL_ORIGINS = DEBUG
REDIS_URL = os.environ.get('REDIS_URL', 'redis://redis:6379/4')
CACHES = {'default': {'BACKEND': 'django_redis.cache.RedisCache', 'LOCATION': REDIS_URL}}

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TIME_LIMIT = 300  # 5 minutes

# Celery Beat Schedule for periodic tasks
CELERY_BEAT_SCHEDULE = {
    'expire-waitlist-entries': {
        'task': 'reservation.expire_waitlist_entries',
        'schedule': crontab(minute='*/5'),
    },
    'expire-stale-bookings': {
        'task': 'reservation.expire_stale_bookings',
        'schedule': crontab(minute='*'),
    },
    'dispatch-due-requests': {
        'task': 'reservation.dispatch_due_requests',
        'schedule': crontab(minute='*'),
    },
}

# Events
EVENT_PUBLISHING_ENABLED = os.environ.get('EVENT_PUBLISHING_ENABLED', 'True').lower() == 'true'
EVENT_BACKEND = os.environ.get('EVENT_BACKEND', 'log')  # log | redis | webhook
EVENT_REDIS_URL = os.environ.get('EVENT_REDIS_URL', REDIS_URL)
EVENT_WEBHOOK_URL = os.environ.get('EVENT_WEBHOOK_URL', None)

# Scheduling engine
SLOT_GRANULARITY_MINUTES = int(os.environ.get('SLOT_GRANULARITY_MINUTES', 15))
DEFAULT_SLOT_DURATION_MINUTES = int(os.environ.get('DEFAULT_SLOT_DURATION_MINUTES', 60))
AVAILABILITY_CACHE_TTL = int(os.environ.get('AVAILABILITY_CACHE_TTL', 60))
BOOKING_EXPIRY_MINUTES = int(os.environ.get('BOOKING_EXPIRY_MINUTES', 30))
BOOKING_EXPIRY_BATCH_SIZE = int(os.environ.get('BOOKING_EXPIRY_BATCH_SIZE', 100))
WAITLIST_RESPONSE_DEADLINE_HOURS = int(os.environ.get('WAITLIST_RESPONSE_DEADLINE_HOURS', 24))
DISPATCH_MAX_ATTEMPTS = int(os.environ.get('DISPATCH_MAX_ATTEMPTS', 5))

# Reminder offsets before booking start as (label, minutes), e.g. "24h:1440,1h:60"
BOOKING_REMINDER_OFFSETS = [
    (label, int(minutes))
    for label, minutes in (
        item.split(':') for item in os.environ.get('BOOKING_REMINDER_OFFSETS', '24h:1440,1h:60').split(',')
    )
]

SERVICE_NAME = 'reservation-service'
SERVICE_PORT = 8005

LOGGING = {'version': 1, 'disable_existing_loggers': False, 'formatters': {'json': {'()': 'pythonjsonlogger.jsonlogger.JsonFormatter', 'format': '%(asctime)s %(levelname)s %(name)s %(message)s'}}, 'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'json'}}, 'root': {'handlers': ['console'], 'level': os.environ.get('LOG_LEVEL', 'INFO')}}
