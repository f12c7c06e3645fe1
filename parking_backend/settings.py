# ==================== PARKING_BACKEND/SETTINGS.PY ====================
import os
from pathlib import Path
from datetime import timedelta
from decouple import config

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config('SECRET_KEY', default='your-secret-key-change-in-production')
DEBUG = config('DEBUG', default=True, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party apps
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'django_filters',
    'django_celery_beat',

    # Local apps
    'users',
    'parking',
    'bookings',
    'payments',
    'notifications.apps.NotificationsConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'parking_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'parking_backend.wsgi.application'

# Database
# Admission and capacity updates rely on SELECT ... FOR UPDATE, so production
# must run on PostgreSQL.
DATABASES = {
    'default': {
        'ENGINE': config('DB_ENGINE', default='django.db.backends.postgresql'),
        'NAME': config('DB_NAME', default='parking_db'),
        'USER': config('DB_USER', default='postgres'),
        'PASSWORD': config('DB_PASSWORD', default='password'),
        'HOST': config('DB_HOST', default='localhost'),
        'PORT': config('DB_PORT', default='5432'),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Custom User Model
AUTH_USER_MODEL = 'users.CustomUser'

# REST Framework Configuration
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticatedOrReadOnly',
    ),
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter'
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle'
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': '100/hour',
        'user': '1000/hour'
    }
}

# JWT Configuration
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': False,
    'UPDATE_LAST_LOGIN': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
}

# CORS Configuration
CORS_ALLOWED_ORIGINS = config('CORS_ALLOWED_ORIGINS',
                              default='http://localhost:8000,http://localhost:8100,http://localhost:3000').split(',')
CORS_ALLOW_CREDENTIALS = True

# Payment gateway
PAYMENT_GATEWAY_CLASS = config('PAYMENT_GATEWAY_CLASS', default='payments.gateway.RazorpayGateway')
PAYMENT_CURRENCY = config('PAYMENT_CURRENCY', default='INR')
RAZORPAY_KEY_ID = config('RAZORPAY_KEY_ID', default='')
RAZORPAY_KEY_SECRET = config('RAZORPAY_KEY_SECRET', default='')
RAZORPAY_WEBHOOK_SECRET = config('RAZORPAY_WEBHOOK_SECRET', default='')

# Bookings
# Unset keeps unconfirmed bookings forever (no expiry).
PENDING_BOOKING_EXPIRY_MINUTES = config('PENDING_BOOKING_EXPIRY_MINUTES', default=None,
                                        cast=lambda v: int(v) if v else None)
NOTIFICATION_PAGE_SIZE = config('NOTIFICATION_PAGE_SIZE', default=20, cast=int)

LOG_DIR = BASE_DIR / 'logs'
os.makedirs(LOG_DIR, exist_ok=True)
# Logging Configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose'
        },
        'file': {
            'class': 'logging.FileHandler',
            'filename': os.path.join(LOG_DIR, 'debug.log'),
            'formatter': 'verbose'
        },
    },
    'root': {
        'handlers': ['console', 'file'],
        'level': 'INFO',
    },
}

# Celery Configuration
CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://localhost:6379/0')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'

CELERY_BEAT_SCHEDULE = {
    'expire-pending-bookings': {
        'task': 'bookings.tasks.expire_stale_pending_bookings',
        'schedule': crontab(minute='*/5'),  # Every 5 minutes
    },
    'reconcile-payment-intents': {
        'task': 'payments.tasks.reconcile_payment_intents',
        'schedule': crontab(minute='*/30'),  # Every 30 minutes
    },
}


# ==================== MANAGE.PY COMMANDS ====================
"""
1. Install:            pip install -e .[test]
2. Create .env file with the settings read through config() above
3. Migrations:         python manage.py makemigrations users parking bookings payments notifications
                       python manage.py migrate
4. Run server:         python manage.py runserver
5. Run worker / beat:  celery -A parking_backend worker -B -l info
6. Tests:              pytest
"""


# ==================== API ENDPOINTS SUMMARY ====================
"""
AUTHENTICATION:
POST   /api/v1/auth/token/                          - Get JWT token
POST   /api/v1/auth/token/refresh/                  - Refresh JWT token

PARKING LOTS:
GET    /api/v1/parking-lots/                        - List lots
POST   /api/v1/parking-lots/                        - Create lot (owner)
GET    /api/v1/parking-lots/{id}/                   - Lot details
PATCH  /api/v1/parking-lots/{id}/                   - Update lot (owner)
PUT    /api/v1/parking-lots/{id}/spaces/            - Set available spaces (owner)
GET    /api/v1/parking-lots/{id}/capacity_history/  - Capacity audit trail (owner)
GET    /api/v1/parking-lots/{id}/stats/             - Booking statistics (owner)

BOOKINGS:
POST   /api/v1/bookings/                            - Reserve a space (driver)
GET    /api/v1/bookings/                            - My bookings
GET    /api/v1/bookings/owner_bookings/             - Bookings on my lots (owner)
PATCH  /api/v1/bookings/{id}/                       - Edit pending booking (driver)
DELETE /api/v1/bookings/{id}/                       - Delete pending booking (driver)
PATCH  /api/v1/bookings/{id}/status/                - Lifecycle transition

PAYMENTS:
POST   /api/v1/payments/create-intent/              - Create payment intent
POST   /api/v1/payments/confirm/                    - Client-side confirmation
GET    /api/v1/payments/history/                    - Driver payment history
POST   /api/v1/payments/refund/                     - Refund a paid booking (owner)
GET    /api/v1/payments/earnings/?period=month      - Owner earnings
POST   /webhooks/razorpay/                          - Gateway callbacks

NOTIFICATIONS:
GET    /api/v1/notifications/                       - My notifications
GET    /api/v1/notifications/unread_count/          - Unread counter
PUT    /api/v1/notifications/{id}/read/             - Mark as read
"""
