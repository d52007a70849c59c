"""Development settings for Carparkly project.

Debug on, console email and verbose logging for the domain apps. Set
CELERY_TASK_ALWAYS_EAGER=true to run the booking tasks inline without a
broker.
"""

from .base import *  # noqa: F401,F403
from .base import LOGGING, get_env

DEBUG = True

ALLOWED_HOSTS = ['*']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = get_env('CELERY_TASK_ALWAYS_EAGER', 'false').lower() == 'true'

LOGGING['loggers']['apps']['level'] = 'DEBUG'
