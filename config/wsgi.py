"""WSGI entry point for Carparkly.

Production servers (gunicorn, uwsgi) load ``application`` from here.
DJANGO_SETTINGS_MODULE defaults to the production settings.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.prod')

application = get_wsgi_application()
