"""
ASGI config for the bookkeeping project.

Only plain HTTP is served; the bookkeeping services are synchronous and run
each mutation inside a database transaction.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
