"""
ASGI config for the clinic portal project.

HTTP only; the API has no websocket routes.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinicportal.settings")

application = get_asgi_application()
