"""
ASGI config for the autoparts project.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'autoparts.config.settings')

application = get_asgi_application()
