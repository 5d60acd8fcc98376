"""
WSGI config for the AppleHub project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'applehub.settings')

application = get_wsgi_application()
