"""
WSGI config for the talentflow project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "talentflow.settings")

application = get_wsgi_application()
