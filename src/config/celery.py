"""
Celery configuration for the PACT pallet project.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so
Celery reads the Django settings (``CELERY_`` prefix), including the
beat schedule for pallet completion reconciliation.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("pact")

# Reads Django settings prefixed with CELERY_
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discovers tasks.py in every installed app
app.autodiscover_tasks()
