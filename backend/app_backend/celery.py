"""
Celery application.

Runs the transport cascade timers (per-tier activation and deadline) and the
periodic sweep that backs them up.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app_backend.settings.settings")

app = Celery("app_backend")

# All CELERY_* Django settings configure the app
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
