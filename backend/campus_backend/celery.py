"""Celery application for background activity tracking."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "campus_backend.settings.settings")

app = Celery("campus_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
