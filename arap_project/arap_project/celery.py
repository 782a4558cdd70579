""" When you run Celery workers, "celery -A arap_project worker -l info"
    (and "celery -A arap_project beat" for the overdue schedule).
    Import arap_project/__init__.py → which exposes celery_app. """
from __future__ import annotations
import os
from celery import Celery

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "arap_project.settings")

# name should match your project package
celery_app = Celery("arap_project")

# read config from Django settings, using CELERY_ prefix
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks from installed apps (billing_core.tasks)
celery_app.autodiscover_tasks()
