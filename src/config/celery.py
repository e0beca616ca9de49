"""Celery app bootstrap for Django."""

from __future__ import annotations

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "src.config.settings")

app = Celery("talent_match")
app.config_from_object("django.conf:settings", namespace="CELERY")
# Ranking calls hit a tightly throttled model; run them on a single-concurrency worker.
app.conf.task_routes = {"candidates.rank_candidates_job_task": {"queue": "ranking"}}
app.autodiscover_tasks()
