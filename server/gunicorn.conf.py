"""Gunicorn configuration for production deployment.

Values come from the same Settings object the app uses, so .env and the
environment apply to both. Each worker holds its own local fallback cache
and session copies; without a remote cache the worker count is pinned to
one (see ``Settings.effective_workers``).

Usage:
    gunicorn main:app -c gunicorn.conf.py
"""
import os

from core.config import Settings

settings = Settings()

bind = f"{settings.host}:{settings.port}"

workers = settings.effective_workers
worker_class = "uvicorn.workers.UvicornWorker"

# Timeouts - configurable via env
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

accesslog = None if settings.debug else "-"
errorlog = "-"
loglevel = settings.log_level.lower()

proc_name = "esports-schedule"

# Worker recycling would drop local cache state, so max_requests stays off
preload_app = not settings.debug
