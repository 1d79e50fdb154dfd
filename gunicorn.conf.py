"""Gunicorn configuration file.

Each delivery runs in its own sync worker request. ``timeout`` is the
processing window: a request that cannot finish in time is abandoned and
the provider's redelivery/backoff governs the retry.

Secret Loading (post_fork hook):
    Secrets are read by usersync.config.settings from /run/secrets (Docker
    secrets) with environment variables as fallback; the hook only reports
    what the worker will see.
"""
import os

wsgi_app = "usersync.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
graceful_timeout = 10
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")
accesslog = "-"
errorlog = "-"


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Reports where the webhook secret will be read from, without its value.
    """
    from pathlib import Path
    secret_file = Path("/run/secrets") / "webhook_secret"
    if secret_file.exists():
        worker.log.info("Webhook secret available in /run/secrets")
    elif os.environ.get("WEBHOOK_SECRET"):
        worker.log.info("Webhook secret available from environment")
    else:
        worker.log.error("WEBHOOK_SECRET missing; the application will refuse to start")
