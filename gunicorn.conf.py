# Gunicorn settings for the sounding diagnostics API: `gunicorn app:app`

import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Parcel ascents are CPU bound. Batch requests already fan out over
# BATCH_WORKERS threads inside a worker, so keep request threads modest.
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "120"))
graceful_timeout = 30

# numpy/metpy import once in the master
preload_app = True
max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = 100

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(M)sms'


def when_ready(server):
    server.log.info(
        "Diagnostics API ready: %d workers x %d threads, batch pool %s",
        workers, threads, os.environ.get("BATCH_WORKERS", "4"),
    )
