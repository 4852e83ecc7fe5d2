"""
Gunicorn configuration for the Checkout Analytics API

Uvicorn workers under Gunicorn. Each worker holds its own rate limiter,
so the effective per-client limit is workers * RATE_LIMIT_REQUESTS.
"""

import multiprocessing
import os

# Server socket; run_server.py passes --bind, which takes precedence
bind = os.getenv("BIND", f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '8000')}")
backlog = 2048

# Workers: aggregation is CPU-bound per request
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
# Long custom ranges on enterprise plans can take a while to aggregate
timeout = int(os.getenv("WORKER_TIMEOUT", 120))
graceful_timeout = 30
keepalive = 5

proc_name = "checkout-analytics-api"

# Application logs are structured by the app itself; gunicorn keeps its own
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None


def when_ready(server):
    server.log.info(
        "Checkout Analytics API ready on %s with %s workers", ", ".join(server.cfg.bind), server.cfg.workers,
    )
