"""Gunicorn config for the PriceWatch API (gunicorn -c gunicorn.conf.py pricewatch.main:app)."""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# The record store lives in process memory, so every worker would hold a
# different working set. Keep a single uvicorn worker; requests are served
# from its thread pool and the store serialises mutations with a lock.
worker_class = "uvicorn.workers.UvicornWorker"
workers = 1

# Timeout: large workbook uploads and Excel exports
timeout = 120

# Graceful timeout for shutdown
graceful_timeout = 30

# Keep-alive — must exceed the proxy keep-alive (default 60s)
keepalive = 65

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("PRICEWATCH_LOG_LEVEL", "info").lower()
