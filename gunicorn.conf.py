"""
Gunicorn configuration.

Sync workers: each check-in or upload row is one short database transaction,
serialized per player by row locks.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'culturepoints'

preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting CulturePoints server...")


def on_exit(server):
    print("[Gunicorn] CulturePoints server shutting down...")
