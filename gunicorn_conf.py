import multiprocessing
import os

# Gunicorn configuration for taskminder.main:app, served by the UvicornWorker
#   gunicorn -c gunicorn_conf.py taskminder.main:app

bind = os.getenv("BIND", "0.0.0.0:8000")

# Sessions live in the database, so any worker can serve any request.
# Reminders are held by the worker that created the task and die with it.
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"

# Timeout and Keepalive
timeout = 120
keepalive = 5
# Keep workers alive: recycling one would drop its pending reminders
max_requests = 0

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

name = "taskminder"
reload = False
