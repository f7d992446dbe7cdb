# backend/gunicorn_conf.py

import os

# Gunicorn config file: gunicorn -c gunicorn_conf.py interviewer.main:app

bind = os.getenv("BIND", "0.0.0.0:8000")
workers = int(os.getenv("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

# Follow-up generation can take several provider round-trips
timeout = 90

# Settings for running behind a reverse proxy like Nginx
forwarded_allow_ips = "*"

# --- Logging ---
accesslog = "-"
errorlog = "-"
loglevel = "info"
