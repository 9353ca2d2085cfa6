import os

# Server Socket
bind = os.environ.get("GUNICORN_BIND", "127.0.0.1:8000")  # NGINX proxies requests

# Worker Settings
# Each request is an independent task; accepts on the same module serialize on the module row lock
workers = int(os.environ.get("GUNICORN_WORKERS", 4))
threads = 2
worker_class = "gthread"

# Security & Performance
timeout = 120
graceful_timeout = 90
keepalive = 5
max_requests = 1000  # Restart workers after processing 1000 requests
max_requests_jitter = 50

# Logging
accesslog = os.environ.get("GUNICORN_ACCESS_LOG", "-")
errorlog = os.environ.get("GUNICORN_ERROR_LOG", "-")
loglevel = "info"

# Process Name
proc_name = "efest_gunicorn"
