# gunicorn -c gunicorn_config.py oracledb_exporter.wsgi:app
bind = "0.0.0.0:9161"
# One worker process: collectors, their counters and the target registry live in process memory.
workers = 1
threads = 8  # Concurrent scrapes; each one blocks its thread on database I/O
worker_class = "gthread"

loglevel = "info"
accesslog = "-"  # Log to stdout
errorlog = "-"   # Log to stderr

# Timeout settings for client disconnects and stuck requests
timeout = 60      # Must stay above the slowest scrape (sum of query_timeout over all tasks is the bound)
keepalive = 2
graceful_timeout = 30

preload_app = False

# Enable proper signal handling for Docker
enable_stdio_inheritance = True


def worker_timeout(worker):
    """Called when a worker times out (client disconnect or stuck request)."""
    import logging
    logging.warning(f"Worker {worker.pid} timed out - likely client disconnect or stuck query")


disable_redirect_access_to_syslog = True


### For TLS support, uncomment and set certfile and keyfile paths below.
# certfile = "/certs/server.crt"
# keyfile = "/certs/server.key"

def worker_exit(server, worker):
    """Called when a worker is exiting."""
    import logging
    logging.info(f"Worker {worker.pid} exiting")


def on_exit(server):
    """Called when the master process is exiting."""
    import logging
    logging.info("Gunicorn master process exiting")
