bind = "unix:/var/www/portfolio-relay/gunicorn.sock"
# One worker keeps the in-memory rate table shared by every request.
# Raise this only with CONTACT_RATE_STORE=cache and REDIS_ENABLED=True.
workers = 1
threads = 4
worker_class = "gthread"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
timeout = 30
keepalive = 5

# Logging
accesslog = "/var/log/portfolio-relay/access.log"
errorlog = "/var/log/portfolio-relay/error.log"
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "portfolio-relay"

# Server mechanics
daemon = False
pidfile = "/var/run/portfolio-relay/gunicorn.pid"
user = "deploy"
group = "deploy"
umask = 0o007

wsgi_app = "portfolio_relay.wsgi:application"

# Server hooks
def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting contact relay")

def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Contact relay is ready. Spawning workers")

def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info("Worker received SIGINT or SIGQUIT signal")
