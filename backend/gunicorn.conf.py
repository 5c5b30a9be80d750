# WSGI entry point
wsgi_app = "tokengate:create_app()"

# Bind & workers
bind = "0.0.0.0:8000"
workers = 2
threads = 1
timeout = 30
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = "info"

# Trust proxy headers (TLS terminates upstream; refresh cookies are Secure)
forwarded_allow_ips = "*"
