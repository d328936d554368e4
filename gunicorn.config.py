# gunicorn -c gunicorn.config.py app:app
import os

worker_class = "gevent"
workers = int(os.getenv("WEB_CONCURRENCY", "4"))
worker_connections = 1000
timeout = 120
bind = "0.0.0.0:{}".format(os.getenv("PORT", "5000"))

loglevel = "info"
accesslog = "-"
errorlog = "-"
