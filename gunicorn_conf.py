import os
from app.config import config

bind = os.getenv("BIND", "0.0.0.0:8000")
# Job status lives in process memory unless DATABASE_URL is set,
# so a single worker is the default.
workers = int(os.getenv("WEB_CONCURRENCY", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
# Synchronous submissions can run for many minutes
timeout = int(os.getenv("GUNICORN_TIMEOUT", "1800"))
graceful_timeout = 60

accesslog = "-"
errorlog = "-"

# Gunicorn, uvicorn and app loggers share one line format
logconfig_dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "generic": {"format": config.LOG_FORMAT, "datefmt": config.LOG_DATEFMT},
    },
    "handlers": {
        "stdout": {"class": "logging.StreamHandler", "formatter": "generic", "stream": "ext://sys.stdout"},
        "stderr": {"class": "logging.StreamHandler", "formatter": "generic", "stream": "ext://sys.stderr"},
    },
    "loggers": {
        "gunicorn.error": {"level": "WARNING", "handlers": ["stderr"], "propagate": False},
        "gunicorn.access": {"level": "INFO", "handlers": ["stdout"], "propagate": False},
        "uvicorn.error": {"level": "INFO", "handlers": ["stderr"], "propagate": False},
        "app": {"level": config.LOG_LEVEL, "handlers": ["stdout"], "propagate": False},
    },
    "root": {"level": config.LOG_LEVEL, "handlers": ["stdout"]},
}
