import logging.config
import sys

# Chatty libraries that only matter when something goes wrong
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "mangum")


def setup_logging(log_level: str = "INFO", debug: bool = False):
    log_level = log_level.upper()
    handlers = ["console", "error_console"]

    loggers = {
        "": {"handlers": handlers, "level": log_level, "propagate": True},
        "portalapi": {"handlers": handlers, "level": log_level, "propagate": False},
        "uvicorn.error": {"handlers": handlers, "level": log_level, "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": log_level, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {
            "handlers": handlers,
            "level": "DEBUG" if debug else "WARNING",
            "propagate": False,
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "detailed": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(pathname)s:%(lineno)d\n%(message)s",
                },
                "simple": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "formatter": "simple",
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                },
                "error_console": {
                    "formatter": "detailed",
                    "class": "logging.StreamHandler",
                    "stream": sys.stderr,
                    "level": "WARNING",
                },
            },
            "loggers": loggers,
        }
    )
