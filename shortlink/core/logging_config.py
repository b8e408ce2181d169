import logging
import sys

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
HANDLER_NAME = "shortlink-stdout"

# One line per request, written by the HTTP middleware in shortlink.main
ACCESS_LOGGER = "shortlink.access"

# Third-party loggers that are noisy below WARNING
QUIET_LOGGERS = ("sqlalchemy.engine", "redis", "httpx")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Route logs to stdout at `level` and set up the access log.

    create_app() calls this on every build, so the stdout handler is added to
    the root logger once and later calls only adjust levels.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    if not any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)

    app_logger = logging.getLogger("shortlink")
    app_logger.setLevel(numeric_level)
    # Request lines stay at INFO even when LOG_LEVEL is WARNING or above
    logging.getLogger(ACCESS_LOGGER).setLevel(logging.INFO)

    logging.getLogger("uvicorn.error").propagate = True
    # uvicorn's own access log would duplicate the middleware's
    logging.getLogger("uvicorn.access").disabled = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return app_logger
