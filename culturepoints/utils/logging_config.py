"""
Logging setup for CulturePoints.

Configures the root logger once, before the Flask app is created, so that
module loggers and current_app.logger share one handler and format.

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default INFO)
"""
import os
import logging
import sys

from flask import g, has_request_context

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s [req:%(request_id)s] %(message)s'

_configured = False


class RequestIdFilter(logging.Filter):
    """Attach the current request id (or '-') to every record."""

    def filter(self, record):
        request_id = '-'
        if has_request_context():
            request_id = getattr(g, 'request_id', '-')
        record.request_id = request_id
        return True


def setup_logging(level: str = None) -> None:
    """
    Configure root logging. Safe to call more than once.

    Args:
        level: Log level name, defaults to LOG_LEVEL env var
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    # Quiet noisy libraries
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Module logger; ensures logging is configured for CLI/script use."""
    setup_logging()
    return logging.getLogger(name)
