"""Logging configuration for the care tracker API."""
import logging
import os
import json
from logging.handlers import RotatingFileHandler
from flask import has_request_context, request, g
from shared.models import now


class StructuredFormatter(logging.Formatter):
    """JSON lines formatter; records emitted inside a request carry its method, path and user."""

    def format(self, record):
        log_entry = {
            'timestamp': now().isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if has_request_context():
            log_entry['method'] = request.method
            log_entry['path'] = request.path
            user = getattr(g, 'user', None)
            if user is not None:
                log_entry['user_id'] = user.id

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


def setup_logging(log_dir=None):
    """Configure the root logger with a rotating JSON file and a console stream.

    Args:
        log_dir: Directory for care_api.log; defaults to $LOG_DIR or ./logs next to the package
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logs_dir = log_dir or os.getenv('LOG_DIR') or os.path.join(os.path.dirname(__file__), '..', 'logs')
    os.makedirs(logs_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    simple_formatter = logging.Formatter(
        '%(asctime)s %(levelname)-8s %(name)-24s %(message)s'
    )

    log_file = os.path.join(logs_dir, 'care_api.log')
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(StructuredFormatter())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(simple_formatter)

    # Replace handlers from a previous create_app() call in the same process
    for handler in list(logger.handlers):
        if getattr(handler, '_care_api_handler', False):
            logger.removeHandler(handler)
            handler.close()
    file_handler._care_api_handler = True
    console_handler._care_api_handler = True

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)

    logger.info("Logging initialized", extra={
        'extra_fields': {
            'log_level': log_level_str,
            'log_file': log_file,
        }
    })

    return logger
