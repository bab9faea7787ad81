"""Logging setup"""

import logging
import logging.handlers
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# rollover size of the log file
MAX_LOG_BYTES = 100 * 1024

VERBOSITY_LEVELS = {
    1: logging.WARNING,
    2: logging.INFO,
    3: logging.DEBUG,
}


def setup_logging(verbosity: int = 1, log_file: Optional[str] = None):
    """Configure root logging from a 1..3 verbosity level"""
    level = VERBOSITY_LEVELS.get(verbosity, logging.DEBUG if verbosity > 3 else logging.WARNING)
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=5, encoding='utf-8'
        ))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    logging.getLogger('oflocker').setLevel(level)
    # boto is noisy at debug
    for name in ('boto3', 'botocore', 's3transfer', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)
