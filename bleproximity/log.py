import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(debug_mode=False, log_dir=None):
    """Configure the package logger for console and daily rotated file output."""
    level = logging.DEBUG if debug_mode else logging.INFO

    logger = logging.getLogger('bleproximity')
    logger.setLevel(level)
    # Calling twice must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_dir is not None:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        log_file_path = os.path.join(log_dir, 'proximity.log')

        # File handler with 7-day rotation
        file_handler = TimedRotatingFileHandler(
            log_file_path, when='midnight', interval=1, backupCount=7
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
