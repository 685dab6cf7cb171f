# stockroom/utils/logging_config.py
"""
Logging setup for applications embedding the back-office core.
Console only; the host application decides about files.
"""
import logging


def setup_logging(level: str = "INFO"):
    """Configure the package logger with a single console handler"""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logger = logging.getLogger("stockroom")
    logger.setLevel(level.upper())

    # Remove existing handlers to avoid duplicates on repeated setup
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(log_format, date_format))
    logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger
