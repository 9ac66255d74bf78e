#!/usr/bin/env python3
"""
Logging configuration utilities.
"""
import logging
import os
import sys


class FlushFileHandler(logging.FileHandler):
    """File handler that flushes after each log record."""
    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logging(log_file: str, level: int = logging.INFO, name: str = None) -> logging.Logger:
    """
    Set up logging configuration with both file and console handlers.

    Args:
        log_file: Log file name, created under LOG_DIR unless absolute
        level: Logging level
        name: Logger name, defaults to the log file stem

    Returns:
        Configured logger
    """
    from rag_webhook.config.settings import LOG_DIR

    if not os.path.isabs(log_file):
        os.makedirs(LOG_DIR, exist_ok=True)
        log_file = os.path.join(LOG_DIR, log_file)

    # Create handlers
    stream_handler = logging.StreamHandler(sys.stdout)
    file_handler = FlushFileHandler(log_file)

    # Set consistent formatter
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    stream_handler.setFormatter(formatter)
    file_handler.setFormatter(formatter)

    # Console output goes through the root logger; each module keeps its own file
    logging.basicConfig(level=level, handlers=[stream_handler])

    logger = logging.getLogger(name or os.path.splitext(os.path.basename(log_file))[0])
    logger.setLevel(level)
    if not any(getattr(h, "baseFilename", None) == file_handler.baseFilename for h in logger.handlers):
        logger.addHandler(file_handler)
    else:
        file_handler.close()
    return logger


class SuppressHttpxInfo(logging.Filter):
    """Filter to drop per-request INFO lines from the HTTP client used by the LLM and Qdrant clients."""
    def filter(self, record):
        return record.levelno > logging.INFO


def setup_client_logging():
    """Quiet the chatty HTTP client loggers."""
    logging.getLogger("httpx").addFilter(SuppressHttpxInfo())
