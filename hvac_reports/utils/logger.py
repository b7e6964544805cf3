"""
Logging configuration
Handlers live on the package root logger; module loggers propagate to it
"""
import logging
import os
import sys
from typing import Optional, Dict, Any
from pathlib import Path

from .datetime_helper import utc_now

ROOT_LOGGER_NAME = "hvac_reports"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class DetailedFormatter(logging.Formatter):
    """Formatter that appends the report context attached to a record"""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        context = getattr(record, 'extra_context', None)
        if context:
            rendered = ", ".join(f"{key}={value}" for key, value in context.items())
            formatted += f"\nContext: {rendered}"

        return formatted


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure a logger with a file handler and, optionally, stdout

    Args:
        name: logger name
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; LOG_LEVEL when None
        log_file: log file path; LOG_FILE when None
        console_output: whether to also log to stdout

    Returns:
        configured logger
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE", "./logs/app.log")

    log_dir = os.path.dirname(log_file)
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # re-setup replaces handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = DetailedFormatter(LOG_FORMAT, DATE_FORMAT)

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Logger for a module of the package

    The package root logger is configured on first use; module loggers carry
    no handlers of their own.

    Args:
        name: usually __name__

    Returns:
        logger instance
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        setup_logger(ROOT_LOGGER_NAME)

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: Exception,
    context: Optional[Dict[str, Any]] = None
):
    """
    Log an error with its type, the traceback and report context

    Must be called from an except block so the traceback is available.

    Args:
        logger: logger
        message: error message
        error: the exception
        context: report id, data source, parameters...
    """
    extra_context = {
        "error_type": type(error).__name__,
        "at": utc_now().isoformat(),
    }
    if context:
        extra_context.update(context)

    logger.error(
        f"{message}: {error}",
        exc_info=True,
        extra={"extra_context": extra_context}
    )


def log_data_source_error(
    logger: logging.Logger,
    source_type: str,
    error: Exception,
    table: Optional[str] = None,
    query: Optional[str] = None
):
    """
    Log a failed row-source fetch

    Args:
        logger: logger
        source_type: document, relational, vector or calculated
        error: the exception
        table: collection, table or result type of the source
        query: query text of the source, truncated to 500 characters
    """
    context = {
        "source_type": source_type,
        "table": table,
        "query": query[:500] if query else None,
    }
    log_error_with_context(logger, f"{source_type} source fetch failed", error, context)


def log_report_execution(
    logger: logging.Logger,
    report_id: str,
    user_id: str,
    total_rows: int,
    total_time: int,
    cached: bool
):
    """One info line per report execution, with the numbers as context"""
    logger.info(
        f"Report {'served from cache' if cached else 'executed'}: report_id={report_id}",
        extra={"extra_context": {
            "user_id": user_id,
            "rows": total_rows,
            "time_ms": total_time,
            "cached": cached,
        }}
    )
