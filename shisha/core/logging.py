"""
Shisha Logging Configuration
Package logger plus per-area loggers for services, API and the status sweep
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from .config import settings

# Area loggers and the file each one writes to; records still propagate to "shisha"
MODULE_LOG_FILES = {
    "shisha.core.database": ("database.log", 5 * 1024 * 1024, 3),
    "shisha.api": ("api.log", 10 * 1024 * 1024, 5),
    "shisha.services": ("business.log", 5 * 1024 * 1024, 3),
    "shisha.services.status_reconciliation": ("status_sweep.log", 5 * 1024 * 1024, 5),
}


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Configure logging for the Shisha application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files (defaults to settings.LOG_TO_FILE)
        log_to_console: Whether to log to console

    Returns:
        The "shisha" package logger
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE

    logger = logging.getLogger("shisha")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s() - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_dir = None
    if log_to_file:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(exist_ok=True, parents=True)

        app_handler = logging.handlers.RotatingFileHandler(
            log_dir / settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        app_handler.setLevel(level)
        app_handler.setFormatter(detailed_formatter)
        logger.addHandler(app_handler)

        # Errors from every area land here as well
        error_handler = logging.handlers.RotatingFileHandler(
            log_dir / settings.ERROR_LOG_FILE,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        logger.addHandler(error_handler)

    setup_module_loggers(level, detailed_formatter, log_dir)

    return logger


def setup_module_loggers(level: int, file_formatter: logging.Formatter, log_dir: Optional[Path] = None):
    """Give each area logger its level and, when logging to files, its own rotating file"""
    for name, (filename, max_bytes, backup_count) in MODULE_LOG_FILES.items():
        module_logger = logging.getLogger(name)
        module_logger.setLevel(level)
        for handler in list(module_logger.handlers):
            module_logger.removeHandler(handler)
            handler.close()

        if log_dir:
            handler = logging.handlers.RotatingFileHandler(
                log_dir / filename,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            handler.setFormatter(file_formatter)
            module_logger.addHandler(handler)
