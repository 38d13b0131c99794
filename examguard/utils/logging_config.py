"""
Logging setup for ExamGuard

Console output always; rotating files under the configured log directory
when enabled. Proctoring events are written by examguard.proctor.utils.logging
through the loggers configured here.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request or ping at INFO/DEBUG
NOISY_LOGGERS = ("sse_starlette", "uvicorn.access")


def _file_handlers(service_name: str, log_dir: Path, formatter: logging.Formatter) -> List[logging.Handler]:
    log_dir.mkdir(parents=True, exist_ok=True)
    
    main_handler = logging.handlers.RotatingFileHandler(
        log_dir / f"{service_name}.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    main_handler.setLevel(logging.DEBUG)
    
    # Warnings too: auto-terminations and admin notifications are logged there
    alert_handler = logging.handlers.RotatingFileHandler(
        log_dir / f"{service_name}_alerts.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8"
    )
    alert_handler.setLevel(logging.WARNING)
    
    for handler in (main_handler, alert_handler):
        handler.setFormatter(formatter)
    return [main_handler, alert_handler]


def setup_logging(
    service_name: str = "examguard",
    level: str = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
    log_dir: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger for the service.
    
    Args:
        service_name: Used as the logger name and the log file prefix
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Also write <service_name>.log and <service_name>_alerts.log
        log_to_console: Write to stdout
        log_dir: Directory for log files (defaults to ./logs)
    
    Returns:
        The service logger
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = []
    
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)
    
    directory = Path(log_dir or "logs")
    if log_to_file:
        handlers.extend(_file_handlers(service_name, directory, formatter))
    
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    
    logger = logging.getLogger(service_name)
    logger.info(f"Logging configured: level={level.upper()}, files={directory if log_to_file else 'off'}")
    return logger
