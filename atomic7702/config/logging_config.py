"""
Logging Configuration for the EIP-7702 atomic transfer tool

Provides structured logging with:
- Timestamps
- Log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- File rotation (1 file per day)
- Separate error log
- Console and file handlers
- A submission audit log (one line per UserOperation outcome)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Optional


# Log directory (override with LOG_DIR)
LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent.parent / "logs"))

# Log formats
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
    detailed: bool = False,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Setup a logger with console and file handlers.

    Args:
        name: Logger name (typically the package or command name)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file name (defaults to name.log)
        console: Whether to log to console
        detailed: Whether to use detailed format (includes file/line)
        log_dir: Directory for log files (defaults to LOG_DIR)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("atomic7702", level=logging.DEBUG)
        >>> logger.info("Checking deployment status")
        >>> logger.error("Submission failed", exc_info=True)
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    directory = Path(log_dir) if log_dir is not None else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    log_format = DETAILED_FORMAT if detailed else SIMPLE_FORMAT
    formatter = logging.Formatter(log_format, datefmt=DATE_FORMAT)

    if console:
        # stderr keeps the console report on stdout readable
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler with daily rotation
    if log_file is None:
        log_file = f"{name}.log"

    file_handler = TimedRotatingFileHandler(
        directory / log_file,
        when="midnight",
        interval=1,
        backupCount=30,  # Keep 30 days of logs
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Separate error log
    error_handler = RotatingFileHandler(
        directory / f"{name}_errors.log",
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(error_handler)

    return logger


def setup_submission_logger(command: str, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Setup logger for UserOperation outcomes.
    Logs every submission to a dedicated monthly file for audit trail.

    Args:
        command: Name of the command (e.g., "send_batch")

    Returns:
        Logger configured for submission logging
    """
    logger = logging.getLogger(f"submissions_{command}")
    logger.setLevel(logging.INFO)

    if logger.handlers:
        return logger

    directory = Path(log_dir) if log_dir is not None else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(SIMPLE_FORMAT, datefmt=DATE_FORMAT)

    # Never rotates, keeps full history for the month
    path = directory / f"submissions_{command}_{datetime.now().strftime('%Y%m')}.log"
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_submission(
    logger: logging.Logger,
    account: str,
    calls: int,
    authorization_included: bool,
    tx_hash: Optional[str] = None,
    gas_used: Optional[int] = None,
    success: bool = True,
    error: Optional[str] = None,
):
    """
    Log a submission in structured format.

    Args:
        logger: Submission logger instance
        account: Smart account address
        calls: Number of calls in the operation
        authorization_included: Whether an EIP-7702 authorization was attached
        tx_hash: Transaction hash, if known
        gas_used: Gas consumed, if known
        success: Whether the submission succeeded
        error: Error text for failed submissions
    """
    status = "SUCCESS" if success else "FAILED"
    msg = (
        f"{status} | {account} | Calls: {calls} | "
        f"Authorization: {'yes' if authorization_included else 'no'}"
    )
    if tx_hash:
        msg += f" | TX: {tx_hash}"
    if gas_used is not None:
        msg += f" | Gas: {gas_used}"
    if error:
        msg += f" | Error: {error}"

    if success:
        logger.info(msg)
    else:
        logger.error(msg)


def get_command_logger(level_name: str = "INFO") -> logging.Logger:
    """Get the package logger used by command entry points.

    Child loggers created with ``logging.getLogger(__name__)`` inside the
    package propagate here.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    return setup_logger("atomic7702", level=level, detailed=level <= logging.DEBUG)
