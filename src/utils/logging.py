import os
import sys
from datetime import datetime
from typing import Optional

from loguru import logger


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None):
    """Setup logging configuration."""
    from config import config

    log_level = (log_level or config.logging.level).upper()
    log_format = log_format or config.logging.format

    logger.remove()
    # Add console logging
    logger.add(sys.stderr, level=log_level, format=log_format)

    # Add file logging when DEBUG level is specified
    if log_level == "DEBUG":
        logs_dir = config.logging.logs_dir
        os.makedirs(logs_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(logs_dir, f"debug_session_{timestamp}.log")

        # One file per session, no rotation
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}",
        )
        logger.debug(f"Debug logging enabled. Logs will be stored in {log_file}")

        cleanup_old_logs(logs_dir, max_files=10)


def cleanup_old_logs(log_dir: str, max_files: int = 50) -> int:
    """Remove the oldest debug session logs beyond ``max_files``."""
    removed = 0
    try:
        log_files = [
            f
            for f in os.listdir(log_dir)
            if f.startswith("debug_session_") and f.endswith(".log")
        ]
    except OSError as e:
        logger.warning(f"Failed to list log directory {log_dir}: {e}")
        return removed

    if len(log_files) <= max_files:
        return removed

    # Oldest first
    log_files.sort(key=lambda x: os.path.getmtime(os.path.join(log_dir, x)))

    for f in log_files[:-max_files]:
        try:
            os.remove(os.path.join(log_dir, f))
            removed += 1
            logger.debug(f"Cleaned up old log file: {f}")
        except OSError as e:
            logger.warning(f"Failed to remove old log file {f}: {e}")
    return removed
