"""
Logging for the image service.

One rotating log file per day under Config.LOG_DIR, a console handler, and
cleanup of rotated files older than Config.LOG_RETENTION_DAYS. Level and
file name come from LOG_LEVEL and LOG_FILE_NAME.
"""
import os
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timedelta
from pathlib import Path

from config import Config


LOGS_DIR = Config.LOG_DIR
os.makedirs(LOGS_DIR, exist_ok=True)

LOG_FILE_NAME = Config.LOG_FILE_NAME
LOG_FILE = os.path.join(LOGS_DIR, LOG_FILE_NAME)
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_RETENTION_DAYS = Config.LOG_RETENTION_DAYS


def resolve_level(level_name: str, default: int = logging.INFO) -> int:
    """Map a level name such as "debug" or "WARNING" to its logging constant."""
    level = logging.getLevelName(str(level_name).strip().upper())
    if isinstance(level, int):
        return level
    print(f"Warning: Unknown LOG_LEVEL {level_name!r}, using {logging.getLevelName(default)}")
    return default


def _rotation_date(log_file: Path, base_name: str) -> datetime:
    """Date of a rotated file, from its suffix or, failing that, its mtime."""
    try:
        return datetime.strptime(log_file.name[len(base_name) + 1:], "%Y-%m-%d")
    except ValueError:
        return datetime.fromtimestamp(log_file.stat().st_mtime)


def cleanup_old_logs(
    directory: str,
    retention_days: int = LOG_RETENTION_DAYS,
    base_name: str = LOG_FILE_NAME,
) -> int:
    """Remove rotated copies of base_name older than retention_days. Returns the number deleted."""
    log_dir = Path(directory)
    if not log_dir.exists():
        return 0

    cutoff = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in log_dir.glob(f"{base_name}.*"):
        if not log_file.is_file() or _rotation_date(log_file, base_name) >= cutoff:
            continue
        try:
            log_file.unlink()
            deleted_count += 1
        except OSError as e:
            logging.error(f"Failed to delete log file {log_file.name}: {e}")

    if deleted_count > 0:
        logging.info(f"Cleaned up {deleted_count} old log file(s) in {directory}")
    return deleted_count


def setup_logger(name: str = "app", level: int = None) -> logging.Logger:
    """
    Set up logger with file rotation and console output.

    Args:
        name: Logger name
        level: Logging level (default: Config.LOG_LEVEL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    if level is None:
        level = resolve_level(Config.LOG_LEVEL)
    logger.setLevel(level)

    file_handler = TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        interval=1,
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
        utc=True
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(max(level, logging.INFO))
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", "%H:%M:%S")
    )

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    try:
        cleanup_old_logs(LOGS_DIR, LOG_RETENTION_DAYS)
    except OSError as e:
        logger.error(f"Error during log cleanup: {e}")

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """Child of the "app" logger, e.g. get_logger("image") -> "app.image"."""
    if name is None:
        return logging.getLogger("app")
    return logging.getLogger(f"app.{name}")


app_logger = setup_logger("app")
app_logger.info(f"Logging to {LOG_FILE} (level {logging.getLevelName(app_logger.level)}, retention {LOG_RETENTION_DAYS} days)")
