import logging
import re
import sys
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timedelta
from keyauth.config import settings

REQUEST_ID_PATTERN = re.compile(r'\s*\|\s*RequestID:\s*([A-Za-z0-9-]+)')

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(request_id)s - [%(filename)s:%(lineno)d] - %(funcName)s - %(message)s'


class RequestIDFormatter(logging.Formatter):
    """Formatter that moves "| RequestID: <id>" from the message into its own column."""

    def __init__(self, datefmt: str = '%Y-%m-%d %H:%M:%S'):
        super().__init__(LOG_FORMAT, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, 'request_id', None)

        if not request_id and isinstance(record.msg, str):
            match = REQUEST_ID_PATTERN.search(record.getMessage())
            if match:
                request_id = match.group(1)
                record.msg = REQUEST_ID_PATTERN.sub('', record.getMessage())
                record.args = ()

        # [SYSTEM] for log lines outside a request
        record.request_id = f"[{request_id.strip('[]')}]" if request_id else '[SYSTEM]'
        return super().format(record)


def setup_logging() -> None:
    """
    Configure application-wide logging: stdout plus an optional daily rotated file.
    """
    log_level = settings.get_log_level()
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    log_format = RequestIDFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)

        # Rotates at midnight: app.log.2025-01-15
        file_handler = TimedRotatingFileHandler(
            filename=str(log_dir / "app.log"),
            when='midnight',
            interval=1,
            backupCount=settings.LOG_RETENTION_DAYS,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(log_format)
        file_handler.suffix = "%Y-%m-%d"
        root_logger.addHandler(file_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured - Level: {log_level}, File logging: {settings.LOG_TO_FILE}"
    )


def cleanup_old_logs() -> None:
    """
    Delete rotated log files older than the retention period.
    """
    log_dir = Path(settings.LOG_DIR)
    if not settings.LOG_TO_FILE or not log_dir.exists():
        return

    logger = logging.getLogger(__name__)
    cutoff_date = datetime.now() - timedelta(days=settings.LOG_RETENTION_DAYS)
    deleted_count = 0

    for log_file in log_dir.glob("app.log.*"):
        try:
            file_date = datetime.strptime(log_file.suffix.lstrip('.'), "%Y-%m-%d")
            if file_date < cutoff_date:
                log_file.unlink()
                deleted_count += 1
        except (ValueError, OSError) as e:
            logger.warning(f"Error processing log file {log_file.name}: {str(e)}")

    if deleted_count > 0:
        logger.info(f"Cleaned up {deleted_count} old log file(s) (older than {settings.LOG_RETENTION_DAYS} days)")
