import sys
from loguru import logger
from app.core.config import APP_ENV, LOG_FILE, LOG_LEVEL

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"


def setup_logging(log_file: str | None = LOG_FILE) -> None:
    """
    stdout sink always, file sink when LOG_FILE is set (empty disables it).
    The file sink is enqueued since the broker logs from publisher threads.
    """
    logger.remove()

    logger.add(
        sys.stdout,
        level=LOG_LEVEL,
        format=LOG_FORMAT,
        diagnose=APP_ENV == "local",
    )

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="14 days",
            level=LOG_LEVEL,
            format=LOG_FORMAT,
            enqueue=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized | level={LOG_LEVEL} file={log_file or '-'}")
