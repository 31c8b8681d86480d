import sys

from loguru import logger


def setup_logging(level: str = "INFO", logfile: str | None = None):
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name} | {message}",
    )
    if logfile:
        logger.add(
            logfile,
            rotation="10 MB",
            retention="10 days",
            enqueue=True,
            backtrace=True,
            diagnose=False,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {message}",
        )
    # the library stays silent until an application opts in
    logger.enable("tastybroker")
    return logger
