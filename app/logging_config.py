import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a single stdout handler to the root logger.

    Safe to call more than once (e.g. when uvicorn reloads): an existing
    handler installed by this function is reused rather than duplicated.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers:
        if getattr(handler, "_news_agency_handler", False):
            handler.setLevel(level.upper())
            return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler.setLevel(level.upper())
    console_handler._news_agency_handler = True
    root_logger.addHandler(console_handler)

    # SQL echo is controlled by settings.DEBUG on the engine; keep the
    # sqlalchemy loggers from doubling it through the root handler.
    logging.getLogger("sqlalchemy.engine").propagate = False
