import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s: %(message)s"
HANDLER_NAME = "todo_api"


def configure_logging(level: str = "INFO") -> None:
    """Send application logs to stdout, once per process"""
    root = logging.getLogger()
    if not any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
