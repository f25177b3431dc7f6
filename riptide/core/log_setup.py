import logging
import sys

from .config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Set up the `riptide` logger tree once at process start.

    Production raises the floor to WARNING so routine info/debug chatter
    from providers and the relay never reaches the console.
    """
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    if settings.production:
        level = max(level, logging.WARNING)

    root = logging.getLogger("riptide")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root
