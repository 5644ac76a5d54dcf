# ranklist/config/logger.py
import logging
import sys

from ranklist.config.config import settings

LOG_LEVEL = logging.DEBUG if settings.env == "dev" else logging.INFO
LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"


def setup_logger(name: str = "ranklist") -> logging.Logger:
    """
    Логгер импорта: stdout, DEBUG в dev-окружении.
    Повторный вызов не навешивает второй хендлер.
    """
    log = logging.getLogger(name)
    log.setLevel(LOG_LEVEL)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(LOG_LEVEL)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        log.addHandler(handler)
    return log


logger = setup_logger()
