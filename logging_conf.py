import os
import logging
from logging.handlers import RotatingFileHandler
from config import settings

APP_LOGGER = 'iptv_player'
LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _level(name: str) -> int:
    # Un LOG_LEVEL desconocido no debe impedir arrancar
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    """Prepara el logger raíz de la aplicación una sola vez.

    application.log recibe todo lo de iptv_player.*; con DEBUG además se
    escribe en consola. uvicorn conserva sus propios handlers.
    """
    app_logger = logging.getLogger(APP_LOGGER)
    if app_logger.handlers:
        return app_logger

    level = _level(settings.LOG_LEVEL)
    app_logger.setLevel(logging.DEBUG if settings.DEBUG else level)
    app_logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(settings.LOG_DIR, 'application.log'),
        maxBytes=settings.LOG_FILE_MAX_SIZE,
        backupCount=settings.LOG_FILE_BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    app_logger.addHandler(file_handler)

    if settings.DEBUG:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        app_logger.addHandler(console_handler)

    app_logger.debug("Logging listo: nivel=%s dir=%s", logging.getLevelName(level), settings.LOG_DIR)
    return app_logger


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(f'{APP_LOGGER}.{name}')
