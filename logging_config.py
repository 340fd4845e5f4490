"""
Logging Configuration

One formatted stream handler on the root logger; every module logs
through logging.getLogger(__name__).
"""

import logging

DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

NOISY_LOGGERS = ('werkzeug', 'sqlalchemy.engine', 'alembic.runtime.migration')

# Marks the handler so repeated create_app calls do not stack handlers
_HANDLER_NAME = 'kitchen-ledger'


def configure_logging(app):
    level = _coerce_level(app.config.get('LOG_LEVEL', 'DEBUG' if app.debug else 'INFO'))
    root = logging.getLogger()
    root.setLevel(level)
    app.logger.setLevel(level)

    if level > logging.DEBUG:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    formatter = logging.Formatter(DEV_FORMAT if app.debug else PROD_FORMAT)
    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        root.addHandler(handler)
    handler.setFormatter(formatter)


def _coerce_level(raw_level):
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        return getattr(logging, raw_level.strip().upper(), logging.INFO)
    return logging.INFO
