import logging
import sys

from convene.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"
JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that stay at WARNING whatever CONVENE_LOG_LEVEL says.
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _build_formatter(as_json: bool) -> logging.Formatter:
    if as_json:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(
            fmt=JSON_FIELDS,
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    return logging.Formatter(TEXT_FORMAT)


def configure_logging(level: str | None = None) -> None:
    """Install a single stderr handler on the root logger.

    Called by ``convene.__main__`` before migrations run. Alembic's ini
    logging is skipped for migrations started through ``convene.db``, so this
    configuration stays in place. ``level`` overrides ``CONVENE_LOG_LEVEL``.
    """
    level_name = (level or settings.log_level).upper()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_build_formatter(settings.log_json))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
