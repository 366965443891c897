import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from celery.signals import setup_logging
from loguru import logger
from pydantic import BaseModel

from reminder_service.config.settings import settings
from reminder_service.utils.context import get_request_id

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "logging_config.json"

# stdlib loggers whose records are forwarded to loguru
FORWARDED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "celery",
    "celery.task",
    "celery.worker",
    "sqlalchemy.engine",
)


class LogSinkConfig(BaseModel):
    """One profile of config/logging_config.json"""

    log_dir: str = "logs"
    filename: str = "reminder-service.log"
    level: str = "info"
    rotation: str = "20 MB"
    retention: str = "7 days"
    console_format: str
    file_format: str
    use_json_logs: bool = False

    @property
    def daily_file(self) -> str:
        return f"{self.log_dir}/{date.today():%Y-%m-%d}-{self.filename}"

    @property
    def writes_json(self) -> bool:
        return self.use_json_logs and self.file_format == "json"


class InterceptHandler(logging.Handler):
    """Route stdlib logging records into loguru, tagged with the current request id."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(request_id=get_request_id() or "app").opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


def load_sink_config(config_path: Path, profile: str) -> LogSinkConfig:
    with open(config_path) as config_file:
        profiles = json.load(config_file)
    return LogSinkConfig(**profiles.get(profile, profiles["logger"]))


def forward_stdlib_logging():
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in FORWARDED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False


def configure_logging(
    config_path: Path = CONFIG_PATH,
    environment: str = settings.ENVIRONMENT,
    level: Optional[str] = None,
):
    """
    Replace loguru's default sink with the console and daily file sinks of the
    active profile, and forward stdlib logging into them.

    `production` selects the production profile; anything else uses `logger`.
    """
    profile = "production" if environment == "production" else "logger"
    sink = load_sink_config(config_path, profile)
    level = (level or sink.level).upper()

    logger.remove()
    logger.configure(extra={"request_id": "app"})

    logger.add(
        sys.stdout,
        level=level,
        format=sink.console_format,
        colorize=True,
        backtrace=True,
        enqueue=True,
    )

    file_options = dict(
        rotation=sink.rotation,
        retention=sink.retention,
        level=level,
        colorize=False,
        backtrace=True,
        enqueue=True,
    )
    if sink.writes_json:
        logger.add(sink.daily_file, serialize=True, **file_options)
    else:
        logger.add(sink.daily_file, format=sink.file_format, **file_options)

    forward_stdlib_logging()
    return logger


@setup_logging.connect
def _celery_setup_logging(**kwargs):
    # Connecting this signal stops Celery from installing its own root handlers
    forward_stdlib_logging()


custom_logger = configure_logging(
    level=settings.LOG_LEVEL if settings.ENVIRONMENT == "production" else None
)


def get_logger():
    """Get the service logger bound to the current request ID."""
    return custom_logger.bind(request_id=get_request_id() or "app")
