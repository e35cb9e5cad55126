import logging
import sys

from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, ConsoleLogRecordExporter
from opentelemetry.sdk.resources import Resource

from .config import settings


def setup_logging(level: str | None = None) -> None:
    """Route stdlib logging through an OpenTelemetry LoggerProvider (console export)."""
    level = (level or settings.LOG_LEVEL).upper()

    logger_provider = LoggerProvider(
        resource=Resource.create({"service.name": settings.APP_NAME})
    )
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(ConsoleLogRecordExporter())
    )
    set_logger_provider(logger_provider)

    root = logging.getLogger()
    root.addHandler(LoggingHandler(level=getattr(logging, level), logger_provider=logger_provider))
    root.setLevel(level)

    # Plain stdout handler so provisioning hooks see output before the batch flushes
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root.addHandler(stream_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = logging.getLogger("tenant_keystore")
