from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from shared.config import settings
from shared.database import engine, init_db
from shared.logging import logger, setup_logging
from shared.metrics import setup_metrics
from tenant_keystore.api import provisioning as provisioning_api
from tenant_keystore.domain.algorithms import SignatureAlgorithm


def setup_tracing() -> None:
    resource = Resource.create({"service.name": settings.APP_NAME})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    setup_logging()
    setup_tracing()
    setup_metrics(settings.APP_NAME)

    LoggingInstrumentor().instrument(set_logging_format=True)
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    await init_db()

    if SignatureAlgorithm.parse(settings.TENANT_SIGNING_ALGORITHM) is None:
        logger.warning(
            "TENANT_SIGNING_ALGORITHM is not set to a supported algorithm; "
            "new tenant certificates will be signed with MD5withRSA"
        )

    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

FastAPIInstrumentor.instrument_app(app)

app.include_router(provisioning_api.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok", "service": settings.APP_NAME}
