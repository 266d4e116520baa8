import logging
import os
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

def setup_telemetry(
    app: FastAPI,
    engine: Optional[Engine] = None,
    service_name: Optional[str] = None,
    endpoint: Optional[str] = None,
) -> TracerProvider:
    """
    Sets up OpenTelemetry for the FastAPI application.
    This includes a tracer provider, an OTLP exporter, and instrumentation for
    FastAPI and, when an engine is given, SQLAlchemy.
    """
    service_name = service_name or os.getenv("OTEL_SERVICE_NAME")
    if not service_name:
        logger.warning("OTEL_SERVICE_NAME environment variable not set. Defaulting to 'unknown_service'.")
        service_name = "unknown_service"
    endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

    resource = Resource.create({"service.name": service_name})

    # Set up a TracerProvider and OTLP exporter
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(provider)

    logger.info(f"Telemetry setup for service: {service_name}")
    logger.info(f"OTLP endpoint: {endpoint}")

    # Instrument the FastAPI application.
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)

    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine, tracer_provider=provider)
        logger.info("SQLAlchemy engine has been instrumented.")

    logger.info("FastAPI has been instrumented.")
    return provider
