import pytest
from fastapi.testclient import TestClient
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from common.tracing import setup_telemetry
from order_api.main import create_app


@pytest.fixture
def exporter(monkeypatch):
    span_exporter = InMemorySpanExporter()
    created = []

    def fake_otlp_exporter(**kwargs):
        created.append(kwargs)
        return span_exporter

    monkeypatch.setattr("common.tracing.OTLPSpanExporter", fake_otlp_exporter)
    span_exporter.created = created
    return span_exporter


def test_request_produces_fastapi_and_sqlalchemy_spans(sql_store, exporter):
    app = create_app(store=sql_store, enable_telemetry=False)
    provider = setup_telemetry(
        app,
        engine=sql_store.engine,
        service_name="order_api",
        endpoint="http://collector:4317",
    )
    try:
        with TestClient(app) as client:
            response = client.post("/api/v1/orders", json={"product": "Widget", "count": 3, "status": "pending"})
            assert response.status_code == 201
        provider.force_flush()
    finally:
        FastAPIInstrumentor.uninstrument_app(app)
        SQLAlchemyInstrumentor().uninstrument()

    spans = exporter.get_finished_spans()
    scopes = {span.instrumentation_scope.name for span in spans}

    assert exporter.created == [{"endpoint": "http://collector:4317", "insecure": True}]
    assert any("/api/v1/orders" in span.name for span in spans)
    assert any("sqlalchemy" in scope for scope in scopes)
    assert all(span.resource.attributes["service.name"] == "order_api" for span in spans)


def test_service_name_falls_back_to_unknown(monkeypatch, sql_store, exporter):
    monkeypatch.delenv("OTEL_SERVICE_NAME", raising=False)
    app = create_app(store=sql_store, enable_telemetry=False)

    provider = setup_telemetry(app)
    try:
        assert provider.resource.attributes["service.name"] == "unknown_service"
    finally:
        FastAPIInstrumentor.uninstrument_app(app)
        provider.shutdown()
