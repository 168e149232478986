from __future__ import annotations

from bookledger.core.config import settings
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


def init_otel(app: FastAPI) -> bool:
    """Install tracing for the app when OTEL_ENABLED is set.

    Without a configured provider, spans opened through
    ``trace.get_tracer`` (as the ledger does) are no-ops.
    """
    if not settings.otel_enabled:
        return False

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.api_name})
    )

    # OTEL_EXPORTER_OTLP_ENDPOINT is honoured when no explicit endpoint is set.
    endpoint = settings.otel_otlp_endpoint
    exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()

    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    return True
