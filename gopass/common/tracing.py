"""OpenTelemetry tracing for the FastAPI services."""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from gopass.common.config import settings

# Health and scrape endpoints are not traced.
EXCLUDED_URLS = "health,metrics"

_provider: TracerProvider | None = None


def setup_tracing(app: FastAPI) -> None:
    """Register the OTLP exporter once per process and instrument `app`.

    Does nothing when `OTEL_ENABLED` is false.
    """

    global _provider
    if not settings.otel_enabled:
        return
    if _provider is None:
        _provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
        _provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint))
        )
        trace.set_tracer_provider(_provider)
    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
