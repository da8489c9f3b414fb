from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Span, Status, StatusCode

from estate_crm.core.config import get_settings

_provider: TracerProvider | None = None
_console_attached = False


def _tracer_provider(service_name: str) -> TracerProvider:
    global _provider

    if _provider is None:
        settings = get_settings()
        resource = Resource.create(
            {
                "service.name": service_name,
                "service.version": settings.app_version,
                "deployment.environment": settings.app_env,
            }
        )
        _provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(service_name: str, enable: bool) -> TracerProvider | None:
    global _console_attached

    if not enable:
        return None

    provider = _tracer_provider(service_name)
    if get_settings().otel_console_exporter and not _console_attached:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        _console_attached = True
    return provider


def setup_inmemory_otel(service_name: str = "estate-crm") -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    _tracer_provider(service_name).add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


def mark_outcome(span: Span, errors: list | None) -> None:
    """Tag ``span`` with the first error code, or ``ok``."""

    if errors:
        code = getattr(errors[0], "code", type(errors[0]).__name__)
        span.set_attribute("outcome", code)
        span.set_status(Status(StatusCode.ERROR, code))
    else:
        span.set_attribute("outcome", "ok")
