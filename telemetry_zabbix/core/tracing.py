from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .config import Settings, settings


def configure_tracing(
    config: Settings | None = None, exporter: SpanExporter | None = None
) -> TracerProvider:
    """Configures OpenTelemetry and installs the provider globally.

    Opt-in, like ``configure_logging``: without it flush spans are no-ops.
    """
    config = config or settings
    resource = Resource.create(
        {
            "service.name": config.otel_service_name,
            "deployment.environment": config.app_environment,
        }
    )

    provider = TracerProvider(resource=resource)
    if exporter is None:
        exporter = OTLPSpanExporter(endpoint=config.otel_exporter_otlp_endpoint)

    # Use a BatchSpanProcessor to send spans in batches
    provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    return provider
