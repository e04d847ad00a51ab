from unittest.mock import patch

from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from telemetry_zabbix.core.config import Settings
from telemetry_zabbix.core.tracing import configure_tracing


class TestConfigureTracing:
    """Test opt-in OpenTelemetry setup."""

    @patch("telemetry_zabbix.core.tracing.trace.set_tracer_provider")
    def test_provider_resource_and_global_install(self, mock_set_provider):
        """Test that the provider carries service identity and is installed."""
        config = Settings(otel_service_name="reporter-test", app_environment="testing")

        provider = configure_tracing(config, exporter=InMemorySpanExporter())

        attributes = provider.resource.attributes
        assert attributes["service.name"] == "reporter-test"
        assert attributes["deployment.environment"] == "testing"
        mock_set_provider.assert_called_once_with(provider)
        provider.shutdown()

    @patch("telemetry_zabbix.core.tracing.trace.set_tracer_provider")
    @patch("telemetry_zabbix.core.tracing.BatchSpanProcessor", wraps=BatchSpanProcessor)
    @patch("telemetry_zabbix.core.tracing.OTLPSpanExporter")
    def test_default_exporter_uses_configured_endpoint(
        self, mock_exporter, mock_processor, mock_set_provider
    ):
        """Test that the OTLP exporter targets the configured endpoint."""
        config = Settings(otel_exporter_otlp_endpoint="http://collector:4317")

        configure_tracing(config)

        mock_exporter.assert_called_once_with(endpoint="http://collector:4317")
        mock_processor.assert_called_once_with(mock_exporter.return_value)
