from pydantic import Field

from shared.config import BaseLoggingConfig


class Settings(BaseLoggingConfig):
    # Zabbix trapper
    zabbix_host: str = "127.0.0.1"
    zabbix_port: int = Field(10051, ge=1, le=65535)
    zabbix_hostname: str = ""  # "host" label reported with every value
    zabbix_send_timeout_seconds: float = Field(5.0, gt=0)

    # Batching
    zabbix_batch_window_size_ms: int = Field(1000, gt=0)
    zabbix_timestamping: bool = True

    otel_service_name: str = "telemetry-zabbix"
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"

    @property
    def batch_window_seconds(self) -> float:
        return self.zabbix_batch_window_size_ms / 1000


settings = Settings()
