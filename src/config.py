from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    target_url: str = "https://jsonplaceholder.typicode.com"
    log_level: str = "INFO"

    # SLA thresholds file (empty string means the bundled src/sla/sla.yaml)
    sla_config_path: str = ""

    # Artifacts: k6 summary, raw output, reports and run history live here
    reports_dir: str = "reports"

    # k6 load generator
    k6_binary: str = "k6"
    k6_script_path: str = "load_test.js"

    # Prometheus API (optional, empty string means not configured)
    prometheus_url: str = ""
    prometheus_retries: int = 3
    prometheus_retry_delay_seconds: float = 1.0
    cpu_query: str = '100 - (avg by (instance) (rate(node_cpu_seconds_total{mode="idle"}[1m])) * 100)'
    memory_query: str = "(1 - (node_memory_MemAvailable_bytes / node_memory_MemTotal_bytes)) * 100"

    # Grafana annotations (optional, both url and token required)
    grafana_url: str = ""
    grafana_token: str = ""

    # Webhook notifications (optional, Slack, Discord, Teams or generic JSON)
    webhook_url: str = ""
    discord_role_id: str = ""
    report_url: str = ""

    # SMTP / Email (optional, empty = email disabled)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = ""
    report_recipient_email: str = ""

    # node_exporter textfile collector path for run metrics (optional)
    metrics_textfile: str = ""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
