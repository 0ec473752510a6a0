"""Shared pytest configuration and fixtures."""

import json
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from src.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _no_dotenv() -> Generator[None]:
    """Block .env loading so a developer's local config never leaks into tests."""
    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


@pytest.fixture
def mock_settings(tmp_path: Path) -> Generator[Any]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "target_url": "https://app.test",
            "log_level": "INFO",
            "sla_config_path": "",
            "reports_dir": str(tmp_path / "reports"),
            "k6_binary": "k6",
            "k6_script_path": "load_test.js",
            # Prometheus
            "prometheus_url": "http://prometheus.test:9090",
            "prometheus_retries": 2,
            "prometheus_retry_delay_seconds": 0.0,
            "cpu_query": "cpu_usage_query",
            "memory_query": "memory_usage_query",
            # Grafana
            "grafana_url": "http://grafana.test:3000",
            "grafana_token": "glsa_test_fake",
            # Webhook
            "webhook_url": "https://hooks.test/generic",
            "discord_role_id": "",
            "report_url": "https://ci.test/reports/report.md",
            # SMTP / Email
            "smtp_host": "smtp.test.com",
            "smtp_port": 587,
            "smtp_username": "test@test.com",
            "smtp_password": "test-password",
            "email_from": "",
            "report_recipient_email": "recipient@test.com",
            "metrics_textfile": "",
        },
    )()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.integrations.prometheus.get_settings", return_value=fake_settings),
        patch("src.integrations.grafana.get_settings", return_value=fake_settings),
        patch("src.integrations.k6.get_settings", return_value=fake_settings),
        patch("src.notify.webhook.get_settings", return_value=fake_settings),
        patch("src.notify.email.get_settings", return_value=fake_settings),
        patch("src.pipeline.get_settings", return_value=fake_settings),
        patch("src.cli.get_settings", return_value=fake_settings),
    ):
        yield fake_settings


@pytest.fixture
def k6_summary() -> dict[str, Any]:
    """A k6 --summary-export payload with every section populated."""
    return {
        "metrics": {
            "http_req_duration": {
                "med": 150,
                "p(90)": 300,
                "p(95)": 450,
                "p(99)": 900,
                "avg": 200,
                "min": 10,
                "max": 1200,
            },
            "errors": {"value": 0.02, "passes": 2, "fails": 98},
            "http_reqs": {"count": 100, "rate": 5.5},
            "iterations": {"count": 100},
            "browse_duration": {"avg": 120.55, "min": 10, "max": 500},
            "api_duration": {"avg": 250.33, "min": 15, "max": 800},
        },
        "root_group": {
            "checks": {
                "status is 200": {"name": "status is 200", "passes": 95, "fails": 5},
                "response time < 3000ms": {"name": "response time < 3000ms", "passes": 90, "fails": 10},
            }
        },
    }


@pytest.fixture
def summary_file(tmp_path: Path, k6_summary: dict[str, Any]) -> Path:
    path = tmp_path / "k6-summary.json"
    path.write_text(json.dumps(k6_summary))
    return path
