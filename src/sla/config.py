"""Load the SLA thresholds file and resolve per-profile thresholds."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.sla.errors import ConfigurationError
from src.sla.models import SlaConfig, ThresholdProfile

logger = logging.getLogger(__name__)

DEFAULT_SLA_CONFIG_PATH = Path(__file__).parent / "sla.yaml"

P50_KEY = "p50_response_time_ms"
P90_KEY = "p90_response_time_ms"
P95_KEY = "p95_response_time_ms"
P99_KEY = "p99_response_time_ms"
ERROR_RATE_KEY = "max_error_rate_percent"
THROUGHPUT_KEY = "min_throughput_rps"

# Safety-critical bounds: no built-in default, the config must provide them.
MANDATORY_KEYS = (P95_KEY, ERROR_RATE_KEY)


def load_sla_config(path: str | Path | None = None) -> SlaConfig:
    """Load and validate an SLA config file (YAML, or JSON which YAML also reads).

    Args:
        path: Config file path. Empty or None selects the bundled sla.yaml.

    Raises:
        ConfigurationError: If the file is unreadable or fails validation.
    """
    config_path = Path(path) if path else DEFAULT_SLA_CONFIG_PATH
    try:
        raw: Any = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot load SLA config {config_path}: {exc}"
        raise ConfigurationError(msg) from exc

    try:
        config = SlaConfig.model_validate(raw or {})
    except ValidationError as exc:
        msg = f"Invalid SLA config {config_path}: {exc}"
        raise ConfigurationError(msg) from exc

    logger.debug("Loaded SLA config from %s (%d profiles)", config_path, len(config.profiles))
    return config


def resolve_thresholds(config: SlaConfig, profile: str) -> ThresholdProfile:
    """Overlay the profile's overrides onto the global defaults.

    ``effective[k]`` is the profile override when set, else the default. Keys
    set in neither place are left out. Unknown profiles get the defaults.

    Raises:
        ConfigurationError: If a mandatory bound (p95, error rate) is unset.
    """
    overrides = config.profiles.get(profile, {})
    bounds: dict[str, float] = {}
    for key in {**config.performance, **overrides}:
        override = overrides.get(key)
        value = override if override is not None else config.performance.get(key)
        if value is not None:
            bounds[key] = value

    missing = [key for key in MANDATORY_KEYS if key not in bounds]
    if missing:
        msg = f"SLA config for profile '{profile}' is missing mandatory threshold(s): {', '.join(missing)}"
        raise ConfigurationError(msg)

    return ThresholdProfile(profile=profile, bounds=bounds, infrastructure=config.infrastructure)
