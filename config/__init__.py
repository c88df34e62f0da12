"""Configuration management."""
import os
import yaml
from pathlib import Path
from models.errors import ConfigurationError

_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    if path:
        if not Path(path).exists():
            raise ConfigurationError(f"Config file not found: {path}")
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    # Environment variable overrides
    env_map = {
        "TRADECYCLE_DB_PATH": ("database", "path"),
        "TRADECYCLE_LOG_LEVEL": ("logging", "level"),
        "TRADECYCLE_TELEGRAM_TOKEN": ("telegram", "bot_token"),
        "TRADECYCLE_TELEGRAM_CHAT_ID": ("telegram", "chat_id"),
    }
    for env_key, config_path in env_map.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            d[config_path[-1]] = val

    _validate_config(config)
    return config


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    """Basic config validation."""
    required_sections = ["database", "orchestrator", "alerts", "retention", "exchange", "execution"]
    for section in required_sections:
        if not isinstance(config.get(section), dict):
            raise ConfigurationError(f"Missing required config section: {section}")

    orch = config["orchestrator"]
    if int(orch["max_instruments_per_cycle"]) < 1:
        raise ConfigurationError("max_instruments_per_cycle must be >= 1")
    if float(orch["item_delay_seconds"]) < 0:
        raise ConfigurationError("item_delay_seconds must be >= 0")

    alerts = config["alerts"]
    if not 0 <= alerts["notify_threshold"] <= alerts["high_priority_threshold"] <= 1:
        raise ConfigurationError("alert thresholds must satisfy 0 <= notify <= high_priority <= 1")

    retention = config["retention"]
    if retention["critical_logs_days"] < retention["logs_days"]:
        raise ConfigurationError("critical_logs_days must be >= logs_days")

    tg = config.get("telegram", {})
    if tg.get("enabled") and not (tg.get("bot_token") and tg.get("chat_id")):
        raise ConfigurationError(
            "telegram is enabled but TRADECYCLE_TELEGRAM_TOKEN / TRADECYCLE_TELEGRAM_CHAT_ID are not set"
        )
