"""YAML tuning file for the self-healing pipeline: defaults, merge, validation."""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import ConfigurationError
from .models.healing_models import HealingConfiguration, IngestMode

logger = logging.getLogger(__name__)


def merge_sections(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``override`` on ``base``; lists and scalars are replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_sections(current, value)
        else:
            merged[key] = value
    return merged


def validation_errors(config: HealingConfiguration) -> List[str]:
    """Human-readable problems with a configuration; empty when it is usable."""
    checks = [
        (bool(config.page_object_dir), "page_object_dir must not be empty"),
        (bool(config.source_extensions), "source_extensions must name at least one extension"),
        (0.0 <= config.confidence_threshold <= 1.0, "confidence_threshold must be between 0.0 and 1.0"),
        (config.dom_snapshot_chars > 0, "dom_snapshot_chars must be positive"),
        (1 <= config.max_attempts <= 10, "retry.max_attempts must be between 1 and 10"),
        (config.backoff_seconds >= 0, "retry.backoff_seconds must not be negative"),
        (config.backoff_factor >= 1.0, "retry.backoff_factor must be at least 1.0"),
        (1 <= config.page_load_timeout <= 300, "chrome.page_load_timeout must be between 1 and 300 seconds"),
    ]
    return [message for ok, message in checks if not ok]


class SelfHealingConfigLoader:
    """Reads and writes the ``self_healing`` section of the tuning file."""

    SECTION = "self_healing"
    DEFAULT_CONFIG = {SECTION: HealingConfiguration().to_dict()}

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)

    def load_config(self) -> HealingConfiguration:
        """Defaults overlaid with the file (if any), validated.

        Raises:
            ConfigurationError: If the file is unreadable, not a mapping or holds invalid values
        """
        section = self._read_section()
        config = self._build(section)
        self._check(config)
        logger.info(f"⚙️  Self-healing configuration loaded from {self.config_path} "
                    f"(ingest mode: {config.ingest_mode.value})")
        return config

    def save_config(self, config: HealingConfiguration) -> None:
        """Write ``config`` as the tuning file, creating parent directories.

        Raises:
            ConfigurationError: If the configuration is invalid or the file cannot be written
        """
        self._check(config)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump({self.SECTION: config.to_dict()}, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Could not write {self.config_path}: {e}") from e
        logger.info(f"Self-healing configuration written to {self.config_path}")

    def _read_section(self) -> Dict[str, Any]:
        defaults = copy.deepcopy(self.DEFAULT_CONFIG)
        if not self.config_path.exists():
            logger.info(f"No tuning file at {self.config_path}, using defaults")
            return defaults[self.SECTION]

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{self.config_path} is not valid YAML: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read {self.config_path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get(self.SECTION, {}), dict):
            raise ConfigurationError(f"{self.config_path} must contain a '{self.SECTION}' mapping")
        return merge_sections(defaults, data)[self.SECTION]

    @staticmethod
    def _build(section: Dict[str, Any]) -> HealingConfiguration:
        retry = section.get("retry") or {}
        chrome = section.get("chrome") or {}
        backup = section.get("backup") or {}

        try:
            return HealingConfiguration(
                ingest_mode=IngestMode(str(section["ingest_mode"]).lower()),
                page_object_dir=str(section["page_object_dir"]).strip("/"),
                source_extensions=[str(ext).lstrip(".") for ext in section["source_extensions"]],
                confidence_threshold=float(section["confidence_threshold"]),
                dom_snapshot_chars=int(section["dom_snapshot_chars"]),
                max_attempts=int(retry["max_attempts"]),
                backoff_seconds=float(retry["backoff_seconds"]),
                backoff_factor=float(retry["backoff_factor"]),
                headless=bool(chrome["headless"]),
                page_load_timeout=int(chrome["page_load_timeout"]),
                backup_enabled=bool(backup["enabled"]),
                backup_dir=str(backup["dir"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid self-healing configuration value: {e}") from e

    @staticmethod
    def _check(config: HealingConfiguration) -> None:
        errors = validation_errors(config)
        if errors:
            raise ConfigurationError("Configuration validation failed: " + "; ".join(errors))


def get_healing_config(config_path: Optional[str] = None) -> HealingConfiguration:
    """Tuning configuration from ``config_path``; built-in defaults when None."""
    if config_path is None:
        return HealingConfiguration()
    return SelfHealingConfigLoader(config_path).load_config()
