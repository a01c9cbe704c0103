"""
Kronos · Configuration system.

Loads configuration from:
  1. Defaults (defined here)
  2. ~/.kronos/config.yaml (overrides defaults)
  3. Environment variables KRONOS_* (overrides everything)
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from kronos.errors import ConfigError
from kronos.utils.logging import get_logger

log = get_logger(__name__)

# 4 Jahre in Sekunden, Schaltjahre nicht mitgezählt
DEFAULT_SEARCH_HORIZON_SECONDS = 4 * 365 * 24 * 60 * 60

DEFAULT_CONFIG_PATH = Path.home() / ".kronos" / "config.yaml"

ENV_PREFIX = "KRONOS_"


# ============================================================================
# Konfigurationsmodelle
# ============================================================================


class SchedulerConfig(BaseModel):
    """Scheduler-Einstellungen."""

    search_horizon_seconds: int = Field(default=DEFAULT_SEARCH_HORIZON_SECONDS, ge=1)
    # None = lokaler UTC-Offset zum Zeitpunkt der Job-Erstellung
    utc_offset_minutes: int | None = Field(default=None, ge=-24 * 60, le=24 * 60)

    def job_timezone(self) -> tzinfo:
        """Feste Zeitzone, in der Cron-Felder ausgewertet werden."""
        if self.utc_offset_minutes is None:
            return local_timezone()
        return timezone(timedelta(minutes=self.utc_offset_minutes))


class LoggingConfig(BaseModel):
    """Logging-Konfiguration."""

    level: str = "INFO"
    json_logs: bool = False
    console: bool = True
    log_dir: Path | None = None


class KronosConfig(BaseModel):
    """Gesamtkonfiguration."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def local_timezone() -> tzinfo:
    """Aktueller lokaler UTC-Offset als feste Zeitzone (ohne DST-Regeln)."""
    offset = datetime.now().astimezone().utcoffset() or timedelta(0)
    return timezone(offset)


# ============================================================================
# Config-Laden
# ============================================================================


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Wendet KRONOS_* Umgebungsvariablen an.

    Konvention: KRONOS_SECTION_KEY → data["section"]["key"]
    Beispiel: KRONOS_LOGGING_LEVEL → data["logging"]["level"]
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX):].lower().split("_", 1)
        if len(parts) != 2 or not parts[1]:
            continue
        section, leaf = parts
        node = data.setdefault(section, {})
        if isinstance(node, dict):
            node[leaf] = value
    return data


def load_config(config_path: Path | None = None) -> KronosConfig:
    """Lädt die Konfiguration.

    Reihenfolge (spätere überschreiben frühere):
      1. Defaults (in den Pydantic-Modellen)
      2. config.yaml (wenn vorhanden)
      3. KRONOS_* Umgebungsvariablen

    Args:
        config_path: Expliziter Pfad zur config.yaml. Wenn None: ~/.kronos/config.yaml

    Returns:
        Vollständig validierte KronosConfig.

    Raises:
        ConfigError: Wenn die zusammengeführten Werte ungültig sind.
    """
    data: dict[str, Any] = {}

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            if isinstance(file_data, dict):
                data = file_data
        except yaml.YAMLError as exc:
            log.warning("config_yaml_ignored", path=str(config_path), error=str(exc))

    data = _apply_env_overrides(data)

    try:
        return KronosConfig(**data)
    except ValidationError as exc:
        raise ConfigError(
            f"Ungültige Konfiguration: {exc.error_count()} Fehler",
            details={"path": str(config_path), "errors": exc.errors(include_url=False)},
        ) from exc
