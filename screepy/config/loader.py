"""Configuration loader for screepy.

Loads configuration from YAML files and environment variables.
Environment variables override YAML values using the SCREEPY_ prefix.
Nested keys use double underscores: SCREEPY_SPAWNING__MAX_HARVESTERS=3
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from screepy.interfaces.world import BodyPart


class SpawningConfig(BaseModel):
    """Population quotas and the body of new units."""

    body: list[BodyPart] = Field(
        default_factory=lambda: [BodyPart.WORK, BodyPart.CARRY, BodyPart.MOVE],
        min_length=1,
        max_length=50,
    )
    name_prefix: str = Field(default="Ghoul", min_length=1)
    max_harvesters: int = Field(default=2, ge=0, le=50, description="Harvest-line cap per room")
    max_upgraders: int = Field(default=0, ge=0, le=50, description="Upgrade-line cap per room")


class BehaviorConfig(BaseModel):
    """Coordinator behavior switches."""

    reissue_orders: bool = Field(
        default=True, description="Refresh unit targets from capacity state each tick"
    )


class RecoveryConfig(BaseModel):
    """Per-unit failure isolation."""

    isolate_unit_failures: bool = Field(default=True)
    max_unit_failures_per_tick: int = Field(default=5, ge=0, le=1000)


class SimulationConfig(BaseModel):
    """Settings for the in-memory demo world."""

    ticks: int = Field(default=300, ge=1, le=1_000_000)
    room: str = Field(default="W1N1", min_length=1)
    sources: int = Field(default=2, ge=0, le=4)
    containers: int = Field(default=0, ge=0, le=5)
    spawn_energy: int = Field(default=300, ge=0)
    seed: int = Field(default=0)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="readable", pattern="^(readable|json)$")


class Config(BaseModel):
    """Root configuration model."""

    spawning: SpawningConfig = Field(default_factory=SpawningConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    recovery: RecoveryConfig = Field(default_factory=RecoveryConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _get_env_value(key: str) -> str | None:
    """Get environment variable with SCREEPY_ prefix."""
    env_key = f"SCREEPY_{key.upper()}"
    return os.environ.get(env_key)


def _apply_env_overrides(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Apply environment variable overrides to config data.

    Environment variables use SCREEPY_ prefix with double underscores for nesting.
    Example: SCREEPY_SPAWNING__MAX_HARVESTERS=3 sets spawning.max_harvesters to 3
    """
    result = data.copy()

    for key, value in result.items():
        env_key = f"{prefix}__{key}" if prefix else key

        if isinstance(value, dict):
            result[key] = _apply_env_overrides(value, env_key)
        else:
            env_value = _get_env_value(env_key)
            if env_value is not None:
                # Convert to appropriate type based on original value
                if isinstance(value, bool):
                    result[key] = env_value.lower() in ("true", "1", "yes")
                elif isinstance(value, int):
                    result[key] = int(env_value)
                elif isinstance(value, list):
                    result[key] = [part.strip() for part in env_value.split(",") if part.strip()]
                else:
                    result[key] = env_value

    return result


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default.yaml.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config values are invalid.
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = project_root / "configs" / "default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    data = _apply_env_overrides(data)

    return Config.model_validate(data)


def get_default_config() -> Config:
    """Get default configuration without loading from file."""
    return Config()
