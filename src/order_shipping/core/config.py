"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from order_shipping.core.enums import ShippingMethod
from order_shipping.core.errors import ConfigError

# Calendar days from creation to estimated delivery.
DELIVERY_LEAD_DAYS: dict[ShippingMethod, int] = {
    ShippingMethod.STANDARD: 7,
    ShippingMethod.EXPRESS: 3,
    ShippingMethod.OVERNIGHT: 1,
}


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ShippingConfig(BaseModel):
    carrier_prefix: str = Field(default="JP", pattern=r"^[A-Z]{2}$")
    lead_days: dict[ShippingMethod, int] = Field(
        default_factory=lambda: dict(DELIVERY_LEAD_DAYS)
    )

    @field_validator("lead_days")
    @classmethod
    def lead_days_complete(cls, v: dict[ShippingMethod, int]) -> dict[ShippingMethod, int]:
        missing = set(ShippingMethod) - set(v)
        if missing:
            names = sorted(m.value for m in missing)
            raise ValueError(f"lead_days missing methods: {names}")
        if any(days < 1 for days in v.values()):
            raise ValueError("lead_days must be at least 1 day")
        return v


class RepositoryConfig(BaseModel):
    reject_stale_writes: bool = False


class EventBusConfig(BaseModel):
    require_running: bool = False


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    shipping: ShippingConfig = Field(default_factory=ShippingConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "ORDER_SHIPPING_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: If the file is not valid TOML or a value is invalid.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
