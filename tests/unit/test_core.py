"""Clock, configuration, events and failure helpers."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from pydantic import BaseModel, ValidationError, field_validator

from order_shipping.core.clock import SimClock, WallClock
from order_shipping.core import config as config_module
from order_shipping.core.config import DELIVERY_LEAD_DAYS, Settings, load_settings
from order_shipping.core.enums import ErrorKind, EventType, ShippingMethod
from order_shipping.core.errors import ConfigError, OrderShippingError, StaleWriteError
from order_shipping.domain.events import (
    ALL_DOMAIN_EVENTS,
    EVENT_CLASSES,
    OrderPlaced,
    ShipmentStarted,
)
from order_shipping.domain.failures import (
    WorkflowFailure,
    first_error_message,
    repository_error,
)


class TestClock:
    def test_wall_clock_is_utc(self):
        assert WallClock().now().tzinfo == timezone.utc

    def test_sim_clock_advance(self, sim_clock):
        sim_clock.advance(hours=3)
        assert sim_clock.now() == datetime(2024, 6, 1, 3, tzinfo=timezone.utc)

    def test_sim_clock_cannot_go_backwards(self, sim_clock):
        with pytest.raises(ValueError):
            sim_clock.set_time(datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_default_start(self):
        assert SimClock().now() == datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.shipping.carrier_prefix == "JP"
        assert settings.shipping.lead_days[ShippingMethod.EXPRESS] == 3
        assert settings.repository.reject_stale_writes is False

    def test_defaults_match_delivery_lead_days(self):
        assert Settings().shipping.lead_days == DELIVERY_LEAD_DAYS
        assert DELIVERY_LEAD_DAYS == {
            ShippingMethod.STANDARD: 7,
            ShippingMethod.EXPRESS: 3,
            ShippingMethod.OVERNIGHT: 1,
        }

    def test_core_imports_nothing_from_outer_layers(self):
        core_dir = Path(config_module.__file__).parent
        for path in core_dir.glob("*.py"):
            source = path.read_text(encoding="utf-8")
            for layer in ("domain", "application", "infrastructure"):
                assert f"order_shipping.{layer}" not in source, path.name

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ORDER_SHIPPING_SHIPPING__CARRIER_PREFIX", "YM")
        monkeypatch.setenv("ORDER_SHIPPING_REPOSITORY__REJECT_STALE_WRITES", "true")
        settings = Settings()
        assert settings.shipping.carrier_prefix == "YM"
        assert settings.repository.reject_stale_writes is True

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[shipping]\ncarrier_prefix = "SG"\n'
            "[shipping.lead_days]\n"
            "standard = 5\nexpress = 2\novernight = 1\n"
            "[observability]\nlog_format = \"console\"\n"
        )
        settings = load_settings(path)
        assert settings.shipping.carrier_prefix == "SG"
        assert settings.shipping.lead_days[ShippingMethod.STANDARD] == 5
        assert settings.observability.log_format == "console"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.shipping.carrier_prefix == "JP"

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[shipping\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_incomplete_lead_days(self):
        with pytest.raises(ConfigError, match="overnight"):
            load_settings(overrides={"shipping": {"lead_days": {"standard": 7, "express": 3}}})

    def test_bad_prefix(self):
        with pytest.raises(ConfigError):
            load_settings(overrides={"shipping": {"carrier_prefix": "jp"}})


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(ConfigError, OrderShippingError)
        err = StaleWriteError("o-1", "t2", "t1")
        assert isinstance(err, OrderShippingError)
        assert "o-1" in str(err)


class TestEvents:
    def test_event_type_is_fixed(self):
        event = OrderPlaced(aggregate_id="o-1", customer_id="c-1", total_amount=Decimal("5"))
        assert event.event_type == EventType.ORDER_PLACED.value
        with pytest.raises(TypeError):
            OrderPlaced(event_type="other")

    def test_events_are_frozen(self):
        event = ShipmentStarted(aggregate_id="s-1", order_id="o-1", tracking_number="JP000000001")
        with pytest.raises(FrozenInstanceError):
            event.order_id = "o-2"

    def test_event_ids_are_unique(self):
        assert OrderPlaced().event_id != OrderPlaced().event_id

    def test_to_dict(self):
        data = ShipmentStarted(aggregate_id="s-1", order_id="o-1").to_dict()
        assert data["event_type"] == "shipment_started"
        assert data["order_id"] == "o-1"

    def test_registry_covers_all_events(self):
        assert set(EVENT_CLASSES.values()) == set(ALL_DOMAIN_EVENTS)
        assert set(EVENT_CLASSES) == {e.value for e in EventType}


class TestFailures:
    def test_repository_error_keeps_cause(self):
        cause = ConnectionError("db gone")
        failure = repository_error("failed to save order", cause)
        assert failure.kind == ErrorKind.REPOSITORY_ERROR
        assert failure.cause is cause
        assert str(failure) == "repository_error: failed to save order"

    def test_failures_compare_by_value(self):
        a = WorkflowFailure(ErrorKind.NOT_FOUND, "x")
        assert a == WorkflowFailure(ErrorKind.NOT_FOUND, "x")

    def test_first_error_message_strips_prefix(self):
        class Sample(BaseModel):
            n: int

            @field_validator("n")
            @classmethod
            def positive(cls, v: int) -> int:
                if v <= 0:
                    raise ValueError("n must be positive")
                return v

        with pytest.raises(ValidationError) as exc_info:
            Sample(n=0)
        assert first_error_message(exc_info.value) == "n: n must be positive"
