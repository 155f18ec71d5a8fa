"""Settings: environment overrides and rejected timings."""

import pytest
from pydantic import ValidationError

from greenfill.config import Settings


@pytest.mark.parametrize("field", [
    "payment_delay_seconds",
    "dispense_duration_seconds",
    "dispense_tick_seconds",
])
@pytest.mark.parametrize("value", [0, -0.5])
def test_timings_must_be_positive(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_timings_from_environment(monkeypatch):
    monkeypatch.setenv("GREENFILL_DISPENSE_TICK_SECONDS", "0.1")
    monkeypatch.setenv("GREENFILL_PAYMENT_DELAY_SECONDS", "0.25")

    settings = Settings()

    assert settings.dispense_tick_seconds == 0.1
    assert settings.payment_delay_seconds == 0.25
    assert settings.dispense_duration_seconds == 5.0
