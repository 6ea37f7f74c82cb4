from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from marineviz.config import settings as settings_module
from marineviz.config.regions import region_bbox
from marineviz.config.settings import Settings
from marineviz.config.tuning import DEFAULT_TUNING
from marineviz.services.errors import SettingsError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in dir(settings_module):
        if name.startswith("ENV_"):
            monkeypatch.delenv(getattr(settings_module, name), raising=False)


def test_defaults_without_environment() -> None:
    settings = Settings.from_env()

    assert settings.region == "cook_islands"
    assert settings.ncwms_url == settings_module.DEFAULT_NCWMS_URL
    assert settings.sample_grid_size == 10
    assert settings.sample_workers == 16
    assert settings.cache.stats_ttl_seconds == 300.0
    assert settings.cache.legend_ttl_seconds == 1800.0
    assert settings.sweeper_enabled is True
    assert settings.utc_offset_hours == -10.0
    assert settings.layer_for("hs") == "cook_forecast/hs"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MARINEVIZ_REGION", "Tuvalu")
    monkeypatch.setenv("MARINEVIZ_SAMPLE_GRID_SIZE", "6")
    monkeypatch.setenv("MARINEVIZ_SWEEPER_ENABLED", "off")
    monkeypatch.setenv("MARINEVIZ_NCWMS_URL", "https://wms.test/ncWMS/wms")

    settings = Settings.from_env()

    assert settings.region == "tuvalu"
    assert settings.sample_grid_size == 6
    assert settings.sweeper_enabled is False
    assert settings.ncwms_url == "https://wms.test/ncWMS/wms"
    assert settings.layer_for("hs") == "tuvalu_forecast/hs"


@pytest.mark.parametrize(
    ("env_name", "raw"),
    [
        ("MARINEVIZ_SAMPLE_GRID_SIZE", "lots"),
        ("MARINEVIZ_SAMPLE_GRID_SIZE", "1"),
        ("MARINEVIZ_STATS_TTL_SECONDS", "nan"),
        ("MARINEVIZ_SWEEPER_ENABLED", "maybe"),
    ],
)
def test_invalid_values_fall_back_with_warning(
    env_name: str,
    raw: str,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setenv(env_name, raw)

    with caplog.at_level(logging.WARNING, logger=settings_module.__name__):
        settings = Settings.from_env()

    assert settings == Settings()
    assert env_name in caplog.text


def test_unknown_region_is_a_settings_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MARINEVIZ_REGION", "atlantis")
    with pytest.raises(SettingsError):
        Settings.from_env()


def test_region_tuning_overrides_apply() -> None:
    assert Settings(region="niue").tuning.cv_uniform == 0.15
    assert Settings(region="cook_islands").tuning == DEFAULT_TUNING


def test_unknown_tuning_field_is_rejected() -> None:
    with pytest.raises(ValueError):
        DEFAULT_TUNING.with_overrides({"not_a_threshold": 1})


def test_region_bbox_and_unknown_region() -> None:
    assert region_bbox("niue") == (-169.95, -19.2, -169.6, -18.8)
    with pytest.raises(KeyError):
        region_bbox("atlantis")
