from __future__ import annotations

import pytest

from azanything.config import AzConfig
from azanything.exceptions import AzConfigError

_ENV_VARS = (
    "AZ_STORAGE_PATH",
    "AZ_SESSION_KEY",
    "AZ_REQUESTS_KEY",
    "AZ_DIRECTORY_KEY",
    "AZ_SHARED_SECRET",
    "AZ_SEED_DEMO_DATA",
    "AZ_MIN_COST",
    "AZ_MAX_COST",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = AzConfig.from_env()
    assert config.storage_path is None
    assert config.session_key == "azAnythingUser"
    assert config.requests_key == "azAnythingRequests"
    assert config.shared_secret == "demo123"
    assert config.seed_demo_data is False
    assert (config.min_cost, config.max_cost) == (50, 249)


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZ_STORAGE_PATH", "/var/lib/az")
    monkeypatch.setenv("AZ_SEED_DEMO_DATA", "yes")
    monkeypatch.setenv("AZ_MIN_COST", "60")
    monkeypatch.setenv("AZ_SHARED_SECRET", "village")

    config = AzConfig.from_env()
    assert config.storage_path == "/var/lib/az"
    assert config.seed_demo_data is True
    assert config.min_cost == 60.0
    assert config.shared_secret == "village"


def test_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZ_SEED_DEMO_DATA", "1")
    monkeypatch.setenv("AZ_MAX_COST", "500")
    config = AzConfig.from_env(seed_demo_data=False, max_cost=300)
    assert config.seed_demo_data is False
    assert config.max_cost == 300


def test_unknown_bool_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZ_SEED_DEMO_DATA", "maybe")
    assert AzConfig.from_env().seed_demo_data is False


def test_non_numeric_cost(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZ_MIN_COST", "cheap")
    with pytest.raises(AzConfigError, match="AZ_MIN_COST"):
        AzConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_cost": -1},
        {"min_cost": 300, "max_cost": 100},
        {"session_key": ""},
        {"requests_key": "azAnythingUser"},
    ],
)
def test_invalid_config(kwargs: dict[str, object]) -> None:
    with pytest.raises(AzConfigError):
        AzConfig(**kwargs)  # type: ignore[arg-type]
