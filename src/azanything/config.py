"""Engine configuration for azanything."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from azanything._constants import (
    DEMO_SHARED_SECRET,
    DIRECTORY_KEY,
    MAX_ESTIMATED_COST,
    MIN_ESTIMATED_COST,
    REQUESTS_KEY,
    SESSION_KEY,
)
from azanything.exceptions import AzConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise AzConfigError(f"{name} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class AzConfig:
    """Engine configuration.

    Parameters
    ----------
    storage_path : str or None
        Directory holding one JSON file per storage key. ``None`` keeps
        everything in memory (nothing survives a restart).
    session_key : str
        Storage key of the persisted current user.
    requests_key : str
        Storage key of the persisted request array.
    directory_key : str
        Storage key of the persisted user/driver directory.
    shared_secret : str
        Password accepted by the default credential check.
    seed_demo_data : bool
        Load the demo accounts and requests when the directory is empty
        at startup.
    min_cost : float
        Lower bound for estimated costs.
    max_cost : float
        Upper bound for estimated costs.
    """

    storage_path: str | None = None
    session_key: str = SESSION_KEY
    requests_key: str = REQUESTS_KEY
    directory_key: str = DIRECTORY_KEY
    shared_secret: str = DEMO_SHARED_SECRET
    seed_demo_data: bool = False
    min_cost: float = MIN_ESTIMATED_COST
    max_cost: float = MAX_ESTIMATED_COST

    def __post_init__(self) -> None:
        if self.min_cost < 0 or self.max_cost < self.min_cost:
            raise AzConfigError(f"invalid cost bounds [{self.min_cost}, {self.max_cost}]")
        keys = (self.session_key, self.requests_key, self.directory_key)
        if any(not key for key in keys):
            raise AzConfigError("storage keys must be non-empty")
        if len(set(keys)) != len(keys):
            raise AzConfigError("storage keys must be distinct")

    @classmethod
    def from_env(cls, **overrides: Any) -> AzConfig:
        """Create configuration from environment variables.

        Reads optional ``AZ_*`` variables. Explicit keyword arguments
        override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "AZ_STORAGE_PATH": "storage_path",
            "AZ_SESSION_KEY": "session_key",
            "AZ_REQUESTS_KEY": "requests_key",
            "AZ_DIRECTORY_KEY": "directory_key",
            "AZ_SHARED_SECRET": "shared_secret",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "seed_demo_data" not in overrides:
            config_kwargs["seed_demo_data"] = _env_bool(env.get("AZ_SEED_DEMO_DATA"), False)

        # cost bounds are numeric, handle separately
        for env_key, field_name in (("AZ_MIN_COST", "min_cost"), ("AZ_MAX_COST", "max_cost")):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
