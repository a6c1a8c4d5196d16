"""Engine settings and the YAML/JSON loader."""
from __future__ import annotations

from aumos_ruleguard.config.settings import (
    CacheSettings,
    ConflictSettings,
    EngineSettings,
    PerformanceSettings,
    SecuritySettings,
    SettingsLoader,
)

__all__ = [
    "CacheSettings",
    "ConflictSettings",
    "EngineSettings",
    "PerformanceSettings",
    "SecuritySettings",
    "SettingsLoader",
]
