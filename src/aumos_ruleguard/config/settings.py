"""Engine settings with Pydantic v2 validation.

Loads a ``ruleguard.yaml`` settings file into a typed
:class:`EngineSettings` object.  Unknown keys are allowed so files written
for newer releases still load.  JSON documents load too, since
``yaml.safe_load`` accepts them.

Example
-------
>>> loader = SettingsLoader()
>>> settings = loader.load_string("performance:\\n  target_ms: 250\\n")
>>> settings.performance.target_ms
250.0
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

from aumos_ruleguard.rules.model import RulesetConfig


class CacheSettings(BaseModel):
    """Configuration for the validation result cache."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=True)
    max_entries: int = Field(default=1000, ge=1)
    max_memory_mb: float = Field(default=50.0, gt=0)
    ttl_seconds: float = Field(default=300.0, gt=0)


class PerformanceSettings(BaseModel):
    """Latency target and deadline handling."""

    model_config = {"extra": "allow"}

    target_ms: float = Field(default=100.0, gt=0)
    strict_timeout: bool = Field(default=False)


class SecuritySettings(BaseModel):
    """Security analysis switches.

    ``enforce_zero_bypass`` is informational: zero-bypass violations are
    always fatal and cannot be turned off.
    """

    model_config = {"extra": "allow"}

    enforce_zero_bypass: bool = Field(default=True)
    detect_weak_patterns: bool = Field(default=True)
    require_deny_rules: bool = Field(default=False)
    security_level: Literal["strict", "moderate", "permissive"] = Field(default="strict")


class ConflictSettings(BaseModel):
    """Conflict detection switches."""

    model_config = {"extra": "allow"}

    deep_analysis: bool = Field(default=True)
    parallel_analysis: bool = Field(default=True)
    parallel_threshold: int = Field(default=100, ge=1)


class EngineSettings(BaseModel):
    """Top-level settings for :class:`~aumos_ruleguard.validation.engine.ValidationEngine`.

    All sections are optional and default to production-ready values.
    """

    model_config = {"extra": "allow"}

    cache: CacheSettings = Field(default_factory=CacheSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    conflicts: ConflictSettings = Field(default_factory=ConflictSettings)
    max_workers: int | None = Field(default=None, ge=1)


class SettingsLoader:
    """Loads engine settings and ruleset documents from YAML or JSON.

    Example
    -------
    >>> loader = SettingsLoader()
    >>> settings = loader.load(Path("ruleguard.yaml"))
    """

    def load(self, settings_path: Path) -> EngineSettings:
        """Load and validate a settings file.

        Raises
        ------
        FileNotFoundError:
            When the settings file does not exist.
        pydantic.ValidationError:
            When the content fails validation.
        """
        return EngineSettings.model_validate(self._read(settings_path, "Settings file"))

    def load_string(self, yaml_content: str) -> EngineSettings:
        """Load and validate settings from a YAML string."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return EngineSettings.model_validate(raw)

    def defaults(self) -> EngineSettings:
        """Return settings with every default applied."""
        return EngineSettings()

    def load_ruleset(self, ruleset_path: Path) -> dict[str, object]:
        """Load a ruleset document without validating it.

        Validation is left to the engine so malformed documents still
        produce a structured result.
        """
        return self._read(ruleset_path, "Ruleset")

    def load_ruleset_config(self, ruleset_path: Path) -> RulesetConfig:
        """Load and validate a ruleset document."""
        return RulesetConfig.model_validate(self.load_ruleset(ruleset_path))

    @staticmethod
    def _read(path: Path, label: str) -> dict[str, object]:
        if not path.exists():
            raise FileNotFoundError(f"{label} not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{label} must contain a mapping at the top level: {path}")
        return raw
