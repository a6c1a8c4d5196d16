"""Tests for EngineSettings and SettingsLoader."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from aumos_ruleguard.config.settings import EngineSettings, SettingsLoader
from aumos_ruleguard.rules.model import RulesetConfig


@pytest.fixture()
def loader() -> SettingsLoader:
    return SettingsLoader()


class TestEngineSettings:
    def test_defaults(self, loader: SettingsLoader) -> None:
        settings = loader.defaults()
        assert settings.cache.enabled is True
        assert settings.cache.max_entries == 1000
        assert settings.performance.target_ms == 100.0
        assert settings.performance.strict_timeout is False
        assert settings.security.security_level == "strict"
        assert settings.conflicts.parallel_threshold == 100
        assert settings.max_workers is None

    def test_unknown_keys_allowed(self) -> None:
        settings = EngineSettings.model_validate({"future_section": {"x": 1}})
        assert settings.model_extra == {"future_section": {"x": 1}}

    def test_rejects_bad_values(self) -> None:
        with pytest.raises(PydanticValidationError):
            EngineSettings.model_validate({"cache": {"max_entries": 0}})
        with pytest.raises(PydanticValidationError):
            EngineSettings.model_validate({"security": {"security_level": "lax"}})


class TestSettingsLoader:
    def test_load_string(self, loader: SettingsLoader) -> None:
        settings = loader.load_string("performance:\n  target_ms: 250\n")
        assert settings.performance.target_ms == 250.0

    def test_load_empty_string(self, loader: SettingsLoader) -> None:
        assert loader.load_string("") == EngineSettings()

    def test_load_file(self, loader: SettingsLoader, tmp_path: Path) -> None:
        path = tmp_path / "ruleguard.yaml"
        path.write_text("cache:\n  ttl_seconds: 30\nmax_workers: 2\n", encoding="utf-8")
        settings = loader.load(path)
        assert settings.cache.ttl_seconds == 30.0
        assert settings.max_workers == 2

    def test_load_missing_file(self, loader: SettingsLoader, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Settings file not found"):
            loader.load(tmp_path / "absent.yaml")

    def test_load_ruleset_json(self, loader: SettingsLoader, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text('{"permissions": {"deny": ["exec"]}}', encoding="utf-8")
        assert loader.load_ruleset(path) == {"permissions": {"deny": ["exec"]}}

    def test_load_ruleset_non_mapping(self, loader: SettingsLoader, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("- exec\n- eval\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping at the top level"):
            loader.load_ruleset(path)

    def test_load_ruleset_config(self, loader: SettingsLoader, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("permissions:\n  deny: [exec]\n  allow: [read]\n", encoding="utf-8")
        config = loader.load_ruleset_config(path)
        assert isinstance(config, RulesetConfig)
        assert config.permissions.allow == ["read"]
