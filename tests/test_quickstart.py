"""Test that the 3-line quickstart API works for aumos-ruleguard."""
from __future__ import annotations


def test_quickstart_import() -> None:
    from aumos_ruleguard import RulesetGuard

    guard = RulesetGuard()
    assert guard is not None


def test_quickstart_validate() -> None:
    from aumos_ruleguard import RulesetGuard

    guard = RulesetGuard()
    result = guard.validate({"permissions": {"deny": ["exec"], "allow": ["read"]}})
    assert result.is_valid is True


def test_quickstart_detects_bypass() -> None:
    from aumos_ruleguard import RulesetGuard

    guard = RulesetGuard()
    assert guard.is_safe({"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}}) is False


def test_quickstart_match_everything_allow_is_unsafe() -> None:
    from aumos_ruleguard import RulesetGuard

    guard = RulesetGuard()
    assert guard.is_safe({"permissions": {"allow": ["*"]}}) is False


def test_quickstart_with_settings_dict() -> None:
    from aumos_ruleguard import RulesetGuard

    guard = RulesetGuard(settings={"cache": {"enabled": False}})
    assert guard.engine.settings.cache.enabled is False


def test_quickstart_engine_accessible() -> None:
    from aumos_ruleguard import RulesetGuard
    from aumos_ruleguard.validation.engine import ValidationEngine

    guard = RulesetGuard()
    assert isinstance(guard.engine, ValidationEngine)


def test_quickstart_repr() -> None:
    from aumos_ruleguard import RulesetGuard

    assert repr(RulesetGuard()) == "RulesetGuard(engine=ValidationEngine)"


def test_version_exported() -> None:
    import aumos_ruleguard

    assert aumos_ruleguard.__version__ == "0.1.0"
