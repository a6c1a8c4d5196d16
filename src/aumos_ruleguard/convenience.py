"""Convenience API for aumos-ruleguard: 3-line quickstart.

Example
-------
::

    from aumos_ruleguard import RulesetGuard
    guard = RulesetGuard()
    result = guard.validate({"permissions": {"deny": ["exec"], "allow": ["read"]}})
    print(result.is_valid)

"""
from __future__ import annotations

from typing import Any


class RulesetGuard:
    """Zero-config ruleset validation for the 80% use case.

    Wraps ValidationEngine with default settings.

    Parameters
    ----------
    settings:
        Optional engine settings dict, validated into ``EngineSettings``.
        Defaults are used when omitted.

    Example
    -------
    ::

        from aumos_ruleguard import RulesetGuard
        guard = RulesetGuard()
        guard.is_safe({"permissions": {"deny": ["*.exe"], "allow": ["app.exe"]}})  # False
    """

    def __init__(self, settings: dict[str, Any] | None = None) -> None:
        from aumos_ruleguard.config.settings import EngineSettings
        from aumos_ruleguard.validation.engine import ValidationEngine

        self._engine = ValidationEngine(EngineSettings.model_validate(settings or {}))

    def validate(self, ruleset: dict[str, Any]) -> Any:
        """Validate a ruleset document.

        Returns
        -------
        ValidationResult
            Result with ``.is_valid``, ``.errors`` and ``.conflicts``.
        """
        return self._engine.validate(ruleset)

    def is_safe(self, ruleset: dict[str, Any]) -> bool:
        """Return ``True`` if the ruleset validates without errors.

        Besides zero-bypass violations, too-broad patterns, critical or high
        security issues and malformed documents also make a ruleset unsafe.
        """
        return self.validate(ruleset).is_valid

    @property
    def engine(self) -> Any:
        """The underlying ValidationEngine instance."""
        return self._engine

    def __repr__(self) -> str:
        return "RulesetGuard(engine=ValidationEngine)"
