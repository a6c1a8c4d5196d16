"""Exception types raised inside the ruleguard library.

Library components raise these typed exceptions.  The validation engine is
the only boundary that converts them into a structured
:class:`~aumos_ruleguard.validation.results.ValidationResult`; every other
caller sees them propagate normally.
"""
from __future__ import annotations


class RuleguardError(Exception):
    """Base class for every error raised by aumos-ruleguard."""


class CacheImportError(RuleguardError):
    """Raised when serialized cache data cannot be imported.

    Attributes
    ----------
    found_version:
        The format version found in the payload, or ``None`` when the
        payload carried none.
    """

    def __init__(self, message: str, found_version: str | None = None) -> None:
        self.found_version = found_version
        super().__init__(message)


class ValidationTimeoutError(RuleguardError):
    """Raised at a phase boundary when the caller's deadline has elapsed.

    Attributes
    ----------
    phase:
        The phase that was about to start when the deadline was checked.
    elapsed_ms:
        Milliseconds spent in the validation call so far.
    cancelled:
        ``True`` when the caller set the cancellation event rather than the
        deadline running out.
    """

    def __init__(self, phase: str, elapsed_ms: float, cancelled: bool = False) -> None:
        self.phase = phase
        self.elapsed_ms = elapsed_ms
        self.cancelled = cancelled
        reason = "cancelled" if cancelled else "timed out"
        super().__init__(f"Validation {reason} before phase '{phase}' after {elapsed_ms:.1f}ms")


class ResolutionError(RuleguardError):
    """Raised when a resolution change cannot be applied to a configuration."""
