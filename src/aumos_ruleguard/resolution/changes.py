"""Resolution suggestions and the concrete rule-list changes they carry.

A :class:`Change` is a closed tagged union discriminated on ``action``;
each variant carries only the fields that apply to it::

    {"action": "modify", "category": "allow",
     "original_pattern": "*", "new_pattern": "*.safe", "reason": "..."}

Example
-------
>>> from pydantic import TypeAdapter
>>> change = TypeAdapter(Change).validate_python(
...     {"action": "remove", "category": "allow",
...      "original_pattern": "exec", "reason": "duplicate"}
... )
>>> type(change).__name__
'RemoveChange'
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from aumos_ruleguard.rules.model import RuleCategory


# ---------------------------------------------------------------------------
# Change variants
# ---------------------------------------------------------------------------


class AddChange(BaseModel):
    """Append (or insert at *position*) a new pattern."""

    action: Literal["add"] = "add"
    category: RuleCategory
    new_pattern: str
    position: int | None = Field(default=None, ge=0)
    reason: str = ""


class RemoveChange(BaseModel):
    """Drop the first occurrence of *original_pattern*."""

    action: Literal["remove"] = "remove"
    category: RuleCategory
    original_pattern: str
    reason: str = ""


class ModifyChange(BaseModel):
    """Replace *original_pattern* with *new_pattern* in place."""

    action: Literal["modify"] = "modify"
    category: RuleCategory
    original_pattern: str
    new_pattern: str
    reason: str = ""


class ReorderChange(BaseModel):
    """Move *original_pattern* to *position* within its category."""

    action: Literal["reorder"] = "reorder"
    category: RuleCategory
    original_pattern: str
    position: int = Field(ge=0)
    reason: str = ""


Change = Annotated[
    Union[AddChange, RemoveChange, ModifyChange, ReorderChange],
    Field(discriminator="action"),
]


def change_target(change: Change) -> str:
    """Return the pattern a change acts on (the new one for additions)."""
    match change:
        case AddChange(new_pattern=pattern):
            return pattern
        case RemoveChange(original_pattern=pattern) | ModifyChange(original_pattern=pattern):
            return pattern
        case ReorderChange(original_pattern=pattern):
            return pattern
    raise TypeError(f"Unknown change type: {type(change).__name__}")


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class SuggestionKind(str, Enum):
    """How urgent a suggestion is; fixes sort first."""

    FIX = "fix"
    WARNING = "warning"
    OPTIMIZATION = "optimization"


_KIND_ORDER: dict[SuggestionKind, int] = {
    SuggestionKind.FIX: 0,
    SuggestionKind.WARNING: 1,
    SuggestionKind.OPTIMIZATION: 2,
}


class AutoFix(BaseModel):
    """A machine-applicable fix."""

    description: str
    change: Change


class ResolutionSuggestion(BaseModel):
    """A suggestion attached to a validation result.

    Attributes
    ----------
    kind:
        Fix, warning or optimization.
    message:
        Human-readable description.
    auto_fix:
        Concrete change to apply, if one was verified.
    category:
        Rule category the suggestion is about, when it targets one rule.
    pattern:
        Pattern the suggestion is about, when it targets one rule.
    critical:
        ``True`` for suggestions stemming from critical or zero-bypass
        findings; these survive truncation in permissive mode.
    """

    kind: SuggestionKind
    message: str
    auto_fix: AutoFix | None = None
    category: RuleCategory | None = None
    pattern: str | None = None
    critical: bool = False

    @property
    def sort_rank(self) -> int:
        return _KIND_ORDER[self.kind]

    def target_key(self) -> str | None:
        """``category:pattern`` this suggestion changes, or ``None``."""
        if self.auto_fix is not None:
            change = self.auto_fix.change
            return f"{change.category.value}:{change_target(change)}"
        if self.category is not None and self.pattern is not None:
            return f"{self.category.value}:{self.pattern}"
        return None
