"""Pattern engine: classification, compilation and memoized matching.

A permission rule is a plain string that is interpreted in one of three
ways:

- ``literal`` -- the input must equal the pattern exactly
- ``glob``    -- ``*`` matches any run of characters, ``?`` a single one
- ``regex``   -- a regular expression searched anywhere in the input

Compilation never raises.  A regular expression that fails to compile is
matched as an escaped literal instead so the rule still takes part in
conflict detection.

Example
-------
>>> classify_pattern("*.exe")
<PatternKind.GLOB: 'glob'>
>>> compile_pattern("*.exe").matches("app.exe")
True
>>> PatternMatcher().match("^rm ", "rm -rf /", PatternKind.REGEX)
True
"""
from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

logger = logging.getLogger(__name__)


class PatternKind(str, Enum):
    """How a rule string is interpreted when matching inputs."""

    LITERAL = "literal"
    GLOB = "glob"
    REGEX = "regex"


_GLOB_MARKERS: frozenset[str] = frozenset("*?[")
_REGEX_MARKERS: frozenset[str] = frozenset("\\^$(|")
_WILDCARDS: frozenset[str] = frozenset("*?")

# ---------------------------------------------------------------------------
# Fixed test corpus shared by every overlap analysis
# ---------------------------------------------------------------------------

COMMON_FILENAMES: tuple[str, ...] = (
    "file.txt",
    "script.js",
    "index.html",
    "style.css",
    "config.json",
    "package.json",
    ".env",
    ".gitignore",
    "README.md",
    "test.spec.js",
)

COMMON_PATHS: tuple[str, ...] = (
    "src/index.js",
    "dist/bundle.js",
    "node_modules/package/index.js",
    "../parent/file.txt",
    "../../grandparent/file.txt",
    "./current/file.txt",
    "/absolute/path/file.txt",
    "relative/path/file.txt",
)

SECURITY_INPUTS: tuple[str, ...] = (
    "../../../etc/passwd",
    "..\\..\\..\\windows\\system32\\cmd.exe",
    "file.txt; rm -rf /",
    "file.txt && echo hacked",
    "file.txt | cat /etc/passwd",
    "file.txt\x00.jpg",
    "file.txt%00.jpg",
    "%2e%2e%2f%2e%2e%2f%2e%2e%2fetc%2fpasswd",
)

FIXED_CORPUS: tuple[str, ...] = COMMON_FILENAMES + COMMON_PATHS + SECURITY_INPUTS


# ---------------------------------------------------------------------------
# Classification and compilation
# ---------------------------------------------------------------------------


def classify_pattern(text: str) -> PatternKind:
    """Return the :class:`PatternKind` a raw rule string is interpreted as.

    Glob markers win over regex markers, so ``src/*.(js|ts)`` is a glob.
    """
    if any(ch in _GLOB_MARKERS for ch in text):
        return PatternKind.GLOB
    if any(ch in _REGEX_MARKERS for ch in text):
        return PatternKind.REGEX
    return PatternKind.LITERAL


@dataclass(frozen=True)
class CompiledPattern:
    """A rule string compiled into a matchable form.

    Attributes
    ----------
    source:
        The pattern text that was compiled.
    kind:
        The kind the text was classified as.
    regex:
        The compiled regular expression.
    anchored:
        ``True`` when the whole input must match (literal, glob and
        fallback patterns); ``False`` for regular expressions, which are
        searched anywhere in the input.
    fallback:
        ``True`` when a regular expression failed to compile and is being
        matched as an escaped literal.
    """

    source: str
    kind: PatternKind
    regex: re.Pattern[str]
    anchored: bool
    fallback: bool = False

    def matches(self, text: str) -> bool:
        """Return ``True`` if *text* is matched by this pattern."""
        if self.anchored:
            return self.regex.fullmatch(text) is not None
        return self.regex.search(text) is not None

    @property
    def literal_prefix(self) -> str:
        """Characters every matching input must start with.

        Unanchored patterns can match anywhere, so their prefix is empty.
        """
        if not self.anchored:
            return ""
        if self.kind == PatternKind.GLOB:
            for position, ch in enumerate(self.source):
                if ch in _WILDCARDS:
                    return self.source[:position]
        return self.source


def glob_to_regex(glob: str) -> str:
    """Translate a glob into an (unanchored) regular expression body.

    Every regex metacharacter is escaped first, then ``*`` becomes ``.*``
    and ``?`` becomes ``.``.  Runs of ``*`` collapse into a single ``.*``.
    """
    parts: list[str] = []
    previous_star = False
    for ch in glob:
        if ch == "*":
            if not previous_star:
                parts.append(".*")
            previous_star = True
            continue
        previous_star = False
        parts.append("." if ch == "?" else re.escape(ch))
    return "".join(parts)


@functools.lru_cache(maxsize=4096)
def compile_pattern(text: str, kind: PatternKind | None = None) -> CompiledPattern:
    """Compile *text* into a :class:`CompiledPattern`.

    Parameters
    ----------
    text:
        Raw rule string.
    kind:
        Interpretation to use.  Classified with :func:`classify_pattern`
        when omitted.

    Returns
    -------
    CompiledPattern
        Never raises; invalid regular expressions fall back to an escaped
        literal with ``fallback=True``.
    """
    resolved = kind if kind is not None else classify_pattern(text)
    match resolved:
        case PatternKind.LITERAL:
            return CompiledPattern(text, resolved, re.compile(re.escape(text)), anchored=True)
        case PatternKind.GLOB:
            return CompiledPattern(text, resolved, re.compile(glob_to_regex(text)), anchored=True)
        case PatternKind.REGEX:
            try:
                compiled = re.compile(text)
            except re.error as exc:
                logger.warning("Invalid regex %r treated as literal: %s", text, exc)
                return CompiledPattern(
                    text, resolved, re.compile(re.escape(text)), anchored=True, fallback=True
                )
            return CompiledPattern(text, resolved, compiled, anchored=False)
    raise ValueError(f"Unsupported pattern kind: {resolved!r}")


def is_valid_regex(text: str) -> bool:
    """Return ``True`` if *text* compiles as a regular expression."""
    try:
        re.compile(text)
    except re.error:
        return False
    return True


# ---------------------------------------------------------------------------
# Test input generation
# ---------------------------------------------------------------------------


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def encoding_variants(pattern: str) -> list[str]:
    """Return URL-encoded, double-encoded and look-alike forms of *pattern*."""
    encoded = quote(pattern, safe="")
    return [
        encoded,
        pattern.replace("/", "%2F"),
        pattern.replace(".", "%2E"),
        pattern.replace("/", "\u2215"),
        quote(encoded, safe=""),
    ]


def pattern_inputs(pattern: str, kind: PatternKind | None = None) -> list[str]:
    """Return the pattern-specific test inputs for *pattern*.

    The list always starts with the pattern itself, followed by wildcard
    substitutions (glob), casing and affix variants (literal) and the
    encoding variants of :func:`encoding_variants`.
    """
    resolved = kind if kind is not None else classify_pattern(pattern)
    inputs: list[str] = [pattern]
    if resolved == PatternKind.GLOB:
        inputs.extend(
            [
                pattern.replace("*", "test"),
                pattern.replace("*", ""),
                pattern.replace("*", "a/b/c"),
                pattern.replace("?", "x"),
            ]
        )
    elif resolved == PatternKind.LITERAL:
        inputs.extend(
            [
                f"{pattern}.txt",
                f"prefix-{pattern}",
                f"{pattern}-suffix",
                pattern.upper(),
                pattern.lower(),
            ]
        )
    inputs.extend(encoding_variants(pattern))
    return _dedupe(inputs)


def generate_test_inputs(
    pattern_a: str,
    pattern_b: str,
    kind_a: PatternKind | None = None,
    kind_b: PatternKind | None = None,
) -> list[str]:
    """Build the bounded, order-preserving test corpus for two patterns."""
    return _dedupe(
        pattern_inputs(pattern_a, kind_a) + pattern_inputs(pattern_b, kind_b) + list(FIXED_CORPUS)
    )


# ---------------------------------------------------------------------------
# PatternMatcher
# ---------------------------------------------------------------------------


class PatternMatcher:
    """Memoizing matcher for rule patterns.

    Results are cached per ``(pattern, input, kind)`` triple.  A matcher
    is meant to live for one validation run; the memo is cleared when it
    grows past *max_entries*.

    Parameters
    ----------
    max_entries:
        Upper bound on memoized match results.
    """

    def __init__(self, max_entries: int = 200_000) -> None:
        self._max_entries = max_entries
        self._results: dict[tuple[str, str, PatternKind], bool] = {}

    def match(self, pattern: str, text: str, kind: PatternKind | None = None) -> bool:
        """Return ``True`` if *text* is matched by *pattern* interpreted as *kind*."""
        resolved = kind if kind is not None else classify_pattern(pattern)
        key = (pattern, text, resolved)
        cached = self._results.get(key)
        if cached is not None:
            return cached
        if len(self._results) >= self._max_entries:
            self._results.clear()
        outcome = compile_pattern(pattern, resolved).matches(text)
        self._results[key] = outcome
        return outcome

    def can_overlap(self, pattern_a: str, pattern_b: str) -> bool:
        """Cheap plausibility check: could any input match both patterns?

        Two anchored patterns whose literal prefixes diverge can never
        match the same input.  Anything else is reported as possible.
        """
        compiled_a = compile_pattern(pattern_a)
        compiled_b = compile_pattern(pattern_b)
        if compiled_a.kind == PatternKind.LITERAL and compiled_b.kind == PatternKind.LITERAL:
            return pattern_a == pattern_b
        prefix_a = compiled_a.literal_prefix
        prefix_b = compiled_b.literal_prefix
        if not compiled_a.anchored or not compiled_b.anchored:
            return True
        return prefix_a.startswith(prefix_b) or prefix_b.startswith(prefix_a)

    def clear_cache(self) -> None:
        """Drop all memoized match results."""
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)
