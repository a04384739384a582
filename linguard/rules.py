"""Path match rules: compiled regular expressions with an optional inversion."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from linguard.exceptions import InvalidPatternError


@dataclass(frozen=True)
class MatchRule:
    """A compiled pattern plus an invert flag.

    A plain rule matches when the pattern is found anywhere in the path; an
    inverted rule matches when it is not (``not under vendor/``).
    """

    pattern: re.Pattern[str] = field(compare=False)
    invert: bool = False
    source: str = field(init=False)
    flags: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", self.pattern.pattern)
        object.__setattr__(self, "flags", self.pattern.flags)

    def matches(self, path: str) -> bool:
        found = self.pattern.search(path) is not None
        return found != self.invert

    def __str__(self) -> str:
        return f"!{self.source}" if self.invert else self.source


def compile_rule(pattern: str, invert: bool = False, flags: int = 0) -> MatchRule:
    """Compile *pattern* into a :class:`MatchRule`.

    Raises :class:`InvalidPatternError` for malformed patterns; this is the
    only place such an error can surface.
    """
    try:
        compiled = re.compile(pattern, flags)
    except re.error as exc:
        raise InvalidPatternError(pattern, str(exc)) from exc
    return MatchRule(compiled, invert)


def match_all(rules: Sequence[MatchRule], path: str) -> bool:
    """True when every rule in the non-empty *rules* matches *path*."""
    if not rules:
        return False
    return all(rule.matches(path) for rule in rules)


class RuleRegistry:
    """Runtime-mutable ordered set of rules.

    Writers swap in a new tuple under a lock; readers use whatever tuple is
    current, so they see either the old or the new set and never a partial one.
    """

    def __init__(self, rules: Iterable[MatchRule] = ()) -> None:
        self._lock = threading.Lock()
        self._rules: tuple[MatchRule, ...] = tuple(dict.fromkeys(rules))

    def add(self, rule: MatchRule) -> bool:
        """Add *rule*; returns False when it was already registered."""
        with self._lock:
            if rule in self._rules:
                return False
            self._rules = (*self._rules, rule)
            return True

    def remove(self, rule: MatchRule) -> bool:
        """Remove *rule*; returns False when it was not registered."""
        with self._lock:
            if rule not in self._rules:
                return False
            self._rules = tuple(r for r in self._rules if r != rule)
            return True

    def snapshot(self) -> tuple[MatchRule, ...]:
        return self._rules

    def first_match(self, path: str) -> MatchRule | None:
        for rule in self._rules:
            if rule.matches(path):
                return rule
        return None

    def any_match(self, path: str) -> bool:
        return self.first_match(path) is not None

    def __contains__(self, rule: object) -> bool:
        return rule in self._rules

    def __len__(self) -> int:
        return len(self._rules)
