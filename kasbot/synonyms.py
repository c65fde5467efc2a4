from __future__ import annotations

"""Declarative alias tables shared by the branch, department and product detectors."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .utils import normalize_text


@dataclass(frozen=True)
class SynonymRule:
    """One alias pattern resolving to a canonical id.

    A rule matches when the message contains any of ``any_of`` (if given) and every
    term of ``all_of`` (if given). Terms are normalized at construction time.
    """
    canonical: str
    any_of: Tuple[str, ...] = ()
    all_of: Tuple[str, ...] = ()

    @classmethod
    def build(cls, canonical: str, any_of: Iterable[str] = (), all_of: Iterable[str] = ()) -> "SynonymRule":
        return cls(
            canonical=canonical,
            any_of=tuple(normalize_text(term) for term in any_of if normalize_text(term)),
            all_of=tuple(normalize_text(term) for term in all_of if normalize_text(term)),
        )

    def matches(self, normalized: str) -> bool:
        if not normalized or (not self.any_of and not self.all_of):
            return False
        if self.any_of and not any(term in normalized for term in self.any_of):
            return False
        return all(term in normalized for term in self.all_of)


class SynonymTable:
    """Ordered list of synonym rules; the first matching rule wins."""

    def __init__(self, rules: Sequence[SynonymRule]) -> None:
        self._rules = tuple(rules)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def resolve(self, normalized: str, canonical: Optional[str] = None) -> Optional[str]:
        """Purpose: Resolve normalized text to a canonical id by declaration order.
        Inputs/Outputs: Inputs are normalized text and an optional canonical filter;
            output is the canonical id of the first matching rule, or None.
        Side Effects / State: None.
        Dependencies: SynonymRule.matches.
        Failure Modes: Returns None when nothing matches.
        If Removed: Detectors lose their shared alias resolution.
        Testing Notes: With canonical set, only rules for that id are consulted.
        """
        for rule in self._rules:
            if canonical is not None and rule.canonical != canonical:
                continue
            if rule.matches(normalized):
                return rule.canonical
        return None
