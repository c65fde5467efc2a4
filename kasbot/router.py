from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class IntentRoute(Generic[T]):
    """Route descriptor: a predicate and the handler run when it matches."""
    name: str
    matches: Callable[[T], bool]
    handle: Callable[[T], None]


class IntentRouter(Generic[T]):
    """Ordered (predicate, handler) table; the first matching route handles the turn."""

    def __init__(self, routes: List[IntentRoute[T]], fallback: Optional[IntentRoute[T]] = None) -> None:
        """Purpose: Initialize the router with an ordered list of routes.
        Inputs/Outputs: Input is the route list and an optional fallback route; no return value.
        Side Effects / State: Stores the routes; order is the precedence contract.
        Dependencies: None beyond IntentRoute definitions.
        Failure Modes: None; assumes valid callables in routes.
        If Removed: Intent precedence would be implied by code order again.
        Testing Notes: Provide overlapping predicates and ensure the earlier route wins.
        """
        self._routes = list(routes)
        self._fallback = fallback

    @property
    def names(self) -> List[str]:
        names = [route.name for route in self._routes]
        if self._fallback:
            names.append(self._fallback.name)
        return names

    def dispatch(self, turn: T) -> Optional[str]:
        """Purpose: Run the first route whose predicate matches the turn.
        Inputs/Outputs: Input is a mutable turn object; output is the route name or
            None when nothing (including the fallback) handled it.
        Side Effects / State: Invokes the handler, which mutates the turn.
        Dependencies: IntentRoute.matches and IntentRoute.handle.
        Failure Modes: Exceptions in predicates or handlers propagate to the caller.
        If Removed: Fresh intents are never classified.
        Testing Notes: Verify the fallback runs only when no route matches.
        """
        for route in self._routes:
            if route.matches(turn):
                route.handle(turn)
                return route.name
        if self._fallback:
            self._fallback.handle(turn)
            return self._fallback.name
        return None
