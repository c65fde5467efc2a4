from __future__ import annotations

"""Caller-owned conversation context: parsing, sanitizing and writing it back."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

Primitive = Union[str, int, float, bool, None]

AWAITING_KEY = "awaiting"
LAST_BRANCH_KEY = "lastBranch"
LAST_DEPT_KEY = "lastDept"
LAST_PRODUCT_KEY = "lastProductId"
LAST_USER_MESSAGE_KEY = "lastUserMessage"


class Awaiting(str, Enum):
    """Clarification the previous turn left open."""
    NONE = "none"
    BRANCH_ADDRESS = "branch_address"
    DEPT_CONTACT = "dept_contact"
    PRODUCT_MANUAL = "product_manual"

    @classmethod
    def parse(cls, value: Any) -> "Awaiting":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip():
                    return member
        return cls.NONE


def sanitize_context(raw: Any) -> Dict[str, Primitive]:
    """Purpose: Reduce an untrusted context to a mapping of string to primitive.
    Inputs/Outputs: Input is any decoded JSON value; output is a new dict.
    Side Effects / State: None.
    Dependencies: None.
    Failure Modes: Non-dict input yields {}; nested values are dropped.
    If Removed: Malformed contexts could crash the resolver or leak back unchecked.
    Testing Notes: Lists, None, and nested dicts must all become {} or be filtered.
    """
    if not isinstance(raw, dict):
        return {}
    clean: Dict[str, Primitive] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        if value is None or isinstance(value, (str, int, float, bool)):
            clean[key] = value
    return clean


@dataclass
class ConversationState:
    """Typed view of the caller's context for one turn.

    Known fields are attributes; every other primitive key is carried in
    ``extras`` and written back unchanged. A known field is written back only
    when a handler changed it, so the caller's raw values survive untouched turns.
    """
    awaiting: Awaiting = Awaiting.NONE
    last_branch: Optional[str] = None
    last_dept: Optional[str] = None
    last_product_id: Optional[str] = None
    last_user_message: Optional[str] = None
    extras: Dict[str, Primitive] = field(default_factory=dict)
    _initial: Dict[str, Primitive] = field(init=False, repr=False, compare=False, default_factory=dict)

    def __post_init__(self) -> None:
        self._initial = self._known_values()

    @classmethod
    def from_payload(cls, raw: Any) -> "ConversationState":
        payload = sanitize_context(raw)
        return cls(
            awaiting=Awaiting.parse(payload.get(AWAITING_KEY)),
            last_branch=_optional_str(payload.get(LAST_BRANCH_KEY)),
            last_dept=_optional_str(payload.get(LAST_DEPT_KEY)),
            last_product_id=_optional_str(payload.get(LAST_PRODUCT_KEY)),
            last_user_message=_optional_str(payload.get(LAST_USER_MESSAGE_KEY)),
            extras=payload,
        )

    def await_(self, awaiting: Awaiting, message: str) -> None:
        # Remember the question that opened the clarification.
        self.awaiting = awaiting
        self.last_user_message = message

    def clear_awaiting(self) -> None:
        # The opening question only matters to the turn that answers it.
        self.awaiting = Awaiting.NONE
        self.last_user_message = None

    def to_payload(self) -> Dict[str, Primitive]:
        """Purpose: Build the context returned to the caller.
        Inputs/Outputs: No inputs; output is a new dict.
        Side Effects / State: None.
        Dependencies: extras holds the sanitized incoming payload.
        Failure Modes: None.
        If Removed: The caller cannot continue a clarification on the next turn.
        Testing Notes: An untouched state returns a dict equal to the sanitized input,
            raw values included; a cleared field is written as None only if the
            caller sent the key.
        """
        payload: Dict[str, Primitive] = dict(self.extras)
        for key, value in self._known_values().items():
            if value == self._initial.get(key):
                continue
            if value is not None or key in payload:
                payload[key] = value
        return payload

    def _known_values(self) -> Dict[str, Primitive]:
        return {
            AWAITING_KEY: None if self.awaiting is Awaiting.NONE else self.awaiting.value,
            LAST_BRANCH_KEY: self.last_branch,
            LAST_DEPT_KEY: self.last_dept,
            LAST_PRODUCT_KEY: self.last_product_id,
            LAST_USER_MESSAGE_KEY: self.last_user_message,
        }


def _optional_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None
