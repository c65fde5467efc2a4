"""KAS support dialog resolver.

Role:
    Turns one user message plus the caller-owned context into a reply, optional
    suggestion chips, and the next context. It owns the TurnContext contract and
    the fixed route order; it performs no I/O.

Turn data contract:
    - message / normalized: raw and normalized user text.
    - knowledge: the snapshot read once at the start of the turn.
    - state: ConversationState parsed from the caller context (awaiting, last*).
    - reply / suggestions / route: outputs filled by exactly one handler.

Turn flow:
    Continuation:
        When state.awaiting is set, resolve only the awaited entity from the current
        message. Success answers and clears awaiting; failure re-prompts and keeps it.
    Fresh routing:
        greeting -> malfunction -> store -> price -> support_group -> address ->
        department -> manual -> product -> fallback. The first matching route wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from . import formatter
from .conversation import Awaiting, ConversationState
from .entities import detect_branch, detect_department, detect_product
from .intents import (
    is_address_intent,
    is_department_intent,
    is_greeting,
    is_malfunction_intent,
    is_manual_intent,
    is_price_intent,
    is_store_intent,
    is_support_group_intent,
    is_wiring_intent,
    mentions_door_topic,
)
from .resource_loader import KnowledgeSnapshot, Product
from .router import IntentRoute, IntentRouter
from .utils import normalize_text, strip_emoji

logger = logging.getLogger("kasbot.dialog")

DOOR_PRODUCT_TYPE = "door"


@dataclass
class TurnContext:
    """Mutable context passed through the handlers of one turn."""
    message: str
    normalized: str
    knowledge: KnowledgeSnapshot
    state: ConversationState
    reply: str = ""
    suggestions: List[Dict[str, str]] = field(default_factory=list)
    route: str = ""
    _product_id: Optional[str] = field(default=None, repr=False)
    _product_checked: bool = field(default=False, repr=False)

    def respond(self, reply: str, suggestions: Optional[List[Dict[str, str]]] = None) -> None:
        self.reply = reply
        self.suggestions = list(suggestions or [])

    def detected_product_id(self) -> Optional[str]:
        # Several routes ask for the product; detect it once per turn.
        if not self._product_checked:
            self._product_id = detect_product(self.message, self.knowledge)
            self._product_checked = True
        return self._product_id

    def context_payload(self) -> Dict[str, Any]:
        return self.state.to_payload()


class SupportAgent:
    def __init__(self, knowledge: Callable[[], KnowledgeSnapshot], strip_emoji_replies: bool = False) -> None:
        """Purpose: Initialize the resolver with a snapshot provider and reply options.
        Inputs/Outputs: Inputs are a zero-argument callable returning the current
            KnowledgeSnapshot and the emoji-stripping flag; no return value.
        Side Effects / State: Builds the continuation table and the ordered router.
        Dependencies: IntentRouter/IntentRoute and the handler methods of this class.
        Failure Modes: None at init; handler errors surface from handle_message.
        If Removed: The chat endpoint has nothing to answer with.
        Testing Notes: Construct with a lambda returning a fixture snapshot.
        """
        self._knowledge = knowledge
        self._strip_emoji = strip_emoji_replies
        self._continuations: Dict[Awaiting, Callable[[TurnContext], None]] = {
            Awaiting.BRANCH_ADDRESS: self._continue_branch_address,
            Awaiting.DEPT_CONTACT: self._continue_department,
            Awaiting.PRODUCT_MANUAL: self._continue_product_manual,
        }
        self._router: IntentRouter[TurnContext] = IntentRouter(
            routes=[
                IntentRoute("greeting", self._matches_greeting, self._handle_greeting),
                IntentRoute("malfunction", lambda turn: is_malfunction_intent(turn.normalized), self._handle_malfunction),
                IntentRoute("store", lambda turn: is_store_intent(turn.normalized), self._handle_store),
                IntentRoute("price", lambda turn: is_price_intent(turn.normalized), self._handle_price),
                IntentRoute(
                    "support_group",
                    lambda turn: is_support_group_intent(turn.normalized),
                    self._handle_support_group,
                ),
                IntentRoute("address", lambda turn: is_address_intent(turn.normalized), self._handle_address),
                IntentRoute("department", lambda turn: is_department_intent(turn.normalized), self._handle_department),
                IntentRoute("manual", self._matches_manual, self._handle_manual),
                IntentRoute("product", lambda turn: turn.detected_product_id() is not None, self._handle_product),
            ],
            fallback=IntentRoute("fallback", lambda turn: True, self._handle_fallback),
        )

    @property
    def route_names(self) -> List[str]:
        return self._router.names

    def handle_message(self, message: Any, context: Any = None) -> TurnContext:
        """Purpose: Resolve one chat turn.
        Inputs/Outputs: Inputs are the raw message and raw caller context (any JSON
            value); output is the populated TurnContext.
        Side Effects / State: Mutates only the per-turn state; no I/O.
        Dependencies: Continuation handlers, then IntentRouter.dispatch.
        Failure Modes: Non-string messages and non-object contexts are coerced to
            "" and {}; unexpected handler errors propagate to the HTTP boundary.
        If Removed: The bot cannot reply.
        Testing Notes: Replay the branch-address scenario across two calls.
        """
        text = message if isinstance(message, str) else ""
        state = ConversationState.from_payload(context)
        turn = TurnContext(
            message=text,
            normalized=normalize_text(text),
            knowledge=self._knowledge(),
            state=state,
        )
        awaiting_before = state.awaiting

        continuation = self._continuations.get(state.awaiting)
        if continuation is not None:
            continuation(turn)
        else:
            turn.route = self._router.dispatch(turn) or ""

        if self._strip_emoji:
            turn.reply = strip_emoji(turn.reply)
        logger.info(
            "route=%s awaiting=%s->%s knowledge_version=%s",
            turn.route,
            awaiting_before.value,
            turn.state.awaiting.value,
            turn.knowledge.version,
        )
        logger.debug("route=%s context=%s", turn.route, turn.context_payload())
        return turn

    # Continuations

    def _continue_branch_address(self, turn: TurnContext) -> None:
        name = detect_branch(turn.message, turn.knowledge)
        if not name:
            turn.route = "branch_address_retry"
            turn.respond(formatter.branch_retry_prompt(turn.knowledge), formatter.branch_suggestions(turn.knowledge))
            return
        turn.route = "branch_address_resolved"
        turn.state.clear_awaiting()
        turn.state.last_branch = name
        turn.respond(formatter.branch_address_reply(name, turn.knowledge.find_branch(name)))

    def _continue_department(self, turn: TurnContext) -> None:
        name = detect_department(turn.message, turn.knowledge)
        department = turn.knowledge.find_department(name)
        if not name or department is None:
            turn.route = "dept_contact_retry"
            turn.respond(
                formatter.department_menu_prompt(turn.knowledge),
                formatter.department_suggestions(turn.knowledge),
            )
            return
        turn.route = "dept_contact_resolved"
        door_hint = self._department_door_hint(turn)
        turn.state.clear_awaiting()
        turn.state.last_dept = department.id
        turn.respond(formatter.department_reply(department.id, department, door_hint))

    def _continue_product_manual(self, turn: TurnContext) -> None:
        product = turn.knowledge.get_product(turn.detected_product_id())
        if product is None:
            turn.route = "product_manual_retry"
            turn.respond(formatter.product_manual_prompt(turn.knowledge), formatter.product_suggestions(turn.knowledge))
            return
        turn.route = "product_manual_resolved"
        want_wiring = is_wiring_intent(turn.normalized) or is_wiring_intent(turn.state.last_user_message or "")
        turn.state.clear_awaiting()
        turn.state.last_product_id = product.id
        turn.respond(formatter.manual_reply(product, want_wiring))

    # Fresh routes

    def _matches_greeting(self, turn: TurnContext) -> bool:
        return is_greeting(turn.normalized, turn.knowledge.greeting_triggers)

    def _matches_manual(self, turn: TurnContext) -> bool:
        return is_manual_intent(turn.normalized) or is_wiring_intent(turn.normalized)

    def _handle_greeting(self, turn: TurnContext) -> None:
        turn.respond(formatter.greeting_reply(turn.knowledge))

    def _handle_malfunction(self, turn: TurnContext) -> None:
        turn.respond(formatter.malfunctions_reply(turn.knowledge))

    def _handle_store(self, turn: TurnContext) -> None:
        turn.respond(formatter.store_reply(turn.knowledge))

    def _handle_price(self, turn: TurnContext) -> None:
        product_id = turn.detected_product_id()
        if product_id:
            turn.state.last_product_id = product_id
        product = turn.knowledge.get_product(product_id or turn.state.last_product_id)
        turn.respond(formatter.price_reply(turn.knowledge, product))

    def _handle_support_group(self, turn: TurnContext) -> None:
        turn.respond(formatter.support_group_reply(turn.knowledge))

    def _handle_address(self, turn: TurnContext) -> None:
        name = detect_branch(turn.message, turn.knowledge)
        if not name:
            turn.state.await_(Awaiting.BRANCH_ADDRESS, turn.message)
            turn.respond(formatter.branch_menu_prompt(turn.knowledge), formatter.branch_suggestions(turn.knowledge))
            return
        turn.state.last_branch = name
        turn.respond(formatter.branch_address_reply(name, turn.knowledge.find_branch(name)))

    def _handle_department(self, turn: TurnContext) -> None:
        name = detect_department(turn.message, turn.knowledge)
        if not name:
            turn.state.await_(Awaiting.DEPT_CONTACT, turn.message)
            turn.respond(
                formatter.department_menu_prompt(turn.knowledge),
                formatter.department_suggestions(turn.knowledge),
            )
            return
        turn.state.last_dept = name
        department = turn.knowledge.find_department(name)
        if department is None:
            turn.respond(formatter.department_missing_reply(name))
            return
        turn.respond(formatter.department_reply(department.id, department, self._department_door_hint(turn)))

    def _handle_manual(self, turn: TurnContext) -> None:
        product = turn.knowledge.get_product(turn.detected_product_id() or turn.state.last_product_id)
        if product is None:
            turn.state.await_(Awaiting.PRODUCT_MANUAL, turn.message)
            turn.respond(formatter.PRODUCT_PROMPT, formatter.product_suggestions(turn.knowledge))
            return
        turn.state.last_product_id = product.id
        turn.respond(formatter.manual_reply(product, is_wiring_intent(turn.normalized)))

    def _handle_product(self, turn: TurnContext) -> None:
        product = turn.knowledge.get_product(turn.detected_product_id())
        if product is None:
            self._handle_fallback(turn)
            return
        turn.state.last_product_id = product.id
        turn.respond(formatter.product_reply(product, self._product_door_hint(turn, product)))

    def _handle_fallback(self, turn: TurnContext) -> None:
        turn.respond(formatter.fallback_reply(turn.knowledge), formatter.FALLBACK_SUGGESTIONS)

    def _department_door_hint(self, turn: TurnContext) -> str:
        if mentions_door_topic(turn.normalized) or mentions_door_topic(turn.state.last_user_message or ""):
            return formatter.door_group_hint(turn.knowledge)
        return ""

    def _product_door_hint(self, turn: TurnContext, product: Product) -> str:
        if product.type == DOOR_PRODUCT_TYPE:
            return formatter.door_group_hint(turn.knowledge)
        return ""
