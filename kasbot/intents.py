from __future__ import annotations

"""Keyword intent predicates over normalized Arabic/English text.

Every predicate normalizes its input (normalization is idempotent, so already
normalized text may be passed). Keyword lists are written in canonical form:
bare alef, heh instead of teh-marbuta, lowercase Latin.
"""

from typing import Iterable

from .utils import contains_any, has_whole_word, normalize_text

ADDRESS_TERMS = ["عنوان", "لوكيشن", "location", "مكان", "فروع", "فرع", "فين"]
DEPARTMENT_TERMS = [
    "دعم",
    "الدعم الفني",
    "خدمه العملاء",
    "مبيعات",
    "تسويق",
    "مشتريات",
    "ارقام",
    "رقم",
]
MANUAL_TERMS = ["دليل", "كتالوج", "datasheet", "data sheet", "manual", "user guide"]
WIRING_TERMS = ["مخطط", "توصيل", "wiring", "diagram", "schematic"]
MALFUNCTION_TERMS = ["اعطال", "عطل", "رموز", "error code", "alerts", "alarms"]
PRICE_TERMS = ["سعر", "اسعار", "بكام", "تكلفه", "price", "cost"]
# Short tokens that are substrings of unrelated words ("كاميرا", "كامل").
PRICE_WHOLE_WORDS = ["كام"]
STORE_TERMS = ["متجر", "المتجر", "store", "shop", "اشتري", "شراء", "اطلب اونلاين"]
SUPPORT_GROUP_TERMS = ["جروب", "group", "مجموعه"]
DOOR_TERMS = ["باب", "ابواب", "فولدينج", "اوتوماتيك"]


def is_greeting(message: str, triggers: Iterable[str]) -> bool:
    """Purpose: Detect an opener matching one of the configured greeting triggers.
    Inputs/Outputs: Inputs are the message and trigger phrases; output is bool.
    Side Effects / State: None.
    Dependencies: normalize_text; triggers come from the knowledge snapshot.
    Failure Modes: Empty triggers never match.
    If Removed: Openers fall through to keyword intents (e.g. "فين" -> address).
    Testing Notes: "ازيك" and "السلام عليكم يا جماعه" both match.
    """
    normalized = normalize_text(message)
    if not normalized:
        return False
    for trigger in triggers:
        canonical = normalize_text(trigger)
        if canonical and (normalized == canonical or canonical in normalized):
            return True
    return False


def is_address_intent(message: str) -> bool:
    return contains_any(normalize_text(message), ADDRESS_TERMS)


def is_department_intent(message: str) -> bool:
    return contains_any(normalize_text(message), DEPARTMENT_TERMS)


def is_manual_intent(message: str) -> bool:
    return contains_any(normalize_text(message), MANUAL_TERMS)


def is_wiring_intent(message: str) -> bool:
    return contains_any(normalize_text(message), WIRING_TERMS)


def is_malfunction_intent(message: str) -> bool:
    return contains_any(normalize_text(message), MALFUNCTION_TERMS)


def is_price_intent(message: str) -> bool:
    """Purpose: Detect price/cost questions.
    Inputs/Outputs: Input is the message; output is bool.
    Side Effects / State: None.
    Dependencies: contains_any for long keywords, has_whole_word for short tokens.
    Failure Modes: Dialect spellings outside the lists are missed.
    If Removed: Price questions fall through to product or fallback replies.
    Testing Notes: "الباب ده بكام" and "كام سعره" match; "كاميرا" does not.
    """
    normalized = normalize_text(message)
    return contains_any(normalized, PRICE_TERMS) or has_whole_word(normalized, PRICE_WHOLE_WORDS)


def is_store_intent(message: str) -> bool:
    return contains_any(normalize_text(message), STORE_TERMS)


def is_support_group_intent(message: str) -> bool:
    return contains_any(normalize_text(message), SUPPORT_GROUP_TERMS)


def mentions_door_topic(message: str) -> bool:
    # Decides the support-group hint only; never a primary intent.
    return contains_any(normalize_text(message), DOOR_TERMS)
