import re
from typing import Iterable, List, Optional

ALEF_VARIANTS_RE = re.compile("[إأآا]")
TEH_MARBUTA = "ة"
HEH = "ه"
WORD_RE = re.compile(r"\w+")
EMOJI_RE = re.compile("[\U0001F000-\U0001FFFF☀-➿️]")


def normalize_text(text: Optional[str]) -> str:
    """Purpose: Normalize free-form Arabic/English text for stable matching.
    Inputs/Outputs: Input is a raw string (or None); output is a trimmed, lowercased
        string with alef variants folded to bare alef, teh-marbuta folded to heh,
        and whitespace runs collapsed to one space.
    Side Effects / State: None; pure function.
    Dependencies: Uses regex; called by every detector and classifier.
    Failure Modes: Returns an empty string when input is falsy.
    If Removed: Spelling variants stop matching the same rule.
    Testing Notes: "الإدارة", "الادارة" and "الاداره" must normalize identically, and
        normalize_text(normalize_text(x)) == normalize_text(x).
    """
    # Fold Arabic letter variants, then lowercase and collapse whitespace.
    if not text:
        return ""
    folded = ALEF_VARIANTS_RE.sub("ا", str(text))
    folded = folded.replace(TEH_MARBUTA, HEH)
    return re.sub(r"\s+", " ", folded.strip().lower())


def contains_any(normalized: str, terms: Iterable[str]) -> bool:
    """Purpose: Check normalized text for any substring term.
    Inputs/Outputs: Inputs: normalized (str), terms (iterable[str]). Outputs: bool.
    Side Effects / State: None.
    Dependencies: None; terms are expected in canonical form already.
    Failure Modes: Empty terms are skipped; empty text never matches.
    If Removed: Keyword intents lose their shared containment check.
    Testing Notes: "عايز عنوان" contains "عنوان".
    """
    if not normalized:
        return False
    return any(term and term in normalized for term in terms)


def tokenize(normalized: str) -> List[str]:
    return WORD_RE.findall(normalized or "")


def has_whole_word(normalized: str, terms: Iterable[str]) -> bool:
    """Purpose: Check normalized text for any term appearing as a whole word.
    Inputs/Outputs: Inputs: normalized (str), terms (iterable[str]). Outputs: bool.
    Side Effects / State: None.
    Dependencies: tokenize.
    Failure Modes: Returns False for empty inputs or empty term lists.
    If Removed: Short tokens such as "كام" would collide with longer words.
    Testing Notes: "بكام ده" and "كاميرا" must not match the whole word "كام".
    """
    # Compare tokens instead of raw substrings to avoid partial-word hits.
    tokens = set(tokenize(normalized))
    if not tokens:
        return False
    return any(term in tokens for term in terms if term)


def strip_emoji(text: str) -> str:
    return EMOJI_RE.sub("", text or "").strip()
