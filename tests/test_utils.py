import pytest

from kasbot.synonyms import SynonymRule, SynonymTable
from kasbot.utils import contains_any, has_whole_word, normalize_text, strip_emoji

SAMPLES = [
    "",
    "   ",
    "  عنوان   فرع  الحلمية ",
    "الإدارة",
    "آخر أسعار KAS 2025",
    "Hello\tWorld\n",
    "مدرسة إسكندرية",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_is_idempotent(text):
    assert normalize_text(normalize_text(text)) == normalize_text(text)


def test_alef_and_teh_marbuta_are_folded():
    assert normalize_text("الإدارة") == normalize_text("الادارة") == normalize_text("الاداره")
    assert normalize_text("آخر") == normalize_text("اخر")
    assert normalize_text("أسعار") == "اسعار"


def test_normalize_trims_lowercases_and_collapses_whitespace():
    assert normalize_text("  KAS   2025\n Manual ") == "kas 2025 manual"


def test_normalize_none_is_empty():
    assert normalize_text(None) == ""


def test_contains_any_is_substring_match():
    assert contains_any("عايز عنوان الفرع", ["عنوان"])
    assert not contains_any("", ["عنوان"])
    assert not contains_any("مرحبا", ["", "عنوان"])


def test_whole_word_does_not_match_inside_longer_words():
    assert has_whole_word("الباب ده كام", ["كام"])
    assert has_whole_word("كام، يا باشا؟", ["كام"])
    assert not has_whole_word("عايز كاميرا", ["كام"])
    assert not has_whole_word("", ["كام"])


def test_strip_emoji_removes_symbols():
    assert strip_emoji("أهلاً 👋") == "أهلاً"
    assert strip_emoji("☎️ الخط الساخن") == "الخط الساخن"


def test_synonym_rule_any_and_all_terms():
    rule = SynonymRule.build("folding_door", all_of=["باب", "طي"])
    assert rule.matches(normalize_text("باب طي للمصعد"))
    assert not rule.matches(normalize_text("باب اوتوماتيك"))

    either = SynonymRule.build("mini_8", any_of=["ميني", "mini 8"])
    assert either.matches("mini 8 card")
    assert not SynonymRule.build("empty").matches("anything")


def test_synonym_table_first_rule_wins_and_filters_by_canonical():
    table = SynonymTable(
        [
            SynonymRule.build("first", any_of=["باب"]),
            SynonymRule.build("second", any_of=["باب"]),
        ]
    )
    assert table.resolve("باب") == "first"
    assert table.resolve("باب", canonical="second") == "second"
    assert table.resolve("شباك") is None
    assert len(table) == 2
