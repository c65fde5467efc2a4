from kasbot.dialog import SupportAgent
from kasbot.formatter import FALLBACK_MENU
from kasbot.resource_loader import KnowledgeSnapshot, ManualLink, Product

GROUP_URL = "https://www.facebook.com/groups/kas.automatic.doors"
HOTLINE_LINE = "☎️ الخط الساخن: 01000000000"


def test_branch_address_with_alias(agent):
    turn = agent.handle_message("عنوان فرع الحلمية", {})
    assert turn.route == "address"
    assert "شارع طومان باي، حلمية الزيتون، القاهرة" in turn.reply
    assert turn.reply.startswith("عنوان فرع حلمية الزيتون:")
    assert "01000000003" in turn.reply
    payload = turn.context_payload()
    assert not payload.get("awaiting")
    assert payload["lastBranch"] == "حلمية الزيتون"


def test_address_without_branch_asks_for_branch(agent, snapshot):
    turn = agent.handle_message("عنوان", {})
    for name in snapshot.branch_names:
        assert name in turn.reply
    payload = turn.context_payload()
    assert payload["awaiting"] == "branch_address"
    assert payload["lastUserMessage"] == "عنوان"
    assert [chip["send"] for chip in turn.suggestions] == snapshot.branch_names


def test_branch_continuation_clears_awaiting(agent):
    turn = agent.handle_message("الاسكندرية", {"awaiting": "branch_address"})
    assert turn.route == "branch_address_resolved"
    assert "شارع 45، العصافرة، الإسكندرية" in turn.reply
    payload = turn.context_payload()
    assert not payload["awaiting"]
    assert payload["lastBranch"] == "الإسكندرية"


def test_branch_continuation_retry_keeps_awaiting(agent):
    turn = agent.handle_message("مش عارف", {"awaiting": "branch_address"})
    assert turn.reply.startswith("مش واضح اسم الفرع")
    assert turn.context_payload()["awaiting"] == "branch_address"


def test_continuation_bypasses_fresh_intents(agent):
    # A greeting while a branch is awaited re-prompts instead of greeting.
    turn = agent.handle_message("ازيك", {"awaiting": "branch_address"})
    assert turn.route == "branch_address_retry"


def test_branch_without_address(agent):
    turn = agent.handle_message("عنوان فرع القاهرة", {})
    assert turn.reply == "العنوان غير مُضاف بعد لفرع القاهرة."
    payload = turn.context_payload()
    assert "awaiting" not in payload
    assert payload["lastBranch"] == "القاهرة"


def test_greeting_reply_and_context_passthrough(agent, snapshot):
    context = {"lastProductId": "mini_8"}
    turn = agent.handle_message("ازيك", context)
    assert turn.reply == f"{snapshot.greeting_reply}\n\n{HOTLINE_LINE}"
    assert turn.context_payload() == context


def test_greeting_takes_priority_over_address(agent):
    turn = agent.handle_message("السلام عليكم الفرع فين", {})
    assert turn.route == "greeting"
    assert "awaiting" not in turn.context_payload()


def test_product_with_specs(agent):
    turn = agent.handle_message("كاس 2025", {})
    assert turn.route == "product"
    assert turn.reply.startswith("كاس 2025:")
    assert "- كارت تحكم مصاعد حتى 16 وقفة" in turn.reply
    assert "https://egy-tronix.com/product/kas-2025/" in turn.reply
    assert GROUP_URL not in turn.reply
    assert turn.context_payload()["lastProductId"] == "kas_2025"


def test_door_product_without_specs_gets_url_and_group_hint(agent):
    turn = agent.handle_message("باب فولدينج", {})
    assert turn.reply.startswith("رابط صفحة المنتج:\nhttps://egy-tronix.com/product/folding-door/")
    assert GROUP_URL in turn.reply


def test_fallback_menu_leaves_awaiting_unset(agent):
    turn = agent.handle_message("qwerty", {})
    assert turn.route == "fallback"
    assert turn.reply.startswith(FALLBACK_MENU)
    assert turn.reply.endswith(HOTLINE_LINE)
    assert "awaiting" not in turn.context_payload()
    assert turn.suggestions


def test_department_direct(agent):
    turn = agent.handle_message("رقم الدعم الفني", {})
    assert turn.reply.startswith("بيانات الدعم الفني:")
    assert "ارقام الهاتف:\n- 01000000010\n- 01000000011" in turn.reply
    assert "واتساب:\n- 01000000010" in turn.reply
    assert turn.context_payload()["lastDept"] == "الدعم الفني"


def test_department_clarification_remembers_door_question(agent):
    first = agent.handle_message("عايز رقم بتاع الباب الاوتوماتيك", {})
    assert first.context_payload()["awaiting"] == "dept_contact"
    assert "المبيعات" in first.reply

    second = agent.handle_message("الدعم الفني", first.context_payload())
    assert second.reply.startswith("بيانات الدعم الفني:")
    assert GROUP_URL in second.reply
    assert not second.context_payload()["awaiting"]


def test_department_retry_keeps_awaiting(agent):
    turn = agent.handle_message("qwerty", {"awaiting": "dept_contact"})
    assert turn.reply.startswith("حضرتك تقصد أي قسم؟")
    assert turn.context_payload()["awaiting"] == "dept_contact"


def test_manual_uses_last_product(agent):
    turn = agent.handle_message("دليل", {"lastProductId": "mini_8"})
    assert turn.reply == "دليل ميني 8:\nhttps://egy-tronix.com/wp-content/uploads/mini-8-manual.pdf"


def test_manual_prompt_then_product_answer(agent):
    first = agent.handle_message("عايز الدليل", {})
    assert first.context_payload()["awaiting"] == "product_manual"
    assert first.suggestions

    second = agent.handle_message("كاس 2021", first.context_payload())
    assert second.reply.startswith("دليل المستخدم كاس 2021:")
    payload = second.context_payload()
    assert not payload["awaiting"]
    assert payload["lastProductId"] == "kas_2021"


def test_wiring_request_prefers_wiring_manual(agent):
    turn = agent.handle_message("مخطط توصيل كاس 2025", {})
    assert turn.reply == "مخطط التوصيل كاس 2025:\nhttps://egy-tronix.com/wp-content/uploads/kas-2025-wiring.pdf"

    manual = agent.handle_message("دليل كاس 2025", {})
    assert manual.reply.startswith("دليل المستخدم كاس 2025:")


def test_manual_for_product_without_manuals(agent):
    turn = agent.handle_message("دليل باب فولدينج", {})
    assert turn.reply == "لا توجد ادلة مضافة حاليا.\nرابط المنتج:\nhttps://egy-tronix.com/product/folding-door/"


def test_malfunction_store_and_group_shortcuts(agent):
    assert "kas-fault-codes.pdf" in agent.handle_message("رموز الأعطال", {}).reply
    assert "https://egy-tronix.com/shop/" in agent.handle_message("عايز اشتري من المتجر", {}).reply
    assert GROUP_URL in agent.handle_message("لينك الجروب", {}).reply


def test_price_points_at_product_page(agent):
    turn = agent.handle_message("سعر جولد 2030", {})
    assert turn.route == "price"
    assert "https://egy-tronix.com/product/gold-2030/" in turn.reply
    assert turn.reply.endswith(HOTLINE_LINE)
    assert turn.context_payload()["lastProductId"] == "gold_2030"

    remembered = agent.handle_message("بكام؟", {"lastProductId": "mini_8"})
    assert "https://egy-tronix.com/product/mini-8/" in remembered.reply

    store = agent.handle_message("الاسعار", {})
    assert "https://egy-tronix.com/shop/" in store.reply


def test_malformed_inputs_are_coerced(agent):
    turn = agent.handle_message(None, ["not", "a", "mapping"])
    assert turn.route == "fallback"
    assert turn.context_payload() == {}

    odd = agent.handle_message("عنوان", {"awaiting": "something_else", "nested": {"x": 1}})
    assert odd.context_payload()["awaiting"] == "branch_address"
    assert "nested" not in odd.context_payload()


def test_strip_emoji_option(snapshot):
    plain = SupportAgent(lambda: snapshot, strip_emoji_replies=True)
    turn = plain.handle_message("ازيك", {})
    assert "👋" not in turn.reply
    assert "☎" not in turn.reply


def test_snapshot_is_read_once_per_turn():
    reads = []
    knowledge = KnowledgeSnapshot(
        products=(
            Product(
                id="card",
                name="كارت",
                url="https://example.com/card",
                manuals=(ManualLink(title="", url="https://example.com/card.pdf"),),
            ),
        )
    )

    def provider():
        reads.append(1)
        return knowledge

    turn = SupportAgent(provider).handle_message("دليل كارت", {})
    assert turn.reply == "كارت:\nhttps://example.com/card.pdf"
    assert len(reads) == 1


def test_department_known_by_keyword_but_not_stored():
    turn = SupportAgent(lambda: KnowledgeSnapshot()).handle_message("رقم المبيعات", {})
    assert turn.reply == "القسم غير موجود حالياً: المبيعات"
    assert turn.context_payload() == {"lastDept": "المبيعات"}


def test_greeting_keeps_raw_context_values(agent):
    context = {"lastDept": "", "lastProductId": 5, "lastBranch": " فيصل ", "awaiting": "none"}
    turn = agent.handle_message("ازيك", context)
    assert turn.route == "greeting"
    assert turn.context_payload() == context


def test_door_hint_only_follows_the_answered_clarification(agent):
    first = agent.handle_message("عايز رقم بتاع الباب الاوتوماتيك", {})
    second = agent.handle_message("الدعم الفني", first.context_payload())
    assert GROUP_URL in second.reply
    assert second.context_payload()["lastUserMessage"] is None

    third = agent.handle_message("رقم التسويق", second.context_payload())
    assert third.reply.startswith("بيانات التسويق:")
    assert GROUP_URL not in third.reply


def test_wiring_follow_up_reads_opening_message_then_forgets_it(agent):
    first = agent.handle_message("عايز مخطط التوصيل", {})
    assert first.context_payload()["awaiting"] == "product_manual"

    second = agent.handle_message("كاس 2025", first.context_payload())
    assert second.reply.startswith("مخطط التوصيل كاس 2025:")
    assert second.context_payload()["lastUserMessage"] is None
