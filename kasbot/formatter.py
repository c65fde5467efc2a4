from __future__ import annotations

"""Reply templates and suggestion chips."""

from typing import Dict, List, Optional, Sequence, Union

from .intents import WIRING_TERMS
from .resource_loader import Branch, Department, KnowledgeSnapshot, ManualLink, Product
from .utils import normalize_text

Suggestion = Dict[str, str]

DEFAULT_GREETING = "أهلاً 👋"
ERROR_REPLY = "حدث خطأ مؤقت. برجاء المحاولة مرة أخرى."
PRODUCT_PROMPT = "من فضلك حدّد اسم المنتج المطلوب لإرسال الدليل/المخطط."
FALLBACK_MENU = (
    "اكتب سؤالك بالشكل ده عشان أرد بسرعة:\n"
    "- عنوان فرع (مثال: عنوان فرع الحلمية)\n"
    "- رقم الدعم الفني\n"
    "- أرقام المبيعات\n"
    "- دليل + اسم المنتج"
)
FALLBACK_SUGGESTIONS: List[Suggestion] = [
    {"label": "عنوان فرع", "send": "عنوان فرع"},
    {"label": "الدعم الفني", "send": "رقم الدعم الفني"},
    {"label": "المبيعات", "send": "أرقام المبيعات"},
    {"label": "دليل منتج", "send": "دليل"},
]


def hotline_line(knowledge: KnowledgeSnapshot) -> str:
    if not knowledge.hotline:
        return ""
    return f"☎️ الخط الساخن: {knowledge.hotline}"


def with_hotline(text: str, knowledge: KnowledgeSnapshot) -> str:
    line = hotline_line(knowledge)
    return f"{text}\n\n{line}" if line else text


def bullet_list(items: Sequence[str]) -> str:
    return "- " + "\n- ".join(items) if items else ""


def format_phones(entry: Union[Branch, Department]) -> str:
    """Purpose: Render the phone/WhatsApp/hours/notes block for a branch or department.
    Inputs/Outputs: Input is a Branch or Department; output is a trimmed string.
    Side Effects / State: None.
    Dependencies: bullet_list.
    Failure Modes: Missing sections are omitted; an empty entry yields "".
    If Removed: Address and department replies lose their contact block.
    Testing Notes: Phones appear before WhatsApp; notes come last.
    """
    out = ""
    phones = [phone for phone in entry.phones if phone]
    whatsapp = [number for number in entry.whatsapp if number]
    if phones:
        out += f"ارقام الهاتف:\n{bullet_list(phones)}\n"
    if whatsapp:
        out += f"واتساب:\n{bullet_list(whatsapp)}\n"
    if entry.hours:
        out += f"مواعيد العمل:\n{entry.hours}\n"
    if entry.notes:
        out += f"{entry.notes}\n"
    return out.strip()


def door_group_hint(knowledge: KnowledgeSnapshot) -> str:
    if not knowledge.support_group_url:
        return ""
    return (
        "\n\nولمزيد من المعلومات وتفاصيل أكثر عن الأبواب الأوتوماتيك يمكنك الانضمام للجروب:\n"
        f"{knowledge.support_group_url}"
    )


def greeting_reply(knowledge: KnowledgeSnapshot) -> str:
    return with_hotline(knowledge.greeting_reply or DEFAULT_GREETING, knowledge)


def malfunctions_reply(knowledge: KnowledgeSnapshot) -> str:
    if knowledge.malfunctions_url:
        return f"رموز الاعطال والتنبيهات:\n{knowledge.malfunctions_url}"
    return "رموز الأعطال غير مضافة حالياً."


def store_reply(knowledge: KnowledgeSnapshot) -> str:
    if not knowledge.store_url:
        return with_hotline("المتجر الإلكتروني غير متاح حالياً.", knowledge)
    return with_hotline(f"تقدر تتصفح منتجاتنا وتطلب من المتجر:\n{knowledge.store_url}", knowledge)


def price_reply(knowledge: KnowledgeSnapshot, product: Optional[Product]) -> str:
    if product is not None and product.url:
        return with_hotline(f"أسعار {product.name} متاحة على صفحة المنتج:\n{product.url}", knowledge)
    if knowledge.store_url:
        return with_hotline(f"الأسعار متاحة على المتجر:\n{knowledge.store_url}", knowledge)
    return with_hotline("للاستفسار عن الأسعار برجاء التواصل مع المبيعات.", knowledge)


def support_group_reply(knowledge: KnowledgeSnapshot) -> str:
    if not knowledge.support_group_url:
        return with_hotline("جروب الدعم غير متاح حالياً.", knowledge)
    return f"جروب دعم الأبواب الأوتوماتيك:\n{knowledge.support_group_url}"


def branch_menu_prompt(knowledge: KnowledgeSnapshot) -> str:
    return f"من فضلك حدّد الفرع المطلوب:\n{bullet_list(knowledge.branch_names)}".strip()


def branch_retry_prompt(knowledge: KnowledgeSnapshot) -> str:
    return f"مش واضح اسم الفرع. اختار واحد من دول:\n{bullet_list(knowledge.branch_names)}".strip()


def branch_address_reply(name: str, branch: Optional[Branch]) -> str:
    """Purpose: Render a branch address with its phone block.
    Inputs/Outputs: Inputs are the canonical branch name and the stored record;
        output is the reply text.
    Side Effects / State: None.
    Dependencies: format_phones.
    Failure Modes: A missing record or address yields the "not added yet" text.
    If Removed: Address intents cannot answer.
    Testing Notes: The reply starts with "عنوان فرع <name>:".
    """
    if branch is None or not branch.address:
        return f"العنوان غير مُضاف بعد لفرع {name}."
    phones = format_phones(branch)
    reply = f"عنوان فرع {name}:\n{branch.address}"
    if phones:
        reply += f"\n\n{phones}"
    return reply.strip()


def department_menu_prompt(knowledge: KnowledgeSnapshot) -> str:
    return f"حضرتك تقصد أي قسم؟\n{bullet_list(knowledge.department_names)}".strip()


def department_reply(name: str, department: Department, door_hint: str = "") -> str:
    return f"بيانات {name}:\n{format_phones(department)}{door_hint}".strip()


def department_missing_reply(name: str) -> str:
    return f"القسم غير موجود حالياً: {name}"


def product_manual_prompt(knowledge: KnowledgeSnapshot) -> str:
    examples = " / ".join(product.name for product in knowledge.products[:4])
    if not examples:
        return "اكتب اسم المنتج المطلوب."
    return f"اكتب اسم المنتج المطلوب (مثال: {examples})."


def pick_manual(manuals: Sequence[ManualLink], want_wiring: bool) -> Optional[ManualLink]:
    """Purpose: Choose the manual entry to send.
    Inputs/Outputs: Inputs are the product manuals and whether wiring was asked;
        output is the chosen ManualLink or None.
    Side Effects / State: None.
    Dependencies: WIRING_TERMS from intents.
    Failure Modes: Returns None for an empty sequence.
    If Removed: Wiring requests would always get the first manual.
    Testing Notes: With ["دليل", "مخطط التوصيل"] and wiring asked, the second wins.
    """
    if not manuals:
        return None
    if want_wiring and len(manuals) > 1:
        for manual in manuals:
            title = normalize_text(manual.title)
            if any(term in title for term in WIRING_TERMS):
                return manual
    return manuals[0]


def manual_reply(product: Product, want_wiring: bool = False) -> str:
    manual = pick_manual(product.manuals, want_wiring)
    if manual is None:
        return f"لا توجد ادلة مضافة حاليا.\nرابط المنتج:\n{product.url}".strip()
    title = manual.title or product.name
    return f"{title}:\n{manual.url}"


def product_reply(product: Product, door_hint: str = "") -> str:
    specs = [spec for spec in product.specs if spec]
    if specs:
        return f"{product.name}:\n{bullet_list(specs)}\n\nرابط المنتج:\n{product.url}{door_hint}".strip()
    if product.summary:
        # Scraped page text stands in when the page has no bullet list.
        return f"المعلومات المتاحة عن {product.name}:\n{product.summary}\n\nرابط صفحة المنتج:\n{product.url}{door_hint}".strip()
    return f"رابط صفحة المنتج:\n{product.url}{door_hint}".strip()


def fallback_reply(knowledge: KnowledgeSnapshot) -> str:
    return with_hotline(FALLBACK_MENU, knowledge)


def branch_suggestions(knowledge: KnowledgeSnapshot) -> List[Suggestion]:
    return [{"label": name, "send": name} for name in knowledge.branch_names]


def department_suggestions(knowledge: KnowledgeSnapshot) -> List[Suggestion]:
    return [{"label": name, "send": name} for name in knowledge.department_names]


def product_suggestions(knowledge: KnowledgeSnapshot) -> List[Suggestion]:
    # Group by product type, types in first-seen order, catalog order inside a type.
    groups: Dict[str, List[Product]] = {}
    for product in knowledge.products:
        groups.setdefault(product.type, []).append(product)
    return [
        {"label": product.name, "send": product.name}
        for products in groups.values()
        for product in products
    ]
