from __future__ import annotations

"""Branch, department and product detectors.

Each detector returns a canonical id or None and never raises. Ties are broken
by declaration order: alias tables first, then knowledge order; the first hit wins.
"""

from typing import Optional

from .resource_loader import KnowledgeSnapshot
from .synonyms import SynonymRule, SynonymTable
from .utils import normalize_text

# Short colloquial names must resolve even when they are substrings of several
# longer official names.
BRANCH_ALIASES = SynonymTable(
    [
        SynonymRule.build("حلمية الزيتون", any_of=["الحلميه", "حلميه"]),
        SynonymRule.build("فيصل", any_of=["الاداره", "اداره", "فيصل"]),
        SynonymRule.build("الإسكندرية", any_of=["اسكندريه", "alexandria"]),
        SynonymRule.build("القاهرة", any_of=["القاهره", "cairo"]),
    ]
)

DEPARTMENT_KEYWORDS = SynonymTable(
    [
        SynonymRule.build("الدعم الفني", any_of=["دعم"]),
        SynonymRule.build("المبيعات", any_of=["مبيعات"]),
        SynonymRule.build("التسويق", any_of=["تسويق"]),
        SynonymRule.build("المشتريات", any_of=["مشتريات"]),
        SynonymRule.build("خدمة العملاء", any_of=["خدمه"]),
    ]
)

# Per-product rules keyed by product id; consulted only for that product, in
# catalog order, after its name and configured aliases.
PRODUCT_RULES = SynonymTable(
    [
        SynonymRule.build("folding_door", any_of=["فولدينج", "folding"]),
        SynonymRule.build("folding_door", all_of=["باب", "طي"]),
        SynonymRule.build("automatic_door", all_of=["باب", "اوتوماتيك"]),
        SynonymRule.build("automatic_door", any_of=["automatic door"]),
        SynonymRule.build("gold_2030", all_of=["جولد", "2030"]),
        SynonymRule.build("gold_2030", any_of=["gold 2030"]),
        SynonymRule.build("kas_2025", any_of=["2025"]),
        SynonymRule.build("kas_2021", any_of=["2021"]),
        SynonymRule.build("mini_8", any_of=["ميني", "mini 8", "8 وقفه"]),
    ]
)


def detect_branch(message: str, knowledge: KnowledgeSnapshot) -> Optional[str]:
    """Purpose: Resolve a branch name from free text.
    Inputs/Outputs: Inputs are the message and knowledge snapshot; output is the
        canonical branch name or None.
    Side Effects / State: None.
    Dependencies: BRANCH_ALIASES, then knowledge.branches in list order.
    Failure Modes: Returns None when neither an alias nor a branch name matches.
    If Removed: Address requests always fall back to the branch menu.
    Testing Notes: "عايز عنوان الحلمية" -> "حلمية الزيتون".
    """
    normalized = normalize_text(message)
    if not normalized:
        return None
    alias = BRANCH_ALIASES.resolve(normalized)
    if alias:
        return alias
    for branch in knowledge.branches:
        name = normalize_text(branch.id)
        if name and name in normalized:
            return branch.id
    return None


def detect_department(message: str, knowledge: KnowledgeSnapshot) -> Optional[str]:
    """Purpose: Resolve a department name from free text.
    Inputs/Outputs: Inputs are the message and snapshot; output is a department
        name or None.
    Side Effects / State: None.
    Dependencies: knowledge.departments in declaration order, then DEPARTMENT_KEYWORDS.
    Failure Modes: Returns None when no name or keyword matches.
    If Removed: Department requests always fall back to the department menu.
    Testing Notes: "رقم الدعم" -> "الدعم الفني" via the keyword table.
    """
    normalized = normalize_text(message)
    if not normalized:
        return None
    for department in knowledge.departments:
        name = normalize_text(department.id)
        if name and name in normalized:
            return department.id
    return DEPARTMENT_KEYWORDS.resolve(normalized)


def detect_product(message: str, knowledge: KnowledgeSnapshot) -> Optional[str]:
    """Purpose: Resolve a product id from free text.
    Inputs/Outputs: Inputs are the message and snapshot; output is a product id or None.
    Side Effects / State: None.
    Dependencies: knowledge.products in catalog order; PRODUCT_RULES per product.
    Failure Modes: Returns None when no product name, alias, or rule matches.
    If Removed: Product, manual, and price routes lose product resolution.
    Testing Notes: With two names contained in the message, the earlier catalog
        entry wins.
    """
    normalized = normalize_text(message)
    if not normalized:
        return None
    for product in knowledge.products:
        name = normalize_text(product.name)
        if name and name in normalized:
            return product.id
        for alias in product.aliases:
            alias_key = normalize_text(alias)
            if alias_key and alias_key in normalized:
                return product.id
        if PRODUCT_RULES.resolve(normalized, canonical=product.id):
            return product.id
    return None
