from __future__ import annotations

"""Knowledge file loader for the KAS support bot.

This module loads knowledge.json into immutable Branch/Department/Product records
and wraps them in a KnowledgeSnapshot consumed by the dialog resolver.
"""

import hashlib
import json
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .utils import normalize_text


class KnowledgeLoadError(Exception):
    """Raised when the knowledge file is missing or cannot be parsed."""


@dataclass(frozen=True)
class ManualLink:
    """A manual, datasheet or wiring diagram attached to a product."""
    title: str
    url: str


@dataclass(frozen=True)
class Branch:
    """Branch record keyed by its display name."""
    id: str
    address: str = ""
    phones: Tuple[str, ...] = ()
    whatsapp: Tuple[str, ...] = ()
    hours: str = ""
    notes: str = ""


@dataclass(frozen=True)
class Department:
    """Department contact record keyed by its display name."""
    id: str
    phones: Tuple[str, ...] = ()
    whatsapp: Tuple[str, ...] = ()
    hours: str = ""
    notes: str = ""


@dataclass(frozen=True)
class Product:
    """Catalog product with its synonyms, spec bullets and manuals.

    ``summary`` holds scraped page text and is only filled by a knowledge refresh.
    """
    id: str
    name: str
    url: str = ""
    aliases: Tuple[str, ...] = ()
    specs: Tuple[str, ...] = ()
    manuals: Tuple[ManualLink, ...] = ()
    type: str = ""
    summary: str = ""


@dataclass(frozen=True)
class KnowledgeSnapshot:
    """Read-only view of everything the dialog resolver may answer from.

    Tuples keep declaration order; branch/department/product order is the
    tie-break order used by the detectors.
    """
    greeting_triggers: Tuple[str, ...] = ()
    greeting_reply: str = ""
    hotline: str = ""
    store_url: str = ""
    support_group_url: str = ""
    malfunctions_url: str = ""
    contact_url: str = ""
    contact_text: str = ""
    branches: Tuple[Branch, ...] = ()
    departments: Tuple[Department, ...] = ()
    products: Tuple[Product, ...] = ()
    version: int = 0
    loaded_at: str = ""
    file_name: str = ""
    sha256: str = ""
    refreshed_at: str = ""

    @classmethod
    def empty(cls) -> "KnowledgeSnapshot":
        return cls(loaded_at=datetime.now().isoformat())

    @property
    def branch_names(self) -> List[str]:
        return [branch.id for branch in self.branches]

    @property
    def department_names(self) -> List[str]:
        return [department.id for department in self.departments]

    def find_branch(self, name: Optional[str]) -> Optional[Branch]:
        # Alias targets may be spelled differently from the stored name.
        key = normalize_text(name)
        if not key:
            return None
        for branch in self.branches:
            if normalize_text(branch.id) == key:
                return branch
        return None

    def find_department(self, name: Optional[str]) -> Optional[Department]:
        key = normalize_text(name)
        if not key:
            return None
        for department in self.departments:
            if normalize_text(department.id) == key:
                return department
        return None

    def get_product(self, product_id: Optional[str]) -> Optional[Product]:
        if not product_id:
            return None
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def with_updates(self, **changes: Any) -> "KnowledgeSnapshot":
        """Return a new snapshot with the given fields replaced and the version bumped."""
        changes.setdefault("version", self.version + 1)
        return replace(self, **changes)

    def counts(self) -> Dict[str, int]:
        return {
            "branches": len(self.branches),
            "departments": len(self.departments),
            "products": len(self.products),
            "greetings": len(self.greeting_triggers),
        }


class KnowledgeLoader:
    def __init__(self, path: Path) -> None:
        """Purpose: Configure the loader with a knowledge file path.
        Inputs/Outputs: Input is a Path to knowledge.json; no return value.
        Side Effects / State: Stores the path for later load calls.
        Dependencies: None beyond Path usage.
        Failure Modes: None at init; load() reports read/parse errors.
        If Removed: The knowledge store has nothing to load from.
        Testing Notes: Instantiate with a temp path and call load().
        """
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> KnowledgeSnapshot:
        """Purpose: Load and normalize the knowledge file into a snapshot.
        Inputs/Outputs: No inputs; returns a KnowledgeSnapshot with version 1.
        Side Effects / State: Reads file contents and computes hash/mtime.
        Dependencies: Uses json, hashlib, and parse_knowledge.
        Failure Modes: Missing files and JSON decode errors raise KnowledgeLoadError.
        If Removed: The bot can only answer with the fallback menu.
        Testing Notes: Load a known file and check order of branches/products.
        """
        # Read bytes for hashing and parse JSON into immutable records.
        try:
            raw_bytes = self._path.read_bytes()
        except OSError as exc:
            raise KnowledgeLoadError(f"cannot read {self._path}: {exc}") from exc
        try:
            data = json.loads(raw_bytes.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise KnowledgeLoadError(f"invalid knowledge file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise KnowledgeLoadError(f"knowledge file {self._path} must hold a JSON object")

        snapshot = parse_knowledge(data)
        return replace(
            snapshot,
            version=1,
            loaded_at=datetime.fromtimestamp(self._path.stat().st_mtime).isoformat(),
            file_name=self._path.name,
            sha256=hashlib.sha256(raw_bytes).hexdigest(),
        )


def parse_knowledge(data: Dict[str, Any]) -> KnowledgeSnapshot:
    """Purpose: Convert the raw knowledge mapping into a KnowledgeSnapshot.
    Inputs/Outputs: Input is the decoded JSON object; output is a snapshot (version 0).
    Side Effects / State: None.
    Dependencies: _parse_branches, _parse_departments, _parse_products.
    Failure Modes: Malformed sections are skipped rather than raising.
    If Removed: Tests and the loader lose the shared parsing path.
    Testing Notes: Feed partial dicts and verify missing sections become empty.
    """
    greetings = _as_dict(data.get("greetings"))
    support_group = _as_dict(data.get("autoDoorSupportGroup"))
    malfunctions = _as_dict(data.get("malfunctions"))
    sources = _as_dict(data.get("sources"))
    return KnowledgeSnapshot(
        greeting_triggers=_as_strings(greetings.get("triggers")),
        greeting_reply=_as_str(greetings.get("reply")),
        hotline=_as_str(data.get("hotline")),
        store_url=_as_str(data.get("storeUrl")),
        support_group_url=_as_str(support_group.get("url")),
        malfunctions_url=_as_str(malfunctions.get("url")),
        contact_url=_as_str(sources.get("contactUrl")),
        branches=_parse_branches(data.get("branches")),
        departments=_parse_departments(data.get("departments")),
        products=_parse_products(data.get("products")),
        loaded_at=datetime.now().isoformat(),
    )


def _parse_branches(section: Any) -> Tuple[Branch, ...]:
    # Accept {"list": [...], "data": {...}} or a plain {name: {...}} mapping.
    section = _as_dict(section)
    if "list" in section or "data" in section:
        names = list(_as_strings(section.get("list")))
        data = _as_dict(section.get("data"))
    else:
        names = []
        data = section
    # Names are stripped; records are still read through the key as written.
    keys: Dict[str, Any] = {}
    for key in data:
        if not _has_value(key):
            continue
        name = str(key).strip()
        keys.setdefault(name, key)
        if name not in names:
            names.append(name)

    branches: List[Branch] = []
    for name in names:
        record = _as_dict(data.get(keys.get(name, name)))
        branches.append(
            Branch(
                id=name,
                address=_as_str(record.get("address")),
                phones=_as_strings(record.get("phones")),
                whatsapp=_as_strings(record.get("whatsapp")),
                hours=_as_str(record.get("hours")),
                notes=_as_str(record.get("notes")),
            )
        )
    return tuple(branches)


def _parse_departments(section: Any) -> Tuple[Department, ...]:
    departments: List[Department] = []
    for name, record in _as_dict(section).items():
        if not _has_value(name):
            continue
        record = _as_dict(record)
        departments.append(
            Department(
                id=str(name).strip(),
                phones=_as_strings(record.get("phones")),
                whatsapp=_as_strings(record.get("whatsapp")),
                hours=_as_str(record.get("hours")),
                notes=_as_str(record.get("notes")),
            )
        )
    return tuple(departments)


def _parse_products(section: Any) -> Tuple[Product, ...]:
    # Object order is catalog order; a list of records with "id" is accepted too.
    if isinstance(section, list):
        pairs = [(_as_str(_as_dict(item).get("id")), item) for item in section]
    else:
        pairs = list(_as_dict(section).items())

    products: List[Product] = []
    for product_id, record in pairs:
        record = _as_dict(record)
        product_id = _as_str(product_id)
        if not product_id:
            continue
        products.append(
            Product(
                id=product_id,
                name=_as_str(record.get("name")) or product_id,
                url=_as_str(record.get("url")),
                aliases=_as_strings(record.get("aliases")),
                specs=_as_strings(record.get("specs")),
                manuals=parse_manuals(record.get("manuals")),
                type=_as_str(record.get("type")),
            )
        )
    return tuple(products)


def parse_manuals(value: Any) -> Tuple[ManualLink, ...]:
    """Purpose: Normalize manuals given as {label: url} or [{title, url}].
    Inputs/Outputs: Input is the raw manuals value; output is an ordered tuple.
    Side Effects / State: None.
    Dependencies: _as_str.
    Failure Modes: Entries without a URL are dropped.
    If Removed: Manual replies cannot pick the first or wiring entry.
    Testing Notes: Both shapes keep declaration order.
    """
    links: List[ManualLink] = []
    if isinstance(value, dict):
        for title, url in value.items():
            if _has_value(url):
                links.append(ManualLink(title=_as_str(title), url=_as_str(url)))
    elif isinstance(value, list):
        for entry in value:
            entry = _as_dict(entry)
            url = _as_str(entry.get("url"))
            if url:
                links.append(ManualLink(title=_as_str(entry.get("title") or entry.get("text")), url=url))
    return tuple(links)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    if not _has_value(value):
        return ""
    return str(value).strip()


def _as_strings(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item).strip() for item in value if _has_value(item))


def _has_value(value: Any) -> bool:
    """Purpose: Determine whether a value is present and non-empty.
    Inputs/Outputs: Input is any value; output is True if usable.
    Side Effects / State: None.
    Dependencies: None.
    Failure Modes: None; simple checks only.
    If Removed: Empty strings/None may be treated as valid fields.
    Testing Notes: Check None, empty string, and non-empty values.
    """
    # Treat None or empty strings as missing values.
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True
