from __future__ import annotations

"""Product/contact page scraper that refreshes the served knowledge snapshot."""

import logging
import re
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from ..resource_loader import KnowledgeSnapshot, ManualLink, Product
from .knowledge_store import KnowledgeStore

logger = logging.getLogger("kasbot.knowledge")

BULLET_SELECTORS = (
    ".woocommerce-product-details__short-description li, "
    ".entry-content li, "
    ".product li"
)
CONTENT_SELECTORS = ".woocommerce-Tabs-panel, .entry-content, .product"
MAX_BULLETS = 40
MAX_SUMMARY_CHARS = 600


class PageFetchError(Exception):
    """Raised when a page cannot be downloaded."""


@dataclass
class PageData:
    """Cached extraction of one product page."""
    url: str
    text: str = ""
    bullets: List[str] = field(default_factory=list)
    pdf_links: List[ManualLink] = field(default_factory=list)


@dataclass
class RefreshReport:
    """Outcome of one refresh run."""
    refreshed_at: str
    version: int
    fetched: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "ok": True,
            "refreshedAt": self.refreshed_at,
            "version": self.version,
            "fetched": list(self.fetched),
            "failed": list(self.failed),
        }


class KnowledgeUpdater:
    """Fetch product and contact pages and merge them onto the static knowledge."""

    def __init__(
        self,
        store: KnowledgeStore,
        timeout: float = 15.0,
        user_agent: str = "KASBot/1.0",
        contact_url: str = "",
        max_spec_bullets: int = 8,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._user_agent = user_agent
        self._contact_url = contact_url
        self._max_spec_bullets = max_spec_bullets
        self._session = session or requests.Session()
        self._refresh_lock = threading.Lock()
        self._pages: Dict[str, PageData] = {}
        self._contact_text = ""

    def refresh(self) -> RefreshReport:
        """Purpose: Re-scrape every source page and publish a merged snapshot.
        Inputs/Outputs: No inputs; returns a RefreshReport with fetched/failed ids.
        Side Effects / State: Updates the page cache and swaps the store snapshot.
        Dependencies: fetch_html, extract_page, merge_pages, KnowledgeStore.swap.
        Failure Modes: A failing page keeps its last-good cache entry and is listed
            in the report; only unexpected errors propagate.
        If Removed: Product specs and PDF links stay limited to the static file.
        Testing Notes: Stub the session to fail one URL and check the others merge.
        """
        with self._refresh_lock:
            base = self._store.base()
            fetched: List[str] = []
            failed: List[str] = []

            contact_url = self._contact_url or base.contact_url
            if contact_url:
                try:
                    soup = BeautifulSoup(self.fetch_html(contact_url), "html.parser")
                    self._contact_text = clean_text(soup.body.get_text(" ") if soup.body else soup.get_text(" "))
                    fetched.append("contact")
                except PageFetchError as exc:
                    logger.warning("refresh contact failed url=%s error=%s", contact_url, exc)
                    failed.append("contact")

            for product in base.products:
                if not product.url:
                    continue
                try:
                    html = self.fetch_html(product.url)
                except PageFetchError as exc:
                    logger.warning("refresh product failed id=%s url=%s error=%s", product.id, product.url, exc)
                    failed.append(product.id)
                    continue
                self._pages[product.id] = extract_page(html, product.url)
                fetched.append(product.id)

            refreshed_at = datetime.now().isoformat()
            merged = merge_pages(base, self._pages, self._max_spec_bullets)
            merged = replace(merged, contact_text=self._contact_text, refreshed_at=refreshed_at)
            published = self._store.swap(merged, failed_items=failed)
            logger.info("refresh done version=%s fetched=%d failed=%d", published.version, len(fetched), len(failed))
            return RefreshReport(refreshed_at=refreshed_at, version=published.version, fetched=fetched, failed=failed)

    def fetch_html(self, url: str) -> str:
        try:
            response = self._session.get(url, headers={"User-Agent": self._user_agent}, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PageFetchError(f"fetch failed: {url}: {exc}") from exc
        return response.text

    def cached_pages(self) -> Dict[str, PageData]:
        return dict(self._pages)


def clean_text(text: Optional[str]) -> str:
    cleaned = re.sub(r"\s+", " ", text or "")
    cleaned = re.sub(r"[•·]+", "-", cleaned)
    return cleaned.strip()


def extract_page(html: str, url: str) -> PageData:
    """Purpose: Extract allowed text, bullet points and PDF links from a product page.
    Inputs/Outputs: Inputs are the page HTML and its URL; output is PageData.
    Side Effects / State: None.
    Dependencies: BeautifulSoup with the stdlib html.parser.
    Failure Modes: Pages without the expected markup yield empty fields.
    If Removed: Refresh has nothing to merge.
    Testing Notes: A WooCommerce-like page with <li> bullets and a .pdf link.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    return PageData(
        url=url,
        text=_extract_main_text(soup),
        bullets=_extract_bullets(soup),
        pdf_links=_extract_pdf_links(soup),
    )


def _extract_main_text(soup: BeautifulSoup) -> str:
    title_tag = soup.find("h1")
    title = clean_text(title_tag.get_text(" ")) if title_tag else ""
    short_tag = soup.select_one(".woocommerce-product-details__short-description")
    short_desc = clean_text(short_tag.get_text(" ")) if short_tag else ""
    content_tag = soup.select_one(CONTENT_SELECTORS)
    content = clean_text(content_tag.get_text(" ")) if content_tag else ""
    price_tag = soup.select_one(".price")
    price = clean_text(price_tag.get_text(" ")) if price_tag else ""

    parts = [title, f"السعر: {price}" if price else "", short_desc, content]
    return clean_text(" | ".join(part for part in parts if part))


def _extract_bullets(soup: BeautifulSoup) -> List[str]:
    bullets: List[str] = []
    seen = set()
    for item in soup.select(BULLET_SELECTORS):
        text = clean_text(item.get_text(" "))
        if len(text) <= 3:
            continue
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        bullets.append(text)
    return bullets[:MAX_BULLETS]


def _extract_pdf_links(soup: BeautifulSoup) -> List[ManualLink]:
    links: List[ManualLink] = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if ".pdf" not in href.lower() or href in seen:
            continue
        seen.add(href)
        links.append(ManualLink(title=clean_text(anchor.get_text(" ")), url=href))
    return links


def merge_pages(base: KnowledgeSnapshot, pages: Dict[str, PageData], max_spec_bullets: int) -> KnowledgeSnapshot:
    """Purpose: Overlay cached page data onto the static snapshot.
    Inputs/Outputs: Inputs are the static snapshot, page cache, and bullet cap;
        output is a new snapshot (version assigned by the store on swap).
    Side Effects / State: None.
    Dependencies: _merge_product.
    Failure Modes: None; products without cached pages are copied unchanged.
    If Removed: Scraped data cannot reach replies.
    Testing Notes: Static specs must win over scraped bullets; page text becomes
        the product summary.
    """
    products: Tuple[Product, ...] = tuple(
        _merge_product(product, pages.get(product.id), max_spec_bullets) for product in base.products
    )
    return replace(base, products=products)


def _merge_product(product: Product, page: Optional[PageData], max_spec_bullets: int) -> Product:
    if page is None:
        return product
    specs = product.specs or tuple(page.bullets[:max_spec_bullets])
    known_urls = {manual.url for manual in product.manuals}
    extra_manuals = []
    for link in page.pdf_links:
        if link.url in known_urls:
            continue
        known_urls.add(link.url)
        extra_manuals.append(ManualLink(title=link.title or product.name, url=link.url))
    return replace(
        product,
        specs=specs,
        manuals=product.manuals + tuple(extra_manuals),
        summary=_clip(page.text, MAX_SUMMARY_CHARS),
    )


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0]
    return cut.rstrip(" |-") + " ..."
