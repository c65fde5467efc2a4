from __future__ import annotations

"""Versioned, read-only knowledge snapshot handle with atomic swaps."""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from ..resource_loader import KnowledgeLoader, KnowledgeLoadError, KnowledgeSnapshot

logger = logging.getLogger("kasbot.knowledge")


class KnowledgeStore:
    """Hold the static base snapshot and the snapshot currently served to requests."""

    def __init__(self, loader: Optional[KnowledgeLoader] = None, snapshot: Optional[KnowledgeSnapshot] = None) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._base = snapshot or KnowledgeSnapshot.empty()
        self._current = self._base
        self._error: Optional[str] = None
        self._last_refresh_at: Optional[str] = None
        self._failed_items: List[str] = []

    def load(self) -> KnowledgeSnapshot:
        """Purpose: Load the static knowledge file and make it the serving snapshot.
        Inputs/Outputs: No inputs; returns the snapshot now being served.
        Side Effects / State: Replaces base and current snapshots; records load errors.
        Dependencies: Uses KnowledgeLoader.load.
        Failure Modes: KnowledgeLoadError is recorded and the previous snapshot kept.
        If Removed: The bot starts with an empty knowledge base.
        Testing Notes: Point the loader at a broken file and check status()["ok"].
        """
        if self._loader is None:
            return self.current()
        try:
            snapshot = self._loader.load()
        except KnowledgeLoadError as exc:
            logger.error("knowledge load failed path=%s error=%s", self._loader.path, exc)
            with self._lock:
                self._error = str(exc)
            return self.current()

        with self._lock:
            version = max(snapshot.version, self._current.version + 1)
            snapshot = snapshot.with_updates(version=version)
            self._base = snapshot
            self._current = snapshot
            self._error = None
        logger.info(
            "knowledge loaded file=%s version=%s counts=%s",
            snapshot.file_name,
            snapshot.version,
            snapshot.counts(),
        )
        return snapshot

    def current(self) -> KnowledgeSnapshot:
        # Reference reads are atomic; callers read once per request.
        return self._current

    def base(self) -> KnowledgeSnapshot:
        return self._base

    def swap(self, snapshot: KnowledgeSnapshot, failed_items: Optional[List[str]] = None) -> KnowledgeSnapshot:
        """Purpose: Publish a new snapshot built outside the store.
        Inputs/Outputs: Input is the new snapshot and failed item ids; returns the
            published snapshot with its version forced above the previous one.
        Side Effects / State: Replaces the serving snapshot under the lock.
        Dependencies: KnowledgeSnapshot.with_updates.
        Failure Modes: None.
        If Removed: Refreshed page data never reaches the dialog resolver.
        Testing Notes: Versions must increase on every swap.
        """
        with self._lock:
            published = snapshot.with_updates(version=self._current.version + 1)
            self._current = published
            self._last_refresh_at = published.refreshed_at or datetime.now().isoformat()
            self._failed_items = list(failed_items or [])
        logger.info("knowledge swapped version=%s failed=%s", published.version, self._failed_items)
        return published

    def status(self) -> Dict[str, object]:
        snapshot = self._current
        return {
            "ok": self._error is None,
            "error": self._error,
            "version": snapshot.version,
            "file": snapshot.file_name,
            "sha256": snapshot.sha256,
            "loaded_at": snapshot.loaded_at,
            "last_refresh_at": self._last_refresh_at,
            "contact_text": snapshot.contact_text,
            "failed_items": list(self._failed_items),
            "counts": snapshot.counts(),
        }
