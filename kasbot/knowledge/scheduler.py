from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .knowledge_updater import KnowledgeUpdater

logger = logging.getLogger("kasbot.knowledge")

REFRESH_JOB_ID = "knowledge_refresh_job"


class RefreshScheduler:
    """Run KnowledgeUpdater.refresh at startup and then on a fixed interval."""

    def __init__(self, updater: KnowledgeUpdater, interval_hours: float) -> None:
        self._updater = updater
        self._interval_hours = interval_hours
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return bool(self._scheduler and self._scheduler.running)

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler()
        # next_run_time=now gives the startup refresh without blocking app startup.
        self._scheduler.add_job(
            self._run,
            "interval",
            hours=self._interval_hours,
            id=REFRESH_JOB_ID,
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Scheduled job: knowledge refresh (every %s hours).", self._interval_hours)

    def shutdown(self) -> None:
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def _run(self) -> None:
        try:
            self._updater.refresh()
        except Exception:
            logger.exception("scheduled knowledge refresh failed")
