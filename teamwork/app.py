"""
Teamwork Application — Wires storage, services, dashboard, and quotes together.

One TeamworkApp per session. Services share a single Store and a single
ChangeNotifier; the Dashboard listens on the notifier and re-derives its
panels after every committed mutation.
"""

from __future__ import annotations

import logging
from typing import Optional

from teamwork.dashboard import Dashboard
from teamwork.db.storage import StorageBackend, create_storage
from teamwork.engine.config import TeamworkConfig, get_config
from teamwork.engine.events import ChangeEvent, ChangeNotifier
from teamwork.engine.logging import init_logging, log, log_system_event, shutdown_logging
from teamwork.integrations.quotes import QuoteProvider
from teamwork.prompts import ConfirmationPrompt, DenyConfirm, MemberSelector
from teamwork.records.store import Store
from teamwork.services.contribution import ContributionAggregator
from teamwork.services.documents import DocumentService, FileEncoder
from teamwork.services.members import MemberService
from teamwork.services.tasks import TaskService

logger = logging.getLogger("teamwork.app")


class TeamworkApp:
    def __init__(
        self,
        config: TeamworkConfig,
        storage: StorageBackend,
        selector: Optional[MemberSelector] = None,
        confirmer: Optional[ConfirmationPrompt] = None,
        encoder: Optional[FileEncoder] = None,
        quote_provider: Optional[QuoteProvider] = None,
    ):
        self.config = config
        self.storage = storage
        self.confirmer = confirmer or DenyConfirm()
        self.store = Store(storage)
        self.notifier = ChangeNotifier()

        self.members = MemberService(self.store, self.notifier)
        self.tasks = TaskService(self.store, self.notifier, selector=selector, confirmer=self.confirmer)
        self.documents = DocumentService(
            self.store,
            self.notifier,
            selector=selector,
            confirmer=self.confirmer,
            encoder=encoder,
            max_upload_bytes=config.documents.max_upload_bytes,
        )
        self.contributions = ContributionAggregator(self.store)
        self.dashboard = Dashboard(self.store, self.notifier)
        self.quotes = quote_provider or QuoteProvider(
            api_url=config.quotes.api_url,
            timeout_seconds=config.quotes.timeout_seconds,
            failure_threshold=config.quotes.failure_threshold,
            recovery_timeout=config.quotes.recovery_timeout,
            enabled=config.quotes.enabled,
        )
        self._started = False

    @classmethod
    def from_config(
        cls,
        config: Optional[TeamworkConfig] = None,
        **collaborators,
    ) -> "TeamworkApp":
        """Build an app whose storage backend is chosen by ``config.storage.url``."""
        config = config or get_config()
        storage = create_storage(
            config.storage.url,
            quota_bytes=config.storage.quota_bytes,
            key_prefix=config.storage.key_prefix,
        )
        return cls(config, storage, **collaborators)

    def start(self) -> "TeamworkApp":
        """Initialize collections, start the activity log, and render the dashboard."""
        if self._started:
            return self
        logging.getLogger("teamwork").setLevel(self.config.logging.level)
        if self.config.logging.activity_log:
            queue_cfg = self.config.logging.async_queue
            init_logging(
                log_dir=self.config.logging.directory,
                flush_interval_ms=queue_cfg.flush_interval_ms,
                flush_batch_size=queue_cfg.flush_batch_size,
                max_queue_size=queue_cfg.max_queue_size,
            )
        self.store.init()
        self.dashboard.attach()
        self.dashboard.refresh_all()
        self._started = True
        log(log_system_event("app_started", details={
            "team": self.config.team_name,
            "environment": self.config.environment,
            "storage": repr(self.storage),
        }))
        logger.info(f"Teamwork started for '{self.config.team_name}'")
        return self

    def reset(self) -> bool:
        """Delete every task, document, and member after confirmation."""
        if not self.confirmer.confirm(
            "Delete ALL tasks, documents, and members? This cannot be undone."
        ):
            logger.info("Reset cancelled")
            return False
        self.store.clear_all()
        self.notifier.fire(ChangeEvent.MEMBERS_CHANGED, {"operation": "reset"})
        self.notifier.fire(ChangeEvent.DATA_CHANGED, {"operation": "reset"})
        return True

    def close(self) -> None:
        self.dashboard.detach()
        self.storage.close()
        if self._started and self.config.logging.activity_log:
            shutdown_logging()
        self._started = False
