"""Run orchestration: one login, then each configured utility in turn."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from app.schemas import Utility
from datastore.history import build_history_store, hold_run_lock
from services.authenticator import Credentials, Session, SessionAuthenticator
from services.decoder import decode_response
from services.errors import CollectorError
from services.exporter import ViewExporter
from services.fetcher import UsageFetcher, usage_window
from services.normalizer import normalize
from services.reconciler import reconcile
from settings import Settings, get_settings, validate_collector_settings
from storage.documents import DocumentStore, build_default_store

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".collect.lock"


class Stage(str, Enum):
    """Per-utility pipeline states."""

    idle = "idle"
    fetching = "fetching"
    decoding = "decoding"
    normalizing = "normalizing"
    reconciling = "reconciling"
    exporting = "exporting"
    exported = "exported"
    failed = "failed"


@dataclass
class UtilityOutcome:
    utility: Utility
    stage: Stage = Stage.idle
    failed_stage: Optional[Stage] = None
    records_processed: int = 0
    total_records: int = 0
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.stage is Stage.exported


@dataclass
class RunReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[UtilityOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return any(outcome.succeeded for outcome in self.outcomes)


class PipelineOrchestrator:
    """Sequences authenticate, fetch, decode, normalize, reconcile and export."""

    def __init__(
        self,
        settings: Settings,
        documents: DocumentStore,
        authenticator: SessionAuthenticator,
        fetcher: UsageFetcher,
        exporter: ViewExporter,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.settings = settings
        self.documents = documents
        self.authenticator = authenticator
        self.fetcher = fetcher
        self.exporter = exporter
        self.clock = clock

    def run(self) -> RunReport:
        """Collect every configured utility.

        Raises ``ConfigurationError`` before any browser is opened,
        ``RunInProgressError`` when another run holds the lock and
        ``AuthenticationError`` when login fails. Utility failures are
        recorded in the returned report instead.
        """
        validate_collector_settings(self.settings)
        utilities = [Utility(name) for name in self.settings.configured_utilities()]
        report = RunReport(started_at=self.clock())
        logger.info(
            "Starting collection for %s",
            ", ".join(utility.value for utility in utilities),
        )

        with hold_run_lock(Path(self.documents.root_path) / LOCK_FILENAME):
            credentials = Credentials(
                email=self.settings.email or "", password=self.settings.password or ""
            )
            try:
                session = self.authenticator.authenticate(credentials)
            except CollectorError:
                logger.error("Login failed; no utility can be collected", extra={"stage": "authenticating"})
                raise
            try:
                for utility in utilities:
                    report.outcomes.append(self._run_utility(session, utility))
            finally:
                self._close_session(session)

        report.finished_at = self.clock()
        return report

    def _run_utility(self, session: Session, utility: Utility) -> UtilityOutcome:
        outcome = UtilityOutcome(utility=utility)
        started = time.perf_counter()
        now = self.clock()
        today = now.astimezone().date()
        meter = self.settings.meter_for(utility.value) or ""
        account = self.settings.account_number or ""

        try:
            outcome.stage = Stage.fetching
            start_date, end_date = usage_window(utility, today)
            body = self.fetcher.fetch_usage(session, utility, meter, account, start_date, end_date)

            outcome.stage = Stage.decoding
            batch = decode_response(body, utility, today=today)

            outcome.stage = Stage.normalizing
            readings = normalize(batch, utility, fetched_at=now)
            outcome.records_processed = len(readings)

            outcome.stage = Stage.reconciling
            store = build_history_store(utility, self.documents)
            history = reconcile(store.load(), utility, readings, now=now, today=today)
            store.save(history)
            self.documents.put_document(utility, "raw", batch.raw)
            outcome.total_records = len(history)

            outcome.stage = Stage.exporting
            self.exporter.export(utility, history, today=today)
            outcome.stage = Stage.exported
        except CollectorError as exc:
            self._fail(outcome, exc)
        except Exception as exc:  # noqa: BLE001
            self._fail(outcome, exc, unexpected=True)
        finally:
            outcome.duration_ms = int((time.perf_counter() - started) * 1000)

        if outcome.succeeded:
            logger.info(
                "Collection completed",
                extra={
                    "utility": utility.value,
                    "status": outcome.stage.value,
                    "record_count": outcome.records_processed,
                    "duration_ms": outcome.duration_ms,
                },
            )
        return outcome

    @staticmethod
    def _close_session(session: Session) -> None:
        try:
            session.close()
        except Exception:  # noqa: BLE001
            logger.warning("Browser session did not close cleanly", exc_info=True)

    @staticmethod
    def _fail(outcome: UtilityOutcome, exc: BaseException, unexpected: bool = False) -> None:
        outcome.failed_stage = outcome.stage
        outcome.stage = Stage.failed
        outcome.error = str(exc) or type(exc).__name__
        logger.error(
            "Collection failed: %s",
            outcome.error,
            exc_info=unexpected,
            extra={
                "utility": outcome.utility.value,
                "stage": outcome.failed_stage.value,
                "reason": type(exc).__name__,
            },
        )


def build_orchestrator(settings: Optional[Settings] = None) -> PipelineOrchestrator:
    """Factory that wires the orchestrator from environment settings."""
    settings = settings or get_settings()
    documents = build_default_store()
    rates = {utility: settings.rate_for(utility.value) for utility in Utility}
    return PipelineOrchestrator(
        settings=settings,
        documents=documents,
        authenticator=SessionAuthenticator(headless=settings.browser_headless),
        fetcher=UsageFetcher(),
        exporter=ViewExporter(documents, rates),
    )
