from __future__ import annotations

import fcntl
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from pydantic import ValidationError

from app.schemas import Reading, Utility
from services.errors import HistoryStoreError, RunInProgressError
from storage.documents import DocumentStore, write_json_atomic

logger = logging.getLogger(__name__)


class HistoryStore:
    """Whole-file persistence for one utility's reading history."""

    def __init__(self, utility: Utility, persistence_path: Path) -> None:
        self.utility = utility
        self.persistence_path = persistence_path

    def load(self) -> List[Reading]:
        if not self.persistence_path.exists():
            return []

        try:
            raw = self.persistence_path.read_text(encoding="utf-8") or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            raise HistoryStoreError(
                f"History file {self.persistence_path} is unreadable: {exc}"
            ) from exc

        if not isinstance(data, list):
            raise HistoryStoreError(
                f"History file {self.persistence_path} does not contain a list."
            )

        try:
            readings = [Reading.model_validate(item) for item in data]
        except ValidationError as exc:
            raise HistoryStoreError(
                f"History file {self.persistence_path} has invalid entries: {exc}"
            ) from exc

        logger.debug(
            "Loaded history",
            extra={"utility": self.utility.value, "record_count": len(readings)},
        )
        return readings

    def save(self, readings: List[Reading]) -> None:
        payload = [reading.model_dump(mode="json") for reading in readings]
        write_json_atomic(self.persistence_path, payload)
        logger.info(
            "Saved history",
            extra={"utility": self.utility.value, "record_count": len(readings)},
        )


def build_history_store(utility: Utility, documents: DocumentStore) -> HistoryStore:
    return HistoryStore(utility=utility, persistence_path=documents.path_for(utility, "history"))


@contextmanager
def hold_run_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock for the duration of one collection run."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a+") as handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            raise RunInProgressError(
                f"Another collection run holds {path}; refusing to start."
            ) from exc
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
