from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, List, Optional

from app.schemas import DocumentInfo, Utility
from settings import get_settings

VIEWS = ("latest", "history", "recent", "monthly", "energy-stats", "raw")
DOCUMENT_PREFIX = "usage"


def write_json_atomic(path: Path, payload: Any) -> None:
    """Replace ``path`` with ``payload`` so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class DocumentStore:
    """Exported JSON documents laid out as ``<root>/<utility>/<prefix>-<utility>-<view>.json``."""

    def __init__(self, root_path: Path, prefix: str = DOCUMENT_PREFIX) -> None:
        self.root_path = root_path
        self.prefix = prefix

    def relative_name(self, utility: Utility | str, view: str) -> str:
        name = Utility(utility).value
        if view not in VIEWS:
            raise ValueError(f"Unknown view {view!r}; expected one of {', '.join(VIEWS)}.")
        return f"{name}/{self.prefix}-{name}-{view}.json"

    def path_for(self, utility: Utility | str, view: str) -> Path:
        return self.root_path / self.relative_name(utility, view)

    def put_document(self, utility: Utility | str, view: str, payload: Any) -> Path:
        path = self.path_for(utility, view)
        write_json_atomic(path, payload)
        return path

    def get_document(self, utility: Utility | str, view: str) -> bytes:
        path = self.path_for(utility, view)
        if not path.is_file():
            raise KeyError(f"Document {self.relative_name(utility, view)!r} not found.")
        return path.read_bytes()

    def exists(self, utility: Utility | str, view: str) -> bool:
        return self.path_for(utility, view).is_file()

    def last_modified(self, utility: Utility | str, view: str) -> Optional[datetime]:
        try:
            stat = self.path_for(utility, view).stat()
        except OSError:
            return None
        return datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

    def describe(self, utility: Utility | str, view: str) -> Optional[DocumentInfo]:
        path = self.path_for(utility, view)
        try:
            stat = path.stat()
        except OSError:
            return None
        return DocumentInfo(
            name=self.relative_name(utility, view),
            utility=Utility(utility),
            view=view,
            path=str(path),
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def list_documents(self, utilities: Iterable[Utility] = tuple(Utility)) -> List[DocumentInfo]:
        documents: List[DocumentInfo] = []
        for utility in utilities:
            for view in VIEWS:
                info = self.describe(utility, view)
                if info is not None:
                    documents.append(info)
        return documents


@lru_cache
def build_default_store(root_path: Optional[str] = None) -> DocumentStore:
    settings = get_settings()
    root = settings.data_directory if root_path is None else root_path
    return DocumentStore(root_path=Path(root))
