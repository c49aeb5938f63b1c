"""HTTP route definitions for the document server."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import formatdate
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.schemas import FileListing, HealthReport, ServiceInfo, Utility
from settings import get_settings
from storage.documents import VIEWS, DocumentStore, build_default_store

logger = logging.getLogger(__name__)

router = APIRouter()

_VALID_UTILITIES = [utility.value for utility in Utility]


def get_documents() -> DocumentStore:
    return build_default_store()


def _not_found(documents: DocumentStore, name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": f"File {name} not found",
            "available_files": [info.name for info in documents.list_documents()],
            "data_directory": str(documents.root_path.resolve()),
        },
    )


def serve_document(documents: DocumentStore, utility: str, view: str) -> Response:
    if utility not in _VALID_UTILITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid utility", "valid_types": _VALID_UTILITIES},
        )
    if view not in VIEWS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid view", "valid_formats": list(VIEWS)},
        )

    name = documents.relative_name(utility, view)
    try:
        content = documents.get_document(utility, view)
        mtime = documents.path_for(utility, view).stat().st_mtime
    except KeyError as exc:
        raise _not_found(documents, name) from exc
    except OSError as exc:
        logger.error("Failed to read document", extra={"document": name, "reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to read {name}", "details": str(exc)},
        ) from exc

    return Response(
        content=content,
        media_type="application/json",
        headers={
            "Last-Modified": formatdate(mtime, usegmt=True),
            "Cache-Control": f"public, max-age={get_settings().cache_max_age}",
        },
    )


@router.get(
    "/",
    response_model=ServiceInfo,
    summary="Service information and endpoint index.",
)
async def root(documents: DocumentStore = Depends(get_documents)) -> ServiceInfo:
    endpoints: Dict[str, str] = {
        "/health": "Server health and document status",
        "/files": "List of available documents",
        "/data/{utility}/{view}": "Any document by utility and view",
    }
    for utility in Utility:
        for view in VIEWS:
            endpoints[f"/{utility.value}-{view}"] = f"{utility.value.capitalize()} {view} document"
    return ServiceInfo(
        service="Utility Usage Document Server",
        version="0.1.0",
        data_directory=str(documents.root_path.resolve()),
        endpoints=endpoints,
    )


@router.get(
    "/health",
    response_model=HealthReport,
    summary="Per-utility document presence and freshness.",
)
async def healthcheck(documents: DocumentStore = Depends(get_documents)) -> HealthReport:
    files_available: Dict[str, Dict[str, bool]] = {}
    last_updated: Dict[str, Optional[datetime]] = {}
    for utility in Utility:
        files_available[utility.value] = {view: documents.exists(utility, view) for view in VIEWS}
        last_updated[utility.value] = documents.last_modified(utility, "latest")
    return HealthReport(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        data_directory=str(documents.root_path.resolve()),
        files_available=files_available,
        last_updated=last_updated,
    )


@router.get(
    "/files",
    response_model=FileListing,
    summary="List every exported document with size and modification time.",
)
async def list_files(documents: DocumentStore = Depends(get_documents)) -> FileListing:
    files = documents.list_documents()
    return FileListing(
        data_directory=str(documents.root_path.resolve()),
        total_files=len(files),
        files=files,
    )


@router.get("/data/{utility}", summary="Latest document for a utility.")
async def get_latest_document(
    utility: str, documents: DocumentStore = Depends(get_documents)
) -> Response:
    return serve_document(documents, utility, "latest")


@router.get("/data/{utility}/{view}", summary="Document for a utility and view.")
async def get_document(
    utility: str, view: str, documents: DocumentStore = Depends(get_documents)
) -> Response:
    return serve_document(documents, utility, view)


def _alias_endpoint(utility: Utility, view: str) -> Callable[..., Response]:
    async def endpoint(documents: DocumentStore = Depends(get_documents)) -> Response:
        return serve_document(documents, utility.value, view)

    endpoint.__name__ = f"get_{utility.value}_{view.replace('-', '_')}"
    return endpoint


for _utility in Utility:
    for _view in VIEWS:
        router.add_api_route(
            f"/{_utility.value}-{_view}",
            _alias_endpoint(_utility, _view),
            methods=["GET"],
            summary=f"{_utility.value.capitalize()} {_view} document.",
        )
