"""Tract API routes — listing, upload, admin edits, download and preview."""

import re
from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse

from app.application.services import tract_service
from app.config import get_settings
from app.domain.authorization import Caller
from app.domain.models.tract import Tract
from app.domain.repositories.tract_repository import TractRepository
from app.domain.schemas.tract import (
    FeaturedToggle,
    TractDelete,
    TractListItem,
    TractRead,
    TractSummary,
    TractUpdate,
)
from app.infrastructure import database
from app.infrastructure.storage import TractFileStorage
from app.interfaces.api.deps import get_caller, get_client_address, get_public_caller
from app.interfaces.deps import get_storage, get_tract_repository

router = APIRouter(prefix="/api/tracts", tags=["Tracts"])
settings = get_settings()
logger = structlog.get_logger(__name__)


def _record_download_background(tract_id: int, user_id: Optional[int], ip_address: str, user_agent: Optional[str]):
    """Runs once the file response has been sent."""
    from app.infrastructure.repositories.download_repository import SQLAlchemyDownloadRepository
    from app.infrastructure.repositories.tract_repository import SQLAlchemyTractRepository

    db = database.SessionLocal()
    try:
        tract_service.record_download(
            SQLAlchemyTractRepository(db, Tract),
            SQLAlchemyDownloadRepository(db),
            tract_id,
            user_id,
            ip_address,
            user_agent,
        )
    except Exception as e:
        logger.error("Download recording failed", tract_id=tract_id, error=str(e))
    finally:
        db.close()


def _download_name(tract: Tract) -> str:
    if tract.file_name:
        return tract.file_name
    return re.sub(r"[^a-z0-9]", "_", tract.title.lower()) + ".pdf"


@router.get("")
def list_tracts(
    status: str = "approved",
    search: str = "",
    include_all: bool = Query(False, alias="all"),
    repo: TractRepository = Depends(get_tract_repository),
    caller: Caller = Depends(get_public_caller),
):
    tracts = tract_service.list_tracts(repo, caller, status=status, search=search, include_all=include_all)
    items = [TractListItem.from_tract(t) for t in tracts]
    return {"success": True, "tracts": items, "count": len(items)}


@router.post("/upload")
def upload_tract(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    denomination: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    scripture_references: Optional[str] = Form(None),
    repo: TractRepository = Depends(get_tract_repository),
    storage: TractFileStorage = Depends(get_storage),
    caller: Caller = Depends(get_caller),
):
    content = b""
    filename = content_type = None
    if file is not None:
        # One byte past the limit is enough to reject an oversized file.
        content = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
        filename = file.filename
        content_type = file.content_type

    tract = tract_service.submit_tract(
        repo,
        storage,
        caller,
        content=content,
        filename=filename,
        content_type=content_type,
        form={
            "title": title,
            "description": description,
            "category": category,
            "denomination": denomination,
            "language": language,
            "tags": tags,
            "scripture_references": scripture_references,
        },
    )
    return {
        "success": True,
        "message": "Tract uploaded successfully and is pending review",
        "tract": TractSummary.model_validate(tract),
    }


@router.patch("")
def update_tract(
    body: TractUpdate,
    repo: TractRepository = Depends(get_tract_repository),
    caller: Caller = Depends(get_caller),
):
    tract = tract_service.update_tract(repo, caller, body)
    return {"success": True, "message": "Tract updated successfully", "tract": TractRead.model_validate(tract)}


@router.delete("")
def delete_tract(
    body: TractDelete,
    repo: TractRepository = Depends(get_tract_repository),
    storage: TractFileStorage = Depends(get_storage),
    caller: Caller = Depends(get_caller),
):
    tract_service.delete_tract(repo, storage, caller, body.tract_id)
    return {"success": True, "message": "Tract deleted successfully"}


@router.post("/{tract_id}/featured")
def set_featured(
    tract_id: int,
    body: FeaturedToggle,
    repo: TractRepository = Depends(get_tract_repository),
    caller: Caller = Depends(get_caller),
):
    tract = tract_service.set_featured(repo, caller, tract_id, body.featured)
    return {"success": True, "tract": TractRead.model_validate(tract)}


@router.get("/{tract_id}/download")
def download_tract(
    tract_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    repo: TractRepository = Depends(get_tract_repository),
    storage: TractFileStorage = Depends(get_storage),
    caller: Caller = Depends(get_public_caller),
):
    tract, path = tract_service.open_tract_file(repo, storage, tract_id)

    background_tasks.add_task(
        _record_download_background,
        tract.id,
        caller.user_id,
        get_client_address(request),
        request.headers.get("user-agent"),
    )
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=_download_name(tract),
        content_disposition_type="attachment",
    )


@router.get("/{tract_id}/preview")
def preview_tract(
    tract_id: int,
    repo: TractRepository = Depends(get_tract_repository),
    storage: TractFileStorage = Depends(get_storage),
):
    """Inline view for the browser's PDF viewer. Not counted as a download."""
    tract, path = tract_service.open_tract_file(repo, storage, tract_id)
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=_download_name(tract),
        content_disposition_type="inline",
    )
