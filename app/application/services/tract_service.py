"""Tract service — submission, review lifecycle, admin edits and downloads.

Every mutation is guarded with the caller's role before touching the
repository. Tract status moves pending -> approved | rejected through review;
admins may override it in any direction through a direct edit.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from app.config import get_settings
from app.core.exceptions import AppError, EntityNotFoundException, InvalidInputException
from app.domain.authorization import Action, Caller, ensure_authorized
from app.domain.models.scripture import ScriptureReference
from app.domain.models.tract import Tract, TractStatus
from app.domain.repositories.download_repository import DownloadRepository
from app.domain.repositories.tract_repository import TractRepository
from app.domain.schemas.tract import ScriptureReferenceIn, TractSubmission, TractUpdate
from app.infrastructure.database import utcnow
from app.infrastructure.storage import TractFileStorage

settings = get_settings()
logger = structlog.get_logger(__name__)

REVIEW_DECISIONS = (TractStatus.APPROVED.value, TractStatus.REJECTED.value)
REQUIRED_FIELDS = ("title", "description", "category", "denomination", "language")
NOT_NULL_FIELDS = ("title", "description", "language", "status", "featured")

_scripture_list = TypeAdapter(list[ScriptureReferenceIn])


def _get_tract_or_404(repo: TractRepository, tract_id: int) -> Tract:
    tract = repo.get_by_id(tract_id)
    if tract is None:
        raise EntityNotFoundException("Tract not found")
    return tract


# Listing

def list_tracts(
    repo: TractRepository,
    caller: Caller,
    status: str = TractStatus.APPROVED.value,
    search: str = "",
    include_all: bool = False,
) -> list[Tract]:
    """Public listing. `include_all` only lifts the status filter for admins."""
    if include_all and caller.can(Action.VIEW_ALL_TRACTS):
        return repo.list_tracts(status=None, search=search)

    if status not in {s.value for s in TractStatus}:
        raise InvalidInputException(f"Unknown status '{status}'")
    return repo.list_tracts(status=status, search=search)


def list_pending_tracts(repo: TractRepository, caller: Caller) -> list[Tract]:
    ensure_authorized(caller, Action.VIEW_PENDING)
    return repo.list_tracts(status=TractStatus.PENDING.value)


# Submission

def _parse_json_list(raw: Optional[str], field: str) -> list[Any]:
    if raw is None or raw.strip() == "":
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise InvalidInputException(f"'{field}' must be a JSON list")
    if not isinstance(value, list):
        raise InvalidInputException(f"'{field}' must be a JSON list")
    return value


def parse_submission(
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    denomination: Optional[str],
    language: Optional[str],
    tags: Optional[str],
    scripture_references: Optional[str] = None,
) -> TractSubmission:
    """Validate raw upload form fields."""
    values = {
        "title": (title or "").strip(),
        "description": (description or "").strip(),
        "category": (category or "").strip(),
        "denomination": (denomination or "").strip(),
        "language": (language or "").strip().lower()[:2],
    }
    missing = [name for name in REQUIRED_FIELDS if not values[name]]
    if missing:
        raise InvalidInputException(f"Missing required fields: {', '.join(missing)}")
    if len(values["title"]) > 255:
        raise InvalidInputException("Title must be at most 255 characters")

    tag_names: list[str] = []
    for item in _parse_json_list(tags, "tags"):
        if not isinstance(item, str):
            raise InvalidInputException("'tags' must be a JSON list of strings")
        name = item.strip().lower()
        if not name:
            continue
        if len(name) > 50:
            raise InvalidInputException(f"Tag '{name}' is longer than 50 characters")
        if name not in tag_names:
            tag_names.append(name)
    if not tag_names:
        raise InvalidInputException("At least one tag is required")

    try:
        scriptures = _scripture_list.validate_python(
            _parse_json_list(scripture_references, "scripture_references")
        )
    except ValidationError:
        raise InvalidInputException("Invalid scripture references")

    return TractSubmission(**values, tags=tag_names, scripture_references=scriptures)


def _link_classification(repo: TractRepository, tract: Tract, submission: TractSubmission) -> None:
    """Best effort: the tract stays even when a link cannot be made."""
    try:
        category = repo.get_category_by_slug(submission.category)
        if category is not None:
            repo.link_category(tract, category)
        else:
            logger.warning("Unknown category, tract left unclassified", tract_id=tract.id, category=submission.category)
    except Exception:
        repo.rollback()
        logger.exception("Error linking category", tract_id=tract.id, category=submission.category)

    for name in submission.tags:
        try:
            repo.link_tag(tract, repo.get_or_create_tag(name))
        except Exception:
            repo.rollback()
            logger.exception("Error linking tag", tract_id=tract.id, tag=name)

    for ref in submission.scripture_references:
        try:
            repo.link_scripture(tract, ScriptureReference(**ref.model_dump()))
        except Exception:
            repo.rollback()
            logger.exception("Error linking scripture reference", tract_id=tract.id, book=ref.book)


def submit_tract(
    repo: TractRepository,
    storage: TractFileStorage,
    caller: Caller,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    form: dict[str, Optional[str]],
) -> Tract:
    """Check the file, validate `form` (see `parse_submission`), store the
    file, then create the tract in `pending` status.
    """
    author = ensure_authorized(caller, Action.UPLOAD)

    if not filename or not content:
        raise InvalidInputException("No file provided")
    if content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise InvalidInputException("Only PDF files are allowed")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise InvalidInputException(f"File size must be less than {limit_mb}MB")
    submission = parse_submission(**form)

    # File first: a record must never point at a file that was not fully written.
    try:
        stored = storage.save(content)
    except OSError as e:
        logger.error("Failed to save tract file", filename=filename, error=str(e))
        raise AppError("Failed to save file to disk")

    tract = repo.create(
        Tract(
            title=submission.title,
            description=submission.description,
            author_id=author.id,
            denomination=submission.denomination,
            language=submission.language,
            file_url=stored.file_url,
            file_name=Path(filename).name[:255],
            file_size=stored.size,
            status=TractStatus.PENDING.value,
            featured=False,
        )
    )
    _link_classification(repo, tract, submission)

    logger.info("Tract submitted", tract_id=tract.id, author_id=author.id, file_url=tract.file_url)
    return tract


# Review and admin edits

def review_tract(repo: TractRepository, caller: Caller, tract_id: int, decision: str) -> Tract:
    """Approve or reject. Does not touch `featured`."""
    reviewer = ensure_authorized(caller, Action.REVIEW)
    if decision not in REVIEW_DECISIONS:
        raise InvalidInputException("Invalid request data")

    tract = _get_tract_or_404(repo, tract_id)
    previous = tract.status
    tract = repo.set_status(tract, decision)

    logger.info("Tract reviewed", tract_id=tract.id, reviewer_id=reviewer.id, previous=previous, status=decision)
    return tract


def update_tract(repo: TractRepository, caller: Caller, patch: TractUpdate) -> Tract:
    """Admin overwrite of any editable field, status and featured included."""
    admin = ensure_authorized(caller, Action.MANAGE_TRACTS)
    tract = _get_tract_or_404(repo, patch.id)

    changes = patch.model_dump(exclude_unset=True, exclude={"id"})
    nulled = [field for field in NOT_NULL_FIELDS if field in changes and changes[field] is None]
    if nulled:
        raise InvalidInputException(f"Fields cannot be null: {', '.join(nulled)}")
    if "status" in changes:
        changes["status"] = TractStatus(changes["status"]).value
    changes["updated_at"] = utcnow()

    tract = repo.update(tract, changes)
    logger.info("Tract updated", tract_id=tract.id, admin_id=admin.id, fields=sorted(changes))
    return tract


def set_featured(repo: TractRepository, caller: Caller, tract_id: int, featured: bool) -> Tract:
    """Independent of status: a pending tract can be featured."""
    admin = ensure_authorized(caller, Action.MANAGE_TRACTS)
    tract = _get_tract_or_404(repo, tract_id)
    tract = repo.update(tract, {"featured": featured, "updated_at": utcnow()})
    logger.info("Tract featured flag changed", tract_id=tract.id, admin_id=admin.id, featured=featured)
    return tract


def delete_tract(repo: TractRepository, storage: TractFileStorage, caller: Caller, tract_id: int) -> None:
    """Delete the record (links and ledger rows cascade), then its file."""
    admin = ensure_authorized(caller, Action.MANAGE_TRACTS)
    tract = _get_tract_or_404(repo, tract_id)
    file_url = tract.file_url

    repo.delete(tract)
    removed = storage.remove(file_url)
    logger.info("Tract deleted", tract_id=tract_id, admin_id=admin.id, file_removed=removed)


# Files and downloads

def open_tract_file(repo: TractRepository, storage: TractFileStorage, tract_id: int) -> tuple[Tract, Path]:
    """Locate the stored PDF for a tract; 404 when the record or file is gone."""
    tract = _get_tract_or_404(repo, tract_id)
    if not tract.file_url:
        raise EntityNotFoundException("No file URL for this tract")
    if not storage.exists(tract.file_url):
        logger.warning("Tract file missing on disk", tract_id=tract.id, file_url=tract.file_url)
        raise EntityNotFoundException("PDF file not found. Please re-upload the tract.")
    return tract, storage.resolve(tract.file_url)


def record_download(
    tract_repo: TractRepository,
    download_repo: DownloadRepository,
    tract_id: int,
    user_id: Optional[int],
    ip_address: str,
    user_agent: Optional[str] = None,
) -> None:
    """Bump the counter and append a ledger row.

    Runs after the file was served; the two steps fail independently and
    failures are only logged.
    """
    try:
        tract_repo.increment_download_count(tract_id)
    except Exception:
        tract_repo.rollback()
        logger.exception("Error incrementing download count", tract_id=tract_id)

    try:
        download_repo.append(tract_id, user_id, ip_address, user_agent)
    except Exception:
        download_repo.rollback()
        logger.exception("Error tracking download", tract_id=tract_id, user_id=user_id)
        return

    logger.info("Download recorded", tract_id=tract_id, user_id=user_id)


def list_categories(repo: TractRepository):
    return repo.list_categories()
