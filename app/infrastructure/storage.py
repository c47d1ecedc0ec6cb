"""Local file storage for tract PDFs under the public media root."""

import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

TRACTS_DIR = "uploads/tracts"


@dataclass(frozen=True)
class StoredFile:
    file_url: str  # "/uploads/tracts/<uuid>.pdf", relative to the media root
    path: Path
    size: int


class TractFileStorage:
    """Stores files under random names and resolves stored urls safely."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def save(self, content: bytes, ext: str = ".pdf") -> StoredFile:
        """Write `content` fully, then move it into place.

        Nothing from the client's filename reaches the disk: the stored name
        is a fresh uuid plus `ext`, chosen from the accepted content type.
        """
        target_dir = self.root / TRACTS_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4()}{ext}"
        target = target_dir / filename

        fd, tmp_path = tempfile.mkstemp(dir=target_dir, prefix=".upload-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("Stored tract file", file=str(target), size=len(content))
        return StoredFile(file_url=f"/{TRACTS_DIR}/{filename}", path=target, size=len(content))

    def resolve(self, file_url: str) -> Path:
        """Map a stored url to a path inside the root; ValueError if it escapes."""
        candidate = (self.root / file_url.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ValueError("Invalid storage path")
        return candidate

    def remove(self, file_url: str | None) -> bool:
        """Best-effort delete; True if a file was removed."""
        if not file_url:
            return False
        try:
            self.resolve(file_url).unlink()
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.warning("Could not remove tract file", file_url=file_url, error=str(e))
            return False
        return True

    def exists(self, file_url: str | None) -> bool:
        if not file_url:
            return False
        try:
            return self.resolve(file_url).is_file()
        except ValueError:
            return False
