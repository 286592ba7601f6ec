"""Storage for uploaded PTO forms.

The lifecycle only keeps the reference returned by ``save``; what sits
behind it is this module's business.
"""
import os
import time
import secrets
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from clinic_scheduling.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx"}
DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class LocalBlobStore:
    """Writes blobs to a local directory (``UPLOAD_DIR``)."""

    def __init__(self, root: Optional[str] = None, max_size: Optional[int] = None):
        self.root = Path(root or os.getenv("UPLOAD_DIR", "uploads"))
        self.max_size = max_size or int(os.getenv("MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE))

    def validate(self, filename: str, content: Optional[bytes] = None, size: Optional[int] = None) -> None:
        """Check name and size. ``size`` lets callers reject a file before reading it."""
        if size is None:
            size = len(content or b"")
        extension = Path(filename or "").suffix.lower()
        errors = []
        if extension not in ALLOWED_EXTENSIONS:
            errors.append("Only PDF and Word documents are allowed")
        if not size:
            errors.append("No file uploaded")
        elif size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            actual_mb = size / (1024 * 1024)
            errors.append(f"File too large: {actual_mb:.1f}MB. Maximum: {max_mb:.1f}MB")
        if errors:
            raise ValidationError(errors, "Invalid PTO form")

    def save(self, filename: str, content: bytes, prefix: str = "ptoForm") -> str:
        """Store the file and return its reference (the stored file name)."""
        self.validate(filename, content)
        self.root.mkdir(parents=True, exist_ok=True)

        ref = f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4)}{Path(filename).suffix.lower()}"
        (self.root / ref).write_bytes(content)
        logger.info("Stored %s (%d bytes) as %s", filename, len(content), ref)
        return ref

    def path_for(self, ref: str) -> Path:
        # Only the final component: refs never point outside the upload dir
        return self.root / Path(ref).name

    def exists(self, ref: Optional[str]) -> bool:
        return bool(ref) and self.path_for(ref).is_file()

    def info(self, ref: str) -> dict:
        stats = self.path_for(ref).stat()
        return {
            "filename": Path(ref).name,
            "size": stats.st_size,
            "uploadedAt": datetime.utcfromtimestamp(stats.st_mtime),
        }

    def delete(self, ref: str) -> bool:
        path = self.path_for(ref)
        if not path.is_file():
            return False
        path.unlink()
        logger.info("Removed stored file %s", ref)
        return True


def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore()
