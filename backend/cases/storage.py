"""
cases.storage — Evidence blob storage.

``BlobStore`` checks an uploaded file against the configured limits and
saves it through Django's default storage (``Evidence.file``).  The
engine never touches file contents.
"""

from __future__ import annotations

import logging
import os

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile

from core.domain.exceptions import ValidationFailed

from .models import Case, Evidence, FileType

logger = logging.getLogger(__name__)

EXTENSION_FILE_TYPES: dict[str, str] = {
    "jpeg": FileType.IMAGE,
    "jpg": FileType.IMAGE,
    "png": FileType.IMAGE,
    "gif": FileType.IMAGE,
    "mp4": FileType.VIDEO,
    "avi": FileType.VIDEO,
    "mov": FileType.VIDEO,
    "mp3": FileType.AUDIO,
    "wav": FileType.AUDIO,
    "pdf": FileType.DOCUMENT,
    "doc": FileType.DOCUMENT,
    "docx": FileType.DOCUMENT,
}


def _extension(name: str) -> str:
    return os.path.splitext(name)[1].lstrip(".").lower()


class BlobStore:
    """Validates and persists evidence uploads."""

    def __init__(self, max_file_size: int | None = None, max_files: int | None = None) -> None:
        self.max_file_size = max_file_size or settings.RESOLVEIT_EVIDENCE_MAX_FILE_SIZE
        self.max_files = max_files or settings.RESOLVEIT_EVIDENCE_MAX_FILES

    def check(self, case: Case, file: UploadedFile) -> str:
        """Return the ``FileType`` for ``file`` or raise ``ValidationFailed``."""
        errors: dict[str, list[str]] = {}
        name = getattr(file, "name", "") or ""
        file_type = EXTENSION_FILE_TYPES.get(_extension(name))
        if file_type is None:
            errors.setdefault("file", []).append(
                "Unsupported file type. Allowed: " + ", ".join(sorted(EXTENSION_FILE_TYPES)) + "."
            )
        if file.size is not None and file.size > self.max_file_size:
            errors.setdefault("file", []).append(
                f"File exceeds the {self.max_file_size} byte limit."
            )
        if case.evidence.count() >= self.max_files:
            errors.setdefault("file", []).append(
                f"A case can hold at most {self.max_files} evidence files."
            )
        if errors:
            raise ValidationFailed(errors)
        return file_type

    def attach(self, case: Case, file: UploadedFile, uploaded_by_id: int | None = None) -> Evidence:
        file_type = self.check(case, file)
        evidence = Evidence(
            case=case,
            original_name=os.path.basename(file.name),
            file_type=file_type,
            file_size=file.size or 0,
            uploaded_by_id=uploaded_by_id,
        )
        evidence.file.save(os.path.basename(file.name), file, save=False)
        try:
            evidence.save()
        except Exception:
            self.discard(evidence)
            raise
        logger.info("Stored evidence %s for case %s (%s bytes)", evidence.pk, case.case_number, evidence.file_size)
        return evidence

    def discard(self, evidence: Evidence) -> None:
        """Remove the stored blob of an evidence row that was never committed."""
        name = evidence.file.name
        if not name:
            return
        evidence.file.delete(save=False)
        logger.info("Discarded evidence blob %s for case %s", name, evidence.case.case_number)
