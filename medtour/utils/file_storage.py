"""
Medical report storage on local disk.

Reports are written to ``<UPLOAD_DIR>/<user id>/`` under a generated name so
the original filename never reaches the filesystem. Validation runs over the
whole batch before anything is written.
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from ..config import MAX_REPORT_SIZE_BYTES, MAX_REPORTS_PER_UPLOAD, UPLOAD_DIR
from ..shared.validators import validate_user_id

logger = logging.getLogger(__name__)

ALLOWED_REPORT_TYPES = {
    "application/pdf": (".pdf",),
    "image/jpeg": (".jpg", ".jpeg"),
    "image/jpg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "application/msword": (".doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (".docx",),
}

REPORT_FIELD_NAME = "medicalReports"


class UploadRejected(Exception):
    """A report batch failed validation; ``code`` is returned to the client"""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class StoredReport:
    file_name: str
    original_name: str
    file_path: str
    file_size: int
    content_type: Optional[str]


@dataclass
class _PendingReport:
    original_name: str
    extension: str
    content_type: str
    contents: bytes


def _extension_for(filename: str, content_type: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    allowed = ALLOWED_REPORT_TYPES[content_type]
    return ext if ext in allowed else allowed[0]


async def _read_and_validate(files: list[UploadFile]) -> list[_PendingReport]:
    if len(files) > MAX_REPORTS_PER_UPLOAD:
        raise UploadRejected(
            f"Too many files. Maximum is {MAX_REPORTS_PER_UPLOAD} files per upload.",
            "TOO_MANY_FILES",
        )

    pending = []
    for file in files:
        content_type = (file.content_type or "").lower()
        if content_type not in ALLOWED_REPORT_TYPES:
            raise UploadRejected(
                "Only PDF, images, and document files are allowed for medical records!",
                "INVALID_FILE_TYPE",
            )

        contents = await file.read()
        if len(contents) > MAX_REPORT_SIZE_BYTES:
            raise UploadRejected(
                f"File too large. Maximum size is {MAX_REPORT_SIZE_BYTES // (1024 * 1024)}MB per file.",
                "FILE_TOO_LARGE",
            )

        original_name = os.path.basename(file.filename or "report")[:255]
        pending.append(
            _PendingReport(
                original_name=original_name,
                extension=_extension_for(original_name, content_type),
                content_type=content_type,
                contents=contents,
            )
        )
    return pending


async def store_medical_reports(
    user_id: str, files: list[UploadFile], base_dir: Optional[str] = None
) -> list[StoredReport]:
    """Validate and write a batch of reports; returns what was written"""
    user_id = validate_user_id(user_id)
    files = [f for f in files if f is not None and f.filename]
    if not files:
        return []

    pending = await _read_and_validate(files)

    user_dir = Path(base_dir or UPLOAD_DIR) / user_id
    user_dir.mkdir(parents=True, exist_ok=True)

    stored = []
    for report in pending:
        unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        file_name = f"{REPORT_FIELD_NAME}-{unique_suffix}{report.extension}"
        path = user_dir / file_name
        path.write_bytes(report.contents)
        stored.append(
            StoredReport(
                file_name=file_name,
                original_name=report.original_name,
                file_path=str(path),
                file_size=len(report.contents),
                content_type=report.content_type,
            )
        )

    logger.info(f"📤 Stored {len(stored)} medical report(s) for user {user_id}")
    return stored


def remove_stored_reports(reports: list[StoredReport]) -> None:
    """Delete files written by store_medical_reports (used when the database write fails)"""
    for report in reports:
        try:
            Path(report.file_path).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"❌ Failed to remove report file {report.file_path}: {e}")
