"""
Record Service
==============

Uploaded medical records: content on disk, metadata in the store.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from pathlib import Path
from typing import List, Optional

from medsecure.db.base import RecordStore, StorageError
from medsecure.db.models import MedicalRecord, NewRecord
from medsecure.security.constants import MAX_UPLOAD_BYTES
from medsecure.services.errors import RecordFileMissing
from medsecure.utils.paths import is_path_within_directory, sanitize_filename, stored_file_name
from medsecure.utils.validators import (
    ValidationError,
    require_fields,
    validate_email,
    validate_single_line,
    validate_string_safe,
)

# Same-millisecond uploads of one filename take the next free timestamp
_NAME_ATTEMPTS = 100


class RecordService:
    """Stores uploads under ``upload_dir`` and tracks their metadata."""

    def __init__(
        self,
        store: RecordStore,
        upload_dir: Path,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self._store = store
        self._upload_dir = Path(upload_dir)
        self._max_upload_bytes = max_upload_bytes
        self._upload_dir.mkdir(parents=True, exist_ok=True)
        self._log = logging.getLogger("medsecure.records")

    @property
    def store(self) -> RecordStore:
        return self._store

    def upload(
        self,
        patient_uid: Optional[str],
        uploader_email: Optional[str],
        record_type: Optional[str],
        filename: Optional[str],
        content: bytes,
        mime_type: Optional[str] = None,
        note: Optional[str] = None,
    ) -> MedicalRecord:
        """
        Store an uploaded file and its metadata.

        Raises:
            ValidationError: missing fields, bad filename, or oversized file
            StorageError: no free stored name, or the metadata insert failed
        """
        require_fields(
            {"patientUid": patient_uid, "uploaderEmail": uploader_email, "recordType": record_type},
            "patientUid", "uploaderEmail", "recordType",
        )
        if not filename:
            raise ValidationError("recordFile required")
        if len(content) > self._max_upload_bytes:
            raise ValidationError("recordFile too large")

        # Patient uid and record type are copied into mail headers
        patient_uid = validate_single_line(patient_uid, max_length=128, field_name="patientUid")
        uploader_email = validate_email(uploader_email, field_name="uploaderEmail")
        record_type = validate_single_line(record_type, max_length=128, field_name="recordType")
        note = validate_string_safe(note, allow_empty=True, max_length=2000, field_name="note")

        try:
            sanitize_filename(filename)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        stored_name = self._write_upload(filename, content)
        try:
            record = self._store.add_record(NewRecord(
                patient_uid=patient_uid,
                uploader_email=uploader_email,
                record_type=record_type,
                note=note,
                original_file_name=filename,
                stored_file_name=stored_name,
                mime_type=mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream",
                size_bytes=len(content),
            ))
        except Exception:
            (self._upload_dir / stored_name).unlink(missing_ok=True)
            raise

        self._log.info("Stored record %s (%d bytes)", record.id, record.size_bytes)
        return record

    def _write_upload(self, filename: str, content: bytes) -> str:
        """Create the upload file under a fresh name and return that name."""
        now_ms = int(time.time() * 1000)
        for attempt in range(_NAME_ATTEMPTS):
            stored_name = stored_file_name(filename, now_ms + attempt)
            try:
                with open(self._upload_dir / stored_name, "xb") as f:
                    f.write(content)
            except FileExistsError:
                continue
            return stored_name

        self._log.error("No free upload name after %d attempts", _NAME_ATTEMPTS)
        raise StorageError("Could not allocate a stored file name")

    def get(self, record_id: str) -> Optional[MedicalRecord]:
        return self._store.get_record(record_id)

    def list(self, patient_uid: Optional[str]) -> List[MedicalRecord]:
        if not patient_uid:
            raise ValidationError("patientUid required")
        return self._store.list_records(patient_uid)

    def path_for(self, record: MedicalRecord) -> Path:
        """
        Location of a record's stored file.

        Raises:
            RecordFileMissing: if the file is gone or escapes the upload directory
        """
        path = self._upload_dir / record.stored_file_name
        if not is_path_within_directory(path, self._upload_dir) or not path.is_file():
            raise RecordFileMissing("Uploaded file missing on server")
        return path

    def read_content(self, record: MedicalRecord) -> bytes:
        return self.path_for(record).read_bytes()
