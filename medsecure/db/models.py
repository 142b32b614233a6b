"""
Storage Records
===============

Published public keys and uploaded medical records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class Role(Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class KeyType(Enum):
    RSA = "RSA"
    ED25519 = "ED25519"


def _ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class PublicKeyRecord:
    """A published public key and its owning contact."""

    id: str
    uid: str
    email: str
    role: Role
    key_type: KeyType
    public_key_pem: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PublicKeyRecord":
        return cls(
            id=str(row["id"]),
            uid=row["uid"],
            email=row["email"],
            role=Role(row["role"]),
            key_type=KeyType(row["key_type"]),
            public_key_pem=row["public_key_pem"],
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
        )

    @property
    def download_name(self) -> str:
        return f"{self.uid}_{self.key_type.value}_public.pem"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "uid": self.uid,
            "email": self.email,
            "role": self.role.value,
            "keyType": self.key_type.value,
            "publicKeyPem": self.public_key_pem,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"PublicKeyRecord(uid={self.uid!r}, key_type={self.key_type.value})"


@dataclass(frozen=True)
class MedicalRecord:
    """Metadata for an uploaded record; content lives in the upload directory."""

    id: str
    patient_uid: str
    uploader_email: str
    record_type: str
    note: str
    original_file_name: str
    stored_file_name: str
    mime_type: str
    size_bytes: int
    created_at: datetime
    updated_at: datetime
    is_encrypted: bool = False
    signature_b64: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MedicalRecord":
        return cls(
            id=str(row["id"]),
            patient_uid=row["patient_uid"],
            uploader_email=row["uploader_email"],
            record_type=row["record_type"],
            note=row["note"] or "",
            original_file_name=row["original_file_name"],
            stored_file_name=row["stored_file_name"],
            mime_type=row["mime_type"],
            size_bytes=int(row["size_bytes"]),
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
            is_encrypted=bool(row["is_encrypted"]),
            signature_b64=row["signature_b64"] or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patientUid": self.patient_uid,
            "uploaderEmail": self.uploader_email,
            "recordType": self.record_type,
            "note": self.note,
            "originalFileName": self.original_file_name,
            "storedFileName": self.stored_file_name,
            "mimeType": self.mime_type,
            "sizeBytes": self.size_bytes,
            "isEncrypted": self.is_encrypted,
            "signatureBase64": self.signature_b64,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class NewRecord:
    """Fields supplied when a record is first stored."""

    patient_uid: str
    uploader_email: str
    record_type: str
    original_file_name: str
    stored_file_name: str
    mime_type: str
    size_bytes: int
    note: str = ""
    id: Optional[str] = None
