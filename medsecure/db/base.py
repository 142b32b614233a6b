"""
Storage Interfaces
==================

Collaborators the share workflow and HTTP layer depend on. The
sealed-package core never touches these.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from medsecure.db.models import (
    KeyType,
    MedicalRecord,
    NewRecord,
    PublicKeyRecord,
    Role,
)


class StorageError(Exception):
    """Raised when the backing store fails."""
    pass


class DuplicateKeyError(StorageError):
    """Another uid already owns this (email, key type) pair."""
    pass


class KeyDirectory(ABC):
    """Published public keys, looked up by uid or email."""

    @abstractmethod
    def upsert_key(
        self,
        uid: str,
        email: str,
        role: Role,
        key_type: KeyType,
        public_key_pem: str,
    ) -> PublicKeyRecord:
        """Insert or replace the key published under ``uid``."""

    @abstractmethod
    def find_keys(
        self,
        uid: Optional[str] = None,
        email: Optional[str] = None,
        key_type: Optional[KeyType] = None,
    ) -> List[PublicKeyRecord]:
        """Matching keys, newest first."""

    @abstractmethod
    def get_key(self, key_id: str) -> Optional[PublicKeyRecord]:
        ...

    def find_key(self, uid_or_email: str, key_type: KeyType) -> Optional[PublicKeyRecord]:
        """
        Resolve a recipient identifier.

        Identifiers containing "@" are treated as email addresses,
        anything else as a uid. Absence is a normal outcome.
        """
        identifier = uid_or_email.strip()
        if "@" in identifier:
            matches = self.find_keys(email=identifier.lower(), key_type=key_type)
        else:
            matches = self.find_keys(uid=identifier, key_type=key_type)
        return matches[0] if matches else None


class RecordStore(ABC):
    """Uploaded record metadata."""

    @abstractmethod
    def add_record(self, record: NewRecord) -> MedicalRecord:
        ...

    @abstractmethod
    def get_record(self, record_id: str) -> Optional[MedicalRecord]:
        ...

    @abstractmethod
    def list_records(self, patient_uid: str) -> List[MedicalRecord]:
        """Records for one patient, newest first."""

    @abstractmethod
    def mark_encrypted(self, record_id: str, signature_b64: str) -> None:
        """Flag a record as shared and keep the signature of the last package."""


class Store(KeyDirectory, RecordStore):
    """A backend implementing both interfaces."""

    def close(self) -> None:
        """Release backend resources."""
