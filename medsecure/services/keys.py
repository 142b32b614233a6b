"""
Key Registry
============

Publishing and lookup of recipient/sender public keys.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from medsecure.core.crypto.key_material import require_public_key_pem
from medsecure.db.base import KeyDirectory
from medsecure.db.models import KeyType, PublicKeyRecord, Role
from medsecure.security.constants import MAX_PEM_CHARS
from medsecure.utils.validators import (
    ValidationError,
    validate_email,
    validate_single_line,
)


def parse_role(value: Optional[str]) -> Role:
    try:
        return Role(str(value).strip().upper())
    except ValueError as e:
        raise ValidationError(f"role must be one of {[r.value for r in Role]}") from e


def parse_key_type(value: Optional[str]) -> KeyType:
    try:
        return KeyType(str(value).strip().upper())
    except ValueError as e:
        raise ValidationError(f"keyType must be one of {[k.value for k in KeyType]}") from e


class KeyRegistry:
    """Validates and stores published public keys."""

    def __init__(self, directory: KeyDirectory, max_pem_chars: int = MAX_PEM_CHARS) -> None:
        self._directory = directory
        self._max_pem_chars = max_pem_chars
        self._log = logging.getLogger("medsecure.keys")

    @property
    def directory(self) -> KeyDirectory:
        return self._directory

    def publish(
        self,
        uid: Optional[str],
        email: Optional[str],
        role: Optional[str],
        key_type: Optional[str],
        public_key_pem: Optional[str],
    ) -> PublicKeyRecord:
        """
        Publish (or replace) the key for ``uid``.

        Raises:
            ValidationError: missing/invalid contact fields
            ValidationFailure: PEM rejected by the envelope gate
            DuplicateKeyError: (email, key type) owned by another uid
        """
        if not uid or not email or not role or not key_type:
            raise ValidationError("uid, email, role, keyType are required")

        uid = validate_single_line(uid, max_length=128, field_name="uid")
        email = validate_email(email)
        parsed_role = parse_role(role)
        parsed_type = parse_key_type(key_type)
        material = require_public_key_pem(public_key_pem, max_chars=self._max_pem_chars)

        record = self._directory.upsert_key(
            uid=uid,
            email=email,
            role=parsed_role,
            key_type=parsed_type,
            public_key_pem=material.pem,
        )
        self._log.info("Published %s key for uid %s", parsed_type.value, uid)
        return record

    def find(
        self,
        uid: Optional[str] = None,
        email: Optional[str] = None,
        key_type: Optional[str] = None,
    ) -> List[PublicKeyRecord]:
        if not uid and not email:
            raise ValidationError("Provide uid or email")
        return self._directory.find_keys(
            uid=uid or None,
            email=email.strip().lower() if email else None,
            key_type=parse_key_type(key_type) if key_type else None,
        )

    def get(self, key_id: str) -> Optional[PublicKeyRecord]:
        return self._directory.get_key(key_id)
