"""
Share Workflow
==============

Seals a stored record for a recipient and hands it to the transport.

Flow:
    record lookup → stored file → recipient RSA key → sender identity
        ↓ PackageSealer.seal
    SecureDelivery (package, signature, sender verify key)
        ↓ Transport.deliver
    mark_encrypted(record, signature)

Security Properties:
    - The record is marked encrypted only after delivery succeeded
    - Only public keys and the server's own signing key are read
    - Plaintext never leaves this process unsealed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from medsecure.core.crypto import CryptoFailure, KeyMaterial, PackageSealer
from medsecure.db.base import KeyDirectory
from medsecure.db.models import KeyType, MedicalRecord
from medsecure.security.constants import MIN_RSA_KEY_BITS
from medsecure.services.errors import (
    KeyNotFound,
    RecordNotFound,
    SenderIdentityUnavailable,
    ShareError,
)
from medsecure.services.records import RecordService
from medsecure.transport.base import SecureDelivery, Transport, TransportError
from medsecure.utils.validators import (
    ValidationError,
    require_fields,
    validate_email,
    validate_single_line,
    validate_string_safe,
)

if TYPE_CHECKING:
    from medsecure.core.config import SecureConfig


@dataclass(frozen=True, slots=True)
class SenderIdentity:
    """The server's Ed25519 signing key and the verify key shipped with each package."""

    signing_key: KeyMaterial
    verify_key: KeyMaterial

    @classmethod
    def from_paths(cls, signing_pem_path: Path, verify_pem_path: Path) -> "SenderIdentity":
        try:
            return cls(
                signing_key=KeyMaterial.from_path(signing_pem_path),
                verify_key=KeyMaterial.from_path(verify_pem_path),
            )
        except (OSError, UnicodeDecodeError) as e:
            raise SenderIdentityUnavailable("Sender key files could not be read") from e

    @classmethod
    def from_config(cls, config: "SecureConfig") -> "SenderIdentity":
        sender = config.sender
        if not sender.is_configured:
            raise SenderIdentityUnavailable("Sender key paths are not configured")
        return cls.from_paths(sender.signing_pem_path, sender.verify_pem_path)

    def __repr__(self) -> str:
        return "SenderIdentity(<redacted>)"


@dataclass(frozen=True, slots=True)
class ShareResult:
    record_id: str
    recipient: str
    signature_b64: str
    package_size: int


@dataclass(frozen=True, slots=True)
class AutoSendResult:
    """Outcome of sending a fresh upload to its patient; never raised."""

    ok: bool
    to: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "to": self.to}
        return {"ok": False, "error": self.error}


def delivery_subject(record: MedicalRecord) -> str:
    return f"MedSecure: Encrypted record ({record.record_type}) for {record.patient_uid}"


class ShareService:
    """
    Seal-and-send for stored records.

    Usage:
        service = ShareService(records, store, SmtpTransport(config.mail), sender)
        result = service.share(record_id, "patient@example.org")
    """

    def __init__(
        self,
        records: RecordService,
        keys: KeyDirectory,
        transport: Transport,
        sender: Optional[SenderIdentity] = None,
        min_rsa_key_bits: int = MIN_RSA_KEY_BITS,
    ) -> None:
        self._records = records
        self._keys = keys
        self._transport = transport
        self._sender = sender
        self._sealer = PackageSealer(min_rsa_key_bits=min_rsa_key_bits)
        self._log = logging.getLogger("medsecure.share")

    @property
    def has_sender(self) -> bool:
        return self._sender is not None

    def share(
        self,
        record_id: str,
        recipient_uid_or_email: str,
        recipient_email: Optional[str] = None,
    ) -> ShareResult:
        """
        Seal a record for its recipient and deliver it.

        Raises:
            RecordNotFound, RecordFileMissing, KeyNotFound,
            ValidationError: malformed identifiers
            SenderIdentityUnavailable, ShareError: workflow failures
            CryptoFailure: sealing failed (stage only)
            TransportError: delivery failed
        """
        require_fields(
            {"recordId": record_id, "recipientUidOrEmail": recipient_uid_or_email},
            "recordId", "recipientUidOrEmail",
        )
        record_id = validate_string_safe(record_id, max_length=128, field_name="recordId")
        recipient_uid_or_email = validate_single_line(
            recipient_uid_or_email, max_length=254, field_name="recipientUidOrEmail",
        )

        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFound("Record not found")
        return self._share_record(record, recipient_uid_or_email, recipient_email)

    def _share_record(
        self,
        record: MedicalRecord,
        recipient_uid_or_email: str,
        recipient_email: Optional[str],
    ) -> ShareResult:
        content = self._records.read_content(record)

        key = self._keys.find_key(recipient_uid_or_email, KeyType.RSA)
        if key is None:
            raise KeyNotFound("Recipient RSA public key not found")

        if self._sender is None:
            raise SenderIdentityUnavailable("Sender signing identity is not configured")

        try:
            to = validate_email(recipient_email or key.email, field_name="recipientEmail")
        except ValidationError as e:
            raise ShareError("Recipient email missing or invalid") from e

        sealed = self._sealer.seal(content, key.public_key_pem, self._sender.signing_key)

        self._transport.deliver(SecureDelivery.for_record(
            record_id=record.id,
            recipient=to,
            subject=delivery_subject(record),
            package_bytes=sealed.package_bytes,
            signature_b64=sealed.signature_b64,
            sender_public_pem=self._sender.verify_key.pem,
        ))

        self._records.store.mark_encrypted(record.id, sealed.signature_b64)
        self._log.info("Shared record %s with key %s", record.id, key.id)
        return ShareResult(
            record_id=record.id,
            recipient=to,
            signature_b64=sealed.signature_b64,
            package_size=len(sealed.package_bytes),
        )

    def auto_send(self, record: MedicalRecord) -> AutoSendResult:
        """
        Send a fresh upload to its patient's published key.

        Failures are reported in the result; the upload itself stands.
        """
        try:
            result = self._share_record(record, record.patient_uid, None)
        except (ShareError, TransportError) as e:
            self._log.warning("Auto-send for record %s failed: %s", record.id, type(e).__name__)
            return AutoSendResult(ok=False, error=str(e))
        except CryptoFailure as e:
            self._log.warning("Auto-send for record %s failed: %s", record.id, e.stage.value)
            return AutoSendResult(ok=False, error=f"Sealing failed at {e.stage.value}")
        return AutoSendResult(ok=True, to=result.recipient)
