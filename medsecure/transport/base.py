"""
Delivery Transport
==================

Ships the three artifacts a recipient needs (sealed package, detached
signature, sender verify key) over some channel. Delivery failures are
the transport's concern and surface as TransportError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List


class TransportError(Exception):
    """Raised when a delivery could not be handed off."""
    pass


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str

    def __repr__(self) -> str:
        return f"Attachment({self.filename!r}, {len(self.content)} bytes)"


@dataclass(frozen=True)
class SecureDelivery:
    """One outbound message carrying a sealed package."""

    recipient: str
    subject: str
    body: str
    attachments: List[Attachment] = field(default_factory=list)

    @classmethod
    def for_record(
        cls,
        record_id: str,
        recipient: str,
        subject: str,
        package_bytes: bytes,
        signature_b64: str,
        sender_public_pem: str,
    ) -> "SecureDelivery":
        body = (
            "Hi,\n\n"
            "Attached: encrypted package + signature + sender public key.\n"
            "To open it: verify the signature with the sender Ed25519 public key, "
            "decrypt the AES key with your RSA private key, then decrypt the file "
            "with AES-GCM (medsecure-open does all three).\n\n"
            "MedSecure"
        )
        return cls(
            recipient=recipient,
            subject=subject,
            body=body,
            attachments=[
                Attachment(f"record_{record_id}.package.json", package_bytes, "application/json"),
                Attachment(f"record_{record_id}.signature.b64.txt", signature_b64.encode("ascii"), "text/plain"),
                Attachment("sender_ed25519_public.pem", sender_public_pem.encode("utf-8"), "application/x-pem-file"),
            ],
        )


class Transport(ABC):
    """Channel that hands a SecureDelivery to its recipient."""

    @abstractmethod
    def deliver(self, delivery: SecureDelivery) -> None:
        """
        Send one delivery.

        Raises:
            TransportError: if the channel refused or failed
        """
