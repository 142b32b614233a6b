"""
AES-256-GCM Authenticated Encryption
====================================

AES-256-GCM with a detached authentication tag, as carried by the
sealed-package wire format (``tag_b64`` separate from ``data_b64``).

Security Properties:
    - 256-bit key (128-bit security level)
    - 96-bit nonce (NIST recommended)
    - 128-bit authentication tag

NIST SP 800-38D Compliance:
    - GCM mode with 96-bit IV
    - Unique nonce for each encryption under same key

WARNING:
    - Never reuse (key, nonce) pairs
    - Always verify tag before using plaintext
    - Keys should be wiped from memory after use
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Final, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from medsecure.security.constants import (
    IV_LENGTH_BYTES,
    KEY_LENGTH_BYTES,
    TAG_LENGTH_BYTES,
)

AES_KEY_SIZE: Final[int] = KEY_LENGTH_BYTES
AES_NONCE_SIZE: Final[int] = IV_LENGTH_BYTES
AES_TAG_SIZE: Final[int] = TAG_LENGTH_BYTES


@dataclass(frozen=True, slots=True)
class AesGcmResult:
    """
    Immutable result of AES-GCM encryption.

    Attributes:
        ciphertext: Encrypted data without the tag
        tag: 16-byte authentication tag
        nonce: Nonce used for this encryption
    """

    ciphertext: bytes
    tag: bytes
    nonce: bytes

    def __repr__(self) -> str:
        return f"AesGcmResult(ciphertext_len={len(self.ciphertext)}, nonce_len={len(self.nonce)})"


class AesGcmCipher:
    """
    AES-256-GCM with detached tag.

    Usage:
        cipher = AesGcmCipher()
        result = cipher.encrypt(plaintext, key)
        plaintext = cipher.decrypt(result.ciphertext, result.tag, result.nonce, key)

    The caller owns the key: generate it, wrap it, and wipe it.
    """

    __slots__ = ()

    @staticmethod
    def generate_nonce() -> bytes:
        """
        Generate a cryptographically secure random nonce.

        96-bit nonces with random generation have negligible collision
        probability for up to 2^32 encryptions under same key.
        """
        return secrets.token_bytes(AES_NONCE_SIZE)

    def encrypt(
        self,
        plaintext: bytes,
        key: bytes | bytearray,
        nonce: Optional[bytes] = None,
        aad: Optional[bytes] = None,
    ) -> AesGcmResult:
        """
        Encrypt plaintext using AES-256-GCM.

        Args:
            plaintext: Data to encrypt (can be empty)
            key: 32-byte key
            nonce: 12-byte nonce; generated when omitted
            aad: Additional Authenticated Data

        Raises:
            ValueError: If key or nonce has the wrong size
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if nonce is None:
            nonce = self.generate_nonce()
        elif len(nonce) != AES_NONCE_SIZE:
            raise ValueError(f"Nonce must be exactly {AES_NONCE_SIZE} bytes")

        sealed = AESGCM(bytes(key)).encrypt(nonce, plaintext, aad)

        return AesGcmResult(
            ciphertext=sealed[:-AES_TAG_SIZE],
            tag=sealed[-AES_TAG_SIZE:],
            nonce=nonce,
        )

    def decrypt(
        self,
        ciphertext: bytes,
        tag: bytes,
        nonce: bytes,
        key: bytes | bytearray,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Decrypt and verify AES-256-GCM ciphertext.

        Raises:
            ValueError: If key, nonce or tag has the wrong size
            cryptography.exceptions.InvalidTag: If authentication fails

        Integrity is verified BEFORE any plaintext is returned.
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if len(nonce) != AES_NONCE_SIZE:
            raise ValueError(f"Nonce must be exactly {AES_NONCE_SIZE} bytes")
        if len(tag) != AES_TAG_SIZE:
            raise ValueError(f"Tag must be exactly {AES_TAG_SIZE} bytes")

        return AESGCM(bytes(key)).decrypt(nonce, ciphertext + tag, aad)
