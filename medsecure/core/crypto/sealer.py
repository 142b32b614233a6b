"""
Package Sealer
==============

Hybrid encryption-and-signing of a byte payload for one recipient.

Seal Flow:
    plaintext
        ↓ AES-256-GCM (fresh 256-bit key, fresh 96-bit nonce, no AAD)
    ciphertext + tag
        ↓ RSA-OAEP-SHA256 wrap of the one-time key (recipient public key)
    SealedPackage → canonical bytes
        ↓ Ed25519 sign (sender private key)
    (package, detached signature)

Security Properties:
    - Key and nonce come from the OS CSPRNG, never from input
    - OAEP only; PKCS#1 v1.5 padding is never offered
    - The signature covers the canonical package bytes, not the plaintext
    - Ed25519 needs no per-signature randomness or hash choice
    - The one-time key is wiped once wrapping completes or encryption fails
    - Keys are only read; the signing key is never stored or logged

The sealer holds no per-call state and can be shared between threads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from medsecure.core.crypto.aes_gcm import AesGcmCipher, AES_KEY_SIZE
from medsecure.core.crypto.errors import CryptoFailure, SealStage
from medsecure.core.crypto.key_material import (
    KeyInput,
    KeyLoadError,
    load_ed25519_private_key,
    load_rsa_public_key,
)
from medsecure.core.crypto.package import (
    SUITE_V1,
    SealedPackage,
    encode_signature,
)
from medsecure.core.memory import ZeroizeContext, random_buffer
from medsecure.security.constants import MIN_RSA_KEY_BITS, PACKAGE_VERSION


def oaep_sha256() -> padding.OAEP:
    """RSA-OAEP with SHA-256 for both the digest and MGF1, empty label."""
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


@dataclass(frozen=True, slots=True)
class SealResult:
    """
    Output of one seal operation.

    Attributes:
        package: The sealed package record
        package_bytes: Canonical bytes the signature covers
        signature: Raw Ed25519 signature bytes
    """

    package: SealedPackage
    package_bytes: bytes
    signature: bytes

    @property
    def signature_b64(self) -> str:
        return encode_signature(self.signature)

    def __repr__(self) -> str:
        return f"SealResult({self.package!r}, sig_len={len(self.signature)})"


class PackageSealer:
    """
    Seals payloads into signed, recipient-encrypted packages.

    Usage:
        sealer = PackageSealer()
        result = sealer.seal(file_bytes, recipient_rsa_pub_pem, sender_ed25519_priv_pem)
        deliver(result.package_bytes, result.signature_b64)
    """

    __slots__ = ("_aes", "_min_rsa_key_bits", "_log")

    def __init__(self, min_rsa_key_bits: int = MIN_RSA_KEY_BITS) -> None:
        self._aes = AesGcmCipher()
        self._min_rsa_key_bits = min_rsa_key_bits
        self._log = logging.getLogger("medsecure.sealer")

    def seal(
        self,
        plaintext: bytes,
        recipient_public_key: KeyInput,
        sender_signing_key: KeyInput,
    ) -> SealResult:
        """
        Encrypt ``plaintext`` for the recipient and sign the package.

        Args:
            plaintext: Payload bytes (may be empty)
            recipient_public_key: Recipient RSA public key (PEM)
            sender_signing_key: Sender Ed25519 private key (PEM)

        Returns:
            SealResult with package, canonical bytes and signature

        Raises:
            CryptoFailure: naming the stage that failed
        """
        try:
            recipient = load_rsa_public_key(
                recipient_public_key, min_bits=self._min_rsa_key_bits
            )
        except KeyLoadError as e:
            raise CryptoFailure(SealStage.KEY_WRAP, str(e)) from e

        try:
            signer = load_ed25519_private_key(sender_signing_key)
        except KeyLoadError as e:
            raise CryptoFailure(SealStage.SIGNING, str(e)) from e

        try:
            key = random_buffer(AES_KEY_SIZE)
            nonce = self._aes.generate_nonce()
        except (OSError, NotImplementedError) as e:
            raise CryptoFailure(SealStage.KEY_GENERATION, "secure random source failed") from e

        with ZeroizeContext(key):
            try:
                encrypted = self._aes.encrypt(plaintext, key, nonce=nonce)
            except (ValueError, TypeError, OverflowError) as e:
                raise CryptoFailure(SealStage.SYMMETRIC_ENCRYPTION, str(e)) from e

            try:
                wrapped_key = recipient.encrypt(bytes(key), oaep_sha256())
            except ValueError as e:
                raise CryptoFailure(SealStage.KEY_WRAP, str(e)) from e

        package = SealedPackage(
            version=PACKAGE_VERSION,
            algorithms=SUITE_V1,
            nonce=encrypted.nonce,
            auth_tag=encrypted.tag,
            wrapped_key=wrapped_key,
            ciphertext=encrypted.ciphertext,
        )
        package_bytes = package.to_bytes()

        try:
            signature = signer.sign(package_bytes)
        except ValueError as e:
            raise CryptoFailure(SealStage.SIGNING, str(e)) from e

        self._log.info(
            "Sealed package v%d (payload=%d bytes, package=%d bytes)",
            package.version, len(plaintext), len(package_bytes),
        )
        return SealResult(package=package, package_bytes=package_bytes, signature=signature)


_DEFAULT_SEALER: Final[PackageSealer] = PackageSealer()


def seal_package(
    plaintext: bytes,
    recipient_public_key: KeyInput,
    sender_signing_key: KeyInput,
) -> SealResult:
    """Seal with the default settings (2048-bit RSA minimum)."""
    return _DEFAULT_SEALER.seal(plaintext, recipient_public_key, sender_signing_key)
