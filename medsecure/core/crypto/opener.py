"""
Package Opener
==============

Recipient-side inverse of the sealer. Every step is a hard gate; a
failure aborts immediately and no partial plaintext is returned.

Open Flow:
    1. version/suite check          → UnsupportedVersion (no crypto runs)
    2. canonical re-serialization
       + Ed25519 verify             → VerificationFailed
    3. RSA-OAEP unwrap              → DecryptFailed
    4. AES-256-GCM decrypt + tag    → DecryptFailed
    5. plaintext

Verify-then-decrypt: nothing unauthenticated is ever decrypted.
Steps 3 and 4 report the same generic DecryptFailed message so the
error does not reveal which sub-step failed.
"""

from __future__ import annotations

import logging
from typing import Final

from cryptography.exceptions import InvalidSignature, InvalidTag

from medsecure.core.crypto.aes_gcm import AesGcmCipher, AES_KEY_SIZE
from medsecure.core.crypto.errors import (
    DecryptFailed,
    UnsupportedVersion,
    VerificationFailed,
)
from medsecure.core.crypto.key_material import (
    KeyInput,
    KeyLoadError,
    load_ed25519_public_key,
    load_rsa_private_key,
)
from medsecure.core.crypto.package import (
    PackageFormatError,
    SealedPackage,
    decode_signature,
)
from medsecure.core.crypto.sealer import oaep_sha256
from medsecure.core.memory import ZeroizeContext

_DECRYPT_FAILED: Final[str] = "Package could not be decrypted"


class PackageOpener:
    """
    Verifies and decrypts sealed packages.

    Usage:
        opener = PackageOpener()
        plaintext = opener.open(package, signature, sender_pub_pem, recipient_priv_pem)
    """

    __slots__ = ("_aes", "_log")

    def __init__(self) -> None:
        self._aes = AesGcmCipher()
        self._log = logging.getLogger("medsecure.opener")

    def check_supported(self, package: SealedPackage) -> None:
        """Reject unknown version/suite combinations outright."""
        if not package.is_supported:
            self._log.warning("Rejected package with unsupported version %r", package.version)
            raise UnsupportedVersion(package.version, package.algorithms)

    def verify(
        self,
        package: SealedPackage,
        signature: bytes,
        sender_public_key: KeyInput,
    ) -> None:
        """
        Check version and detached signature without decrypting.

        Raises:
            UnsupportedVersion: unknown version or suite
            VerificationFailed: bad sender key or signature mismatch
        """
        self.check_supported(package)

        try:
            verifier = load_ed25519_public_key(sender_public_key)
        except KeyLoadError as e:
            raise VerificationFailed("Sender signing key is unusable") from e

        try:
            verifier.verify(signature, package.to_bytes())
        except InvalidSignature as e:
            self._log.warning("Package signature verification failed")
            raise VerificationFailed("Signature does not match package") from e

    def open(
        self,
        package: SealedPackage,
        signature: bytes,
        sender_public_key: KeyInput,
        recipient_private_key: KeyInput,
    ) -> bytes:
        """
        Verify then decrypt a sealed package.

        Args:
            package: Parsed package
            signature: Raw detached signature bytes
            sender_public_key: Sender Ed25519 public key (PEM)
            recipient_private_key: Recipient RSA private key (PEM)

        Returns:
            The original plaintext

        Raises:
            UnsupportedVersion, VerificationFailed, DecryptFailed
        """
        self.verify(package, signature, sender_public_key)

        try:
            recipient = load_rsa_private_key(recipient_private_key)
        except KeyLoadError as e:
            raise DecryptFailed(_DECRYPT_FAILED) from e

        try:
            key = bytearray(recipient.decrypt(package.wrapped_key, oaep_sha256()))
        except ValueError as e:
            raise DecryptFailed(_DECRYPT_FAILED) from e

        with ZeroizeContext(key):
            if len(key) != AES_KEY_SIZE:
                raise DecryptFailed(_DECRYPT_FAILED)
            try:
                plaintext = self._aes.decrypt(
                    package.ciphertext,
                    package.auth_tag,
                    package.nonce,
                    key,
                )
            except (InvalidTag, ValueError) as e:
                raise DecryptFailed(_DECRYPT_FAILED) from e

        self._log.info("Opened package v%d (%d bytes)", package.version, len(plaintext))
        return plaintext

    def open_bytes(
        self,
        package_bytes: bytes | str,
        signature: bytes | str,
        sender_public_key: KeyInput,
        recipient_private_key: KeyInput,
    ) -> bytes:
        """
        Parse received artifacts, then open.

        ``signature`` may be raw bytes or the base64 text file. Bytes
        that cannot be parsed cannot be verified and are reported as
        VerificationFailed.
        """
        try:
            package = SealedPackage.from_bytes(package_bytes)
            if isinstance(signature, str):
                signature = decode_signature(signature)
        except PackageFormatError as e:
            raise VerificationFailed(f"Package could not be parsed: {e}") from e

        return self.open(package, signature, sender_public_key, recipient_private_key)


_DEFAULT_OPENER: Final[PackageOpener] = PackageOpener()


def open_package(
    package: SealedPackage,
    signature: bytes,
    sender_public_key: KeyInput,
    recipient_private_key: KeyInput,
) -> bytes:
    """Open with the shared default opener."""
    return _DEFAULT_OPENER.open(package, signature, sender_public_key, recipient_private_key)


def open_package_bytes(
    package_bytes: bytes | str,
    signature: bytes | str,
    sender_public_key: KeyInput,
    recipient_private_key: KeyInput,
) -> bytes:
    """Parse and open received artifacts with the shared default opener."""
    return _DEFAULT_OPENER.open_bytes(
        package_bytes, signature, sender_public_key, recipient_private_key
    )
