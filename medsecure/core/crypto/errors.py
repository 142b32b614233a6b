"""
Sealed-Package Error Taxonomy
=============================

Five failure categories, distinguishable inside the process:

    ValidationFailure   malformed/oversized key material (before any crypto)
    UnsupportedVersion  unknown protocol version or algorithm suite
    VerificationFailed  detached signature does not match
    DecryptFailed       key unwrap or AEAD decryption failed
    CryptoFailure       a primitive failed while sealing (names the stage)

VerificationFailed and DecryptFailed share the PackageOpenError base.
Anything crossing a network or process boundary must pass through
redact_for_boundary(), which collapses both into one generic
"could not open package" error so callers cannot use the distinction
as an oracle.

No failure here is transient; nothing in the core retries.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from medsecure.security.constants import PUBLIC_OPEN_FAILURE


class SealedPackageError(Exception):
    """Base class for every sealed-package failure."""

    category: str = "error"

    @property
    def public_message(self) -> str:
        """Message that is safe to return to an external caller."""
        return str(self)


class ValidationFailure(SealedPackageError):
    """Key material rejected by the textual gate."""

    category = "validation"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnsupportedVersion(SealedPackageError):
    """Package declares a version/algorithm suite this build does not know."""

    category = "unsupported_version"

    def __init__(self, version: object, algorithms: Optional[object] = None) -> None:
        super().__init__(f"Unsupported package version: {version!r}")
        self.version = version
        self.algorithms = algorithms


class PackageOpenError(SealedPackageError):
    """
    Raised when a package cannot be opened.

    This is the generic error that doesn't reveal the cause
    (to prevent information leakage). Subclasses carry the real
    reason for internal diagnostics and tests.
    """

    category = "open_failed"

    def __init__(self, detail: str = PUBLIC_OPEN_FAILURE) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def public_message(self) -> str:
        return PUBLIC_OPEN_FAILURE


class VerificationFailed(PackageOpenError):
    """Detached signature did not verify against the sender's key."""

    category = "verification_failed"


class DecryptFailed(PackageOpenError):
    """Key unwrap or symmetric decryption failed."""

    category = "decrypt_failed"


class SealStage(Enum):
    """Stage of the seal pipeline that reported a failure."""

    KEY_GENERATION = "key-generation"
    SYMMETRIC_ENCRYPTION = "symmetric-encryption"
    KEY_WRAP = "key-wrap"
    SIGNING = "signing"


class CryptoFailure(SealedPackageError):
    """An underlying primitive failed while sealing."""

    category = "crypto_failure"

    def __init__(self, stage: SealStage, detail: str = "") -> None:
        message = f"Sealing failed at {stage.value}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.stage = stage
        self.detail = detail


def redact_for_boundary(exc: SealedPackageError) -> SealedPackageError:
    """
    Narrow an error before it leaves the process.

    VerificationFailed and DecryptFailed both become a bare
    PackageOpenError with the generic message. Other categories
    pass through unchanged.
    """
    if isinstance(exc, PackageOpenError):
        return PackageOpenError()
    return exc
