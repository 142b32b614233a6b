"""
MedSecure Cryptographic Core
============================

The sealed-package protocol: hybrid encryption plus detached signature.

Architecture:
    1. AES-256-GCM: payload encryption with a one-time key
    2. RSA-OAEP-SHA256: wrap of the one-time key for the recipient
    3. Ed25519: detached signature over the canonical package bytes

Security Properties:
    - All payload encryption is authenticated (AEAD)
    - Verify-then-decrypt on the opening side
    - Unknown versions are rejected, never decoded best-effort
    - Open failures are collapsed to one message at the boundary

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from medsecure.core.crypto.aes_gcm import AesGcmCipher
from medsecure.core.crypto.errors import (
    CryptoFailure,
    DecryptFailed,
    PackageOpenError,
    SealStage,
    SealedPackageError,
    UnsupportedVersion,
    ValidationFailure,
    VerificationFailed,
    redact_for_boundary,
)
from medsecure.core.crypto.key_material import (
    KeyCheck,
    KeyMaterial,
    require_public_key_pem,
    validate_public_key_pem,
)
from medsecure.core.crypto.package import (
    AlgorithmSuite,
    PackageFormatError,
    SealedPackage,
    decode_signature,
    encode_signature,
)
from medsecure.core.crypto.sealer import PackageSealer, SealResult, seal_package
from medsecure.core.crypto.opener import PackageOpener, open_package, open_package_bytes

__all__ = [
    "AesGcmCipher",
    "AlgorithmSuite",
    "CryptoFailure",
    "DecryptFailed",
    "KeyCheck",
    "KeyMaterial",
    "PackageFormatError",
    "PackageOpenError",
    "PackageOpener",
    "PackageSealer",
    "SealResult",
    "SealStage",
    "SealedPackage",
    "SealedPackageError",
    "UnsupportedVersion",
    "ValidationFailure",
    "VerificationFailed",
    "decode_signature",
    "encode_signature",
    "open_package",
    "open_package_bytes",
    "redact_for_boundary",
    "require_public_key_pem",
    "seal_package",
    "validate_public_key_pem",
]
