"""
Security Constants
==================

Defines protocol and security constants used throughout MedSecure.
The sealed-package identifiers are part of the signed wire format and
must not change for protocol version 1.
"""

from typing import Final

# Sealed-package protocol, version 1
PACKAGE_VERSION: Final[int] = 1
SYMMETRIC_ALGORITHM: Final[str] = "AES-256-GCM"
KEY_WRAP_ALGORITHM: Final[str] = "RSA-OAEP-SHA256"
SIGNATURE_ALGORITHM: Final[str] = "Ed25519"

# Symmetric layer
KEY_LENGTH_BYTES: Final[int] = 32  # 256 bits
IV_LENGTH_BYTES: Final[int] = 12  # 96 bits for GCM
TAG_LENGTH_BYTES: Final[int] = 16  # 128 bits

# Key wrap
MIN_RSA_KEY_BITS: Final[int] = 2048

# Public key envelope
PEM_PUBLIC_BEGIN: Final[str] = "-----BEGIN PUBLIC KEY-----"
PEM_PUBLIC_END: Final[str] = "-----END PUBLIC KEY-----"
MAX_PEM_CHARS: Final[int] = 20_000

# Upload limits
MAX_UPLOAD_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
MAX_PEM_UPLOAD_BYTES: Final[int] = 50 * 1024  # 50 KB

# Message shown to any caller outside the process when opening fails
PUBLIC_OPEN_FAILURE: Final[str] = "could not open package"
