"""
Security module - Protocol constants and startup self-tests.

Security Considerations:
- Use only the fixed algorithm suite (AES-256-GCM, RSA-OAEP-SHA256, Ed25519)
- Follow fail-closed design principles
- No custom cryptography implementations
"""

from medsecure.security.constants import (
    PACKAGE_VERSION,
    SYMMETRIC_ALGORITHM,
    KEY_WRAP_ALGORITHM,
    SIGNATURE_ALGORITHM,
    PUBLIC_OPEN_FAILURE,
)

__all__ = [
    "PACKAGE_VERSION",
    "SYMMETRIC_ALGORITHM",
    "KEY_WRAP_ALGORITHM",
    "SIGNATURE_ALGORITHM",
    "PUBLIC_OPEN_FAILURE",
]
