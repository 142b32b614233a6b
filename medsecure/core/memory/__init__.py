"""
MedSecure Memory Security Module
================================

Provides best-effort wiping of one-time keys and decrypted content.

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from medsecure.core.memory.zeroization import (
    secure_zero,
    random_buffer,
    ZeroizeContext,
)

__all__ = [
    "secure_zero",
    "random_buffer",
    "ZeroizeContext",
]
