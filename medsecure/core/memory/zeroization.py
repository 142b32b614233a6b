"""
Memory Zeroization Utilities
============================

Explicit wiping of short-lived secrets (one-time package keys,
decrypted record content).

Key Concepts:
- Zeroization: overwriting a mutable buffer in place
- Guard: automatic cleanup on scope exit, normal or exceptional

WARNING:
- Python's memory model doesn't guarantee secure erasure
- Immutable ``bytes`` copies handed to a crypto backend cannot be wiped
- These are best-effort mitigations
"""

from __future__ import annotations

import ctypes
import secrets
from contextlib import contextmanager
from typing import Final, Iterator


WIPE_PASSES: Final[tuple[int, ...]] = (0x00, 0xFF, 0x00)


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Securely zero a mutable byte buffer.

    Uses ctypes.memset on bytearrays, element-wise writes on memoryviews.

    Args:
        data: Mutable byte buffer to zero
    """
    if len(data) == 0:
        return

    if isinstance(data, memoryview):
        for i in range(len(data)):
            data[i] = 0
        return

    addr = ctypes.addressof((ctypes.c_char * len(data)).from_buffer(data))
    for pattern in WIPE_PASSES:
        ctypes.memset(addr, pattern, len(data))


def random_buffer(size: int) -> bytearray:
    """Fill a fresh, wipeable buffer from the OS CSPRNG."""
    return bytearray(secrets.token_bytes(size))


@contextmanager
def ZeroizeContext(*buffers: bytearray) -> Iterator[None]:
    """
    Context manager that zeroizes buffers on exit.

    Always zeroizes, whether exit is normal or exceptional.

    Usage:
        key = random_buffer(32)
        with ZeroizeContext(key):
            wrap(key)
        # key is now all zeros
    """
    try:
        yield
    finally:
        for buf in buffers:
            secure_zero(buf)
