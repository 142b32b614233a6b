"""
Key Material
============

Opaque PEM key wrapper, the public-key envelope gate, and loaders that
turn PEM text into typed ``cryptography`` key objects.

Two-tier checking:
    1. validate_public_key_pem(): cheap textual gate (non-empty,
       BEGIN/END PUBLIC KEY markers, size ceiling). Runs on untrusted
       input before any crypto library code sees it.
    2. load_*(): real structural parse, performed by the sealer/opener,
       which fail later with a more specific error.

Key material is only read here; nothing is persisted or mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from medsecure.core.crypto.errors import ValidationFailure
from medsecure.security.constants import (
    MAX_PEM_CHARS,
    PEM_PUBLIC_BEGIN,
    PEM_PUBLIC_END,
)

REASON_EMPTY: Final[str] = "Empty PEM"
REASON_MARKERS: Final[str] = "PEM must contain BEGIN/END PUBLIC KEY"
REASON_TOO_LARGE: Final[str] = "PEM too large"


class KeyLoadError(ValueError):
    """Raised when PEM text does not hold a usable key of the expected type."""
    pass


@dataclass(frozen=True, slots=True)
class KeyMaterial:
    """
    Immutable PEM-encoded key.

    The representation never includes key content.
    """

    pem: str

    @classmethod
    def from_pem(cls, pem: Union[str, bytes]) -> "KeyMaterial":
        if isinstance(pem, bytes):
            pem = pem.decode("utf-8")
        return cls(pem=pem)

    @classmethod
    def from_path(cls, path: Path | str) -> "KeyMaterial":
        return cls(pem=Path(path).read_text(encoding="utf-8"))

    def as_bytes(self) -> bytes:
        return self.pem.strip().encode("utf-8")

    def __repr__(self) -> str:
        return f"KeyMaterial(chars={len(self.pem)})"


KeyInput = Union[KeyMaterial, str, bytes]


def as_key_material(value: KeyInput) -> KeyMaterial:
    """Accept KeyMaterial or raw PEM text/bytes."""
    if isinstance(value, KeyMaterial):
        return value
    return KeyMaterial.from_pem(value)


@dataclass(frozen=True, slots=True)
class KeyCheck:
    """Outcome of the envelope gate: accepted, or rejected with a reason."""

    ok: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


Accepted: Final[KeyCheck] = KeyCheck(ok=True)


def Rejected(reason: str) -> KeyCheck:
    return KeyCheck(ok=False, reason=reason)


def validate_public_key_pem(
    pem: Optional[str],
    max_chars: int = MAX_PEM_CHARS,
) -> KeyCheck:
    """
    Check that text looks like a PEM public key.

    Checks, in order:
        1. non-empty after trimming
        2. both BEGIN/END PUBLIC KEY markers present
        3. trimmed length at most ``max_chars``

    Key structure is not parsed here.
    """
    if not pem:
        return Rejected(REASON_EMPTY)

    text = pem.strip()
    if not text:
        return Rejected(REASON_EMPTY)

    if PEM_PUBLIC_BEGIN not in text or PEM_PUBLIC_END not in text:
        return Rejected(REASON_MARKERS)

    if len(text) > max_chars:
        return Rejected(REASON_TOO_LARGE)

    return Accepted


def require_public_key_pem(
    pem: Optional[str],
    max_chars: int = MAX_PEM_CHARS,
) -> KeyMaterial:
    """
    Gate a public key PEM and wrap it.

    Raises:
        ValidationFailure: with the human-readable rejection reason
    """
    check = validate_public_key_pem(pem, max_chars=max_chars)
    if not check.ok:
        raise ValidationFailure(check.reason or REASON_EMPTY)
    return KeyMaterial(pem=pem.strip())


def _load_public(material: KeyInput) -> object:
    try:
        return serialization.load_pem_public_key(as_key_material(material).as_bytes())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"Unreadable public key: {e}") from e


def _load_private(material: KeyInput) -> object:
    try:
        return serialization.load_pem_private_key(
            as_key_material(material).as_bytes(),
            password=None,
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyLoadError(f"Unreadable private key: {e}") from e


def load_rsa_public_key(material: KeyInput, min_bits: int = 0) -> rsa.RSAPublicKey:
    key = _load_public(material)
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyLoadError("Public key is not an RSA key")
    if key.key_size < min_bits:
        raise KeyLoadError(f"RSA key must be at least {min_bits} bits")
    return key


def load_rsa_private_key(material: KeyInput) -> rsa.RSAPrivateKey:
    key = _load_private(material)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError("Private key is not an RSA key")
    return key


def load_ed25519_public_key(material: KeyInput) -> ed25519.Ed25519PublicKey:
    key = _load_public(material)
    if not isinstance(key, ed25519.Ed25519PublicKey):
        raise KeyLoadError("Public key is not an Ed25519 key")
    return key


def load_ed25519_private_key(material: KeyInput) -> ed25519.Ed25519PrivateKey:
    key = _load_private(material)
    if not isinstance(key, ed25519.Ed25519PrivateKey):
        raise KeyLoadError("Private key is not an Ed25519 key")
    return key
