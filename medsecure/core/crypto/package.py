"""
Sealed Package Wire Format
==========================

The SealedPackage record and its canonical byte form. The detached
signature is computed over exactly these bytes, so the layout is fixed:

    {"v":1,"alg":{"file":"AES-256-GCM","keywrap":"RSA-OAEP-SHA256","sig":"Ed25519"},
     "iv_b64":"...","tag_b64":"...","enc_key_b64":"...","data_b64":"..."}

Rules (version 1):
    - compact JSON, no whitespace, ASCII, UTF-8 encoded
    - keys in the order above, nested ``alg`` keys likewise
    - binary fields as standard padded base64

Any other key order or spacing produces different bytes and will not
verify. Readers re-serialize with to_bytes() before verifying.

Versions:
    Any integer ``v`` parses, so the opener can refuse it as an
    unsupported version. A ``v`` that is not an integer ("2", true, 1.0)
    is a format error: the bytes were not produced by any version of
    this protocol, and the opener reports them as failing verification.
"""

from __future__ import annotations

import binascii
import json
from base64 import b64decode, b64encode
from dataclasses import dataclass, replace
from typing import Final, Mapping

from medsecure.security.constants import (
    KEY_WRAP_ALGORITHM,
    PACKAGE_VERSION,
    SIGNATURE_ALGORITHM,
    SYMMETRIC_ALGORITHM,
)

_REQUIRED_FIELDS: Final[tuple[str, ...]] = (
    "v", "alg", "iv_b64", "tag_b64", "enc_key_b64", "data_b64",
)
_ALG_FIELDS: Final[tuple[str, ...]] = ("file", "keywrap", "sig")


class PackageFormatError(ValueError):
    """Raised when package or signature bytes cannot be parsed."""
    pass


@dataclass(frozen=True, slots=True)
class AlgorithmSuite:
    """Symmetric cipher, key-wrap scheme and signature scheme for one version."""

    file: str
    keywrap: str
    sig: str

    def to_dict(self) -> dict[str, str]:
        return {"file": self.file, "keywrap": self.keywrap, "sig": self.sig}


SUITE_V1: Final[AlgorithmSuite] = AlgorithmSuite(
    file=SYMMETRIC_ALGORITHM,
    keywrap=KEY_WRAP_ALGORITHM,
    sig=SIGNATURE_ALGORITHM,
)

# A version implies exactly one suite; nothing is negotiated.
SUPPORTED_SUITES: Final[Mapping[int, AlgorithmSuite]] = {PACKAGE_VERSION: SUITE_V1}


def _b64(data: bytes) -> str:
    return b64encode(data).decode("ascii")


def _unb64(value: object, field_name: str) -> bytes:
    if not isinstance(value, str):
        raise PackageFormatError(f"{field_name} must be a base64 string")
    try:
        return b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PackageFormatError(f"{field_name} is not valid base64") from e


@dataclass(frozen=True, slots=True)
class SealedPackage:
    """
    Immutable sealed package.

    Attributes:
        version: Protocol version tag
        algorithms: Algorithm suite declared by the package
        nonce: AES-GCM nonce, 12 bytes
        auth_tag: AES-GCM tag, 16 bytes
        wrapped_key: One-time AES key under the recipient's RSA key
        ciphertext: Encrypted payload
    """

    version: int
    algorithms: AlgorithmSuite
    nonce: bytes
    auth_tag: bytes
    wrapped_key: bytes
    ciphertext: bytes

    @property
    def is_supported(self) -> bool:
        """True when this build knows the declared version and suite."""
        return SUPPORTED_SUITES.get(self.version) == self.algorithms

    def to_dict(self) -> dict:
        """Field mapping in canonical order."""
        return {
            "v": self.version,
            "alg": self.algorithms.to_dict(),
            "iv_b64": _b64(self.nonce),
            "tag_b64": _b64(self.auth_tag),
            "enc_key_b64": _b64(self.wrapped_key),
            "data_b64": _b64(self.ciphertext),
        }

    def to_bytes(self) -> bytes:
        """Canonical serialization; the signed bytes."""
        return json.dumps(
            self.to_dict(),
            separators=(",", ":"),
            ensure_ascii=True,
        ).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes | str) -> "SealedPackage":
        """
        Parse package bytes.

        Unknown versions parse successfully so the opener can reject
        them explicitly.

        Raises:
            PackageFormatError: If data is malformed
        """
        if not isinstance(data, (bytes, bytearray, str)):
            raise PackageFormatError("Package must be JSON text")
        try:
            raw = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PackageFormatError("Package is not valid JSON") from e
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: object) -> "SealedPackage":
        """
        Build a package from already-decoded JSON.

        Raises:
            PackageFormatError: If fields are missing or mistyped
        """
        if not isinstance(raw, dict):
            raise PackageFormatError("Package must be a JSON object")

        missing = [name for name in _REQUIRED_FIELDS if name not in raw]
        if missing:
            raise PackageFormatError(f"Missing fields in package: {missing}")

        version = raw["v"]
        if isinstance(version, bool) or not isinstance(version, int):
            raise PackageFormatError("Package version must be an integer")

        alg = raw["alg"]
        if not isinstance(alg, dict) or any(
            not isinstance(alg.get(name), str) for name in _ALG_FIELDS
        ):
            raise PackageFormatError("Package algorithm suite is malformed")

        return cls(
            version=version,
            algorithms=AlgorithmSuite(
                file=alg["file"],
                keywrap=alg["keywrap"],
                sig=alg["sig"],
            ),
            nonce=_unb64(raw["iv_b64"], "iv_b64"),
            auth_tag=_unb64(raw["tag_b64"], "tag_b64"),
            wrapped_key=_unb64(raw["enc_key_b64"], "enc_key_b64"),
            ciphertext=_unb64(raw["data_b64"], "data_b64"),
        )

    def with_version(self, version: int) -> "SealedPackage":
        return replace(self, version=version)

    def __repr__(self) -> str:
        return (
            f"SealedPackage(v{self.version}, "
            f"ct_len={len(self.ciphertext)}, "
            f"wrapped_key_len={len(self.wrapped_key)})"
        )


def encode_signature(signature: bytes) -> str:
    """Base64 text form used when the signature travels as a file."""
    return _b64(signature)


def decode_signature(text: str | bytes) -> bytes:
    """
    Parse a base64 signature file.

    Raises:
        PackageFormatError: If the text is not base64
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("ascii")
        except UnicodeDecodeError as e:
            raise PackageFormatError("Signature is not valid base64") from e
    if not isinstance(text, str):
        raise PackageFormatError("Signature must be base64 text")
    return _unb64(text.strip(), "signature")
