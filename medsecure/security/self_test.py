"""
Cryptographic Self-Tests
========================

Round-trip checks run once at startup and reported by the health
endpoint. A failing check means the installed crypto backend cannot
be trusted to seal or open packages.

Checks:
    - AES-256-GCM encrypt/decrypt round trip
    - Full seal/open round trip with ephemeral RSA and Ed25519 keys
    - A tampered package is refused
    - The CSPRNG produces distinct output
"""

from __future__ import annotations

import dataclasses
import logging
import secrets
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa


class CheckStatus(Enum):
    """Result of a self-test check."""
    PASS = auto()
    WARN = auto()
    FAIL = auto()


@dataclass(frozen=True)
class CheckResult:
    """Individual self-test result."""
    name: str
    status: CheckStatus
    message: str

    @property
    def passed(self) -> bool:
        return self.status is not CheckStatus.FAIL

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "status": self.status.name, "message": self.message}


def _ephemeral_keys() -> tuple[str, str, str, str]:
    """Fresh (rsa_public, rsa_private, ed_public, ed_private) PEM strings."""
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    ed_key = ed25519.Ed25519PrivateKey.generate()

    def private_pem(key: object) -> str:
        return key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode("ascii")

    def public_pem(key: object) -> str:
        return key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    return public_pem(rsa_key), private_pem(rsa_key), public_pem(ed_key), private_pem(ed_key)


class CryptoSelfTest:
    """
    Round-trip self-tests over the sealed-package primitives.

    Usage:
        results = CryptoSelfTest().run_all()
        healthy = all(r.passed for r in results)
    """

    _PAYLOAD = b"MedSecure self-test payload"

    def __init__(self) -> None:
        self._log = logging.getLogger("medsecure.security")
        self._keys: Optional[tuple[str, str, str, str]] = None

    def _get_keys(self) -> tuple[str, str, str, str]:
        if self._keys is None:
            self._keys = _ephemeral_keys()
        return self._keys

    def test_aes_gcm(self) -> CheckResult:
        """AES-256-GCM round trip, then a flipped tag must be refused."""
        from medsecure.core.crypto.aes_gcm import AES_KEY_SIZE, AesGcmCipher

        name = "AES-256-GCM"
        cipher = AesGcmCipher()
        key = secrets.token_bytes(AES_KEY_SIZE)
        try:
            result = cipher.encrypt(self._PAYLOAD, key)
            decrypted = cipher.decrypt(result.ciphertext, result.tag, result.nonce, key)
        except (InvalidTag, ValueError) as e:
            return CheckResult(name, CheckStatus.FAIL, f"Self-test failed: {type(e).__name__}")
        if decrypted != self._PAYLOAD:
            return CheckResult(name, CheckStatus.FAIL, "Decryption mismatch")

        bad_tag = bytes([result.tag[0] ^ 0x01]) + result.tag[1:]
        try:
            cipher.decrypt(result.ciphertext, bad_tag, result.nonce, key)
        except InvalidTag:
            return CheckResult(name, CheckStatus.PASS, "Self-test passed")
        return CheckResult(name, CheckStatus.FAIL, "Modified tag was accepted")

    def test_seal_open(self) -> CheckResult:
        """Seal with ephemeral keys and open it again."""
        from medsecure.core.crypto import PackageOpener, PackageSealer, SealedPackageError

        name = "Seal/Open"
        rsa_pub, rsa_priv, ed_pub, ed_priv = self._get_keys()
        try:
            sealed = PackageSealer().seal(self._PAYLOAD, rsa_pub, ed_priv)
            opened = PackageOpener().open(sealed.package, sealed.signature, ed_pub, rsa_priv)
        except SealedPackageError as e:
            return CheckResult(name, CheckStatus.FAIL, f"Self-test failed: {e.category}")
        if opened != self._PAYLOAD:
            return CheckResult(name, CheckStatus.FAIL, "Round trip mismatch")
        return CheckResult(name, CheckStatus.PASS, "Self-test passed")

    def test_tamper_rejected(self) -> CheckResult:
        """A package altered after signing must fail verification."""
        from medsecure.core.crypto import PackageOpener, PackageSealer, SealedPackageError, VerificationFailed

        name = "Tamper detection"
        rsa_pub, rsa_priv, ed_pub, ed_priv = self._get_keys()
        try:
            sealed = PackageSealer().seal(self._PAYLOAD, rsa_pub, ed_priv)
        except SealedPackageError as e:
            return CheckResult(name, CheckStatus.FAIL, f"Self-test failed: {e.category}")

        flipped = bytes([sealed.package.ciphertext[0] ^ 0x01]) + sealed.package.ciphertext[1:]
        tampered = dataclasses.replace(sealed.package, ciphertext=flipped)
        try:
            PackageOpener().open(tampered, sealed.signature, ed_pub, rsa_priv)
        except VerificationFailed:
            return CheckResult(name, CheckStatus.PASS, "Self-test passed")
        except SealedPackageError as e:
            return CheckResult(name, CheckStatus.FAIL, f"Unexpected failure: {e.category}")
        return CheckResult(name, CheckStatus.FAIL, "Tampered package was opened")

    @staticmethod
    def test_random_generator() -> CheckResult:
        """Two draws from the CSPRNG must differ."""
        random1 = secrets.token_bytes(32)
        random2 = secrets.token_bytes(32)

        if random1 == random2:
            return CheckResult("CSPRNG", CheckStatus.FAIL, "Random bytes not unique")

        unique_bytes = len(set(random1))
        if unique_bytes < 20:
            return CheckResult("CSPRNG", CheckStatus.WARN, f"Low entropy: {unique_bytes}/32 unique")

        return CheckResult("CSPRNG", CheckStatus.PASS, "Self-test passed")

    def run_all(self) -> List[CheckResult]:
        """Run every check and log each outcome."""
        checks: List[Callable[[], CheckResult]] = [
            self.test_random_generator,
            self.test_aes_gcm,
            self.test_seal_open,
            self.test_tamper_rejected,
        ]
        results = [check() for check in checks]

        for result in results:
            level = {
                CheckStatus.PASS: logging.INFO,
                CheckStatus.WARN: logging.WARNING,
                CheckStatus.FAIL: logging.ERROR,
            }[result.status]
            self._log.log(level, "[%s] %s: %s", result.status.name, result.name, result.message)

        failures = [r for r in results if r.status is CheckStatus.FAIL]
        if failures:
            self._log.critical("Crypto self-test failed: %d check(s)", len(failures))
        return results


def summarize(results: List[CheckResult]) -> dict:
    """Health-endpoint view of a self-test run."""
    return {
        "passed": all(r.passed for r in results),
        "checks": [r.to_dict() for r in results],
    }
