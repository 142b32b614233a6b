"""Shared fixtures: key pairs, temp configuration, store, transport, Flask client."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from medsecure.core.config import MailConfig, PathConfig, SecureConfig, SenderConfig
from medsecure.db import SqliteStore
from medsecure.services import SenderIdentity
from medsecure.transport import SecureDelivery, Transport, TransportError
from medsecure.web import create_app


def _private_pem(key) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")


def _public_pem(key) -> str:
    return key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@dataclass(frozen=True)
class KeyPair:
    public_pem: str
    private_pem: str


@pytest.fixture(scope="session")
def recipient_rsa() -> KeyPair:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return KeyPair(_public_pem(key), _private_pem(key))


@pytest.fixture(scope="session")
def other_rsa() -> KeyPair:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return KeyPair(_public_pem(key), _private_pem(key))


@pytest.fixture(scope="session")
def weak_rsa() -> KeyPair:
    key = rsa.generate_private_key(public_exponent=65537, key_size=1024)
    return KeyPair(_public_pem(key), _private_pem(key))


@pytest.fixture(scope="session")
def sender_ed25519() -> KeyPair:
    key = ed25519.Ed25519PrivateKey.generate()
    return KeyPair(_public_pem(key), _private_pem(key))


@pytest.fixture(scope="session")
def other_ed25519() -> KeyPair:
    key = ed25519.Ed25519PrivateKey.generate()
    return KeyPair(_public_pem(key), _private_pem(key))


@pytest.fixture
def sender_key_files(tmp_path: Path, sender_ed25519: KeyPair) -> tuple[Path, Path]:
    signing = tmp_path / "sender_ed25519_private.pem"
    verify = tmp_path / "sender_ed25519_public.pem"
    signing.write_text(sender_ed25519.private_pem)
    verify.write_text(sender_ed25519.public_pem)
    return signing, verify


def make_config(tmp_path: Path, auto_send: bool = False, **sender_paths) -> SecureConfig:
    return SecureConfig(
        paths=PathConfig(
            data_dir=tmp_path / "data",
            upload_dir=tmp_path / "data" / "uploads",
            log_dir=tmp_path / "logs",
        ),
        sender=SenderConfig(**sender_paths),
        mail=MailConfig(auto_send_on_upload=auto_send),
    )


@pytest.fixture
def config(tmp_path: Path) -> SecureConfig:
    return make_config(tmp_path)


@pytest.fixture
def store(tmp_path: Path) -> SqliteStore:
    (tmp_path / "data").mkdir(exist_ok=True)
    return SqliteStore(tmp_path / "data" / "medsecure.db")


class RecordingTransport(Transport):
    """Keeps deliveries in memory; optionally fails every call."""

    def __init__(self, fail: bool = False) -> None:
        self.deliveries: List[SecureDelivery] = []
        self.fail = fail

    def deliver(self, delivery: SecureDelivery) -> None:
        if self.fail:
            raise TransportError("Mail delivery failed")
        self.deliveries.append(delivery)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def sender(sender_ed25519: KeyPair) -> SenderIdentity:
    from medsecure.core.crypto import KeyMaterial

    return SenderIdentity(
        signing_key=KeyMaterial(sender_ed25519.private_pem),
        verify_key=KeyMaterial(sender_ed25519.public_pem),
    )


@pytest.fixture
def app(config, store, transport, sender):
    flask_app = create_app(config=config, store=store, transport=transport, sender=sender)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def config_factory(tmp_path: Path):
    def factory(auto_send: bool = False, **sender_paths) -> SecureConfig:
        return make_config(tmp_path, auto_send=auto_send, **sender_paths)
    return factory
