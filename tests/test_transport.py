"""Delivery message construction and SMTP hand-off."""

import dataclasses
import smtplib

import pytest

from medsecure.core.config import MailConfig
from medsecure.transport import SecureDelivery, SmtpTransport, TransportError


@pytest.fixture
def delivery():
    return SecureDelivery.for_record(
        record_id="42",
        recipient="patient@example.org",
        subject="MedSecure: Encrypted record (lab) for patient-1",
        package_bytes=b'{"v":1}',
        signature_b64="c2ln",
        sender_public_pem="-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----\n",
    )


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, context=None):
        self.host, self.port = host, port
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, message):
        self.sent.append(message)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


def test_attachments(delivery):
    assert [(a.filename, a.content_type) for a in delivery.attachments] == [
        ("record_42.package.json", "application/json"),
        ("record_42.signature.b64.txt", "text/plain"),
        ("sender_ed25519_public.pem", "application/x-pem-file"),
    ]
    assert "medsecure-open" in delivery.body


def test_ssl_delivery(delivery):
    transport = SmtpTransport(MailConfig(host="smtp.example.org", username="mailer"), password="pw")
    transport.deliver(delivery)

    client = FakeSMTP.instances[0]
    assert (client.host, client.port) == ("smtp.example.org", 465)
    assert client.calls == [("login", "mailer", "pw")]
    message = client.sent[0]
    assert message["To"] == "patient@example.org"
    assert message["From"] == "MedSecure <no-reply@medsecure.local>"
    names = [part.get_filename() for part in message.iter_attachments()]
    assert names == ["record_42.package.json", "record_42.signature.b64.txt", "sender_ed25519_public.pem"]
    package_part = next(message.iter_attachments())
    assert package_part.get_content() == b'{"v":1}'


def test_starttls_without_login(delivery):
    SmtpTransport(MailConfig(port=587, use_ssl=False), password="").deliver(delivery)
    assert FakeSMTP.instances[0].calls == ["starttls"]


def test_password_from_environment(monkeypatch, delivery):
    monkeypatch.setenv("MEDSECURE_SMTP_PASSWORD", "from-env")
    SmtpTransport(MailConfig(username="mailer")).deliver(delivery)
    assert FakeSMTP.instances[0].calls == [("login", "mailer", "from-env")]


def test_smtp_errors_wrapped(monkeypatch, delivery):
    def refuse(self, message):
        raise smtplib.SMTPRecipientsRefused({"patient@example.org": (550, b"no")})

    monkeypatch.setattr(FakeSMTP, "send_message", refuse)
    with pytest.raises(TransportError):
        SmtpTransport(MailConfig(), password="").deliver(delivery)


def test_connection_errors_wrapped(monkeypatch, delivery):
    def unreachable(*args, **kwargs):
        raise ConnectionRefusedError()

    monkeypatch.setattr(smtplib, "SMTP_SSL", unreachable)
    with pytest.raises(TransportError):
        SmtpTransport(MailConfig(), password="").deliver(delivery)


def test_header_injection_refused_before_connecting(delivery):
    tampered = dataclasses.replace(delivery, subject="lab\nBcc: someone@example.org")
    with pytest.raises(TransportError, match="could not be built"):
        SmtpTransport(MailConfig(), password="").deliver(tampered)
    assert FakeSMTP.instances == []
