"""Canonical package encoding and strict parsing."""

import json
from base64 import b64encode

import pytest

from medsecure.core.crypto import (
    AlgorithmSuite,
    PackageFormatError,
    SealedPackage,
    decode_signature,
    encode_signature,
)
from medsecure.core.crypto.package import SUITE_V1


def _package(**overrides) -> SealedPackage:
    fields = dict(
        version=1,
        algorithms=SUITE_V1,
        nonce=b"\x01" * 12,
        auth_tag=b"\x02" * 16,
        wrapped_key=b"\x03" * 256,
        ciphertext=b"hello",
    )
    fields.update(overrides)
    return SealedPackage(**fields)


def test_canonical_bytes_layout():
    data = _package().to_bytes()
    expected = (
        '{"v":1,"alg":{"file":"AES-256-GCM","keywrap":"RSA-OAEP-SHA256","sig":"Ed25519"},'
        f'"iv_b64":"{b64encode(bytes([1]) * 12).decode()}",'
        f'"tag_b64":"{b64encode(bytes([2]) * 16).decode()}",'
        f'"enc_key_b64":"{b64encode(bytes([3]) * 256).decode()}",'
        f'"data_b64":"{b64encode(b"hello").decode()}"}}'
    )
    assert data == expected.encode("ascii")


def test_parse_round_trip_is_byte_stable():
    original = _package()
    assert SealedPackage.from_bytes(original.to_bytes()).to_bytes() == original.to_bytes()


def test_parse_accepts_text_and_other_key_order():
    raw = _package().to_dict()
    reordered = json.dumps(dict(reversed(list(raw.items()))), indent=2)
    assert SealedPackage.from_bytes(reordered) == _package()


def test_empty_ciphertext():
    package = _package(ciphertext=b"")
    assert b'"data_b64":""' in package.to_bytes()
    assert SealedPackage.from_bytes(package.to_bytes()).ciphertext == b""


def test_unknown_version_still_parses():
    raw = _package().to_dict()
    raw["v"] = 2
    package = SealedPackage.from_bytes(json.dumps(raw))
    assert package.version == 2
    assert not package.is_supported


def test_unknown_suite_is_unsupported():
    package = _package(algorithms=AlgorithmSuite("AES-128-CBC", "RSA-PKCS1", "Ed25519"))
    assert not package.is_supported
    assert _package().is_supported


@pytest.mark.parametrize("data", [
    b"",
    b"not json",
    b"[1, 2, 3]",
    b"\xff\xfe\x00",
])
def test_malformed_bytes(data):
    with pytest.raises(PackageFormatError):
        SealedPackage.from_bytes(data)


@pytest.mark.parametrize("field", ["v", "alg", "iv_b64", "tag_b64", "enc_key_b64", "data_b64"])
def test_missing_field(field):
    raw = _package().to_dict()
    del raw[field]
    with pytest.raises(PackageFormatError):
        SealedPackage.from_bytes(json.dumps(raw))


@pytest.mark.parametrize("version", ["1", 1.0, True, None])
def test_version_must_be_integer(version):
    raw = _package().to_dict()
    raw["v"] = version
    with pytest.raises(PackageFormatError):
        SealedPackage.from_bytes(json.dumps(raw))


@pytest.mark.parametrize("value", ["not base64!", 42, "QUJD*"])
def test_invalid_base64(value):
    raw = _package().to_dict()
    raw["data_b64"] = value
    with pytest.raises(PackageFormatError):
        SealedPackage.from_bytes(json.dumps(raw))


def test_malformed_suite():
    raw = _package().to_dict()
    raw["alg"] = {"file": "AES-256-GCM"}
    with pytest.raises(PackageFormatError):
        SealedPackage.from_bytes(json.dumps(raw))


def test_signature_text_form():
    signature = bytes(range(64))
    text = encode_signature(signature)
    assert decode_signature(text) == signature
    assert decode_signature(f"{text}\n".encode("ascii")) == signature
    with pytest.raises(PackageFormatError):
        decode_signature("%%%")


def test_repr_has_no_payload():
    assert "hello" not in repr(_package())
