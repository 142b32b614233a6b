"""medsecure-open command line."""

import logging

import pytest

from medsecure.cli import main
from medsecure.core.crypto import seal_package


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def received(tmp_path, recipient_rsa, sender_ed25519):
    """The three mail attachments plus the recipient's private key, on disk."""
    result = seal_package(b"scan contents", recipient_rsa.public_pem, sender_ed25519.private_pem)
    files = {
        "package": tmp_path / "record_1.package.json",
        "signature": tmp_path / "record_1.signature.b64.txt",
        "sender": tmp_path / "sender_ed25519_public.pem",
        "recipient": tmp_path / "my_rsa_private.pem",
    }
    files["package"].write_bytes(result.package_bytes)
    files["signature"].write_text(result.signature_b64)
    files["sender"].write_text(sender_ed25519.public_pem)
    files["recipient"].write_text(recipient_rsa.private_pem)
    return files


def _open_args(files, *extra):
    return [
        "open", str(files["package"]), str(files["signature"]),
        "--sender-pub", str(files["sender"]),
        "--recipient-key", str(files["recipient"]),
        *extra,
    ]


def test_open_to_file(received, tmp_path):
    out = tmp_path / "scan.bin"
    assert main(_open_args(received, "-o", str(out))) == 0
    assert out.read_bytes() == b"scan contents"


def test_open_to_stdout(received, capsysbinary):
    assert main(_open_args(received)) == 0
    assert capsysbinary.readouterr().out == b"scan contents"


def test_failure_is_generic(received, other_ed25519, capsys):
    received["sender"].write_text(other_ed25519.public_pem)
    assert main(_open_args(received)) == 1
    assert capsys.readouterr().err.strip() == "error: could not open package"


def test_verbose_names_the_check(received, other_rsa, capsys):
    received["recipient"].write_text(other_rsa.private_pem)
    assert main(_open_args(received, "--verbose")) == 1
    assert "decrypt_failed" in capsys.readouterr().err


def test_missing_input(received, tmp_path, capsys):
    received["package"] = tmp_path / "absent.json"
    assert main(_open_args(received)) == 1
    assert "cannot read input" in capsys.readouterr().err


def test_usage_error_exits_2():
    with pytest.raises(SystemExit) as exc_info:
        main(["open"])
    assert exc_info.value.code == 2


def test_check_key(tmp_path, recipient_rsa, capsys):
    good = tmp_path / "pub.pem"
    good.write_text(recipient_rsa.public_pem)
    assert main(["check-key", str(good)]) == 0
    assert capsys.readouterr().out.strip() == "OK"

    bad = tmp_path / "priv.pem"
    bad.write_text(recipient_rsa.private_pem)
    assert main(["check-key", str(bad)]) == 1
    assert capsys.readouterr().out.strip() == "PEM must contain BEGIN/END PUBLIC KEY"
