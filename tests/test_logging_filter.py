"""Secret redaction in log records."""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from medsecure.core.config import LoggingConfig, PathConfig, SecureConfig
from medsecure.core.logging import (
    SecureLogFilter,
    StructuredLogFormatter,
    configure_from,
    get_secure_logger,
)


def _record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("medsecure.test", logging.INFO, __file__, 1, msg, args, None)


def _filtered(msg, *args) -> str:
    record = _record(msg, *args)
    assert SecureLogFilter().filter(record) is True
    return record.getMessage()


def test_pem_blocks_redacted(sender_ed25519):
    text = _filtered("key: %s", sender_ed25519.private_pem)
    assert "PRIVATE KEY" not in text
    assert "[REDACTED]" in text


def test_base64_blobs_redacted():
    blob = "A1b2C3d4" * 10
    assert blob not in _filtered(f"signature={blob}")


def test_password_pairs_redacted():
    text = _filtered("login password=hunter2 ok")
    assert "hunter2" not in text


def test_ordinary_messages_untouched():
    assert _filtered("Stored record %s (%d bytes)", "rec-1", 42) == "Stored record rec-1 (42 bytes)"


def test_structured_formatter_emits_json():
    line = StructuredLogFormatter().format(_record("Shared record %s", "rec-1"))
    payload = json.loads(line)
    assert payload["message"] == "Shared record rec-1"
    assert payload["level"] == "INFO"


def test_secure_logger_writes_redacted_file(tmp_path):
    logger = get_secure_logger(
        "medsecure.test_file_logger", log_dir=tmp_path, enable_console=False,
    )
    logger.info("token=abcdef123456")
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "medsecure_test_file_logger.log").read_text()
    assert "abcdef123456" not in content
    assert "[REDACTED]" in content


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_from_applies_rotation_settings(tmp_path, restore_root_logger):
    config = SecureConfig(
        paths=PathConfig(data_dir=tmp_path, upload_dir=tmp_path / "uploads", log_dir=tmp_path / "logs"),
        logging=LoggingConfig(
            enable_console=False,
            enable_file=True,
            max_file_size_bytes=4096,
            backup_count=2,
        ),
    )
    configure_from(config)

    handlers = [h for h in restore_root_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
    assert handlers[0].maxBytes == 4096
    assert handlers[0].backupCount == 2
    assert (tmp_path / "logs" / "medsecure.log").exists()
