"""
Services module - Key publishing, record storage and the share workflow.
"""

from medsecure.services.errors import (
    KeyNotFound,
    RecordFileMissing,
    RecordNotFound,
    SenderIdentityUnavailable,
    ShareError,
)
from medsecure.services.keys import KeyRegistry, parse_key_type, parse_role
from medsecure.services.records import RecordService
from medsecure.services.share import (
    AutoSendResult,
    SenderIdentity,
    ShareResult,
    ShareService,
)

__all__ = [
    "AutoSendResult",
    "KeyNotFound",
    "KeyRegistry",
    "RecordFileMissing",
    "RecordNotFound",
    "RecordService",
    "SenderIdentity",
    "SenderIdentityUnavailable",
    "ShareError",
    "ShareResult",
    "ShareService",
    "parse_key_type",
    "parse_role",
]
