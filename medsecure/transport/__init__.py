"""
Transport module - Outbound delivery of sealed packages.
"""

from medsecure.transport.base import (
    Attachment,
    SecureDelivery,
    Transport,
    TransportError,
)
from medsecure.transport.smtp import SmtpTransport

__all__ = [
    "Attachment",
    "SecureDelivery",
    "SmtpTransport",
    "Transport",
    "TransportError",
]
