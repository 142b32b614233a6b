"""
Service Errors
==============

Failures of the share workflow that are not cryptographic. Sealing
failures surface as CryptoFailure and delivery failures as
TransportError; neither is wrapped here.
"""


class ShareError(Exception):
    """Base class for share workflow failures."""
    pass


class RecordNotFound(ShareError):
    pass


class RecordFileMissing(ShareError):
    """The record exists but its stored file does not."""
    pass


class KeyNotFound(ShareError):
    """No RSA key is published for the recipient."""
    pass


class SenderIdentityUnavailable(ShareError):
    """The server's Ed25519 signing identity is not configured or unreadable."""
    pass
