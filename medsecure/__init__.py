"""
MedSecure - Sealed Medical Record Sharing
=========================================

Sends a record to a recipient identified only by a published public key:
only the recipient can read it, and the recipient can prove who sent it.

Security Notice:
- No keys, signatures or plaintext are logged
- Fail-closed design pattern
- Open failures are indistinguishable outside the process
"""

from medsecure.core.config import SecureConfig
from medsecure.core.logging import get_secure_logger

__version__ = "0.1.0"
__author__ = "MedSecure Team"

__all__ = ["SecureConfig", "get_secure_logger", "__version__"]
