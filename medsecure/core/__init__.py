"""
Core module - Contains configuration, logging, and the sealed-package protocol.
"""

from medsecure.core.config import SecureConfig
from medsecure.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["SecureConfig", "get_secure_logger", "SecureLogFilter"]
