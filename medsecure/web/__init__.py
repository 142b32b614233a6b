"""
Web module - HTTP API for key publishing, record upload and secure sharing.
"""

from medsecure.web.app import AppState, create_app

__all__ = ["AppState", "create_app"]
