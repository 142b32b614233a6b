"""
MedSecure Web API
=================

Flask application factory. Wires configuration, storage, the share
workflow and the delivery transport into one app.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from flask import Flask, jsonify

from medsecure.core.config import SecureConfig
from medsecure.db import Store, open_store
from medsecure.security.self_test import CheckResult, CryptoSelfTest
from medsecure.services import KeyRegistry, RecordService, SenderIdentity, ShareService
from medsecure.transport import SmtpTransport, Transport

# Multipart framing on top of the largest accepted file
_REQUEST_OVERHEAD_BYTES = 64 * 1024

EXTENSION_KEY = "medsecure"


@dataclass
class AppState:
    """Per-app services, stored under ``app.extensions["medsecure"]``."""

    config: SecureConfig
    store: Store
    keys: KeyRegistry
    records: RecordService
    share: ShareService
    self_test_results: Optional[List[CheckResult]] = field(default=None)

    def self_test(self) -> List[CheckResult]:
        # Runs once per app, on first request for it
        if self.self_test_results is None:
            self.self_test_results = CryptoSelfTest().run_all()
        return self.self_test_results


def create_app(
    config: Optional[SecureConfig] = None,
    store: Optional[Store] = None,
    transport: Optional[Transport] = None,
    sender: Optional[SenderIdentity] = None,
) -> Flask:
    """
    Build the API application.

    Args:
        config: Configuration; loaded from the environment when omitted
        store: Key/record store; chosen from ``config.storage`` when omitted
        transport: Delivery channel; SMTP from ``config.mail`` when omitted
        sender: Signing identity; read from ``config.sender`` when omitted
            and configured, otherwise sharing answers 500
    """
    log = logging.getLogger("medsecure.web")

    if config is None:
        config = SecureConfig.get_instance()
    config.paths.upload_dir.mkdir(parents=True, exist_ok=True)

    if store is None:
        store = open_store(config)
    if transport is None:
        transport = SmtpTransport(config.mail)
    if sender is None and config.sender.is_configured:
        sender = SenderIdentity.from_config(config)
    if sender is None:
        log.warning("No sender signing identity configured; sharing is disabled")

    records = RecordService(
        store,
        config.paths.upload_dir,
        max_upload_bytes=config.security.max_upload_bytes,
    )
    state = AppState(
        config=config,
        store=store,
        keys=KeyRegistry(store, max_pem_chars=config.security.max_pem_chars),
        records=records,
        share=ShareService(
            records,
            store,
            transport,
            sender=sender,
            min_rsa_key_bits=config.security.min_rsa_key_bits,
        ),
    )

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.security.max_upload_bytes + _REQUEST_OVERHEAD_BYTES
    app.extensions[EXTENSION_KEY] = state

    from medsecure.web.routes import api

    app.register_blueprint(api)

    # CORS handler - no flask-cors library, just headers
    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = config.app.cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Max-Age"] = "3600"
        return response

    @app.errorhandler(413)
    def too_large(_error):
        return jsonify({"error": "Upload too large"}), 413

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found"}), 404

    log.info("MedSecure API ready (store=%s)", type(store).__name__)
    return app
