"""
API Routes
==========

Keys, records, sharing and package verification under /api.

Security Considerations:
- No private key is ever accepted or returned over HTTP
- Open/verify failures are redacted to one generic message
- Sealing failures are reported by stage, never with key details
"""

from __future__ import annotations

import io
import logging
from typing import Any, Mapping, Optional

from flask import Blueprint, current_app, jsonify, request, send_file

from medsecure.core.crypto import (
    CryptoFailure,
    PackageFormatError,
    PackageOpener,
    SealedPackage,
    SealedPackageError,
    ValidationFailure,
    VerificationFailed,
    decode_signature,
    redact_for_boundary,
)
from medsecure.core.crypto.key_material import REASON_TOO_LARGE
from medsecure.db import DuplicateKeyError, StorageError
from medsecure.security.self_test import summarize
from medsecure.services import (
    KeyNotFound,
    RecordFileMissing,
    RecordNotFound,
    SenderIdentityUnavailable,
    ShareError,
)
from medsecure.transport import TransportError
from medsecure.utils.validators import ValidationError, require_fields

api = Blueprint("api", __name__, url_prefix="/api")

_opener = PackageOpener()
_log = logging.getLogger("medsecure.web")


def _state():
    return current_app.extensions["medsecure"]


def _request_data() -> Mapping[str, Any]:
    """JSON body when present, form fields otherwise."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form


def _text_field(data: Mapping[str, Any], name: str) -> Optional[str]:
    """A request field that must be text when present."""
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value


def _read_text_upload(field: str, limit: int) -> Optional[str]:
    """Text of an uploaded file field, or None if absent."""
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        return None
    content = upload.read(limit + 1)
    if len(content) > limit:
        raise ValidationFailure(REASON_TOO_LARGE)
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"{field} must be UTF-8 text") from e


# ============================================================
# ERROR HANDLERS
# ============================================================

@api.errorhandler(ValidationError)
def handle_validation_error(e: ValidationError):
    return jsonify({"error": str(e)}), 400


@api.errorhandler(ValidationFailure)
def handle_key_rejected(e: ValidationFailure):
    return jsonify({"error": e.reason}), 400


@api.errorhandler(DuplicateKeyError)
def handle_duplicate(e: DuplicateKeyError):
    return jsonify({"error": str(e)}), 409


@api.errorhandler(StorageError)
def handle_storage_error(e: StorageError):
    _log.error("Storage failure: %s", e)
    return jsonify({"error": "Storage unavailable"}), 503


# ============================================================
# HEALTH CHECK
# ============================================================

@api.route("/health", methods=["GET"])
def health():
    state = _state()
    self_test = summarize(state.self_test())
    return jsonify({
        "ok": self_test["passed"],
        "app": state.config.app.app_name,
        "version": state.config.app.version,
        "sharingEnabled": state.share.has_sender,
        "selfTest": self_test,
    })


@api.route("/<path:_path>", methods=["OPTIONS"])
def handle_options(_path):
    return current_app.make_response("")


# ============================================================
# PUBLIC KEYS
# ============================================================

@api.route("/keys", methods=["POST"])
def publish_key():
    state = _state()
    data = _request_data()

    pem = (_text_field(data, "publicKeyPem") or _text_field(data, "pemText") or "").strip()
    if not pem:
        pem = (_read_text_upload("pemFile", state.config.security.max_pem_upload_bytes) or "").strip()

    record = state.keys.publish(
        uid=_text_field(data, "uid"),
        email=_text_field(data, "email"),
        role=_text_field(data, "role"),
        key_type=_text_field(data, "keyType"),
        public_key_pem=pem,
    )
    status = 201 if record.created_at == record.updated_at else 200
    return jsonify(record.to_dict()), status


@api.route("/keys", methods=["GET"])
def find_keys():
    records = _state().keys.find(
        uid=request.args.get("uid"),
        email=request.args.get("email"),
        key_type=request.args.get("keyType"),
    )
    return jsonify([r.to_dict() for r in records])


@api.route("/keys/<key_id>/download", methods=["GET"])
def download_key(key_id):
    record = _state().keys.get(key_id)
    if record is None:
        return jsonify({"error": "Not found"}), 404

    return send_file(
        io.BytesIO(record.public_key_pem.encode("utf-8")),
        mimetype="application/x-pem-file",
        download_name=record.download_name,
        as_attachment=True,
    )


# ============================================================
# MEDICAL RECORDS
# ============================================================

@api.route("/records", methods=["POST"])
def upload_record():
    state = _state()
    upload = request.files.get("recordFile")
    if upload is None or not upload.filename:
        raise ValidationError("recordFile required")

    record = state.records.upload(
        patient_uid=request.form.get("patientUid"),
        uploader_email=request.form.get("uploaderEmail"),
        record_type=request.form.get("recordType"),
        note=request.form.get("note"),
        filename=upload.filename,
        content=upload.read(),
        mime_type=upload.mimetype,
    )

    body = {"record": record.to_dict()}
    if state.config.mail.auto_send_on_upload:
        body["autoSend"] = state.share.auto_send(record).to_dict()
    return jsonify(body), 201


@api.route("/records", methods=["GET"])
def list_records():
    records = _state().records.list(request.args.get("patientUid"))
    return jsonify([r.to_dict() for r in records])


@api.route("/records/<record_id>", methods=["GET"])
def get_record(record_id):
    record = _state().records.get(record_id)
    if record is None:
        return jsonify({"error": "Not found"}), 404
    return jsonify(record.to_dict())


@api.route("/records/<record_id>/download", methods=["GET"])
def download_record(record_id):
    state = _state()
    record = state.records.get(record_id)
    if record is None:
        return jsonify({"error": "Not found"}), 404
    try:
        path = state.records.path_for(record)
    except RecordFileMissing as e:
        return jsonify({"error": str(e)}), 404

    return send_file(
        path,
        mimetype=record.mime_type,
        download_name=record.original_file_name,
        as_attachment=True,
    )


# ============================================================
# SECURE SHARE
# ============================================================

@api.route("/share", methods=["POST"])
def share_record():
    data = _request_data()
    record_id = _text_field(data, "recordId")
    recipient = _text_field(data, "recipientUidOrEmail")
    recipient_email = _text_field(data, "recipientEmail")

    try:
        _state().share.share(
            record_id=record_id,
            recipient_uid_or_email=recipient,
            recipient_email=recipient_email or None,
        )
    except (RecordNotFound, RecordFileMissing, KeyNotFound) as e:
        return jsonify({"error": str(e)}), 404
    except SenderIdentityUnavailable as e:
        _log.error("Share refused: %s", e)
        return jsonify({"error": "Sender signing identity unavailable"}), 500
    except ShareError as e:
        return jsonify({"error": str(e)}), 400
    except CryptoFailure as e:
        return jsonify({
            "error": "Secure packaging failed",
            "category": e.category,
            "stage": e.stage.value,
        }), 500
    except TransportError as e:
        return jsonify({"error": str(e)}), 502

    return jsonify({"ok": True, "message": "Secure email sent", "recordId": record_id})


# ============================================================
# PACKAGE VERIFICATION
# ============================================================

@api.route("/packages/verify", methods=["POST"])
def verify_package():
    """
    Check a received package's signature and version.

    Decryption needs the recipient's private key and happens offline
    with medsecure-open; this endpoint never sees it.
    """
    state = _state()
    data = _request_data()
    limit = state.config.security.max_upload_bytes

    # JSON clients may send the package as an object rather than as text
    package_field = _read_text_upload("packageFile", limit) or data.get("package") or ""
    signature_text = _read_text_upload("signatureFile", limit) or _text_field(data, "signature") or ""
    sender_pem = (
        _read_text_upload("senderPublicKeyFile", state.config.security.max_pem_upload_bytes)
        or _text_field(data, "senderPublicPem")
        or ""
    )
    require_fields(
        {"package": package_field, "signature": signature_text, "senderPublicPem": sender_pem},
        "package", "signature", "senderPublicPem",
    )

    try:
        try:
            if isinstance(package_field, dict):
                package = SealedPackage.from_dict(package_field)
            else:
                package = SealedPackage.from_bytes(package_field)
            signature = decode_signature(signature_text)
        except PackageFormatError as e:
            raise VerificationFailed(f"Package could not be parsed: {e}") from e
        _opener.verify(package, signature, sender_pem)
    except SealedPackageError as e:
        _log.info("Package verification refused: %s", e.category)
        return jsonify({"error": redact_for_boundary(e).public_message}), 400

    return jsonify({
        "ok": True,
        "version": package.version,
        "algorithms": package.algorithms.to_dict(),
    })
