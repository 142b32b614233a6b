"""
SQLite Store
============

Local single-file backend for keys and records.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Final, List, Optional

from medsecure.db.base import DuplicateKeyError, Store
from medsecure.db.models import (
    KeyType,
    MedicalRecord,
    NewRecord,
    PublicKeyRecord,
    Role,
)


class SqliteStore(Store):
    """Keys and record metadata in one SQLite database."""

    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS public_keys (
        id TEXT PRIMARY KEY,
        uid TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL,
        role TEXT NOT NULL,
        key_type TEXT NOT NULL,
        public_key_pem TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (email, key_type)
    );
    CREATE TABLE IF NOT EXISTS medical_records (
        id TEXT PRIMARY KEY,
        patient_uid TEXT NOT NULL,
        uploader_email TEXT NOT NULL,
        record_type TEXT NOT NULL,
        note TEXT NOT NULL DEFAULT '',
        original_file_name TEXT NOT NULL,
        stored_file_name TEXT NOT NULL,
        mime_type TEXT NOT NULL,
        size_bytes INTEGER NOT NULL,
        is_encrypted INTEGER NOT NULL DEFAULT 0,
        signature_b64 TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_records_patient ON medical_records(patient_uid);
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self.initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize_db(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.executescript(self._SCHEMA)
            conn.commit()

    # Keys

    def upsert_key(
        self,
        uid: str,
        email: str,
        role: Role,
        key_type: KeyType,
        public_key_pem: str,
    ) -> PublicKeyRecord:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO public_keys
                    (id, uid, email, role, key_type, public_key_pem, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(uid) DO UPDATE SET
                        email = excluded.email,
                        role = excluded.role,
                        key_type = excluded.key_type,
                        public_key_pem = excluded.public_key_pem,
                        updated_at = excluded.updated_at
                """, (str(uuid.uuid4()), uid, email, role.value, key_type.value,
                      public_key_pem, now, now))
                conn.commit()
                row = conn.execute("SELECT * FROM public_keys WHERE uid = ?", (uid,)).fetchone()
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError("Duplicate uid or (email,keyType)") from e

        return PublicKeyRecord.from_row(row)

    def find_keys(
        self,
        uid: Optional[str] = None,
        email: Optional[str] = None,
        key_type: Optional[KeyType] = None,
    ) -> List[PublicKeyRecord]:
        clauses, params = [], []
        if uid:
            clauses.append("uid = ?")
            params.append(uid)
        if email:
            clauses.append("email = ?")
            params.append(email.lower())
        if key_type:
            clauses.append("key_type = ?")
            params.append(key_type.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM public_keys {where} ORDER BY created_at DESC",
                params,
            ).fetchall()

        return [PublicKeyRecord.from_row(row) for row in rows]

    def get_key(self, key_id: str) -> Optional[PublicKeyRecord]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM public_keys WHERE id = ?", (key_id,)).fetchone()
        return PublicKeyRecord.from_row(row) if row else None

    # Records

    def add_record(self, record: NewRecord) -> MedicalRecord:
        record_id = record.id or str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO medical_records
                (id, patient_uid, uploader_email, record_type, note, original_file_name,
                 stored_file_name, mime_type, size_bytes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (record_id, record.patient_uid, record.uploader_email, record.record_type,
                  record.note, record.original_file_name, record.stored_file_name,
                  record.mime_type, record.size_bytes, now, now))
            conn.commit()

        return self.get_record(record_id)

    def get_record(self, record_id: str) -> Optional[MedicalRecord]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM medical_records WHERE id = ?", (record_id,)).fetchone()
        return MedicalRecord.from_row(row) if row else None

    def list_records(self, patient_uid: str) -> List[MedicalRecord]:
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM medical_records
                WHERE patient_uid = ?
                ORDER BY created_at DESC
            """, (patient_uid,)).fetchall()
        return [MedicalRecord.from_row(row) for row in rows]

    def mark_encrypted(self, record_id: str, signature_b64: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._get_connection() as conn:
            conn.execute("""
                UPDATE medical_records
                SET is_encrypted = 1, signature_b64 = ?, updated_at = ?
                WHERE id = ?
            """, (signature_b64, now, record_id))
            conn.commit()
