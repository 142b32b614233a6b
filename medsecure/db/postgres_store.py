"""
PostgreSQL Store
================

Hosted backend for keys and records (Neon or any PostgreSQL).
One short-lived connection per operation.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Final, Iterator, List, Optional

import psycopg2
import psycopg2.errors
import psycopg2.extras

from medsecure.db.base import DuplicateKeyError, StorageError, Store
from medsecure.db.models import (
    KeyType,
    MedicalRecord,
    NewRecord,
    PublicKeyRecord,
    Role,
)


class PostgresStore(Store):
    """Keys and record metadata in PostgreSQL."""

    _SCHEMA: Final[tuple[str, ...]] = (
        """
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
        """,
        """
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
            is_encrypted BOOLEAN NOT NULL DEFAULT FALSE,
            signature_b64 TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """,
        "CREATE INDEX IF NOT EXISTS idx_records_patient ON medical_records(patient_uid);",
    )

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise StorageError("database_url is not set")
        self._database_url = database_url
        self.init_db()

    @contextmanager
    def _cursor(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        try:
            conn = psycopg2.connect(
                self._database_url,
                cursor_factory=psycopg2.extras.RealDictCursor,
            )
        except psycopg2.OperationalError as e:
            raise StorageError("Database connection failed") from e
        try:
            with conn:
                with conn.cursor() as cur:
                    yield cur
        finally:
            conn.close()

    def init_db(self) -> None:
        with self._cursor() as cur:
            for statement in self._SCHEMA:
                cur.execute(statement)

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
            with self._cursor() as cur:
                cur.execute("""
                    INSERT INTO public_keys
                    (id, uid, email, role, key_type, public_key_pem, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (uid) DO UPDATE SET
                        email = EXCLUDED.email,
                        role = EXCLUDED.role,
                        key_type = EXCLUDED.key_type,
                        public_key_pem = EXCLUDED.public_key_pem,
                        updated_at = EXCLUDED.updated_at
                    RETURNING *
                """, (str(uuid.uuid4()), uid, email, role.value, key_type.value,
                      public_key_pem, now, now))
                row = cur.fetchone()
        except psycopg2.errors.UniqueViolation as e:
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
            clauses.append("uid = %s")
            params.append(uid)
        if email:
            clauses.append("email = %s")
            params.append(email.lower())
        if key_type:
            clauses.append("key_type = %s")
            params.append(key_type.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._cursor() as cur:
            cur.execute(f"SELECT * FROM public_keys {where} ORDER BY created_at DESC", params)
            rows = cur.fetchall()

        return [PublicKeyRecord.from_row(row) for row in rows]

    def get_key(self, key_id: str) -> Optional[PublicKeyRecord]:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM public_keys WHERE id = %s", (key_id,))
            row = cur.fetchone()
        return PublicKeyRecord.from_row(row) if row else None

    # Records

    def add_record(self, record: NewRecord) -> MedicalRecord:
        now = datetime.now(timezone.utc).isoformat()
        with self._cursor() as cur:
            cur.execute("""
                INSERT INTO medical_records
                (id, patient_uid, uploader_email, record_type, note, original_file_name,
                 stored_file_name, mime_type, size_bytes, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
            """, (record.id or str(uuid.uuid4()), record.patient_uid, record.uploader_email,
                  record.record_type, record.note, record.original_file_name,
                  record.stored_file_name, record.mime_type, record.size_bytes, now, now))
            row = cur.fetchone()
        return MedicalRecord.from_row(row)

    def get_record(self, record_id: str) -> Optional[MedicalRecord]:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM medical_records WHERE id = %s", (record_id,))
            row = cur.fetchone()
        return MedicalRecord.from_row(row) if row else None

    def list_records(self, patient_uid: str) -> List[MedicalRecord]:
        with self._cursor() as cur:
            cur.execute("""
                SELECT * FROM medical_records
                WHERE patient_uid = %s
                ORDER BY created_at DESC
            """, (patient_uid,))
            rows = cur.fetchall()
        return [MedicalRecord.from_row(row) for row in rows]

    def mark_encrypted(self, record_id: str, signature_b64: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._cursor() as cur:
            cur.execute("""
                UPDATE medical_records
                SET is_encrypted = TRUE, signature_b64 = %s, updated_at = %s
                WHERE id = %s
            """, (signature_b64, now, record_id))
