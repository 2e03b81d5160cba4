"""
Encrypted Session Store.

Persists the session token slot (``auth-token``) in a local SQLite file
so that a restart lands the user straight on the dashboard while the
server still honours the token.

Security model
--------------
- The encryption key is derived at runtime from machine identity
  (hostname + OS username) via PBKDF2-HMAC-SHA256 with a per-machine
  random salt.  The key is **never** persisted.
- The token is encrypted with AES-256-GCM (confidentiality + integrity).
- ``clear()`` deletes the row entirely.

Storage layout::

    client_state
    ├── key              TEXT PRIMARY KEY   ('auth-token')
    ├── encrypted_value  BLOB
    ├── nonce            BLOB
    ├── tag              BLOB
    └── updated_at       TEXT (ISO-8601 UTC)
"""

from __future__ import annotations

import getpass
import os
import platform
import socket
import sqlite3
import stat
import threading
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2

from sensorwatch.logger import StructuredLogger
from sensorwatch.session_store import SESSION_TOKEN_KEY

_CREATE_TABLE_SQL: str = """
CREATE TABLE IF NOT EXISTS client_state (
    key             TEXT PRIMARY KEY,
    encrypted_value BLOB NOT NULL,
    nonce           BLOB NOT NULL,
    tag             BLOB NOT NULL,
    updated_at      TEXT NOT NULL
)
"""


class EncryptedSessionStore:
    """``SessionStore`` backed by an AES-GCM encrypted SQLite row.

    Each call opens its own short-lived connection, so the store may be
    used from the UI thread and from auth worker threads alike.

    Read failures (missing file, corrupted row, changed machine identity)
    are logged and reported as "no token": the user simply has to sign
    in again.  Write failures are logged and reported as ``False``.

    Parameters
    ----------
    db_path:
        SQLite file holding the ``client_state`` table.
    salt_path:
        Per-machine random salt file, created on first use.
    logger:
        Structured logger.
    iterations:
        PBKDF2 iteration count.
    """

    _KEY_LENGTH: int = 32  # 256 bits
    _SALT_LENGTH: int = 32

    def __init__(
        self,
        db_path: Path,
        salt_path: Path,
        logger: StructuredLogger,
        iterations: int = 600_000,
    ) -> None:
        self._db_path: Path = db_path
        self._salt_path: Path = salt_path
        self._logger: StructuredLogger = logger
        self._iterations: int = iterations
        self._key: Optional[bytes] = None
        self._key_lock: threading.Lock = threading.Lock()

    # ------------------------------------------------------------------
    # SessionStore API
    # ------------------------------------------------------------------

    def get(self) -> Optional[str]:
        """Decrypt and return the stored token, or ``None``."""
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT encrypted_value, nonce, tag FROM client_state WHERE key = ?",
                    (SESSION_TOKEN_KEY,),
                ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            self._logger.warning("Failed to read stored session token: %s", exc)
            return None

        if row is None:
            return None

        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM, nonce=row[1])
            plaintext: bytes = cipher.decrypt_and_verify(row[0], row[2])
        except (ValueError, KeyError) as exc:
            self._logger.warning(
                "Stored session token could not be decrypted (corrupted data "
                "or machine identity changed): %s",
                exc,
            )
            return None
        except OSError as exc:
            self._logger.warning("Session salt unavailable: %s", exc)
            return None

        token = plaintext.decode("utf-8")
        return token or None

    def set(self, token: str) -> bool:
        """Encrypt *token* and upsert it into the slot."""
        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM)
            ciphertext, tag = cipher.encrypt_and_digest(token.encode("utf-8"))
            nonce: bytes = cipher.nonce
        except (ValueError, OSError) as exc:
            self._logger.warning("Failed to encrypt session token: %s", exc)
            return False

        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    """
                    INSERT INTO client_state (key, encrypted_value, nonce, tag, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        encrypted_value = excluded.encrypted_value,
                        nonce           = excluded.nonce,
                        tag             = excluded.tag,
                        updated_at      = excluded.updated_at
                    """,
                    (
                        SESSION_TOKEN_KEY,
                        ciphertext,
                        nonce,
                        tag,
                        datetime.now(tz=timezone.utc).isoformat(),
                    ),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            self._logger.warning("Failed to write session token: %s", exc)
            return False

        self._logger.debug("Session token stored.")
        return True

    def clear(self) -> None:
        """Delete the stored token."""
        try:
            with closing(self._connect()) as conn:
                conn.execute(
                    "DELETE FROM client_state WHERE key = ?", (SESSION_TOKEN_KEY,),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as exc:
            self._logger.error("Failed to clear session token: %s", exc)
            return
        self._logger.debug("Session token cleared.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.execute(_CREATE_TABLE_SQL)
        return conn

    def _derive_key(self) -> bytes:
        """Derive (once) the AES-256 key from machine identity and salt.

        The key protects the token against casual disk access, e.g. a copied
        database file on another machine.  It does not resist an attacker
        who controls the OS account.

        Raises
        ------
        OSError
            If the salt file cannot be read or created.
        """
        with self._key_lock:
            if self._key is None:
                identity: str = f"{socket.gethostname()}:{getpass.getuser()}"
                self._key = PBKDF2(
                    password=identity,
                    salt=self._get_or_create_salt(),
                    dkLen=self._KEY_LENGTH,
                    count=self._iterations,
                    hmac_hash_module=SHA256,
                )
            return self._key

    def _get_or_create_salt(self) -> bytes:
        """Return the per-machine salt, creating it with owner-only access."""
        if self._salt_path.exists():
            data: bytes = self._salt_path.read_bytes()
            if len(data) == self._SALT_LENGTH:
                return data
            self._logger.warning(
                "Salt file has unexpected length (%d); regenerating.", len(data),
            )
        salt: bytes = os.urandom(self._SALT_LENGTH)
        self._salt_path.parent.mkdir(parents=True, exist_ok=True)
        self._salt_path.write_bytes(salt)
        if platform.system() != "Windows":
            self._salt_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
        self._logger.info("Per-machine session salt created at %s.", self._salt_path)
        return salt
