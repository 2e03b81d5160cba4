"""Tests for the in-memory and encrypted session token stores."""

from __future__ import annotations

import platform
import sqlite3
import stat
from contextlib import closing

import pytest

from sensorwatch.services.session_cache import EncryptedSessionStore
from sensorwatch.session_store import SESSION_TOKEN_KEY, InMemorySessionStore


def test_in_memory_store_slot_lifecycle():
    store = InMemorySessionStore()
    assert store.get() is None

    assert store.set("tok-1") is True
    store.set("tok-2")
    assert store.get() == "tok-2"
    assert store.has_token

    store.clear()
    store.clear()
    assert store.get() is None


@pytest.fixture
def encrypted_store(tmp_path, logger) -> EncryptedSessionStore:
    return EncryptedSessionStore(
        db_path=tmp_path / "client.db",
        salt_path=tmp_path / "salt",
        logger=logger,
        iterations=1_000,
    )


def test_encrypted_store_persists_across_instances(tmp_path, logger, encrypted_store):
    assert encrypted_store.set("opaque-session-token") is True

    reopened = EncryptedSessionStore(
        db_path=tmp_path / "client.db",
        salt_path=tmp_path / "salt",
        logger=logger,
        iterations=1_000,
    )

    assert reopened.get() == "opaque-session-token"


def test_token_is_not_stored_in_plaintext(tmp_path, encrypted_store):
    encrypted_store.set("opaque-session-token")

    with closing(sqlite3.connect(tmp_path / "client.db")) as conn:
        key, blob = conn.execute(
            "SELECT key, encrypted_value FROM client_state",
        ).fetchone()

    assert key == SESSION_TOKEN_KEY
    assert b"opaque-session-token" not in blob


def test_clear_removes_the_token(encrypted_store):
    encrypted_store.set("tok")

    encrypted_store.clear()

    assert encrypted_store.get() is None


def test_empty_store_reads_as_no_token(encrypted_store):
    assert encrypted_store.get() is None


def test_tampered_row_reads_as_no_token(tmp_path, logger, encrypted_store):
    encrypted_store.set("tok")
    with closing(sqlite3.connect(tmp_path / "client.db")) as conn:
        conn.execute("UPDATE client_state SET encrypted_value = ?", (b"garbage",))
        conn.commit()

    assert encrypted_store.get() is None
    logger.warning.assert_called()


def test_different_salt_cannot_decrypt(tmp_path, logger, encrypted_store):
    encrypted_store.set("tok")
    other = EncryptedSessionStore(
        db_path=tmp_path / "client.db",
        salt_path=tmp_path / "other-salt",
        logger=logger,
        iterations=1_000,
    )

    assert other.get() is None


@pytest.mark.skipif(platform.system() == "Windows", reason="POSIX permissions only")
def test_salt_file_is_owner_only(tmp_path, encrypted_store):
    encrypted_store.set("tok")

    mode = stat.S_IMODE((tmp_path / "salt").stat().st_mode)

    assert mode == 0o600


def test_unreachable_database_directory_reads_as_no_token(tmp_path, logger):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = EncryptedSessionStore(
        db_path=blocker / "client.db",
        salt_path=tmp_path / "salt",
        logger=logger,
        iterations=1_000,
    )

    assert store.get() is None
    assert store.set("tok-1") is False
    store.clear()
    logger.error.assert_called_once()
