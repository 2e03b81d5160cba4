"""Shared pytest fixtures: fake API, in-memory session store, virtual clock."""

from __future__ import annotations

import threading
from typing import Callable
from unittest.mock import MagicMock

import pytest

from sensorwatch.config import AppConfig
from sensorwatch.logger import StructuredLogger
from sensorwatch.scheduling import ManualScheduler
from sensorwatch.services.api_client import AuthApiClient
from sensorwatch.services.fingerprint import DeviceFingerprinter
from sensorwatch.session_store import InMemorySessionStore


@pytest.fixture
def api() -> MagicMock:
    """Stand-in for ``AuthApiClient``; every endpoint is a recording mock."""
    return MagicMock(spec=AuthApiClient)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def navigator() -> MagicMock:
    return MagicMock(spec=["show_login", "show_dashboard"])


@pytest.fixture
def logger() -> MagicMock:
    return MagicMock(spec=StructuredLogger)


@pytest.fixture
def fingerprinter() -> MagicMock:
    fake = MagicMock(spec=DeviceFingerprinter)
    fake.get.return_value = "fp-hash"
    return fake


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        _env_file=None,
        API_BASE_URL="https://sensors.test",
        GOOGLE_CLIENT_ID="test-client-id",
    )


@pytest.fixture
def blocking_call() -> Callable[..., tuple[threading.Event, threading.Event, Callable[..., object]]]:
    """Build a side effect that parks the calling thread until released.

    Returns ``(entered, release, side_effect)``; *side_effect* returns
    *result* once *release* is set.
    """
    def factory(result: object = None) -> tuple[threading.Event, threading.Event, Callable[..., object]]:
        entered = threading.Event()
        release = threading.Event()

        def side_effect(*_args: object, **_kwargs: object) -> object:
            entered.set()
            release.wait(timeout=5)
            return result

        return entered, release, side_effect

    return factory
