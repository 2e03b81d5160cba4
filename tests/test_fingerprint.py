"""Tests for the device fingerprint and its degraded fallback."""

from __future__ import annotations

import base64
import hashlib

from sensorwatch.services.fingerprint import DeviceFingerprinter, HeadlessFingerprintSource


class FakeSource:
    def __init__(self, signature: str = "112:13:4:17:96.00") -> None:
        self.signature = signature
        self.signature_calls = 0

    def user_agent(self) -> str:
        return "SensorWatch/1.0.0 (Linux)"

    def render_signature(self) -> str:
        self.signature_calls += 1
        return self.signature

    def screen_size(self) -> tuple[int, int]:
        return 1920, 1080


def test_fingerprint_hashes_all_signals(logger):
    fingerprinter = DeviceFingerprinter(FakeSource(), logger)

    expected = hashlib.sha256(
        b"SensorWatch/1.0.0 (Linux)|112:13:4:17:96.00|1920x1080",
    ).hexdigest()

    assert fingerprinter.get() == expected


def test_fingerprint_is_computed_once(logger):
    source = FakeSource()
    fingerprinter = DeviceFingerprinter(source, logger)

    first = fingerprinter.get()
    second = fingerprinter.get()

    assert first == second
    assert source.signature_calls == 1


def test_fingerprint_depends_on_render_signature(logger):
    one = DeviceFingerprinter(FakeSource("a"), logger).get()
    two = DeviceFingerprinter(FakeSource("b"), logger).get()

    assert one != two


def test_headless_source_degrades_to_fallback(logger):
    source = HeadlessFingerprintSource()
    value = DeviceFingerprinter(source, logger).get()

    raw = f"{source.user_agent()}00".encode("utf-8")
    assert value == base64.b64encode(raw).decode("ascii")[:64]
    assert len(value) <= 64
    assert logger.warning.call_args.kwargs["extra"] == {"event": "FINGERPRINT_FALLBACK"}
