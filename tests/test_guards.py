"""Tests for the single-flight operation guard."""

from __future__ import annotations

from sensorwatch.guards import OperationGuard
from sensorwatch.models.enums import OperationState


def test_second_attempt_is_rejected_while_pending():
    guard = OperationGuard("signup")

    assert guard.try_begin() is True
    assert guard.is_pending
    assert guard.try_begin() is False


def test_finish_allows_a_new_attempt():
    guard = OperationGuard("signup")
    guard.try_begin()

    guard.finish()

    assert guard.state is OperationState.DONE
    assert guard.try_begin() is True


def test_claim_only_finishes_its_own_attempt():
    guard = OperationGuard("login")
    guard.try_begin()

    with guard.claim() as acquired:
        assert acquired is False

    assert guard.is_pending

    guard.finish()
    with guard.claim() as acquired:
        assert acquired is True
        assert guard.is_pending
    assert guard.state is OperationState.DONE


def test_reset_leaves_a_pending_attempt_alone():
    guard = OperationGuard("verify")
    guard.try_begin()

    guard.reset()
    assert guard.is_pending

    guard.finish()
    guard.reset()
    assert guard.state is OperationState.IDLE
