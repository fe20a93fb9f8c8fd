"""Tests for session state transitions."""
import pytest
from wagate.sessions.models import SessionState, Trigger, next_state


class TestNextState:
    """Edges of the lifecycle state machine."""

    @pytest.mark.parametrize("current,trigger,expected", [
        (SessionState.CREATING, Trigger.QR, SessionState.QR_PENDING),
        (SessionState.CREATING, Trigger.READY, SessionState.READY),
        (SessionState.QR_PENDING, Trigger.QR, SessionState.QR_PENDING),
        (SessionState.QR_PENDING, Trigger.READY, SessionState.READY),
        (SessionState.QR_PENDING, Trigger.AUTH_FAILURE, SessionState.AUTH_FAILED),
        (SessionState.CREATING, Trigger.AUTH_FAILURE, SessionState.AUTH_FAILED),
    ])
    def test_defined_edges(self, current: SessionState, trigger: Trigger, expected: SessionState) -> None:
        assert next_state(current, trigger) is expected

    @pytest.mark.parametrize("current", [s for s in SessionState if s is not SessionState.UNINITIALIZED])
    def test_disconnect_from_any_state(self, current: SessionState) -> None:
        assert next_state(current, Trigger.DISCONNECT) is SessionState.DISCONNECTED

    def test_qr_after_ready_has_no_edge(self) -> None:
        """A late QR must not drag a ready session back to pairing."""
        assert next_state(SessionState.READY, Trigger.QR) is None

    def test_ready_cannot_auth_fail(self) -> None:
        assert next_state(SessionState.READY, Trigger.AUTH_FAILURE) is None

    def test_terminal_states(self) -> None:
        assert SessionState.DISCONNECTED.is_terminal
        assert SessionState.AUTH_FAILED.is_terminal
        assert not SessionState.READY.is_terminal
        assert not SessionState.CREATING.is_terminal
