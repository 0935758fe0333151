"""Unit tests for the PlayerStateMachine module."""

import threading
from unittest import mock

import pytest

from src.player.state_machine import (
    PlayerState,
    PlayerStateMachine,
    StateTransitionError,
)


class TestPlayerState:
    """Tests for PlayerState enum."""

    def test_state_values(self):
        assert PlayerState.LOADING.value == "loading"
        assert PlayerState.SECRET_REQUIRED.value == "secret_required"
        assert PlayerState.PLAYING.value == "playing"
        assert PlayerState.STANDBY.value == "standby"
        assert PlayerState.ERROR.value == "error"


class TestPlayerStateMachine:
    """Tests for PlayerStateMachine class."""

    def test_initial_state_default(self):
        sm = PlayerStateMachine()
        assert sm.state == PlayerState.LOADING
        assert sm.previous_state is None
        assert sm.offline is False

    def test_initial_state_custom(self):
        sm = PlayerStateMachine(initial_state=PlayerState.SECRET_REQUIRED)
        assert sm.needs_secret

    @pytest.mark.parametrize('target', [
        PlayerState.SECRET_REQUIRED, PlayerState.PLAYING,
        PlayerState.STANDBY, PlayerState.ERROR,
    ])
    def test_loading_reaches_every_outcome(self, target):
        sm = PlayerStateMachine()
        assert sm.transition_to(target) is True
        assert sm.state == target
        assert sm.previous_state == PlayerState.LOADING

    def test_secret_required_only_goes_to_loading(self):
        sm = PlayerStateMachine(initial_state=PlayerState.SECRET_REQUIRED)
        with pytest.raises(StateTransitionError):
            sm.transition_to(PlayerState.PLAYING)
        assert sm.transition_to(PlayerState.LOADING)

    def test_playing_to_error_is_invalid(self):
        """Errors while playing fall back to the cache, never to ERROR."""
        sm = PlayerStateMachine(initial_state=PlayerState.PLAYING)
        assert not sm.can_transition_to(PlayerState.ERROR)
        with pytest.raises(StateTransitionError):
            sm.transition_to(PlayerState.ERROR)

    def test_same_state_returns_false(self):
        sm = PlayerStateMachine(initial_state=PlayerState.STANDBY)
        assert sm.transition_to(PlayerState.STANDBY) is False
        assert sm.can_transition_to(PlayerState.STANDBY)

    def test_error_message_kept_only_for_error(self):
        sm = PlayerStateMachine()
        sm.transition_to(PlayerState.ERROR, error_message="CMS unreachable")
        assert sm.error_message == "CMS unreachable"

        sm.transition_to(PlayerState.LOADING)
        assert sm.error_message is None

    def test_offline_flag_cleared_when_leaving_playing(self):
        sm = PlayerStateMachine(initial_state=PlayerState.PLAYING)
        sm.set_offline(True)
        assert sm.offline

        sm.transition_to(PlayerState.STANDBY)
        assert sm.offline is False

    def test_callback_called_on_transition(self):
        callback = mock.Mock()
        sm = PlayerStateMachine(on_state_changed=callback)

        sm.transition_to(PlayerState.PLAYING)

        callback.assert_called_once_with(sm, PlayerState.LOADING, PlayerState.PLAYING)

    def test_callback_not_called_same_state(self):
        callback = mock.Mock()
        sm = PlayerStateMachine(on_state_changed=callback)

        sm.transition_to(PlayerState.LOADING)

        callback.assert_not_called()

    def test_callback_errors_do_not_block_transition(self):
        sm = PlayerStateMachine(on_state_changed=mock.Mock(side_effect=RuntimeError("boom")))
        assert sm.transition_to(PlayerState.STANDBY)
        assert sm.state == PlayerState.STANDBY

    def test_get_state_info(self):
        sm = PlayerStateMachine()
        sm.transition_to(PlayerState.PLAYING)
        sm.set_offline(True)

        assert sm.get_state_info() == {
            "state": "playing",
            "previous_state": "loading",
            "offline": True,
            "error": None,
        }

    def test_repr(self):
        assert repr(PlayerStateMachine()) == "PlayerStateMachine(state=LOADING)"


class TestThreadSafety:
    """Tests for thread-safe state changes."""

    def test_concurrent_transitions(self):
        sm = PlayerStateMachine(initial_state=PlayerState.PLAYING)
        errors = []

        def toggle():
            for _ in range(50):
                try:
                    if sm.state == PlayerState.PLAYING:
                        sm.transition_to(PlayerState.STANDBY)
                    else:
                        sm.transition_to(PlayerState.PLAYING)
                except StateTransitionError as e:
                    errors.append(e)

        threads = [threading.Thread(target=toggle) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sm.state in (PlayerState.PLAYING, PlayerState.STANDBY)
