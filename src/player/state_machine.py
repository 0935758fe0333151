"""
Player State Machine for the display player.
Tracks what the screen is showing: loading, pairing prompt, content,
standby or an error with a retry action.
"""

import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class PlayerState(Enum):
    """Represents what the player is currently showing."""
    LOADING = "loading"                  # Fetching the first manifest
    SECRET_REQUIRED = "secret_required"  # No usable credential; pairing prompt
    PLAYING = "playing"                  # Rendering a manifest (maybe cached)
    STANDBY = "standby"                  # Authenticated, nothing published
    ERROR = "error"                      # Nothing to show; retry offered


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


class PlayerStateMachine:
    """
    State machine for the player's sync lifecycle.

    Valid transitions:
    - LOADING -> SECRET_REQUIRED | PLAYING | STANDBY | ERROR
    - SECRET_REQUIRED -> LOADING (secret entered or paired)
    - PLAYING -> STANDBY | SECRET_REQUIRED | LOADING
    - STANDBY -> PLAYING | SECRET_REQUIRED | ERROR | LOADING
    - ERROR -> LOADING (retry) | PLAYING | STANDBY | SECRET_REQUIRED

    Independently of the state, ``offline`` marks that what is playing came
    from the local cache because the CMS could not be used.
    """

    VALID_TRANSITIONS: Dict[PlayerState, List[PlayerState]] = {
        PlayerState.LOADING: [
            PlayerState.SECRET_REQUIRED, PlayerState.PLAYING,
            PlayerState.STANDBY, PlayerState.ERROR,
        ],
        PlayerState.SECRET_REQUIRED: [PlayerState.LOADING],
        PlayerState.PLAYING: [
            PlayerState.STANDBY, PlayerState.SECRET_REQUIRED, PlayerState.LOADING,
        ],
        PlayerState.STANDBY: [
            PlayerState.PLAYING, PlayerState.SECRET_REQUIRED,
            PlayerState.ERROR, PlayerState.LOADING,
        ],
        PlayerState.ERROR: [
            PlayerState.LOADING, PlayerState.PLAYING,
            PlayerState.STANDBY, PlayerState.SECRET_REQUIRED,
        ],
    }

    def __init__(
        self,
        initial_state: PlayerState = PlayerState.LOADING,
        on_state_changed: Optional[Callable[['PlayerStateMachine', PlayerState, PlayerState], None]] = None
    ):
        """
        Initialize the player state machine.

        Args:
            initial_state: Starting state (default: LOADING)
            on_state_changed: Callback when state changes (self, old_state, new_state)
        """
        self._state = initial_state
        self._previous_state: Optional[PlayerState] = None
        self._offline = False
        self._error_message: Optional[str] = None
        self._on_state_changed = on_state_changed
        self._lock = threading.Lock()

        logger.info("PlayerStateMachine initialized in %s state", self._state.name)

    @property
    def state(self) -> PlayerState:
        with self._lock:
            return self._state

    @property
    def previous_state(self) -> Optional[PlayerState]:
        with self._lock:
            return self._previous_state

    @property
    def offline(self) -> bool:
        """True while playback runs from the cached manifest."""
        with self._lock:
            return self._offline

    @property
    def error_message(self) -> Optional[str]:
        with self._lock:
            return self._error_message

    def set_offline(self, offline: bool) -> None:
        with self._lock:
            changed = self._offline != offline
            self._offline = offline
        if changed:
            logger.info("Offline mode %s", "on" if offline else "off")

    def can_transition_to(self, target_state: PlayerState) -> bool:
        with self._lock:
            if self._state == target_state:
                return True
            return target_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition_to(self, target_state: PlayerState, error_message: Optional[str] = None) -> bool:
        """
        Attempt to transition to a new state.

        Args:
            target_state: State to transition to
            error_message: Reason shown with the ERROR state

        Returns:
            True if transition happened, False if already in target state

        Raises:
            StateTransitionError: If transition is not valid
        """
        with self._lock:
            old_state = self._state
            self._error_message = error_message if target_state == PlayerState.ERROR else None

            if old_state == target_state:
                logger.debug("Already in %s state", target_state.name)
                return False

            if target_state not in self.VALID_TRANSITIONS.get(old_state, []):
                raise StateTransitionError(
                    f"Invalid transition: {old_state.name} -> {target_state.name}"
                )

            self._previous_state = old_state
            self._state = target_state
            if target_state != PlayerState.PLAYING:
                self._offline = False

            logger.info("State transition: %s -> %s", old_state.name, target_state.name)

        # Call callback outside lock to prevent deadlocks
        if self._on_state_changed:
            try:
                self._on_state_changed(self, old_state, target_state)
            except Exception as e:
                logger.error("Error in state change callback: %s", e)

        return True

    @property
    def is_playing(self) -> bool:
        return self.state == PlayerState.PLAYING

    @property
    def needs_secret(self) -> bool:
        return self.state == PlayerState.SECRET_REQUIRED

    def get_state_info(self) -> Dict[str, Optional[str]]:
        """
        Get information about current state.

        Returns:
            Dictionary with state, previous state, offline flag and error
        """
        with self._lock:
            return {
                "state": self._state.value,
                "previous_state": self._previous_state.value if self._previous_state else None,
                "offline": self._offline,
                "error": self._error_message,
            }

    def __repr__(self) -> str:
        return f"PlayerStateMachine(state={self.state.name})"
