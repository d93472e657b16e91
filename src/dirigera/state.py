"""
Connection state machine for the hub client.
"""

import threading
from enum import Enum
from typing import Dict, List

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class HubState(Enum):
    """Represents how far the client has progressed towards the hub."""
    UNCONFIGURED = "unconfigured"    # Hub address unknown
    DISCOVERED = "discovered"        # Hub address resolved via mDNS
    AUTHENTICATED = "authenticated"  # Bearer token available


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


class HubStateMachine:
    """
    Forward-only state machine for the hub client.

    Valid transitions:
    - UNCONFIGURED -> DISCOVERED (hub answered the mDNS query)
    - DISCOVERED -> AUTHENTICATED (token issued or already cached)

    There is no way back: tokens are never refreshed or revoked.
    """

    VALID_TRANSITIONS: Dict[HubState, List[HubState]] = {
        HubState.UNCONFIGURED: [HubState.DISCOVERED],
        HubState.DISCOVERED: [HubState.AUTHENTICATED],
        HubState.AUTHENTICATED: [],
    }

    def __init__(self, initial_state: HubState = HubState.UNCONFIGURED):
        self._state = initial_state
        self._lock = threading.Lock()

    @property
    def state(self) -> HubState:
        """Get the current state."""
        with self._lock:
            return self._state

    def transition_to(self, target: HubState) -> bool:
        """
        Move to a new state.

        Args:
            target: State to move to

        Returns:
            True if the state changed, False if already in target

        Raises:
            StateTransitionError: If the transition is not allowed
        """
        with self._lock:
            current = self._state

            if current == target:
                return False

            if target not in self.VALID_TRANSITIONS.get(current, []):
                raise StateTransitionError(
                    f"Invalid transition: {current.name} -> {target.name}"
                )

            self._state = target

        logger.debug("Hub state: %s -> %s", current.name, target.name)
        return True

    @property
    def is_discovered(self) -> bool:
        """Check if the hub address is known."""
        return self.state in (HubState.DISCOVERED, HubState.AUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        """Check if the client holds a token for this run."""
        return self.state == HubState.AUTHENTICATED

    def __repr__(self) -> str:
        """String representation."""
        return f"HubStateMachine(state={self.state.name})"
