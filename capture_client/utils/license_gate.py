"""
Client-side license gate.

The capture UI is only usable while the gate is ``authorized``. Every key
submission goes to the server; the gate never decides validity itself.

Submissions may overlap (the user presses Enter twice while the first
request is still in flight). Each one takes a sequence number and a
response is applied only if it is newer than the last applied one.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Any, Optional

from .api_client import LicenseServerError
from .sequencing import RequestSequencer

logger = logging.getLogger(__name__)

UNREACHABLE_REASON = "Cannot reach server."
DEFAULT_DENIAL_REASON = "Invalid license key."

Validator = Callable[[str], Dict[str, Any]]


class GateStatus(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALIDATING = "validating"
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass(frozen=True)
class AuthorizationState:
    status: GateStatus
    holder_name: str = ""
    reason: str = ""


UNAUTHENTICATED = AuthorizationState(GateStatus.UNAUTHENTICATED)


class LicenseGate:
    """Authorization state machine for one client session.

    Args:
        validator: Callable sending a key to the validation service and
            returning its ``{valid, holder_name | reason}`` body. It raises
            LicenseServerError when the server cannot be reached.
    """

    def __init__(self, validator: Validator):
        self.validator = validator
        self.state = UNAUTHENTICATED
        self._sequencer = RequestSequencer()

    @property
    def is_authorized(self) -> bool:
        return self.state.status == GateStatus.AUTHORIZED

    @property
    def is_validating(self) -> bool:
        return self.state.status == GateStatus.VALIDATING

    def begin(self, key: str) -> Optional[int]:
        """Start a submission.

        Returns:
            The sequence number to pass to resolve()/fail(), or None if the
            key is empty after trimming (no transition happens).
        """
        if not (key or "").strip():
            return None
        self.state = AuthorizationState(GateStatus.VALIDATING)
        return self._sequencer.next()

    def resolve(self, sequence: int, response: Dict[str, Any]) -> bool:
        """Apply a validation response. Returns False if it was stale."""
        if not self._sequencer.accept(sequence):
            logger.debug(f"Dropping stale validation response #{sequence}")
            return False
        if response.get("valid"):
            self.state = AuthorizationState(
                GateStatus.AUTHORIZED, holder_name=response.get("holder_name") or ""
            )
            logger.info("License accepted")
        else:
            reason = response.get("reason") or DEFAULT_DENIAL_REASON
            self.state = AuthorizationState(GateStatus.DENIED, reason=reason)
            logger.info(f"License denied: {reason}")
        return True

    def fail(self, sequence: int, error: Optional[Exception] = None) -> bool:
        """Apply a transport failure. Returns False if it was stale."""
        if not self._sequencer.accept(sequence):
            return False
        logger.warning(f"License validation failed: {error}")
        self.state = AuthorizationState(GateStatus.DENIED, reason=UNREACHABLE_REASON)
        return True

    def submit(self, key: str) -> AuthorizationState:
        """Validate a key synchronously with the injected validator."""
        sequence = self.begin(key)
        if sequence is None:
            return self.state
        try:
            response = self.validator(key.strip())
        except LicenseServerError as e:
            self.fail(sequence, e)
        else:
            self.resolve(sequence, response)
        return self.state

    def reset(self) -> None:
        """End the session: back to unauthenticated, pending responses dropped."""
        self.state = UNAUTHENTICATED
        self._sequencer.invalidate()
