"""
Per-call conversation records.

Sessions live in process memory for the duration of a call. There is no
eviction: an abandoned call leaves its record behind until the process
restarts. Concurrent requests for the same CallSid are not serialized; the
last save wins, so Twilio must not overlap turns for one call.
"""
import time
from dataclasses import dataclass, field

from .stages import Stage, INITIAL_STAGE
from .logging_config import get_logger

logger = get_logger("sessions")


@dataclass
class CallSession:
    call_id: str
    stage: Stage = INITIAL_STAGE
    transcript: list = field(default_factory=list)
    collected_data: dict = field(default_factory=dict)
    handed_off: bool = False
    created_at: float = field(default_factory=time.time)


class SessionStore:
    """Read/write contract the stage machine depends on."""

    def get(self, call_id: str) -> CallSession | None:
        raise NotImplementedError

    def get_or_create(self, call_id: str) -> CallSession:
        raise NotImplementedError

    def start(self, call_id: str) -> CallSession:
        raise NotImplementedError

    def save(self, call_id: str, session: CallSession) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: dict[str, CallSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, call_id: str) -> bool:
        return call_id in self._sessions

    def get(self, call_id: str) -> CallSession | None:
        return self._sessions.get(call_id)

    def get_or_create(self, call_id: str) -> CallSession:
        """Returns the existing session or a fresh one at the first stage."""
        session = self._sessions.get(call_id)
        if session is None:
            session = CallSession(call_id=call_id)
            self._sessions[call_id] = session
            logger.debug("Created session", extra={"call_sid": call_id, "step": session.stage.value})
        return session

    def start(self, call_id: str) -> CallSession:
        """Installs a fresh session, replacing any earlier one for this call."""
        if call_id in self._sessions:
            logger.info("Restarting existing session", extra={"call_sid": call_id})
        session = CallSession(call_id=call_id)
        self._sessions[call_id] = session
        return session

    def save(self, call_id: str, session: CallSession) -> None:
        self._sessions[call_id] = session
