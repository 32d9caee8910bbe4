"""
Per-turn intake state machine.

Each webhook turn runs the current stage's extraction rule against the
caller's speech. A successful extraction stores the fields and moves the call
forward; anything else holds the stage and asks again. There is no turn limit
and no hang-up path: a confused caller is re-prompted indefinitely.
"""
from dataclasses import dataclass

from .extraction import STAGE_RULES
from .logging_config import get_logger, log_conversation, log_state_change
from .prompts import GREETING, NO_INPUT_REPROMPT, ask_prompt, reprompt
from .session_store import CallSession, SessionStore
from .stages import Stage, Outcome, next_stage

logger = get_logger("stages")


@dataclass
class TurnResult:
    prompt: str
    stage: Stage
    outcome: Outcome
    completed: bool = False


class StageMachine:
    def __init__(self, store: SessionStore, rules: dict | None = None, auto_create: bool = True):
        self.store = store
        self.rules = rules if rules is not None else STAGE_RULES
        self.auto_create = auto_create

    def start_call(self, call_id: str) -> str:
        """Begin a fresh conversation and return the greeting."""
        session = self.store.start(call_id)
        self.store.save(call_id, session)
        log_state_change(call_id, "start", session.stage.value)
        return GREETING

    def handle_turn(self, call_id: str, speech: str | None) -> TurnResult:
        """Process one turn of recognized speech and return the next prompt."""
        text = str(speech or "").strip()

        if not self.auto_create and self.store.get(call_id) is None:
            # Input arrived before /call/start: greet instead of extracting
            logger.info("No session for input, starting call", extra={"call_sid": call_id})
            prompt = self.start_call(call_id)
            session = self.store.get(call_id)
            if not text:
                return TurnResult(prompt=prompt, stage=session.stage, outcome=Outcome.NO_INPUT)
            session.transcript.append(text)
            log_conversation(call_id, "CUSTOMER", text, session.stage.value)
            self.store.save(call_id, session)
            return TurnResult(prompt=prompt, stage=session.stage, outcome=Outcome.REJECTED)

        session = self.store.get_or_create(call_id)

        if not text:
            self.store.save(call_id, session)
            log_state_change(call_id, session.stage.value, session.stage.value, outcome=Outcome.NO_INPUT.value)
            return TurnResult(prompt=NO_INPUT_REPROMPT, stage=session.stage, outcome=Outcome.NO_INPUT)

        session.transcript.append(text)
        log_conversation(call_id, "CUSTOMER", text, session.stage.value)

        outcome = self._apply_rule(session, text.lower())
        result = self._transition(session, outcome)
        self.store.save(call_id, session)
        return result

    def _apply_rule(self, session: CallSession, text: str) -> Outcome:
        rule = self.rules.get(session.stage.value)
        if rule is None:
            # Terminal stage: nothing left to extract
            return Outcome.REJECTED

        fields = rule(text, dict(session.collected_data))
        if not fields:
            return Outcome.REJECTED

        session.collected_data.update(fields)
        logger.info(
            f"Captured {', '.join(sorted(fields))}",
            extra={"call_sid": session.call_id, "step": session.stage.value, "extra_data": fields},
        )
        return Outcome.ACCEPTED

    def _transition(self, session: CallSession, outcome: Outcome) -> TurnResult:
        previous = session.stage
        category = session.collected_data.get("service_category")
        target = next_stage(previous, outcome, category)

        if target.order < previous.order:
            # The transition table only moves forward; hold rather than regress.
            logger.error(
                f"Refusing backwards transition {previous.value} -> {target.value}",
                extra={"call_sid": session.call_id},
            )
            target = previous

        session.stage = target
        log_state_change(session.call_id, previous.value, target.value, outcome=outcome.value)

        completed = False
        if target is not previous:
            prompt = ask_prompt(target.value, category)
            if target.is_terminal and not session.handed_off:
                session.handed_off = True
                completed = True
        else:
            prompt = reprompt(target.value, category)

        return TurnResult(prompt=prompt, stage=target, outcome=outcome, completed=completed)
