import time
from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import Response
from twilio.request_validator import RequestValidator
from twilio.twiml.voice_response import VoiceResponse, Gather, Say

from .config import (
    TTS_VOICE, TTS_LANGUAGE, GATHER_SPEECH_TIMEOUT, CALL_INPUT_PATH,
    TWILIO_AUTH_TOKEN, VALIDATE_TWILIO_SIGNATURE, SESSION_AUTO_CREATE,
    get_base_url_from_request,
)
from .handoff import QuoteHandoff
from .logging_config import get_logger, log_conversation, log_call_start, log_error
from .prompts import GREETING, NO_INPUT_REPROMPT
from .sanitize import ensure_gbp_only
from .session_store import InMemorySessionStore
from .stage_machine import StageMachine

logger = get_logger("twilio")

router = APIRouter()

# One store per process. Use a shared store if running more than one replica.
store = InMemorySessionStore()
machine = StageMachine(store, auto_create=SESSION_AUTO_CREATE)
quote_handoff = QuoteHandoff()


def _call_sid(form_data) -> str:
    return form_data.get("CallSid") or f"local_{int(time.time() * 1000)}"


def _build_gather(response: VoiceResponse) -> Gather:
    """Speech-only Gather that posts the recognized text back to /call/input."""
    return response.gather(
        input="speech",
        speech_timeout=GATHER_SPEECH_TIMEOUT,
        action=CALL_INPUT_PATH,
        method="POST",
    )


def create_say(text: str) -> Say:
    return Say(text, voice=TTS_VOICE, language=TTS_LANGUAGE)


def say_gather(response: VoiceResponse, text: str, call_sid: str = "", step: str = "") -> VoiceResponse:
    """
    Speak a prompt inside a Gather, then redirect back to /call/input.

    The redirect means a caller who says nothing still reaches the webhook
    (with an empty SpeechResult) and gets re-prompted instead of dropped.
    Every prompt passes through the GBP-only policy here.
    """
    text = ensure_gbp_only(text, call_sid)
    log_conversation(call_sid, "AGENT", text, step)

    gather = _build_gather(response)
    gather.append(create_say(text))
    response.redirect(CALL_INPUT_PATH, method="POST")
    return response


def _twiml(response: VoiceResponse) -> Response:
    return Response(content=str(response), media_type="application/xml")


def validate_twilio_signature(request: Request, form_data) -> bool:
    """Check X-Twilio-Signature against the public URL Twilio called."""
    signature = request.headers.get("x-twilio-signature", "")
    if not signature:
        return False

    url = f"{get_base_url_from_request(request)}{request.url.path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"

    validator = RequestValidator(TWILIO_AUTH_TOKEN)
    return validator.validate(url, dict(form_data), signature)


def _forbidden() -> Response:
    return Response(content="Forbidden", status_code=403, media_type="text/plain")


@router.post("/call/start")
async def call_start(request: Request):
    """Entry point when a call starts - Twilio hits this webhook."""
    call_sid = ""
    try:
        form_data = await request.form()
        if VALIDATE_TWILIO_SIGNATURE and not validate_twilio_signature(request, form_data):
            logger.warning("Rejected /call/start with invalid Twilio signature")
            return _forbidden()

        call_sid = _call_sid(form_data)
        log_call_start(call_sid, form_data.get("From", ""), form_data.get("To", ""))

        greeting = machine.start_call(call_sid)

        response = VoiceResponse()
        say_gather(response, greeting, call_sid, store.get(call_sid).stage.value)
        return _twiml(response)

    except Exception as e:
        # Still greet the caller; /call/input creates or restarts the session
        log_error(call_sid, e, step="call_start", context="Error in start handler")
        response = VoiceResponse()
        say_gather(response, GREETING, call_sid, "error")
        return _twiml(response)


@router.post("/call/input")
async def call_input(request: Request, background_tasks: BackgroundTasks):
    """Handles each recognized utterance and answers with the next prompt."""
    call_sid = ""
    try:
        form_data = await request.form()
        if VALIDATE_TWILIO_SIGNATURE and not validate_twilio_signature(request, form_data):
            logger.warning("Rejected /call/input with invalid Twilio signature")
            return _forbidden()

        call_sid = _call_sid(form_data)
        speech = str(form_data.get("SpeechResult", "") or "")

        result = machine.handle_turn(call_sid, speech)

        if result.completed:
            session = store.get(call_sid)
            background_tasks.add_task(quote_handoff.deliver, session)

        response = VoiceResponse()
        say_gather(response, result.prompt, call_sid, result.stage.value)
        return _twiml(response)

    except Exception as e:
        # Keep the caller on the line: re-arm speech capture and ask again
        log_error(call_sid, e, step="call_input", context="Error in input handler")
        response = VoiceResponse()
        say_gather(response, NO_INPUT_REPROMPT, call_sid, "error")
        return _twiml(response)
