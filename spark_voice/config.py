import os
from dotenv import load_dotenv
import logging

load_dotenv()

# Public base URL of this service. Twilio signs requests against the URL it
# called, so this must match what is configured on the Twilio number.
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/")

# TTS Configuration — Twilio <Say> voice and accent
TTS_VOICE = os.getenv("TTS_VOICE", "alice")
TTS_LANGUAGE = os.getenv("TTS_LANGUAGE", "en-GB")

# Gather configuration
GATHER_SPEECH_TIMEOUT = os.getenv("GATHER_SPEECH_TIMEOUT", "auto")
CALL_INPUT_PATH = "/call/input"

# Twilio request signing
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
VALIDATE_TWILIO_SIGNATURE = os.getenv("VALIDATE_TWILIO_SIGNATURE", "false").lower() == "true"

# Downstream Make.com automations
MAKE_GETQUOTE_WEBHOOK_URL = os.getenv("MAKE_GETQUOTE_WEBHOOK_URL", "")
MAKE_CONFIRMBOOKING_WEBHOOK_URL = os.getenv("MAKE_CONFIRMBOOKING_WEBHOOK_URL", "")

# Hand-off of completed sessions: "webhook", "log" or "off"
HANDOFF_MODE = os.getenv("HANDOFF_MODE", "webhook").lower()
HANDOFF_TIMEOUT_SECONDS = float(os.getenv("HANDOFF_TIMEOUT_SECONDS", "10"))

# Create sessions lazily when /call/input arrives before /call/start
SESSION_AUTO_CREATE = os.getenv("SESSION_AUTO_CREATE", "true").lower() == "true"

PORT = int(os.getenv("PORT", "3000"))

# Use basic logging here since logging_config may not be loaded yet
_config_logger = logging.getLogger("spark_voice.config")

if not TWILIO_AUTH_TOKEN:
    _config_logger.warning("Missing TWILIO_AUTH_TOKEN")
if not MAKE_GETQUOTE_WEBHOOK_URL:
    _config_logger.warning("Missing MAKE_GETQUOTE_WEBHOOK_URL")
if not MAKE_CONFIRMBOOKING_WEBHOOK_URL:
    _config_logger.warning("Missing MAKE_CONFIRMBOOKING_WEBHOOK_URL")

if VALIDATE_TWILIO_SIGNATURE and not TWILIO_AUTH_TOKEN:
    _config_logger.warning(
        "VALIDATE_TWILIO_SIGNATURE is on but TWILIO_AUTH_TOKEN is empty. Every webhook will be rejected."
    )

if HANDOFF_MODE not in {"webhook", "log", "off"}:
    _config_logger.warning(f"Unknown HANDOFF_MODE '{HANDOFF_MODE}', falling back to 'log'")
    HANDOFF_MODE = "log"


def get_base_url_from_request(request) -> str:
    """
    Derive the public base URL from the incoming request's Host header.

    Behind ngrok or Railway the app sees plain http, but Twilio signed the
    https URL, so x-forwarded-proto wins when present.

    Falls back to APP_BASE_URL if Host header is missing.
    """
    host = request.headers.get("host", "")
    forwarded_proto = request.headers.get("x-forwarded-proto", "")

    if host:
        scheme = forwarded_proto if forwarded_proto else "https"
        return f"{scheme}://{host}"

    return APP_BASE_URL
