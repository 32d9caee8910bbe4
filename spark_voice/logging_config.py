"""
Logging for the intake webhook.

Everything logs under the ``spark_voice`` logger. ``LOG_FORMAT=json`` gives
one JSON object per line for hosted log search; anything else gives colored
console lines. Call context (call_sid, step, speaker) rides on ``extra``.
"""

import logging
import sys
import json
import os
from datetime import datetime, timezone

# record attribute -> JSON key
CONTEXT_FIELDS = {"call_sid": "call_sid", "step": "step", "speaker": "speaker", "extra_data": "data"}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for attr, key in CONTEXT_FIELDS.items():
            value = getattr(record, attr, None)
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[12:00:01.123] INFO     [Call:CA12345678..., Step:need_rooms] message``"""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    SPEAKER_COLORS = {"AGENT": "\033[34m", "CUSTOMER": "\033[33m"}
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def _context(self, record: logging.LogRecord) -> str:
        parts = []
        call_sid = getattr(record, "call_sid", "")
        if call_sid:
            parts.append("Call:" + (call_sid[:12] + "..." if len(call_sid) > 12 else call_sid))
        if getattr(record, "step", ""):
            parts.append(f"Step:{record.step}")
        return f" [{', '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        stamp = f"{color}[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]"
        speaker = getattr(record, "speaker", "")

        if speaker:
            tag = f"{self.SPEAKER_COLORS.get(speaker, self.RESET)}{self.BOLD}[{speaker}]{self.RESET}"
            return f"{stamp}{self.RESET}{self._context(record)} {tag} {record.getMessage()}"
        return f"{stamp} {record.levelname:8}{self.RESET}{self._context(record)} {record.getMessage()}"


class CallContextFilter(logging.Filter):
    """Give records logged without ``extra`` empty call context so formatters can read it."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attr in CONTEXT_FIELDS:
            if not hasattr(record, attr):
                setattr(record, attr, None if attr == "extra_data" else "")
        return True


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> logging.Logger:
    """Install a single stdout handler on the ``spark_voice`` logger and return it."""
    logger = logging.getLogger("spark_voice")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    handler.setLevel(logging.DEBUG)
    # Logger filters skip records from child loggers; handler filters do not
    handler.addFilter(CallContextFilter())
    logger.addHandler(handler)

    logger.propagate = False
    return logger


setup_logging(
    log_level=os.getenv("LOG_LEVEL", "DEBUG"),
    json_format=os.getenv("LOG_FORMAT", "console").lower() == "json",
)


def get_logger(name: str = "") -> logging.Logger:
    """``get_logger("twilio")`` -> ``spark_voice.twilio``."""
    if name:
        return logging.getLogger(f"spark_voice.{name}")
    return logging.getLogger("spark_voice")


# ── Structured helpers ─────────────────────────────────────────────────

def log_conversation(call_sid: str, speaker: str, message: str, step: str = ""):
    """One spoken line, tagged AGENT (what we said) or CUSTOMER (what Twilio heard)."""
    get_logger("conversation").info(
        message,
        extra={"call_sid": call_sid, "speaker": speaker, "step": step}
    )


def log_state_change(call_sid: str, from_step: str, to_step: str, **extra_data):
    get_logger("state").debug(
        f"Stage {from_step} -> {to_step}",
        extra={"call_sid": call_sid, "step": to_step, "extra_data": extra_data}
    )


def log_call_start(call_sid: str, from_number: str = "", to_number: str = ""):
    get_logger("call").info(
        f"Call started from {from_number or 'unknown'} to {to_number or 'unknown'}",
        extra={"call_sid": call_sid, "step": "start"}
    )


def log_error(call_sid: str, error: Exception, step: str = "", context: str = ""):
    """Log the active exception with its traceback; ``context`` says which handler failed."""
    prefix = f"{context}: " if context else ""
    get_logger("error").error(
        f"{prefix}{type(error).__name__}: {error}",
        extra={"call_sid": call_sid, "step": step},
        exc_info=True,
    )


def log_external_service(service: str, operation: str, success: bool = True, **extra_data):
    """Outbound calls such as the Make quote webhook."""
    status = "ok" if success else "failed"
    get_logger("external").info(
        f"{service} {operation} {status}",
        extra={"extra_data": extra_data}
    )
