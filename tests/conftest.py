"""
Pytest configuration — pin the environment before spark_voice is imported.

config.py reads os.environ at import time, so these must be set first.
Hand-off is switched to log-only so no test ever reaches a real webhook.
"""
import os

os.environ["HANDOFF_MODE"] = "log"
os.environ["VALIDATE_TWILIO_SIGNATURE"] = "false"
os.environ["SESSION_AUTO_CREATE"] = "true"
os.environ["TWILIO_AUTH_TOKEN"] = "test-auth-token"
os.environ["MAKE_GETQUOTE_WEBHOOK_URL"] = ""
os.environ.setdefault("APP_BASE_URL", "http://localhost:8000")

import pytest

from spark_voice.session_store import InMemorySessionStore
from spark_voice.stage_machine import StageMachine


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def machine(store):
    return StageMachine(store)
