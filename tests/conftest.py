"""Shared test fixtures and fakes."""

import json
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from aidevelo.api.main import create_app
from aidevelo.chat.models import ChatReply, ConversationAnalysis, KnowledgeBase
from aidevelo.chat.service import ChatService
from aidevelo.core.errors import CollaboratorError
from aidevelo.core.rate_limit import InMemoryRateLimiter
from aidevelo.core.storage import MemoryStorage
from aidevelo.generation.generator import parse_analysis, parse_reply


class FakeResponder:
    """Returns a canned JSON payload and records every call."""

    def __init__(self, payload: Optional[dict] = None, raw: Optional[str] = None, analysis: Optional[dict] = None):
        self.payload = payload or {"message": "Happy to help!", "isActionRequired": False}
        self.raw = raw
        self.analysis = analysis or {
            "sentiment": "positive",
            "leadScore": 8,
            "extractedInfo": {"email": "anna@example.com"},
            "summary": "Visitor asked about pricing.",
        }
        self.calls = []
        self.transcripts = []

    def respond(self, message, history, knowledge_base, custom_instructions=None) -> ChatReply:
        self.calls.append({
            "message": message,
            "history": list(history),
            "knowledge_base": knowledge_base,
            "custom_instructions": custom_instructions,
        })
        return parse_reply(self.raw if self.raw is not None else json.dumps(self.payload))

    def analyze_conversation(self, transcript, channel="chat") -> ConversationAnalysis:
        self.transcripts.append(transcript)
        return parse_analysis(json.dumps(self.analysis))


class FailingResponder:
    def __init__(self):
        self.calls = 0

    def respond(self, message, history, knowledge_base, custom_instructions=None) -> ChatReply:
        self.calls += 1
        raise CollaboratorError("APITimeoutError: Request timed out.")

    def analyze_conversation(self, transcript, channel="chat") -> ConversationAnalysis:
        self.calls += 1
        raise CollaboratorError("APITimeoutError: Request timed out.")


class RaisingResponder:
    """Raises a non-collaborator exception, as a buggy client or transport would."""

    def __init__(self, exc: Optional[Exception] = None):
        self.exc = exc or TimeoutError("provider timed out")

    def respond(self, message, history, knowledge_base, custom_instructions=None) -> ChatReply:
        raise self.exc

    def analyze_conversation(self, transcript, channel="chat") -> ConversationAnalysis:
        raise self.exc


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def agent_config(storage):
    return storage.create_agent_config(
        user_id="user-1",
        module_id="chat",
        configuration={"name": "Test Chat Agent"},
        knowledge_base={
            "companyInfo": "Acme Dental",
            "services": ["Cleaning", "Whitening"],
            "faq": [{"question": "Do you take walk-ins?", "answer": "Yes, mornings only."}],
            "businessHours": "Mon-Sat 8:00-17:00",
            "contactInfo": {"email": "front@acme.test"},
        },
    )


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
def make_responder():
    return FakeResponder


@pytest.fixture
def failing_responder():
    return FailingResponder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return InMemoryRateLimiter(clock=clock)


@pytest.fixture
def chat_service(storage, responder, rate_limiter):
    return ChatService(storage=storage, responder=responder, rate_limiter=rate_limiter)


@pytest.fixture
def session(chat_service, agent_config):
    return chat_service.create_session(agent_config_id=agent_config.id, visitor_id="visitor-1")


@pytest.fixture
def client(storage, responder, rate_limiter):
    app = create_app(storage=storage, responder=responder, rate_limiter=rate_limiter)
    return TestClient(app)


@pytest.fixture
def default_kb():
    return KnowledgeBase()


@pytest.fixture
def raising_responder():
    return RaisingResponder()
