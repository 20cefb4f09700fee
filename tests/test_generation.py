"""Tests for reply parsing, typed actions, prompt building and the OpenAI responder."""

import json
from types import SimpleNamespace

import openai
import pytest

from aidevelo.chat.actions import (
    BookAppointment,
    CaptureLead,
    EscalateHuman,
    NoAction,
    action_data_of,
    build_action,
)
from aidevelo.chat.models import KnowledgeBase
from aidevelo.core.errors import CollaboratorError
from aidevelo.generation.generator import (
    DEFAULT_REPLY,
    FALLBACK_ANALYSIS,
    OpenAIResponder,
    build_messages,
    parse_analysis,
    parse_reply,
)
from aidevelo.generation.prompts import build_analysis_prompt, build_system_prompt


class TestParseReply:
    def test_plain_reply_without_action(self):
        reply = parse_reply(json.dumps({"message": "Hi there", "isActionRequired": False}))
        assert reply.message == "Hi there"
        assert not reply.is_action_required
        assert reply.action_type is None
        assert reply.action_data is None

    def test_capture_lead_reply(self):
        raw = json.dumps({
            "message": "Thanks, we'll be in touch.",
            "isActionRequired": True,
            "actionType": "capture_lead",
            "actionData": {"name": "Anna", "email": "anna@example.com"},
        })
        reply = parse_reply(raw)
        assert isinstance(reply.action, CaptureLead)
        assert reply.is_action_required
        assert reply.action_type == "capture_lead"
        assert reply.action_data == {"name": "Anna", "email": "anna@example.com"}

    def test_invalid_json_uses_default_message(self):
        reply = parse_reply("not json at all")
        assert reply.message == DEFAULT_REPLY
        assert not reply.is_action_required

    def test_non_object_json_uses_default_message(self):
        assert parse_reply("[1, 2, 3]").message == DEFAULT_REPLY

    def test_none_content_uses_default_message(self):
        assert parse_reply(None).message == DEFAULT_REPLY

    def test_non_string_message_falls_back(self):
        reply = parse_reply(json.dumps({"message": 42, "isActionRequired": False}))
        assert reply.message == DEFAULT_REPLY

    def test_unknown_action_type_is_dropped(self):
        reply = parse_reply(json.dumps({"message": "ok", "isActionRequired": True, "actionType": "send_fax"}))
        assert isinstance(reply.action, NoAction)
        assert not reply.is_action_required

    def test_action_ignored_when_not_required(self):
        reply = parse_reply(json.dumps({"message": "ok", "isActionRequired": False, "actionType": "capture_lead"}))
        assert reply.action_type is None


class TestParseAnalysis:
    def test_full_analysis(self):
        analysis = parse_analysis(json.dumps({
            "sentiment": "positive",
            "leadScore": 9,
            "extractedInfo": {"name": "Anna", "email": "anna@example.com", "interests": ["chat agent", "pricing"]},
            "summary": "Ready to book a demo.",
        }))
        assert analysis.sentiment == "positive"
        assert analysis.lead_score == 9
        assert analysis.extracted_info == {
            "name": "Anna",
            "email": "anna@example.com",
            "interests": ["chat agent", "pricing"],
        }
        assert analysis.summary == "Ready to book a demo."

    @pytest.mark.parametrize("score, expected", [(0, 5), (None, 5), ("7", 7), (14, 10), (-3, 1), (6.6, 7), (True, 5), ("high", 5)])
    def test_lead_score_is_clamped(self, score, expected):
        assert parse_analysis(json.dumps({"leadScore": score})).lead_score == expected

    def test_missing_fields_use_defaults(self):
        analysis = parse_analysis("{}")
        assert analysis.sentiment == "neutral"
        assert analysis.lead_score == 5
        assert analysis.extracted_info == {}
        assert analysis.summary == "Conversation analyzed"

    def test_unknown_sentiment_and_junk_info_dropped(self):
        analysis = parse_analysis(json.dumps({
            "sentiment": "ecstatic",
            "extractedInfo": {"phone": 41, "company": "  ", "interests": "everything", "budget": "10k"},
        }))
        assert analysis.sentiment == "neutral"
        assert analysis.extracted_info == {}

    def test_unparseable_content_gives_fallback(self):
        assert parse_analysis("not json") == FALLBACK_ANALYSIS
        assert parse_analysis("[1]") == FALLBACK_ANALYSIS
        assert FALLBACK_ANALYSIS.summary == "Error analyzing conversation"


class TestBuildAction:
    def test_book_appointment_accepts_camel_case_payload(self):
        action = build_action("book_appointment", {"preferredTime": "Tuesday 10:00"})
        assert isinstance(action, BookAppointment)
        assert action.preferred_time == "Tuesday 10:00"
        assert action_data_of(action) == {"preferredTime": "Tuesday 10:00"}

    def test_escalate_without_payload(self):
        action = build_action("escalate_human", None)
        assert isinstance(action, EscalateHuman)
        assert action_data_of(action) == {}

    def test_non_scalar_payload_values_dropped(self):
        action = build_action("capture_lead", {"name": {"first": "A"}, "email": "a@b.co", "phone": 417000000})
        assert action == CaptureLead(email="a@b.co", phone="417000000")

    def test_non_dict_payload_ignored(self):
        assert build_action("capture_lead", "anna@example.com") == CaptureLead()

    def test_unknown_type(self):
        assert isinstance(build_action(None, {"x": 1}), NoAction)


class TestPrompts:
    def test_system_prompt_includes_knowledge_base(self):
        kb = KnowledgeBase.from_raw({
            "companyInfo": "Acme Dental",
            "services": ["Cleaning", "Whitening"],
            "faq": [{"question": "Parking?", "answer": "Free on site."}],
            "businessHours": "Mon-Fri 8-17",
            "contactInfo": {"phone": "+41 1 234"},
        })
        prompt = build_system_prompt(kb)
        assert "Acme Dental" in prompt
        assert "Cleaning, Whitening" in prompt
        assert "Mon-Fri 8-17" in prompt
        assert "+41 1 234" in prompt
        assert "Q: Parking?\nA: Free on site." in prompt
        for action in ("book_appointment", "capture_lead", "escalate_human"):
            assert action in prompt

    def test_custom_instructions_appended(self):
        prompt = build_system_prompt(KnowledgeBase(), "Always answer in German.")
        assert prompt.endswith("Always answer in German.")

    def test_build_messages_orders_system_history_user(self):
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        messages = build_messages("price?", history, KnowledgeBase())
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[-1]["content"] == "price?"


class TestKnowledgeBaseDefaults:
    def test_missing_knowledge_base_uses_defaults(self, default_kb):
        kb = KnowledgeBase.from_raw(None)
        assert kb == default_kb
        assert len(kb.services) == 3
        assert len(kb.faq) == 3
        assert kb.contact_info["email"]
        assert kb.contact_info["phone"]

    def test_partial_knowledge_base_keeps_given_fields(self, default_kb):
        kb = KnowledgeBase.from_raw({"companyInfo": "Acme", "faq": []})
        assert kb.company_info == "Acme"
        assert kb.faq == default_kb.faq
        assert kb.business_hours == default_kb.business_hours

    def test_snake_case_keys_accepted(self):
        kb = KnowledgeBase.from_raw({"business_hours": "24/7"})
        assert kb.business_hours == "24/7"


def _fake_client(content=None, error=None):
    def create(**kwargs):
        create.kwargs = kwargs
        if error is not None:
            raise error
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    completions = SimpleNamespace(create=create)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), create


class TestOpenAIResponder:
    def test_requests_json_mode_and_parses_reply(self):
        client, create = _fake_client(content=json.dumps({"message": "Sure!", "isActionRequired": False}))
        responder = OpenAIResponder(model="test-model", client=client)
        reply = responder.respond("hello", [], KnowledgeBase())
        assert reply.message == "Sure!"
        assert create.kwargs["model"] == "test-model"
        assert create.kwargs["response_format"] == {"type": "json_object"}
        assert create.kwargs["messages"][0]["role"] == "system"

    def test_provider_error_becomes_collaborator_error(self):
        client, _ = _fake_client(error=openai.OpenAIError("boom"))
        responder = OpenAIResponder(client=client)
        with pytest.raises(CollaboratorError):
            responder.respond("hello", [], KnowledgeBase())

    def test_client_created_lazily(self):
        responder = OpenAIResponder()
        assert responder._client is None

    def test_analyze_conversation_sends_transcript(self):
        client, create = _fake_client(content=json.dumps({"sentiment": "negative", "leadScore": 2, "summary": "Complaint."}))
        analysis = OpenAIResponder(client=client).analyze_conversation("Visitor: too expensive", channel="chat")
        assert analysis.sentiment == "negative"
        assert analysis.lead_score == 2
        assert create.kwargs["response_format"] == {"type": "json_object"}
        assert create.kwargs["messages"] == [
            {"role": "system", "content": build_analysis_prompt("chat")},
            {"role": "user", "content": "Visitor: too expensive"},
        ]

    def test_analysis_provider_error_becomes_collaborator_error(self):
        client, _ = _fake_client(error=openai.OpenAIError("boom"))
        with pytest.raises(CollaboratorError):
            OpenAIResponder(client=client).analyze_conversation("Visitor: hi")
