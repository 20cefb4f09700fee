# aidevelo/generation/generator.py
"""
Generative collaborator: system prompt + bounded history + new message -> ChatReply.

The provider is expected to answer with a JSON object
  {"message": str, "isActionRequired": bool, "actionType": str?, "actionData": dict?}
Malformed or missing fields degrade to safe defaults in parse_reply().
Provider failures (timeouts, API errors) raise CollaboratorError; the chat
service turns those into a fallback reply.

The same provider also scores whole transcripts (analyze_conversation);
see parse_analysis() for the tolerated shapes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import openai
from openai import OpenAI

from aidevelo.chat.actions import NO_ACTION, build_action
from aidevelo.chat.models import SENTIMENTS, ChatReply, ConversationAnalysis, KnowledgeBase
from aidevelo.core.config import OPENAI_CHAT_MODEL, OPENAI_TIMEOUT_SECONDS
from aidevelo.core.errors import CollaboratorError
from aidevelo.generation.prompts import build_analysis_prompt, build_system_prompt

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "I'm here to help! How can I assist you today?"
FALLBACK_REPLY = (
    "I apologize, but I'm having trouble right now. Please try again or contact us directly."
)

DEFAULT_ANALYSIS_SUMMARY = "Conversation analyzed"
FALLBACK_ANALYSIS = ConversationAnalysis(
    sentiment="neutral", lead_score=5, extracted_info={}, summary="Error analyzing conversation"
)

HistoryTurn = Dict[str, str]  # {"role": "user"|"assistant", "content": "..."}


class ChatResponder(Protocol):
    def respond(
        self,
        message: str,
        history: List[HistoryTurn],
        knowledge_base: KnowledgeBase,
        custom_instructions: Optional[str] = None,
    ) -> ChatReply: ...

    def analyze_conversation(self, transcript: str, channel: str = "chat") -> ConversationAnalysis: ...


# ----------------------------
# Reply parsing (tolerant)
# ----------------------------
def _load_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def parse_reply(raw: Optional[str]) -> ChatReply:
    data = _load_object(raw)
    if data is None:
        logger.warning("Unparseable collaborator reply; using default message")
        return ChatReply(message=DEFAULT_REPLY)

    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        message = DEFAULT_REPLY

    action = NO_ACTION
    if bool(data.get("isActionRequired")):
        action = build_action(data.get("actionType"), data.get("actionData"))
    return ChatReply(message=message.strip(), action=action)


_INFO_FIELDS = ("name", "email", "phone", "company")


def _lead_score(value: Any) -> int:
    """Clamp to 1..10; missing, zero or non-numeric scores count as 5."""
    if isinstance(value, bool):
        return 5
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 5
    if score != score or not score:  # NaN or 0
        return 5
    return int(round(max(1.0, min(10.0, score))))


def _extracted_info(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        return {}
    info: Dict[str, Any] = {}
    for key in _INFO_FIELDS:
        v = value.get(key)
        if isinstance(v, str) and v.strip():
            info[key] = v.strip()
    interests = value.get("interests")
    if isinstance(interests, list):
        kept = [str(x).strip() for x in interests if isinstance(x, (str, int, float)) and str(x).strip()]
        if kept:
            info["interests"] = kept
    return info


def parse_analysis(raw: Optional[str]) -> ConversationAnalysis:
    data = _load_object(raw)
    if data is None:
        logger.warning("Unparseable conversation analysis; using fallback")
        return FALLBACK_ANALYSIS

    sentiment = data.get("sentiment")
    summary = data.get("summary")
    return ConversationAnalysis(
        sentiment=sentiment if sentiment in SENTIMENTS else "neutral",
        lead_score=_lead_score(data.get("leadScore")),
        extracted_info=_extracted_info(data.get("extractedInfo")),
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else DEFAULT_ANALYSIS_SUMMARY,
    )


def build_messages(
    message: str,
    history: List[HistoryTurn],
    knowledge_base: KnowledgeBase,
    custom_instructions: Optional[str] = None,
) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": build_system_prompt(knowledge_base, custom_instructions)},
        *({"role": t["role"], "content": t["content"]} for t in history),
        {"role": "user", "content": message},
    ]


# ----------------------------
# OpenAI-backed responder
# ----------------------------
class OpenAIResponder:
    """
    Chat Completions in JSON mode. The client is created on first use so the
    app can start (and tests can run) without OPENAI_API_KEY.
    """

    def __init__(
        self,
        model: str = OPENAI_CHAT_MODEL,
        timeout: float = OPENAI_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(timeout=self.timeout)
        return self._client

    def _complete_json(self, messages: List[Dict[str, Any]]) -> Optional[str]:
        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise CollaboratorError(f"{type(e).__name__}: {e}") from e

        if not resp.choices:
            raise CollaboratorError("empty_choices")
        return resp.choices[0].message.content

    def respond(
        self,
        message: str,
        history: List[HistoryTurn],
        knowledge_base: KnowledgeBase,
        custom_instructions: Optional[str] = None,
    ) -> ChatReply:
        messages = build_messages(message, history, knowledge_base, custom_instructions)
        return parse_reply(self._complete_json(messages))

    def analyze_conversation(self, transcript: str, channel: str = "chat") -> ConversationAnalysis:
        messages = [
            {"role": "system", "content": build_analysis_prompt(channel)},
            {"role": "user", "content": transcript},
        ]
        return parse_analysis(self._complete_json(messages))
