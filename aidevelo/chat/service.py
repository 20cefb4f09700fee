# aidevelo/chat/service.py
"""
Chat session protocol: one visitor conversation from widget open to end.

Lifecycle: NEW (no messages) -> ACTIVE (>= 1 message) -> ENDED (ended_at set).
Ending is caller-driven through end_session(); expire_idle_sessions() only
does anything when an idle timeout is configured.

Per visitor message:
  rate limit -> validate -> load session + agent config -> store user turn ->
  bounded history -> collaborator -> store agent turn -> apply capture_lead -> reply.
Responder failures never propagate; they become FALLBACK_REPLY.
Visitor text is stored exactly as sent; only blank messages are rejected.
Lead capture writes the lead columns only and never touches ended_at.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from aidevelo.chat.actions import CaptureLead
from aidevelo.chat.models import (
    AgentConfig,
    ChatMessage,
    ChatReply,
    ChatSession,
    ConversationAnalysis,
    KnowledgeBase,
    Sender,
    SessionState,
)
from aidevelo.core import config
from aidevelo.core.errors import CollaboratorError, NotFoundError, RateLimitError, ValidationError
from aidevelo.core.logging_context import set_session_id
from aidevelo.core.rate_limit import RateLimiter, rate_limit_key
from aidevelo.core.storage import Storage
from aidevelo.core.utils import utcnow
from aidevelo.generation.generator import FALLBACK_ANALYSIS, FALLBACK_REPLY, ChatResponder, HistoryTurn
from aidevelo.lead.capture import extract_lead_fields, merge_lead_fields

logger = logging.getLogger(__name__)

SESSION_OPERATION = "session"
MESSAGE_OPERATION = "message"


class ChatService:
    def __init__(
        self,
        storage: Storage,
        responder: ChatResponder,
        rate_limiter: RateLimiter,
        history_limit: int = config.CHAT_HISTORY_LIMIT,
        session_rate_limit: int = config.SESSION_RATE_LIMIT,
        message_rate_limit: int = config.MESSAGE_RATE_LIMIT,
        rate_window_seconds: int = config.RATE_LIMIT_WINDOW_SECONDS,
        idle_timeout_minutes: int = config.SESSION_IDLE_TIMEOUT_MINUTES,
    ) -> None:
        self.storage = storage
        self.responder = responder
        self.rate_limiter = rate_limiter
        self.history_limit = history_limit
        self.session_rate_limit = session_rate_limit
        self.message_rate_limit = message_rate_limit
        self.rate_window_seconds = rate_window_seconds
        self.idle_timeout_minutes = idle_timeout_minutes

    # ---- rate limiting ----
    def check_rate_limit(self, client_ip: str, operation: str) -> None:
        limit = self.session_rate_limit if operation == SESSION_OPERATION else self.message_rate_limit
        key = rate_limit_key(client_ip, operation)
        if not self.rate_limiter.check_and_consume(key, limit, self.rate_window_seconds):
            logger.info("Rate limit hit for %s (%d per %ds)", key, limit, self.rate_window_seconds)
            raise RateLimitError(operation, retry_after=self.rate_window_seconds)

    # ---- lookups ----
    def get_session(self, session_id: str) -> ChatSession:
        session = self.storage.get_chat_session(session_id)
        if session is None:
            raise NotFoundError("Chat session not found")
        return session

    def get_agent_config(self, agent_config_id: str) -> AgentConfig:
        agent_config = self.storage.get_agent_config(agent_config_id)
        if agent_config is None:
            raise NotFoundError("Agent configuration not found")
        return agent_config

    def session_state(self, session_id: str) -> SessionState:
        session = self.get_session(session_id)
        if session.is_ended:
            return SessionState.ENDED
        if self.storage.get_chat_messages(session_id, limit=1):
            return SessionState.ACTIVE
        return SessionState.NEW

    def get_history(self, session_id: str) -> List[ChatMessage]:
        self.get_session(session_id)
        return self.storage.get_chat_messages(session_id)

    # ---- lifecycle ----
    def create_session(
        self,
        agent_config_id: str,
        visitor_id: Optional[str] = None,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> ChatSession:
        if client_ip is not None:
            self.check_rate_limit(client_ip, SESSION_OPERATION)
        self.get_agent_config(agent_config_id)
        session = self.storage.create_chat_session(
            agent_config_id=agent_config_id,
            visitor_id=visitor_id,
            visitor_email=visitor_email,
            visitor_name=visitor_name,
        )
        set_session_id(session.id)
        logger.info("Chat session created for agent config %s", agent_config_id)
        return session

    def end_session(self, session_id: str, ended_at: Optional[datetime] = None) -> ChatSession:
        was_open = not self.get_session(session_id).is_ended
        session = self.storage.end_chat_session(session_id, ended_at or utcnow())
        if session is None:
            raise NotFoundError("Chat session not found")
        if was_open:
            logger.info("Chat session %s ended", session_id)
        return session

    def expire_idle_sessions(self, now: Optional[datetime] = None) -> int:
        """
        End open sessions idle longer than the configured timeout.
        No-op (returns 0) while SESSION_IDLE_TIMEOUT_MINUTES is 0.
        """
        if self.idle_timeout_minutes <= 0:
            return 0
        now = now or utcnow()
        cutoff = now - timedelta(minutes=self.idle_timeout_minutes)
        expired = 0
        for session in self.storage.list_open_sessions():
            last = self.storage.get_chat_messages(session.id, limit=1)
            last_activity = last[-1].timestamp if last else session.started_at
            if last_activity < cutoff:
                self.end_session(session.id, ended_at=now)
                expired += 1
        return expired

    # ---- messages ----
    def post_message(self, session_id: str, sender: Sender, text: str) -> ChatMessage:
        return self.storage.create_chat_message(session_id, Sender(sender), text)

    def store_agent_message(self, session_id: str, text: str, client_ip: Optional[str] = None) -> ChatMessage:
        if client_ip is not None:
            self.check_rate_limit(client_ip, MESSAGE_OPERATION)
        self.get_session(session_id)
        return self.post_message(session_id, Sender.AGENT, text)

    def build_history(self, session_id: str, exclude_message_id: Optional[str] = None) -> List[HistoryTurn]:
        """Most recent turns, oldest first, as role-tagged chat turns."""
        msgs = self.storage.get_chat_messages(session_id, limit=self.history_limit + 1)
        msgs = [m for m in msgs if m.id != exclude_message_id][-self.history_limit:]
        return [
            {"role": "user" if m.sender == Sender.USER else "assistant", "content": m.message}
            for m in msgs
        ]

    def handle_visitor_message(self, session_id: str, text: str, client_ip: Optional[str] = None) -> ChatReply:
        if client_ip is not None:
            self.check_rate_limit(client_ip, MESSAGE_OPERATION)
        if not text or not text.strip():
            raise ValidationError("Validation error", errors=[{"field": "message", "message": "must not be empty"}])

        set_session_id(session_id)
        session = self.get_session(session_id)
        if session.is_ended:
            raise ValidationError("Chat session has ended", errors=[{"field": "sessionId", "message": "session ended"}])

        agent_config = self.get_agent_config(session.agent_config_id)
        kb = KnowledgeBase.from_raw(agent_config.knowledge_base)

        user_msg = self.post_message(session_id, Sender.USER, text)
        history = self.build_history(session_id, exclude_message_id=user_msg.id)

        try:
            reply = self.responder.respond(text, history, kb, agent_config.custom_instructions)
        except CollaboratorError as e:
            logger.warning("Collaborator failed, sending fallback reply: %s", e)
            reply = ChatReply(message=FALLBACK_REPLY)
        except Exception:
            logger.exception("Responder raised unexpectedly; sending fallback reply")
            reply = ChatReply(message=FALLBACK_REPLY)

        self.post_message(session_id, Sender.AGENT, reply.message)

        if isinstance(reply.action, CaptureLead):
            self._capture_lead(session_id, reply.action, text)

        logger.info("Reply sent (action=%s)", reply.action_type or "none")
        return reply

    def _capture_lead(self, session_id: str, action: CaptureLead, visitor_text: str) -> None:
        # Only the lead columns are written; a concurrent end_session stays ended.
        found = merge_lead_fields(
            {"name": action.name, "email": action.email},
            extract_lead_fields(visitor_text),
        )
        self.storage.mark_lead_captured(session_id, visitor_email=found.get("email"), visitor_name=found.get("name"))
        logger.info("Lead captured for session %s", session_id)

    # ---- analysis ----
    def build_transcript(self, session_id: str) -> str:
        return "\n".join(
            f"{'Visitor' if m.sender == Sender.USER else 'Agent'}: {m.message}"
            for m in self.get_history(session_id)
        )

    def analyze_session(self, session_id: str) -> ConversationAnalysis:
        """Score a transcript; provider trouble yields FALLBACK_ANALYSIS instead of an error."""
        transcript = self.build_transcript(session_id)
        try:
            return self.responder.analyze_conversation(transcript, channel="chat")
        except CollaboratorError as e:
            logger.warning("Conversation analysis failed: %s", e)
        except Exception:
            logger.exception("Conversation analysis raised unexpectedly")
        return FALLBACK_ANALYSIS
