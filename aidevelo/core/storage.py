# aidevelo/core/storage.py
"""
Persistence for agent configs, chat sessions/messages, leads and contacts.

- MemoryStorage: dict-backed, process-local (default; used by tests)
- PostgresStorage: same contract over pg_cursor/rows_to_dicts

Chat messages are append-only and always read back oldest-first
(timestamp, then insertion sequence).
"""

from __future__ import annotations

import itertools
import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from aidevelo.chat.models import AgentConfig, ChatMessage, ChatSession, Sender
from aidevelo.core.schema import DDL
from aidevelo.core.utils import mask_db_url, pg_cursor, rows_to_dicts, utcnow
from aidevelo.lead.models import Contact, Lead

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class Storage(Protocol):
    # Agent configuration
    def create_agent_config(
        self,
        user_id: str,
        module_id: str,
        configuration: Dict[str, Any],
        knowledge_base: Optional[Dict[str, Any]] = None,
        custom_instructions: Optional[str] = None,
        is_active: bool = True,
    ) -> AgentConfig: ...

    def get_agent_config(self, config_id: str) -> Optional[AgentConfig]: ...

    # Chat
    def create_chat_session(
        self,
        agent_config_id: str,
        visitor_id: Optional[str] = None,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> ChatSession: ...

    def get_chat_session(self, session_id: str) -> Optional[ChatSession]: ...

    def end_chat_session(self, session_id: str, ended_at: datetime) -> Optional[ChatSession]:
        """Set ended_at unless already set; returns the stored session (None if unknown)."""
        ...

    def mark_lead_captured(
        self,
        session_id: str,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> Optional[ChatSession]:
        """Flag the lead and fill only missing visitor fields; ended_at is never touched."""
        ...

    def list_open_sessions(self) -> List[ChatSession]: ...

    def create_chat_message(self, session_id: str, sender: Sender, message: str) -> ChatMessage: ...

    def get_chat_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]: ...

    # Leads / contacts
    def create_lead(self, **fields: Any) -> Lead: ...

    def get_leads(self) -> List[Lead]: ...

    def create_contact(self, **fields: Any) -> Contact: ...

    def get_contacts(self) -> List[Contact]: ...


def _tail(items: Sequence[ChatMessage], limit: Optional[int]) -> List[ChatMessage]:
    if limit is None:
        return list(items)
    if limit <= 0:
        return []
    return list(items[-limit:])


# -----------------------------
# In-memory
# -----------------------------

class MemoryStorage:
    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._agent_configs: Dict[str, AgentConfig] = {}
        self._sessions: Dict[str, ChatSession] = {}
        self._messages: Dict[str, List[ChatMessage]] = {}
        self._leads: Dict[str, Lead] = {}
        self._contacts: Dict[str, Contact] = {}
        self._seq = itertools.count()
        self._msg_seq: Dict[str, int] = {}

    def create_agent_config(
        self,
        user_id: str,
        module_id: str,
        configuration: Dict[str, Any],
        knowledge_base: Optional[Dict[str, Any]] = None,
        custom_instructions: Optional[str] = None,
        is_active: bool = True,
    ) -> AgentConfig:
        now = self._clock()
        config = AgentConfig(
            id=_new_id(),
            user_id=user_id,
            module_id=module_id,
            configuration=dict(configuration or {}),
            knowledge_base=knowledge_base,
            custom_instructions=custom_instructions,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self._agent_configs[config.id] = config
        return config

    def get_agent_config(self, config_id: str) -> Optional[AgentConfig]:
        return self._agent_configs.get(config_id)

    def create_chat_session(
        self,
        agent_config_id: str,
        visitor_id: Optional[str] = None,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> ChatSession:
        session = ChatSession(
            id=_new_id(),
            agent_config_id=agent_config_id,
            visitor_id=visitor_id or None,
            visitor_email=visitor_email or None,
            visitor_name=visitor_name or None,
            is_lead_captured=False,
            started_at=self._clock(),
        )
        self._sessions[session.id] = session
        return replace(session)

    def get_chat_session(self, session_id: str) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        return replace(session) if session else None

    def end_chat_session(self, session_id: str, ended_at: datetime) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.ended_at is None:
            session.ended_at = ended_at
        return replace(session)

    def mark_lead_captured(
        self,
        session_id: str,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        session.is_lead_captured = True
        session.visitor_email = session.visitor_email or visitor_email or None
        session.visitor_name = session.visitor_name or visitor_name or None
        return replace(session)

    def list_open_sessions(self) -> List[ChatSession]:
        return [replace(s) for s in self._sessions.values() if s.ended_at is None]

    def create_chat_message(self, session_id: str, sender: Sender, message: str) -> ChatMessage:
        msg = ChatMessage(
            id=_new_id(),
            session_id=session_id,
            sender=Sender(sender),
            message=message,
            timestamp=self._clock(),
        )
        self._msg_seq[msg.id] = next(self._seq)
        self._messages.setdefault(session_id, []).append(msg)
        return msg

    def get_chat_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        msgs = sorted(
            self._messages.get(session_id, []),
            key=lambda m: (m.timestamp, self._msg_seq[m.id]),
        )
        return _tail(msgs, limit)

    def create_lead(self, **fields: Any) -> Lead:
        lead = Lead(id=_new_id(), created_at=self._clock(), **fields)
        self._leads[lead.id] = lead
        return lead

    def get_leads(self) -> List[Lead]:
        return sorted(self._leads.values(), key=lambda x: x.created_at, reverse=True)

    def create_contact(self, **fields: Any) -> Contact:
        contact = Contact(id=_new_id(), created_at=self._clock(), **fields)
        self._contacts[contact.id] = contact
        return contact

    def get_contacts(self) -> List[Contact]:
        return sorted(self._contacts.values(), key=lambda x: x.created_at, reverse=True)


# -----------------------------
# Postgres
# -----------------------------

_AGENT_CONFIG_COLS = (
    "id, user_id, module_id, is_active, configuration, knowledge_base, "
    "custom_instructions, created_at, updated_at"
)
_SESSION_COLS = (
    "id, agent_config_id, visitor_id, visitor_email, visitor_name, "
    "is_lead_captured, started_at, ended_at"
)
_MESSAGE_COLS = "id, session_id, sender, message, timestamp"
_LEAD_COLS = "id, name, company, industry, phone, email, message, created_at"
_CONTACT_COLS = (
    "id, first_name, last_name, email, phone, company, website, employee_count, industry, "
    "interested_modules, current_challenges, budget, timeline, additional_info, "
    "accept_privacy, accept_newsletter, lead_score, status, created_at"
)


def _json_param(value: Optional[Dict[str, Any]]) -> Optional[str]:
    return None if value is None else json.dumps(value, ensure_ascii=False)


def _json_value(value: Any) -> Any:
    # jsonb is decoded by both drivers; plain text columns come back as str
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_session(row: Dict[str, Any]) -> ChatSession:
    return ChatSession(**row)


def _row_to_message(row: Dict[str, Any]) -> ChatMessage:
    return ChatMessage(**{**row, "sender": Sender(row["sender"])})


def _row_to_agent_config(row: Dict[str, Any]) -> AgentConfig:
    return AgentConfig(
        **{
            **row,
            "configuration": _json_value(row.get("configuration")) or {},
            "knowledge_base": _json_value(row.get("knowledge_base")),
        }
    )


class PostgresStorage:
    def __init__(self, db_url: str) -> None:
        self.db_url = db_url
        logger.info("Using Postgres storage at %s", mask_db_url(db_url))

    def ensure_schema(self) -> None:
        with pg_cursor(self.db_url) as cur:
            cur.execute(DDL)

    def _fetch(self, sql: str, params: Any = None) -> List[Dict[str, Any]]:
        with pg_cursor(self.db_url) as cur:
            cur.execute(sql, params)
            return rows_to_dicts(cur)

    # ---- agent configs ----
    def create_agent_config(
        self,
        user_id: str,
        module_id: str,
        configuration: Dict[str, Any],
        knowledge_base: Optional[Dict[str, Any]] = None,
        custom_instructions: Optional[str] = None,
        is_active: bool = True,
    ) -> AgentConfig:
        rows = self._fetch(
            f"""
            INSERT INTO aidevelo.agent_configs
              (id, user_id, module_id, is_active, configuration, knowledge_base, custom_instructions)
            VALUES (%s, %s, %s, %s, %s::jsonb, %s::jsonb, %s)
            RETURNING {_AGENT_CONFIG_COLS};
            """,
            (
                _new_id(), user_id, module_id, is_active,
                _json_param(configuration or {}), _json_param(knowledge_base), custom_instructions,
            ),
        )
        return _row_to_agent_config(rows[0])

    def get_agent_config(self, config_id: str) -> Optional[AgentConfig]:
        rows = self._fetch(
            f"SELECT {_AGENT_CONFIG_COLS} FROM aidevelo.agent_configs WHERE id = %s;",
            (config_id,),
        )
        return _row_to_agent_config(rows[0]) if rows else None

    # ---- sessions ----
    def create_chat_session(
        self,
        agent_config_id: str,
        visitor_id: Optional[str] = None,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> ChatSession:
        rows = self._fetch(
            f"""
            INSERT INTO aidevelo.chat_sessions
              (id, agent_config_id, visitor_id, visitor_email, visitor_name, is_lead_captured)
            VALUES (%s, %s, %s, %s, %s, FALSE)
            RETURNING {_SESSION_COLS};
            """,
            (_new_id(), agent_config_id, visitor_id or None, visitor_email or None, visitor_name or None),
        )
        return _row_to_session(rows[0])

    def get_chat_session(self, session_id: str) -> Optional[ChatSession]:
        rows = self._fetch(
            f"SELECT {_SESSION_COLS} FROM aidevelo.chat_sessions WHERE id = %s;",
            (session_id,),
        )
        return _row_to_session(rows[0]) if rows else None

    def end_chat_session(self, session_id: str, ended_at: datetime) -> Optional[ChatSession]:
        rows = self._fetch(
            f"""
            UPDATE aidevelo.chat_sessions
               SET ended_at = COALESCE(ended_at, %s)
             WHERE id = %s
            RETURNING {_SESSION_COLS};
            """,
            (ended_at, session_id),
        )
        return _row_to_session(rows[0]) if rows else None

    def mark_lead_captured(
        self,
        session_id: str,
        visitor_email: Optional[str] = None,
        visitor_name: Optional[str] = None,
    ) -> Optional[ChatSession]:
        rows = self._fetch(
            f"""
            UPDATE aidevelo.chat_sessions
               SET is_lead_captured = TRUE,
                   visitor_email = COALESCE(visitor_email, %s),
                   visitor_name = COALESCE(visitor_name, %s)
             WHERE id = %s
            RETURNING {_SESSION_COLS};
            """,
            (visitor_email or None, visitor_name or None, session_id),
        )
        return _row_to_session(rows[0]) if rows else None

    def list_open_sessions(self) -> List[ChatSession]:
        rows = self._fetch(
            f"SELECT {_SESSION_COLS} FROM aidevelo.chat_sessions WHERE ended_at IS NULL ORDER BY started_at;"
        )
        return [_row_to_session(r) for r in rows]

    # ---- messages ----
    def create_chat_message(self, session_id: str, sender: Sender, message: str) -> ChatMessage:
        rows = self._fetch(
            f"""
            INSERT INTO aidevelo.chat_messages (id, session_id, sender, message)
            VALUES (%s, %s, %s, %s)
            RETURNING {_MESSAGE_COLS};
            """,
            (_new_id(), session_id, Sender(sender).value, message),
        )
        return _row_to_message(rows[0])

    def get_chat_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        if limit is None:
            rows = self._fetch(
                f"""
                SELECT {_MESSAGE_COLS} FROM aidevelo.chat_messages
                 WHERE session_id = %s
                 ORDER BY timestamp ASC, seq ASC;
                """,
                (session_id,),
            )
        else:
            # newest N, flipped back to oldest-first
            rows = self._fetch(
                f"""
                SELECT {_MESSAGE_COLS} FROM (
                  SELECT {_MESSAGE_COLS}, seq FROM aidevelo.chat_messages
                   WHERE session_id = %s
                   ORDER BY timestamp DESC, seq DESC
                   LIMIT %s
                ) recent
                ORDER BY timestamp ASC, seq ASC;
                """,
                (session_id, max(limit, 0)),
            )
        return [_row_to_message(r) for r in rows]

    # ---- leads / contacts ----
    def create_lead(self, **fields: Any) -> Lead:
        rows = self._fetch(
            f"""
            INSERT INTO aidevelo.leads (id, name, company, industry, phone, email, message)
            VALUES (%(id)s, %(name)s, %(company)s, %(industry)s, %(phone)s, %(email)s, %(message)s)
            RETURNING {_LEAD_COLS};
            """,
            {"phone": None, "message": None, **fields, "id": _new_id()},
        )
        return Lead(**rows[0])

    def get_leads(self) -> List[Lead]:
        rows = self._fetch(f"SELECT {_LEAD_COLS} FROM aidevelo.leads ORDER BY created_at DESC;")
        return [Lead(**r) for r in rows]

    def create_contact(self, **fields: Any) -> Contact:
        params = {
            "phone": None, "website": None, "additional_info": None,
            "accept_privacy": False, "accept_newsletter": False, "status": "new",
            **fields,
            "id": _new_id(),
        }
        params["interested_modules"] = list(params.get("interested_modules") or [])
        rows = self._fetch(
            f"""
            INSERT INTO aidevelo.contacts
              (id, first_name, last_name, email, phone, company, website, employee_count, industry,
               interested_modules, current_challenges, budget, timeline, additional_info,
               accept_privacy, accept_newsletter, lead_score, status)
            VALUES
              (%(id)s, %(first_name)s, %(last_name)s, %(email)s, %(phone)s, %(company)s, %(website)s,
               %(employee_count)s, %(industry)s, %(interested_modules)s, %(current_challenges)s,
               %(budget)s, %(timeline)s, %(additional_info)s, %(accept_privacy)s,
               %(accept_newsletter)s, %(lead_score)s, %(status)s)
            RETURNING {_CONTACT_COLS};
            """,
            params,
        )
        return Contact(**rows[0])

    def get_contacts(self) -> List[Contact]:
        rows = self._fetch(f"SELECT {_CONTACT_COLS} FROM aidevelo.contacts ORDER BY created_at DESC;")
        return [Contact(**r) for r in rows]


def build_storage(use_db: bool, db_url: Optional[str]) -> Storage:
    if use_db and db_url:
        storage = PostgresStorage(db_url)
        storage.ensure_schema()
        return storage
    return MemoryStorage()
