# aidevelo/chat/models.py
"""
Chat domain records: agent configuration, knowledge base, session, message, reply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from aidevelo.chat.actions import NO_ACTION, Action, action_data_of, action_type_of


class Sender(str, Enum):
    USER = "user"
    AGENT = "agent"


class SessionState(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    ENDED = "ended"


DEFAULT_COMPANY_INFO = (
    "AIDevelo.AI, a provider of modular AI agents that answer calls, chat with "
    "website visitors and manage social media for small and mid-sized businesses"
)
DEFAULT_SERVICES = ["AI Phone Agent", "AI Website Chat Agent", "AI Social Media Agent"]
DEFAULT_FAQ = [
    {
        "question": "What does AIDevelo.AI offer?",
        "answer": "Modular AI agents for phone, website chat and social media that you can combine into a bundle.",
    },
    {
        "question": "How much does it cost?",
        "answer": "Each agent has a monthly price; bundles of two agents get 10% off and all three get 15% off.",
    },
    {
        "question": "How fast can we get started?",
        "answer": "Most agents are live within a few days after a short onboarding call.",
    },
]
DEFAULT_BUSINESS_HOURS = "Mon-Fri 9:00-18:00"
DEFAULT_CONTACT_INFO = {"email": "hello@aidevelo.ai", "phone": "+41 44 000 00 00"}


@dataclass(frozen=True)
class KnowledgeBase:
    company_info: str = DEFAULT_COMPANY_INFO
    services: List[str] = field(default_factory=lambda: list(DEFAULT_SERVICES))
    faq: List[Dict[str, str]] = field(default_factory=lambda: [dict(x) for x in DEFAULT_FAQ])
    business_hours: str = DEFAULT_BUSINESS_HOURS
    contact_info: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CONTACT_INFO))

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "KnowledgeBase":
        """Build from a stored (camelCase or snake_case) dict; missing or empty fields use defaults."""
        raw = raw if isinstance(raw, dict) else {}

        def pick(*keys: str) -> Any:
            for k in keys:
                v = raw.get(k)
                if v:
                    return v
            return None

        company = pick("companyInfo", "company_info")
        services = pick("services")
        faq = pick("faq")
        hours = pick("businessHours", "business_hours")
        contact = pick("contactInfo", "contact_info")

        faq_items = [
            {"question": str(x.get("question", "")), "answer": str(x.get("answer", ""))}
            for x in (faq if isinstance(faq, list) else [])
            if isinstance(x, dict) and x.get("question")
        ]
        contact_items = (
            {str(k): str(v) for k, v in contact.items() if v} if isinstance(contact, dict) else {}
        )
        return cls(
            company_info=str(company) if isinstance(company, str) else DEFAULT_COMPANY_INFO,
            services=[str(s) for s in services] if isinstance(services, list) else list(DEFAULT_SERVICES),
            faq=faq_items or [dict(x) for x in DEFAULT_FAQ],
            business_hours=str(hours) if isinstance(hours, str) else DEFAULT_BUSINESS_HOURS,
            contact_info=contact_items or dict(DEFAULT_CONTACT_INFO),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "companyInfo": self.company_info,
            "services": list(self.services),
            "faq": [dict(x) for x in self.faq],
            "businessHours": self.business_hours,
            "contactInfo": dict(self.contact_info),
        }


@dataclass
class AgentConfig:
    id: str
    user_id: str
    module_id: str
    configuration: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    knowledge_base: Optional[Dict[str, Any]] = None
    custom_instructions: Optional[str] = None


@dataclass
class ChatSession:
    id: str
    agent_config_id: str
    started_at: datetime
    visitor_id: Optional[str] = None
    visitor_email: Optional[str] = None
    visitor_name: Optional[str] = None
    is_lead_captured: bool = False
    ended_at: Optional[datetime] = None

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None


@dataclass(frozen=True)
class ChatMessage:
    id: str
    session_id: str
    sender: Sender
    message: str
    timestamp: datetime


SENTIMENTS = ("positive", "neutral", "negative")


@dataclass(frozen=True)
class ConversationAnalysis:
    """Transcript-level triage: sentiment, 1-10 purchase intent, contact details, summary."""

    sentiment: str = "neutral"
    lead_score: int = 5
    extracted_info: Dict[str, Any] = field(default_factory=dict)
    summary: str = ""


@dataclass(frozen=True)
class ChatReply:
    message: str
    action: Action = NO_ACTION

    @property
    def is_action_required(self) -> bool:
        return action_type_of(self.action) is not None

    @property
    def action_type(self) -> Optional[str]:
        return action_type_of(self.action)

    @property
    def action_data(self) -> Optional[Dict[str, Any]]:
        return action_data_of(self.action)
