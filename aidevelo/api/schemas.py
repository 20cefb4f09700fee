# aidevelo/api/schemas.py
"""
API-facing Pydantic models.

Includes:
- Envelope (the {success, data} wrapper every endpoint returns)
- Chat: session/message requests and responses
- Pricing: catalog, quote request/response
- Leads / contacts

Design notes
- snake_case in Python, camelCase on the wire (alias_generator=to_camel).
- Request validation failures are mapped to 400 in main.py.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(ApiModel, Generic[T]):
    success: bool = True
    data: T


class ErrorResponse(ApiModel):
    success: bool = False
    message: str
    errors: Optional[List[Dict[str, Any]]] = None


class HealthResponse(ApiModel):
    ok: bool = Field(True, description="Service health flag")


# ---- Chat ----

class CreateSessionRequest(ApiModel):
    agent_config_id: str = Field(..., min_length=1)
    visitor_id: Optional[str] = Field(None, max_length=200)
    visitor_email: Optional[str] = Field(None, max_length=320)
    visitor_name: Optional[str] = Field(None, max_length=200)


class SessionOut(ApiModel):
    id: str
    agent_config_id: str
    visitor_id: Optional[str] = None
    visitor_email: Optional[str] = None
    visitor_name: Optional[str] = None
    is_lead_captured: bool = False
    started_at: datetime
    ended_at: Optional[datetime] = None


class PostMessageRequest(ApiModel):
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=4000)
    sender: Literal["user", "agent"]


class ChatReplyOut(ApiModel):
    message: str
    is_action_required: bool = False
    action_type: Optional[Literal["book_appointment", "capture_lead", "escalate_human"]] = None
    action_data: Optional[Dict[str, Any]] = None
    session_id: str


class MessageStoredOut(ApiModel):
    message: str = "Message stored"


class ChatMessageOut(ApiModel):
    id: str
    session_id: str
    sender: Literal["user", "agent"]
    message: str
    timestamp: datetime


class ConversationAnalysisOut(ApiModel):
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    lead_score: int = Field(5, ge=1, le=10)
    extracted_info: Dict[str, Any] = Field(default_factory=dict)
    summary: str


# ---- Pricing ----

class ModuleOut(ApiModel):
    id: str
    name: str
    price: float
    highlights: List[str] = Field(default_factory=list)
    description: str = ""


class DiscountTierOut(ApiModel):
    module_count: int
    discount_percent: float


class CatalogOut(ApiModel):
    modules: List[ModuleOut]
    discount_tiers: List[DiscountTierOut]


class QuoteRequest(ApiModel):
    module_ids: List[str] = Field(default_factory=list)


class QuoteOut(ApiModel):
    subtotal: float
    discount_percent: float
    discount_amount: float
    total: float
    selected_modules: List[ModuleOut]
    formatted_subtotal: str
    formatted_discount: str
    formatted_total: str
    formatted_discount_percent: str


# ---- Leads / contacts ----

class LeadRequest(ApiModel):
    name: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    industry: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = None
    message: Optional[str] = None


class LeadOut(ApiModel):
    id: str
    name: str
    company: str
    industry: str
    email: str
    phone: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime


class ContactRequest(ApiModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = None
    company: str = Field(..., min_length=1)
    website: Optional[str] = None
    employee_count: str = Field(..., min_length=1)
    industry: str = Field(..., min_length=1)
    interested_modules: List[str] = Field(..., min_length=1)
    current_challenges: str = Field(..., min_length=1)
    budget: str = Field(..., min_length=1)
    timeline: str = Field(..., min_length=1)
    additional_info: Optional[str] = None
    accept_privacy: bool = False
    accept_newsletter: bool = False


class ContactCreatedOut(ApiModel):
    id: str
    lead_score: str
    status: str


class ContactOut(ApiModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: str
    website: Optional[str] = None
    employee_count: str
    industry: str
    interested_modules: List[str]
    current_challenges: str
    budget: str
    timeline: str
    additional_info: Optional[str] = None
    accept_privacy: bool = False
    accept_newsletter: bool = False
    lead_score: str
    status: str
    created_at: datetime
