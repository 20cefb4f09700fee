# aidevelo/lead/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Lead:
    id: str
    name: str
    company: str
    industry: str
    email: str
    created_at: datetime
    phone: Optional[str] = None
    message: Optional[str] = None


@dataclass
class Contact:
    id: str
    first_name: str
    last_name: str
    email: str
    company: str
    employee_count: str
    industry: str
    current_challenges: str
    budget: str
    timeline: str
    lead_score: str
    created_at: datetime
    interested_modules: List[str] = field(default_factory=list)
    phone: Optional[str] = None
    website: Optional[str] = None
    additional_info: Optional[str] = None
    accept_privacy: bool = False
    accept_newsletter: bool = False
    status: str = "new"  # new, contacted, qualified, converted
