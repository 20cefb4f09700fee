# aidevelo/lead/capture.py
"""
Visitor contact details pulled out of free chat text.

Used when a reply carries a capture_lead action so the session can record
who the lead is even if the collaborator's payload is sparse.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

_EMAIL_RE = re.compile(r"[\w\.+-]+@[\w\.-]+\.\w+", re.IGNORECASE)
_PHONE_RE = re.compile(r"(?<![\w@])(?:\+?\d[\s\-()]*){7,}\d\b")
_NAME_RE  = re.compile(r"\b(?i:my\s+name\s+is|i\s*'?m|i\s+am|this\s+is)\s+([A-Z][A-Za-z'\-]{1,30}(?:\s+[A-Z][A-Za-z'\-]{1,30})?)\b")


def extract_lead_fields(text: str) -> Dict[str, str]:
    """Extract name, email and phone from visitor text."""
    lead: Dict[str, str] = {}
    if not text:
        return lead

    if m := _EMAIL_RE.search(text):
        lead["email"] = m.group(0).strip()

    if m := _PHONE_RE.search(text):
        lead["phone"] = m.group(0).strip()

    if m := _NAME_RE.search(text):
        possible = m.group(1).strip()
        lead["name"] = " ".join(w.capitalize() for w in re.split(r"\s+", possible))

    return lead


def merge_lead_fields(primary: Dict[str, Optional[str]], fallback: Dict[str, str]) -> Dict[str, str]:
    """Values from primary win; fallback only fills gaps. Empty values are dropped."""
    merged = {k: v for k, v in fallback.items() if v}
    merged.update({k: v for k, v in primary.items() if v})
    return merged
