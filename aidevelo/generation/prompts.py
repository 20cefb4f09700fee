# aidevelo/generation/prompts.py
from __future__ import annotations

import json
from typing import Optional

from aidevelo.chat.models import KnowledgeBase

SYSTEM_PROMPT = """
You are a helpful AI assistant for {company_info}.

Business Information:
- Services: {services}
- Hours: {business_hours}
- Contact: {contact_info}

Available Actions:
- If the user wants to book an appointment, respond with the "book_appointment" action
- If the user provides contact info or asks to be contacted, respond with the "capture_lead" action
- If you can't help, respond with the "escalate_human" action
- Otherwise set isActionRequired to false and omit actionType

FAQ Knowledge:
{faq}

Instructions:
- Be friendly, professional, and helpful
- Answer questions about the business using the knowledge above; never invent prices or facts
- Offer to book appointments when relevant
- Capture leads when users show interest
- Respond ONLY with JSON: {{"message": "your response", "isActionRequired": boolean, "actionType": "book_appointment|capture_lead|escalate_human", "actionData": {{}}}}
""".strip()


ANALYSIS_PROMPT = """
Analyze this {channel} conversation and extract information.

Provide:
1. Sentiment: positive, neutral, or negative
2. Lead score: 1-10 (10 = high intent to purchase)
3. Extracted contact information (name, email, phone, company, interests)
4. Brief summary

Respond in JSON format with: sentiment, leadScore, extractedInfo, summary
""".strip()


def build_analysis_prompt(channel: str = "chat") -> str:
    return ANALYSIS_PROMPT.format(channel=channel or "chat")


def format_faq(kb: KnowledgeBase) -> str:
    return "\n\n".join(f"Q: {item['question']}\nA: {item['answer']}" for item in kb.faq)


def build_system_prompt(kb: KnowledgeBase, custom_instructions: Optional[str] = None) -> str:
    prompt = SYSTEM_PROMPT.format(
        company_info=kb.company_info or "this business",
        services=", ".join(kb.services),
        business_hours=kb.business_hours,
        contact_info=json.dumps(kb.contact_info, ensure_ascii=False),
        faq=format_faq(kb),
    )
    if custom_instructions and custom_instructions.strip():
        prompt += f"\n\nAdditional instructions from the business:\n{custom_instructions.strip()}"
    return prompt
