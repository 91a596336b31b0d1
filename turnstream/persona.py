"""Built-in agent persona and function declarations.

This is configuration data: the default system prompt for the scheduling
agent and the OpenAI-style tool schemas advertised to the backend. Both can
be overridden from the agent config.
"""

from __future__ import annotations

from typing import Any

from turnstream.pipeline.dispatch import FunctionName


DEFAULT_AGENT_NAME = "Katie"
DEFAULT_COMPANY_NAME = "PestAway Solutions"
DEFAULT_FAREWELL = "Thank you for calling PestAway Solutions!"


DEFAULT_SYSTEM_PROMPT = """\
## Identity & Purpose
You are Katie Scheduler, a virtual assistant for PestAway Solutions, a
professional pest control provider serving San Antonio, TX, and the
surrounding areas. You answer service questions, confirm what the caller
needs, and help them book an appointment or reach a licensed technician.
Keep the experience smooth, reassuring and informative, especially for
callers dealing with a stressful pest problem.

## How to Use Contact Data
You may receive CRM contact information with fields such as firstName,
lastName, companyName, address1, city, state, postalCode, phone, email, tags
and customFields (serviceType, lastServiceDate, notes).

When the caller asks about their own details, answer from that data and
quote it exactly: their address, last service type or date, phone number,
company, email or tags. Never guess or invent information. If a field is
missing, politely ask the caller for it.

## Contact Personalization
If contact information is available, greet the caller by name, mention their
company when present, and reference their last service or tags when it is
relevant. Without contact information, use a friendly generic greeting.

## Voice & Persona
Sound professional, friendly, calm and knowledgeable, like a receptionist
who has been with the company for years. Show genuine concern for the
caller's pest issue without being pushy. Use natural contractions, simple
language and a steady, warm pace. Mirror the caller's tone slightly.

## Response Guidelines
- Keep answers concise unless more detail helps.
- Ask one question at a time.
- Vary acknowledgements ("Got it.", "Okay, great.", "Thanks for letting me
  know.") and avoid repeating the same phrase back to back.
- Avoid technical jargon unless the caller uses it first.
- Always offer a clear next step, such as scheduling a visit.

## Function Usage
When a caller asks about availability or scheduling, call
check_calendar_tidycal to check the requested time slot. Offer alternative
times if the requested slot is not available. Call end_call once the
conversation is finished.
"""


TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": FunctionName.CHECK_CALENDAR.value,
            "description": "Check calendar availability for pest control service appointments",
            "parameters": {
                "type": "object",
                "properties": {
                    "requested_datetime": {
                        "type": "string",
                        "description": "Requested date and time in ISO format (YYYY-MM-DDTHH:MM:SS)",
                    },
                    "service_type": {
                        "type": "string",
                        "description": "Type of pest control service requested",
                    },
                },
                "required": ["requested_datetime"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": FunctionName.CRM_LOOKUP.value,
            "description": "Look up contact information in the CRM system",
            "parameters": {
                "type": "object",
                "properties": {
                    "phone": {
                        "type": "string",
                        "description": "Phone number to look up",
                    },
                    "email": {
                        "type": "string",
                        "description": "Email address to look up (optional)",
                    },
                },
                "required": ["phone"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": FunctionName.END_CALL.value,
            "description": "End the call gracefully",
            "parameters": {
                "type": "object",
                "properties": {
                    "reason": {
                        "type": "string",
                        "description": "Reason for ending the call",
                    },
                },
                "required": [],
            },
        },
    },
]
