"""Contact profile helpers.

Turns a CRM contact payload into the short text digest that is injected
into every prompt, and into the personalized opening greeting. Malformed
profile data never blocks a call: every helper here degrades to an empty
result instead of raising.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger


# Placeholder the CRM emits for tags that were never filled in
UNDEFINED_TAG = "[undefined]"


def parse_contact_profile(payload: Any) -> dict[str, Any]:
    """Normalize a contact payload into a dict.

    Args:
        payload: A JSON string, an already-parsed mapping, or None.

    Returns:
        The profile as a dict, or {} if absent or unparsable.
    """
    if payload is None or payload == "":
        return {}
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            logger.debug("Contact payload is not valid JSON, ignoring")
            return {}
    if not isinstance(payload, dict):
        return {}
    return payload


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _join(values: list[Any], sep: str) -> str:
    return sep.join(t for t in (_text(v) for v in values) if t)


def _valid_tags(tags: Any) -> list[str]:
    if not isinstance(tags, list):
        return []
    return [
        str(tag) for tag in tags
        if isinstance(tag, str) and tag.strip() and tag != UNDEFINED_TAG
    ]


def build_contact_summary(payload: Any) -> str:
    """Build the plain-text contact digest for the prompt.

    Fields appear in a fixed order: name, company, phone, email, address,
    last service, last service date, notes, tags. Absent fields are left
    out entirely.

    Returns:
        "[Contact Information: Customer: ... | Company: ...]" or "" when
        there is nothing to report.
    """
    contact = parse_contact_profile(payload)
    if not contact:
        return ""

    parts: list[str] = []

    name = _join([contact.get("firstName"), contact.get("lastName")], " ")
    if name:
        parts.append(f"Customer: {name}")
    if _text(contact.get("companyName")):
        parts.append(f"Company: {_text(contact['companyName'])}")

    if _text(contact.get("phone")):
        parts.append(f"Phone: {_text(contact['phone'])}")
    if _text(contact.get("email")):
        parts.append(f"Email: {_text(contact['email'])}")

    address = _join(
        [
            contact.get("address1"),
            contact.get("city"),
            contact.get("state"),
            contact.get("postalCode"),
        ],
        ", ",
    )
    if address:
        parts.append(f"Address: {address}")

    custom = contact.get("customFields")
    if isinstance(custom, dict):
        if _text(custom.get("serviceType")):
            parts.append(f"Last Service: {_text(custom['serviceType'])}")
        if _text(custom.get("lastServiceDate")):
            parts.append(f"Last Service Date: {_text(custom['lastServiceDate'])}")
        if _text(custom.get("notes")):
            parts.append(f"Notes: {_text(custom['notes'])}")

    tags = _valid_tags(contact.get("tags"))
    if tags:
        parts.append(f"Tags: {', '.join(tags)}")

    if not parts:
        return ""
    return f"[Contact Information: {' | '.join(parts)}]"


def build_greeting(
    payload: Any,
    agent_name: str = "Katie",
    company_name: str = "PestAway Solutions",
) -> str:
    """Build the opening line spoken when the call connects.

    Greets the caller by name when known, otherwise by company, otherwise
    generically.
    """
    contact = parse_contact_profile(payload)
    full_name = _join([contact.get("firstName"), contact.get("lastName")], " ")
    caller_company = _text(contact.get("companyName"))

    if full_name:
        greeting = f"Hi {full_name}, I'm {agent_name} from {company_name}."
    elif caller_company:
        greeting = f"Hi there at {caller_company}, I'm {agent_name} from {company_name}."
    else:
        greeting = f"Hi there! I'm {agent_name} from {company_name}."
    return f"{greeting} How can I help you today?"
