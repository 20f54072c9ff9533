"""Content signatures for change detection.

A signature projects a document onto its meaningful fields, puts every
list into a stable order and hashes the canonical JSON. Two documents
that differ only in list order or bookkeeping timestamps share a
signature; any content change produces a new one.
"""

import hashlib
import json
from collections.abc import Iterable
from datetime import datetime, timezone

from familyhub.schemas.family import ChatMessage, FamilyDocument, Reminder
from familyhub.schemas.planner import PlannerEntry


def _utc(value: datetime | None) -> str | None:
    return value.astimezone(timezone.utc).isoformat() if value else None


def digest(value) -> str:
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(text.encode()).hexdigest()


# --- Ordering ---

def chat_order_key(message: ChatMessage):
    return message.created_at, message.id


def reminder_order_key(reminder: Reminder):
    return reminder.created_at, reminder.id


def entry_order_key(entry: PlannerEntry):
    return entry.start_date, entry.start_time, entry.id


def ordered_chat(messages: Iterable[ChatMessage]) -> list[ChatMessage]:
    """Display order: created_at, then id as tie-break."""
    return sorted(messages, key=chat_order_key)


# --- Signatures ---

def family_signature(family: FamilyDocument | None) -> str | None:
    if family is None:
        return None
    return digest({
        "id": family.id,
        "name": family.name,
        "code": family.code,
        "owner": family.owner,
        "members": [
            {"username": m.username, "role": m.role}
            for m in sorted(family.members, key=lambda m: m.username)
        ],
        "reminders": [
            {
                **r.model_dump(mode="json", exclude={"created_at", "assigned_to"}),
                "assigned_to": sorted(r.assigned_to),
                "created_at": _utc(r.created_at),
            }
            for r in sorted(family.reminders, key=reminder_order_key)
        ],
        "chat": [
            {
                "id": m.id,
                "username": m.username,
                "message": m.message,
                "created_at": _utc(m.created_at),
            }
            for m in ordered_chat(family.chat)
        ],
    })


def planner_signature(entries: Iterable[PlannerEntry] | None) -> str:
    return digest([
        {
            **e.model_dump(mode="json", exclude={"created_at"}),
            "created_at": _utc(e.created_at),
        }
        for e in sorted(entries or [], key=entry_order_key)
    ])
