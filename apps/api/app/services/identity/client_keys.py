from __future__ import annotations

from dataclasses import dataclass

from app.services.enquiries.records import RawRecord
from app.services.identity.shared_prospects import (
    is_generic_mailbox,
    is_shared_prospect_id,
    normalize_email,
    normalize_id,
    shared_prospect_mailbox,
)


@dataclass(frozen=True)
class ClientIdentity:
    key: str
    display_name: str
    display_email: str
    is_shared_prospect: bool = False


def normalize_name(first_name: str | None, last_name: str | None) -> str:
    first = (first_name or "").strip().lower()
    last = (last_name or "").strip().lower()
    return f"{first} {last}".strip()


def normalized_contact(record: RawRecord) -> str:
    """Email-or-name contact used for grouping and fuzzy dedup keys.

    Generic team inboxes fall back to the person's name so that different people
    writing in through the same shared inbox stay apart.
    """
    email = normalize_email(record.email)
    name = normalize_name(record.first_name, record.last_name)
    if email and is_generic_mailbox(email) and name:
        return name
    if email:
        return email
    if name:
        return name
    record_id = normalize_id(record.id)
    return f"id:{record_id}" if record_id else ""


def _display_name(record: RawRecord) -> str:
    joined = f"{(record.first_name or '').strip()} {(record.last_name or '').strip()}".strip()
    if joined:
        return joined
    record_id = normalize_id(record.id)
    return f"Prospect {record_id}" if record_id else "Unknown contact"


def resolve_client_identity(record: RawRecord) -> ClientIdentity | None:
    record_id = normalize_id(record.id)
    if record_id and is_shared_prospect_id(record_id):
        return ClientIdentity(
            key=f"id:{record_id}",
            display_name=f"Shared Prospect {record_id}",
            display_email=shared_prospect_mailbox(),
            is_shared_prospect=True,
        )

    key = normalized_contact(record)
    if not key:
        return None
    return ClientIdentity(
        key=key,
        display_name=_display_name(record),
        display_email=(record.email or "").strip(),
    )


def client_key(record: RawRecord) -> str:
    identity = resolve_client_identity(record)
    return identity.key if identity else ""
