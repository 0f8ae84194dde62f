from __future__ import annotations

from functools import lru_cache

from app.core.config import get_settings


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_id(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _split_setting(raw: str) -> list[str]:
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


@lru_cache(maxsize=1)
def shared_prospect_ids() -> frozenset[str]:
    settings = get_settings()
    return frozenset(normalize_id(part) for part in settings.shared_prospect_ids.split(",") if part.strip())


@lru_cache(maxsize=1)
def generic_mailbox_local_parts() -> frozenset[str]:
    return frozenset(_split_setting(get_settings().generic_mailbox_local_parts))


@lru_cache(maxsize=1)
def unclaimed_point_of_contacts() -> frozenset[str]:
    return frozenset(_split_setting(get_settings().unclaimed_point_of_contacts))


def clear_shared_prospect_cache() -> None:
    shared_prospect_ids.cache_clear()
    generic_mailbox_local_parts.cache_clear()
    unclaimed_point_of_contacts.cache_clear()


def shared_prospect_mailbox() -> str:
    return get_settings().shared_prospect_mailbox


def is_shared_prospect_id(value: object) -> bool:
    normalized = normalize_id(value)
    if not normalized:
        return False
    return normalized in shared_prospect_ids()


def is_generic_mailbox(email: str | None) -> bool:
    """True for shared inboxes such as ``prospects@`` or ``team@`` addresses.

    Both the local part and the first domain label are checked, so
    ``prospects@firm.example`` and ``intake@team.firm.example`` both count.
    """
    normalized = normalize_email(email)
    if not normalized or "@" not in normalized:
        return False
    local, domain = normalized.rsplit("@", 1)
    reserved = generic_mailbox_local_parts()
    if local in reserved:
        return True
    return domain.split(".", 1)[0] in reserved


def is_unclaimed_point_of_contact(value: str | None) -> bool:
    normalized = normalize_email(value)
    if not normalized:
        return True
    if normalized in unclaimed_point_of_contacts():
        return True
    return is_generic_mailbox(normalized)
