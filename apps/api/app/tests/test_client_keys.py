from __future__ import annotations

from app.services.enquiries.records import RawRecord
from app.services.identity.client_keys import client_key, normalize_name, resolve_client_identity


def test_email_is_case_and_whitespace_insensitive() -> None:
    first = RawRecord(id="1", email="bob@x.com", first_name="Bob", last_name="Stone")
    second = RawRecord(id="2", email="BOB@X.COM ", first_name="Bob", last_name="Stone")

    assert client_key(first) == "bob@x.com"
    assert client_key(second) == "bob@x.com"


def test_shared_prospect_override_beats_email() -> None:
    personal = RawRecord(id="28609", email="andy@x.com", first_name="Andy", last_name="Gelder")
    generic = RawRecord(id="28609", email="prospects@helix.example", first_name="Matt", last_name="Talaie")

    identity = resolve_client_identity(personal)

    assert identity is not None
    assert identity.key == "id:28609"
    assert identity.is_shared_prospect is True
    assert identity.display_name == "Shared Prospect 28609"
    assert identity.display_email == "prospects@helix-law.com"
    assert client_key(generic) == "id:28609"


def test_generic_mailbox_uses_name_to_keep_people_apart() -> None:
    keith = RawRecord(id="501", email="prospects@helix.example", first_name="Keith", last_name="Graham")
    linda = RawRecord(id="502", email="prospects@helix.example", first_name=" Linda ", last_name="ROGERS")

    assert client_key(keith) == "keith graham"
    assert client_key(linda) == "linda rogers"


def test_generic_mailbox_without_name_keeps_email() -> None:
    record = RawRecord(id="503", email="team@helix.example")

    assert client_key(record) == "team@helix.example"


def test_fallbacks_name_then_id_then_empty() -> None:
    assert client_key(RawRecord(id="9", first_name="Ann", last_name="Lee")) == "ann lee"
    assert client_key(RawRecord(id="9")) == "id:9"
    assert client_key(RawRecord(id="")) == ""
    assert resolve_client_identity(RawRecord(id="  ")) is None


def test_display_name_falls_back_to_prospect_id() -> None:
    identity = resolve_client_identity(RawRecord(id="77", email="someone@x.com"))

    assert identity is not None
    assert identity.display_name == "Prospect 77"
    assert identity.display_email == "someone@x.com"


def test_normalize_name_trims_each_part() -> None:
    assert normalize_name("  Ann ", " LEE ") == "ann lee"
    assert normalize_name("", "Lee") == "lee"
    assert normalize_name(None, None) == ""
