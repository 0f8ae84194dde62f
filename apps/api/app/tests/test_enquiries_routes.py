from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.api.v1.deps import get_settings_dep
from app.api.v1.routes import claims as claims_route
from app.api.v1.routes import enquiries as enquiries_route
from app.db.pg.base import Base
from app.db.pg.session import engine
from app.main import app
from app.services.cache import aggregate_cache
from app.services.claims.trigger import ClaimResult, UpstreamClaimError


client = TestClient(app)


def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def test_health_reports_live_connections() -> None:
    response = client.get("/v1/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["live_connections"] == 0
    assert payload["claim_watcher_running"] is False


def test_group_endpoint_groups_posted_records() -> None:
    response = client.post(
        "/v1/enquiries/group",
        json={
            "records": [
                {"id": 28609, "email": "andy@x.com", "first_name": "Andy", "touchpoint_date": "2024-01-01"},
                {"id": "28609", "email": "prospects@helix.example", "touchpoint_date": "2024-02-01T00:00:00Z"},
                {"id": "", "email": ""},
                {"id": "5", "email": "bob@x.com", "point_of_contact": "triage@helix.example"},
            ]
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["dropped_count"] == 1
    assert [group["client_key"] for group in payload["groups"]] == ["id:28609", "bob@x.com"]
    assert payload["groups"][0]["is_shared_prospect"] is True
    assert payload["groups"][1]["records"][0]["claim_state"] == "Triaged"


def test_group_endpoint_applies_unscoped_dedup() -> None:
    records = [
        {"id": "1", "email": "c@x.com", "point_of_contact": "", "touchpoint_date": "2024-03-14T09:00:00Z"},
        {"id": "2", "email": "c@x.com", "point_of_contact": "triage@x.com", "touchpoint_date": "2024-03-14T10:00:00Z"},
        {"id": "3", "email": "c@x.com", "point_of_contact": "jsmith@x.com", "touchpoint_date": "2024-03-14T08:00:00Z"},
    ]

    response = client.post("/v1/enquiries/group", json={"records": records, "scope": "unscoped"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["suppressed_count"] == 2
    assert payload["buckets"][0]["winner_id"] == "3"
    assert [record["id"] for record in payload["groups"][0]["records"]] == ["3"]


def test_owner_scoped_view_requires_viewer() -> None:
    response = client.post("/v1/enquiries/group", json={"records": [], "scope": "owner-scoped"})

    assert response.status_code == 422


def test_create_list_and_delete_enquiry(monkeypatch) -> None:
    reset_db()
    monkeypatch.setattr(aggregate_cache, "_cache_client", lambda: None)

    created = client.post(
        "/v1/enquiries",
        json={"id": "77", "email": "sue@x.com", "first_name": "Sue", "last_name": "Park", "source_tag": "new"},
    )
    assert created.status_code == 201
    created_payload = created.json()
    assert created_payload["id"] == "77"
    assert created_payload["sequence_id"] >= 1

    grouped = client.get("/v1/enquiries/grouped")
    assert grouped.status_code == 200
    grouped_payload = grouped.json()
    assert grouped_payload["cached"] is False
    assert grouped_payload["groups"][0]["client_name"] == "Sue Park"
    assert grouped_payload["groups"][0]["latest_date"] is not None

    deleted = client.delete("/v1/enquiries/77")
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] == 1
    assert deleted.json()["sequence_id"] > created_payload["sequence_id"]

    missing = client.delete("/v1/enquiries/77")
    assert missing.json() == {"id": "77", "deleted": 0, "sequence_id": None}


def test_create_requires_id() -> None:
    response = client.post("/v1/enquiries", json={"email": "sue@x.com"})

    assert response.status_code == 422


def test_grouped_view_serves_cached_payload(monkeypatch) -> None:
    monkeypatch.setattr(
        enquiries_route,
        "get_cached",
        lambda key: {"scope": "unscoped", "groups": [], "buckets": [], "dropped_count": 0, "suppressed_count": 4},
    )

    response = client.get("/v1/enquiries/grouped", params={"scope": "unscoped"})

    assert response.status_code == 200
    assert response.json()["cached"] is True
    assert response.json()["suppressed_count"] == 4


def test_write_endpoints_check_hub_secret() -> None:
    app.dependency_overrides[get_settings_dep] = lambda: SimpleNamespace(hub_webhook_secret="s3cret")
    try:
        missing = client.post("/v1/enquiries/claim-activity", json={"enquiry_id": "42", "claimed_by": "AB"})
        wrong = client.delete("/v1/enquiries/42", headers={"X-Hub-Secret": "nope"})
    finally:
        app.dependency_overrides.clear()

    assert missing.status_code == 401
    assert wrong.status_code == 401


def test_claim_activity_is_recorded() -> None:
    reset_db()

    response = client.post(
        "/v1/enquiries/claim-activity",
        json={"enquiry_id": " 42 ", "claimed_by": "AB", "claimed_at": "2024-05-01T12:00:00Z"},
    )

    assert response.status_code == 200
    assert response.json()["enquiry_id"] == "42"


def test_claim_route_returns_result(monkeypatch) -> None:
    async def fake_claim(hub, **kwargs):
        assert kwargs == {"entity_id": "42", "acting_identity": "jsmith@helix.example", "data_source": "new"}
        return ClaimResult(entity_id="42", claimed_by="jsmith@helix.example", sequence_id=9, invalidated=2)

    monkeypatch.setattr(claims_route, "claim_enquiry", fake_claim)

    response = client.post(
        "/v1/enquiries/claim",
        json={"entity_id": " 42 ", "acting_identity": "jsmith@helix.example", "data_source": "new"},
    )

    assert response.status_code == 200
    assert response.json()["sequence_id"] == 9
    assert response.json()["invalidated"] == 2


def test_claim_route_surfaces_platform_failure(monkeypatch) -> None:
    async def failing_claim(hub, **kwargs):
        raise UpstreamClaimError(503, "maintenance")

    monkeypatch.setattr(claims_route, "claim_enquiry", failing_claim)

    response = client.post("/v1/enquiries/claim", json={"entity_id": "42", "acting_identity": "jsmith@helix.example"})

    assert response.status_code == 503
    assert response.json()["detail"] == {"message": "Platform claim request failed", "error": "maintenance"}


def test_matching_hub_secret_is_accepted() -> None:
    reset_db()
    app.dependency_overrides[get_settings_dep] = lambda: SimpleNamespace(hub_webhook_secret="s3cret")
    try:
        response = client.post(
            "/v1/enquiries/claim-activity",
            json={"enquiry_id": "42", "claimed_by": "AB"},
            headers={"X-Hub-Secret": "s3cret"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200


def test_scoped_view_counts_keyless_records_as_dropped() -> None:
    keyless = [{"id": "", "touchpoint_date": f"2024-03-14T0{hour}:00:00Z"} for hour in (7, 8, 9)]

    response = client.post(
        "/v1/enquiries/group",
        json={"records": [*keyless, {"id": "1", "email": "c@x.com"}], "scope": "unscoped"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["dropped_count"] == 3
    assert payload["suppressed_count"] == 0
    assert [group["client_key"] for group in payload["groups"]] == ["c@x.com"]
