from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from app.core.config import get_settings
from app.services.cache.aggregate_cache import enquiries_view_patterns, invalidate
from app.services.realtime.hub import ClaimsHub

logger = logging.getLogger(__name__)

CLAIM_TRIGGER_SOURCE = "hub"


class UpstreamClaimError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"claim platform returned {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass
class ClaimResult:
    entity_id: str
    claimed_by: str
    sequence_id: int
    invalidated: int
    operations: list[Any] = field(default_factory=list)


def _redact(value: str) -> str:
    if "@" not in value:
        return "***"
    local, domain = value.split("@", 1)
    return f"{local[:1]}***@{domain}"


async def _post_claim(client: httpx.AsyncClient, *, entity_id: str, acting_identity: str, data_source: str) -> dict:
    settings = get_settings()
    url = f"{settings.claim_platform_base_url.rstrip('/')}/api/hub-claim"
    headers = {"Content-Type": "application/json"}
    if settings.claim_platform_api_key:
        headers["x-api-key"] = settings.claim_platform_api_key
    payload = {
        "enquiryId": entity_id,
        "userEmail": acting_identity,
        "dataSource": data_source,
        "source": CLAIM_TRIGGER_SOURCE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.exception("claim_platform_request_failed", extra={"entity_id": entity_id})
        raise UpstreamClaimError(502, str(exc)) from exc

    if response.status_code >= 400:
        logger.error(
            "claim_platform_returned_error",
            extra={"entity_id": entity_id, "status_code": response.status_code, "error": response.text[:200]},
        )
        raise UpstreamClaimError(response.status_code, response.text)

    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


async def claim_enquiry(
    hub: ClaimsHub,
    *,
    entity_id: str,
    acting_identity: str,
    data_source: str = "legacy",
    client: httpx.AsyncClient | None = None,
) -> ClaimResult:
    """Claim an enquiry through the processing platform, then fan the change out.

    Cache eviction and the live ``claim`` event only happen after the platform
    accepts the claim; ``UpstreamClaimError`` is raised otherwise.
    """
    logger.info(
        "claim_enquiry_started",
        extra={"entity_id": entity_id, "data_source": data_source, "acting_identity": _redact(acting_identity)},
    )
    if client is None:
        async with httpx.AsyncClient(timeout=get_settings().claim_platform_timeout_seconds) as owned_client:
            body = await _post_claim(
                owned_client, entity_id=entity_id, acting_identity=acting_identity, data_source=data_source
            )
    else:
        body = await _post_claim(client, entity_id=entity_id, acting_identity=acting_identity, data_source=data_source)

    invalidated = 0
    try:
        invalidated = await asyncio.to_thread(invalidate, enquiries_view_patterns())
    except Exception:
        logger.exception("claim_enquiry_cache_invalidation_failed", extra={"entity_id": entity_id})

    event = hub.broadcast(
        "claim",
        entity_id,
        claimed_by=acting_identity,
        claimed_at=datetime.now(timezone.utc).isoformat(),
        source=CLAIM_TRIGGER_SOURCE,
    )
    operations = body.get("operations")
    logger.info(
        "claim_enquiry_succeeded",
        extra={"entity_id": entity_id, "sequence_id": event.sequence_id, "invalidated": invalidated},
    )
    return ClaimResult(
        entity_id=entity_id,
        claimed_by=acting_identity,
        sequence_id=event.sequence_id,
        invalidated=invalidated,
        operations=operations if isinstance(operations, list) else [],
    )
