from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

ChangeType = Literal["claim", "created", "deleted"]

CHANGED_EVENT = "enquiries.changed"
CONNECTED_EVENT = "connected"
HEARTBEAT_FRAME = ": heartbeat\n\n"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChangeEvent:
    sequence_id: int
    change_type: ChangeType
    entity_id: str
    timestamp: str
    claimed_by: str | None = None
    claimed_at: str | None = None
    source: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": CHANGED_EVENT,
            "sequenceId": self.sequence_id,
            "changeType": self.change_type,
            "entityId": self.entity_id,
            "timestamp": self.timestamp,
        }
        if self.claimed_by is not None:
            payload["claimedBy"] = self.claimed_by
        if self.claimed_at is not None:
            payload["claimedAt"] = self.claimed_at
        if self.source is not None:
            payload["source"] = self.source
        return payload


def format_event(*, event_id: int | None, event: str | None, data: dict[str, Any]) -> str:
    lines: list[str] = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(data, separators=(',', ':'))}")
    return "\n".join(lines) + "\n\n"


def retry_frame(retry_ms: int) -> str:
    return f"retry: {retry_ms}\n\n"


def change_frame(event: ChangeEvent) -> str:
    return format_event(event_id=event.sequence_id, event=CHANGED_EVENT, data=event.to_payload())


def connected_frame(sequence_id: int) -> str:
    return format_event(
        event_id=sequence_id,
        event=CONNECTED_EVENT,
        data={"type": CONNECTED_EVENT, "timestamp": utc_now_iso()},
    )
