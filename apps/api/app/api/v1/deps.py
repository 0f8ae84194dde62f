from __future__ import annotations

from collections.abc import Iterator

from fastapi import Request
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.pg.session import session_scope
from app.services.realtime.hub import ClaimsHub, build_claims_hub


def get_db() -> Iterator[Session]:
    with session_scope() as db:
        yield db


def get_settings_dep() -> Settings:
    return get_settings()


def get_claims_hub(request: Request) -> ClaimsHub:
    """Return the process hub, building it on first use when startup hooks did not run."""
    hub = getattr(request.app.state, "claims_hub", None)
    if hub is None:
        hub = build_claims_hub(get_settings())
        request.app.state.claims_hub = hub
    return hub
