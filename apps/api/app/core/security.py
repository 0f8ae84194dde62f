from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from app.core.config import Settings


def hub_secret_header(x_hub_secret: str | None = Header(default=None)) -> str | None:
    return x_hub_secret


def verify_hub_secret(settings: Settings, presented: str | None) -> None:
    """Reject write calls that do not carry the configured hub secret.

    An empty ``hub_webhook_secret`` disables the check for local development.
    """
    expected = settings.hub_webhook_secret
    if not expected:
        return
    if not presented or not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid hub secret",
            headers={"WWW-Authenticate": "X-Hub-Secret"},
        )
