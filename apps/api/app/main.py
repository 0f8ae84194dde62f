from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.routes import claims, enquiries, health, stream
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.pg.base import Base
from app.db.pg import models as _models  # noqa: F401
from app.db.pg.session import engine
from app.services.realtime.hub import build_claims_hub

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()
app = FastAPI(title=settings.app_name)
allowed_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    app.state.claims_hub = build_claims_hub(settings)
    logger.info(
        "enquiries_hub_started",
        extra={"environment": settings.environment, "claim_watcher_enabled": settings.claim_watcher_enabled},
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    hub = getattr(app.state, "claims_hub", None)
    if hub is not None:
        await hub.close()


app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(stream.router, prefix=settings.api_prefix)
app.include_router(claims.router, prefix=settings.api_prefix)
app.include_router(enquiries.router, prefix=settings.api_prefix)
