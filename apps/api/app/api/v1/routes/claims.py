from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.v1.deps import get_claims_hub
from app.api.v1.schemas import ClaimEnquiryRequest, ClaimEnquiryResponse
from app.services.claims.trigger import UpstreamClaimError, claim_enquiry
from app.services.realtime.hub import ClaimsHub

router = APIRouter(prefix="/enquiries", tags=["claims"])


@router.post("/claim", response_model=ClaimEnquiryResponse)
async def claim(payload: ClaimEnquiryRequest, hub: ClaimsHub = Depends(get_claims_hub)) -> ClaimEnquiryResponse:
    try:
        result = await claim_enquiry(
            hub,
            entity_id=payload.entity_id.strip(),
            acting_identity=payload.acting_identity.strip(),
            data_source=payload.data_source,
        )
    except UpstreamClaimError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"message": "Platform claim request failed", "error": exc.body},
        ) from exc

    return ClaimEnquiryResponse(
        entity_id=result.entity_id,
        claimed_by=result.claimed_by,
        sequence_id=result.sequence_id,
        invalidated=result.invalidated,
        operations=result.operations,
    )
