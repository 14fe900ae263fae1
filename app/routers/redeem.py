# =============================================================================
# app/routers/redeem.py - Code Redemption
# =============================================================================
# POST /api/request {token, code}: a signed-in user trades a verification
# code for the download link to their photos.
# =============================================================================

from fastapi import APIRouter, Response

from app.auth import SessionUserDep
from app.dependencies import CodeServiceDep, PayloadDep

router = APIRouter()


@router.options("/request")
async def request_preflight() -> Response:
    return Response(status_code=200)


@router.post("/request")
async def redeem_code(payload: PayloadDep, user: SessionUserDep, service: CodeServiceDep):
    """Redeem a verification code; the link is emailed and returned."""
    return service.redeem(payload.get("code"), user.email)
