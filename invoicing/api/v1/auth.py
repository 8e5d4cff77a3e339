"""Token refresh endpoint for API v1.

Credentials are verified by the external identity provider; this service only
exchanges its own refresh tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from invoicing.auth.jwt import create_token_pair, decode_jwt
from invoicing.core.config import get_config
from invoicing.core.exceptions import AuthenticationError
from invoicing.schemas.auth import RefreshRequest, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/refresh", response_model=TokenResponse)
def refresh(payload: RefreshRequest) -> TokenResponse:
    cfg = get_config()
    try:
        claims = decode_jwt(payload.refresh_token, secret=cfg.JWT_SECRET)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    if claims.get("token_use") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token is not a refresh token.")
    if int(claims.get("permissions_version", 0)) != cfg.JWT_PERMISSIONS_VERSION:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token permissions are outdated.")

    company_id = claims.get("company_id")
    tokens = create_token_pair(
        user_id=int(claims["sub"]),
        company_id=int(company_id) if company_id is not None else None,
        role=str(claims["role"]),
        secret=cfg.JWT_SECRET,
        permissions_version=cfg.JWT_PERMISSIONS_VERSION,
        access_ttl_minutes=cfg.JWT_ACCESS_TTL_MINUTES,
        refresh_ttl_days=cfg.JWT_REFRESH_TTL_DAYS,
    )
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
    )
