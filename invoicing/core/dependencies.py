"""Dependency providers for API handlers and scripts."""

from __future__ import annotations

from invoicing.auth.jwt import decode_jwt
from invoicing.auth.tenant_context import ActorContext, from_claims
from invoicing.core.config import Config, get_config
from invoicing.core.exceptions import AuthenticationError


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_current_actor(
    token: str,
    settings: Config | None = None,
    header_company_id: int | None = None,
) -> ActorContext:
    """Resolve the acting owner, company and role from a bearer access token."""
    cfg = settings or get_settings()
    claims = decode_jwt(token=token, secret=cfg.JWT_SECRET)
    if claims.get("token_use", "access") != "access":
        raise AuthenticationError("Token is not an access token.")
    return from_claims(
        claims=claims,
        header_company_id=header_company_id,
        allow_rootadmin_override=True,
    )
