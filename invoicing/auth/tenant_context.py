"""Actor context extraction and scope enforcement utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from invoicing.auth.rbac import get_scopes_for_role, has_scopes, require_scopes
from invoicing.core.exceptions import AuthenticationError, AuthorizationError
from invoicing.models.enums import UserRole


@dataclass(frozen=True)
class ActorContext:
    """The authenticated actor: owner identity, active company and capabilities."""

    user_id: int
    role: str
    company_id: int | None = None
    permissions_version: int = 1
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_rootadmin(self) -> bool:
        return self.role == UserRole.ROOTADMIN.value

    def can(self, scope: str) -> bool:
        return has_scopes(self.capabilities, [scope])

    def require(self, *scopes: str) -> None:
        """Raise AuthorizationError unless every scope is among the resolved capabilities."""
        require_scopes(self.capabilities, scopes)


def from_claims(
    claims: dict[str, Any],
    header_company_id: int | None = None,
    allow_rootadmin_override: bool = False,
) -> ActorContext:
    """Build actor context from JWT claims and optional rootadmin company override."""
    try:
        user_id = int(claims["sub"])
        role = str(claims["role"]).lower()
        raw_company = claims.get("company_id")
        claim_company_id = int(raw_company) if raw_company is not None else None
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Token claims are missing owner/role context.") from exc

    resolved_company = claim_company_id
    if header_company_id is not None:
        if not allow_rootadmin_override or role != UserRole.ROOTADMIN.value:
            raise AuthorizationError("Company override is rootadmin-only.")
        resolved_company = int(header_company_id)

    return ActorContext(
        user_id=user_id,
        role=role,
        company_id=resolved_company,
        permissions_version=int(claims.get("permissions_version", 1)),
        capabilities=frozenset(get_scopes_for_role(role)),
    )


def enforce_scope_match(entity_scope_key: str, actor_scope_key: str, actor: ActorContext) -> None:
    """Ensure entity access stays inside the actor's allocation scope."""
    if actor.is_rootadmin:
        return
    if entity_scope_key != actor_scope_key:
        raise AuthorizationError("Cross-scope access denied.")
