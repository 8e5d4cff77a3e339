from __future__ import annotations

from datetime import timedelta

import pytest

from invoicing.auth.jwt import create_token_pair, decode_jwt, encode_jwt
from invoicing.auth.rbac import INVOICES_APPROVE, INVOICES_READ, get_scopes_for_role, has_scopes, require_scopes
from invoicing.auth.tenant_context import ActorContext, enforce_scope_match, from_claims
from invoicing.core.exceptions import AuthenticationError, AuthorizationError


def test_jwt_roundtrip_contains_required_claims():
    tokens = create_token_pair(user_id=10, company_id=20, role="admin", secret="test-secret")
    claims = decode_jwt(tokens.access_token, secret="test-secret")
    assert claims["sub"] == "10"
    assert claims["company_id"] == 20
    assert claims["role"] == "admin"
    assert claims["token_use"] == "access"
    assert "exp" in claims
    assert "iat" in claims
    assert "jti" in claims


def test_jwt_without_company_omits_claim():
    tokens = create_token_pair(user_id=3, company_id=None, role="user", secret="test-secret")
    claims = decode_jwt(tokens.refresh_token, secret="test-secret")
    assert "company_id" not in claims
    assert claims["token_use"] == "refresh"


def test_jwt_rejects_wrong_secret():
    tokens = create_token_pair(user_id=10, company_id=20, role="admin", secret="test-secret")
    with pytest.raises(AuthenticationError):
        decode_jwt(tokens.access_token, secret="other-secret")


def test_rbac_blocks_missing_scope():
    require_scopes(get_scopes_for_role("user"), [INVOICES_READ])
    with pytest.raises(AuthorizationError, match="invoices.approve"):
        require_scopes(get_scopes_for_role("user"), [INVOICES_APPROVE])


def test_rootadmin_holds_every_scope():
    assert has_scopes(get_scopes_for_role("rootadmin"), [INVOICES_APPROVE, "invoices.integrity.read"]) is True
    assert has_scopes(get_scopes_for_role("unknown-role"), [INVOICES_READ]) is False


def test_from_claims_builds_actor_with_capabilities():
    actor = from_claims({"sub": "5", "role": "Manager", "company_id": 9})
    assert actor.user_id == 5
    assert actor.company_id == 9
    assert actor.role == "manager"
    assert actor.can(INVOICES_APPROVE) is True


def test_company_override_is_rootadmin_only():
    root = from_claims({"sub": "1", "role": "rootadmin"}, header_company_id=42, allow_rootadmin_override=True)
    assert root.company_id == 42

    with pytest.raises(AuthorizationError):
        from_claims({"sub": "2", "role": "admin", "company_id": 7}, header_company_id=42, allow_rootadmin_override=True)


def test_from_claims_requires_subject_and_role():
    token = encode_jwt({"role": "admin"}, secret="s", ttl=timedelta(minutes=1))
    with pytest.raises(AuthenticationError):
        from_claims(decode_jwt(token, secret="s"))


def test_enforce_scope_match_denies_other_scope_except_rootadmin():
    user = from_claims({"sub": "2", "role": "user", "company_id": 7})
    root = from_claims({"sub": "1", "role": "rootadmin"})

    enforce_scope_match("company:7", "company:7", user)
    enforce_scope_match("company:7", "owner:1", root)
    with pytest.raises(AuthorizationError):
        enforce_scope_match("company:8", "company:7", user)


def test_actor_checks_use_resolved_capabilities_not_role_name():
    narrowed = ActorContext(user_id=4, role="admin", company_id=7, capabilities=frozenset({INVOICES_READ}))

    narrowed.require(INVOICES_READ)
    assert narrowed.can(INVOICES_APPROVE) is False
    with pytest.raises(AuthorizationError):
        narrowed.require(INVOICES_READ, INVOICES_APPROVE)
