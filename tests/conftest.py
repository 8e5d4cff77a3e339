from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from invoicing.auth.rbac import get_scopes_for_role
from invoicing.auth.tenant_context import ActorContext
from invoicing.core.config import get_config
from invoicing.models import Base
from invoicing.services.invoice_service import InvoiceService

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def _clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def config():
    return replace(get_config(), INVOICE_STORE_RETRY_BACKOFF_SECONDS=0.0)


@pytest.fixture
def session():
    engine = create_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed SQLite database, safe to open from several threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'invoicing_test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def make_actor():
    def _make(role: str = "admin", user_id: int = 1, company_id: int | None = 7) -> ActorContext:
        return ActorContext(
            user_id=user_id,
            role=role,
            company_id=company_id,
            capabilities=frozenset(get_scopes_for_role(role)),
        )

    return _make


@pytest.fixture
def service(session, config):
    return InvoiceService(db=session, config=config, clock=_clock)
