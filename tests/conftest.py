from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
from cryptography.fernet import Fernet
from httpx import ASGITransport, AsyncClient

from app.config import get_settings
from app.db.data_service import set_transport
from app.main import app
from app.observability.metrics import reset_metrics
from app.observability.system_metrics import set_snapshot_cache
from tests.supabase_fake import ANON_KEY, JWT_SECRET, SERVICE_KEY, FakeSupabase, make_token


@pytest.fixture(autouse=True)
def supabase(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    monkeypatch.setenv("SUPABASE_URL", "http://supabase.test")
    monkeypatch.setenv("SUPABASE_ANON_KEY", ANON_KEY)
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", SERVICE_KEY)
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("FIELD_ENCRYPTION_KEY", Fernet.generate_key().decode("utf-8"))
    get_settings.cache_clear()

    fake = FakeSupabase()
    set_transport(httpx.MockTransport(fake.handle))
    set_snapshot_cache(None)
    reset_metrics()

    yield fake

    set_transport(None)
    set_snapshot_cache(None)
    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def inspector(supabase: FakeSupabase) -> dict[str, Any]:
    user = supabase.add_user("inspector@example.com")
    return {**user, "token": make_token(user["id"], user["email"])}


@pytest.fixture
def auth_headers(inspector: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {inspector['token']}"}


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
