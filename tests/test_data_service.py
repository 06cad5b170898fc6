import httpx
import pytest

from app.db.data_service import DataServiceClient, DataServiceError, DataServiceUnavailable, eq, error_from_response, gte, in_
from app.services.activity_service import log_activity
from app.services.vba_service import CascadeDeleteError, cascade_delete
from tests.supabase_fake import ANON_KEY


def test_filters_render_postgrest_syntax() -> None:
    assert eq("id", "abc").render() == ("id", "eq.abc")
    assert eq("archived", False).render() == ("archived", "eq.false")
    assert gte("created_at", "2024-05-01").render() == ("created_at", "gte.2024-05-01")
    assert in_("id", ["a", "b"]).render() == ("id", "in.(a,b)")
    assert in_("name", ["Smith, J", 'say "hi"']).render() == ("name", 'in.("Smith, J","say \\"hi\\"")')


def test_error_from_response_reads_postgrest_body() -> None:
    response = httpx.Response(
        406,
        json={"code": "PGRST116", "message": "no rows", "details": "The result contains 0 rows", "hint": None},
    )
    error = error_from_response(response)
    assert error.is_not_found
    assert not error.is_unique_violation
    assert error.status_code == 406
    assert error.details == "The result contains 0 rows"


def test_error_from_response_without_json_body() -> None:
    error = error_from_response(httpx.Response(502, text="<html>bad gateway</html>"))
    assert error.code is None
    assert error.message == "Bad Gateway"


async def test_update_and_delete_refuse_unfiltered_calls() -> None:
    async with DataServiceClient(api_key=ANON_KEY) as client:
        with pytest.raises(ValueError):
            await client.delete("projects", filters=[])
        with pytest.raises(ValueError):
            await client.update("projects", {"status": "closed"}, filters=[])


async def test_select_single_raises_not_found(supabase) -> None:
    async with DataServiceClient(api_key=ANON_KEY) as client:
        with pytest.raises(DataServiceError) as excinfo:
            await client.select_single("projects", filters=[eq("id", "missing")])
    assert excinfo.value.is_not_found


async def test_transport_failure_raises_unavailable() -> None:
    from app.db.data_service import set_transport

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    set_transport(httpx.MockTransport(refuse))
    async with DataServiceClient(api_key=ANON_KEY) as client:
        with pytest.raises(DataServiceUnavailable):
            await client.select("projects")


async def test_log_activity_swallows_store_failures(supabase) -> None:
    supabase.fail("POST", "activity_logs", 403, "42501", "permission denied")

    async with DataServiceClient(api_key=ANON_KEY) as client:
        assert await log_activity(client, "viewed", "user-1") is False


async def test_cascade_delete_reports_failed_restore(supabase) -> None:
    supabase.seed("vba_projects", {"id": "v1", "project_name": "Tower"})
    supabase.fail("DELETE", "projects", 500, "XX000", "deadlock detected")
    supabase.fail("POST", "vba_projects", 500, "XX000", "still down")

    async with DataServiceClient(api_key=ANON_KEY) as client:
        with pytest.raises(CascadeDeleteError) as excinfo:
            await cascade_delete(client, ["v1"])
    assert excinfo.value.restored is False
    assert excinfo.value.code == "XX000"
