"""
Async client for the hosted database's PostgREST endpoint.

Every request carries an ``apikey`` header and a bearer credential; the
database evaluates row-level security against that credential. Clients are
request-scoped: create one per request and close it when the response is done.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import get_settings
from app.observability.data_calls import instrument_data_call

NOT_FOUND_CODE = "PGRST116"
UNIQUE_VIOLATION_CODE = "23505"

_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"

_transport: httpx.AsyncBaseTransport | None = None


def set_transport(transport: httpx.AsyncBaseTransport | None) -> None:
    """Route all data/auth service traffic through ``transport`` (used by tests)."""
    global _transport
    _transport = transport


def get_transport() -> httpx.AsyncBaseTransport | None:
    return _transport


class DataServiceError(Exception):
    """The data service rejected an operation."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int = 400,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        self.hint = hint

    @property
    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND_CODE

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION_CODE


class DataServiceUnavailable(Exception):
    """The data service could not be reached."""


@dataclass(frozen=True)
class Filter:
    column: str
    operator: str
    value: Any

    def render(self) -> tuple[str, str]:
        if self.operator == "in":
            values = ",".join(_quote(v) for v in self.value)
            return self.column, f"in.({values})"
        return self.column, f"{self.operator}.{_format(self.value)}"


def _format(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    text = _format(value)
    if any(ch in text for ch in ',()"'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", list(values))


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def error_from_response(response: httpx.Response) -> DataServiceError:
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = (
        payload.get("message")
        or payload.get("msg")
        or payload.get("error_description")
        or payload.get("error")
        or response.reason_phrase
        or "Data service error"
    )
    code = payload.get("code") if payload.get("code") is not None else payload.get("error_code")
    return DataServiceError(
        str(message),
        code=str(code) if code is not None else None,
        status_code=response.status_code,
        details=payload.get("details"),
        hint=payload.get("hint"),
    )


def build_http_client(base_url: str, headers: Mapping[str, str]) -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=base_url,
        headers=dict(headers),
        timeout=settings.data_service_timeout_seconds,
        transport=_transport,
    )


class DataServiceClient:
    def __init__(self, api_key: str, bearer: str | None = None) -> None:
        settings = get_settings()
        self.api_key = api_key
        self.bearer = bearer or api_key
        self._http = build_http_client(
            settings.rest_url,
            {"apikey": api_key, "Authorization": f"Bearer {self.bearer}"},
        )

    async def __aenter__(self) -> "DataServiceClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        async def call() -> httpx.Response:
            try:
                response = await self._http.request(method, f"/{table}", params=params, json=json, headers=headers)
            except httpx.HTTPError as exc:
                raise DataServiceUnavailable(str(exc)) from exc
            if response.status_code >= 400:
                raise error_from_response(response)
            return response

        return await instrument_data_call(operation=method.lower(), target=table, fn=call)

    @staticmethod
    def _params(
        filters: Sequence[Filter] | None = None,
        *,
        columns: str | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if columns is not None:
            params.append(("select", columns))
        for item in filters or ():
            params.append(item.render())
        if order:
            column, _, direction = order.partition(" ")
            params.append(("order", f"{column}.{direction or 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))
        return params

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        response = await self._request("GET", table, params=self._params(filters, columns=columns, order=order, limit=limit))
        return response.json() or []

    async def select_single(
        self,
        table: str,
        *,
        filters: Sequence[Filter],
        columns: str = "*",
    ) -> dict[str, Any]:
        response = await self._request(
            "GET",
            table,
            params=self._params(filters, columns=columns),
            headers={"Accept": _OBJECT_MEDIA_TYPE},
        )
        return response.json()

    async def insert(
        self,
        table: str,
        rows: dict[str, Any] | list[dict[str, Any]],
        *,
        single: bool = False,
    ) -> Any:
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = _OBJECT_MEDIA_TYPE
        payload = rows if isinstance(rows, list) else [rows]
        response = await self._request("POST", table, params=[("select", "*")], json=payload, headers=headers)
        return response.json()

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        filters: Sequence[Filter],
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("update requires at least one filter")
        response = await self._request(
            "PATCH",
            table,
            params=self._params(filters, columns="*"),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    async def delete(
        self,
        table: str,
        *,
        filters: Sequence[Filter],
    ) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        response = await self._request(
            "DELETE",
            table,
            params=self._params(filters, columns="*"),
            headers={"Prefer": "return=representation"},
        )
        return response.json() or []

    async def count(self, table: str, *, filters: Sequence[Filter] | None = None) -> int:
        response = await self._request(
            "HEAD",
            table,
            params=self._params(filters, columns="id"),
            headers={"Prefer": "count=exact"},
        )
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        try:
            return int(total)
        except ValueError:
            return 0
