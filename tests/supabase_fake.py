"""In-memory PostgREST / GoTrue fake served through httpx.MockTransport."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import httpx
import jwt

ANON_KEY = "anon-test-key"
SERVICE_KEY = "service-test-key"
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"


def make_token(user_id: str, email: str, secret: str = JWT_SECRET) -> str:
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {"sub": user_id, "email": email, "aud": "authenticated", "iat": now, "exp": now + 3600}
    return jwt.encode(payload, secret, algorithm="HS256")


def _json(status: int, payload: Any, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(status, json=payload, headers=headers)


def _not_found() -> httpx.Response:
    return _json(
        406,
        {
            "code": "PGRST116",
            "message": "JSON object requested, multiple (or no) rows returned",
            "details": "The result contains 0 rows",
            "hint": None,
        },
    )


class FakeSupabase:
    """In-memory stand-in for the PostgREST and GoTrue endpoints."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], httpx.Response] = {}
        self.unreachable: set[tuple[str, str]] = set()

    # -- helpers used by tests ---------------------------------------------

    def add_user(self, email: str, password: str = "password123") -> dict[str, Any]:
        user = {"id": str(uuid.uuid4()), "email": email, "password": password}
        self.users[email] = user
        return user

    def seed(self, table: str, *rows: dict[str, Any]) -> list[dict[str, Any]]:
        stored = [self._with_defaults(dict(row)) for row in rows]
        self.tables.setdefault(table, []).extend(stored)
        return stored

    def fail(self, method: str, table: str, status: int, code: str, message: str) -> None:
        self.failures[(method, table)] = _json(status, {"code": code, "message": message, "details": None, "hint": None})

    def disconnect(self, method: str, table: str) -> None:
        self.unreachable.add((method, table))

    def requests_to(self, table: str, method: str | None = None) -> list[httpx.Request]:
        path = f"/rest/v1/{table}"
        return [r for r in self.requests if r.url.path == path and (method is None or r.method == method)]

    # -- transport ---------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/auth/v1/"):
            return self._handle_auth(request, path.removeprefix("/auth/v1/"))
        if path.startswith("/rest/v1/"):
            return self._handle_rest(request, path.removeprefix("/rest/v1/"))
        return _json(404, {"message": "unknown path"})

    def _handle_auth(self, request: httpx.Request, route: str) -> httpx.Response:
        if route == "token":
            body = json.loads(request.content or b"{}")
            grant = request.url.params.get("grant_type")
            if grant == "password":
                user = self.users.get(body.get("email"))
                if user is None or user["password"] != body.get("password"):
                    return _json(400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
                return _json(200, self._session(user))
            if grant == "pkce" and body.get("auth_code") == "good-code" and self.users:
                return _json(200, self._session(next(iter(self.users.values()))))
            return _json(400, {"error": "invalid_grant", "error_description": "Invalid auth code"})

        if route == "user":
            token = request.headers.get("authorization", "").removeprefix("Bearer ").strip()
            try:
                claims = jwt.decode(token, JWT_SECRET, algorithms=["HS256"], audience="authenticated")
            except jwt.PyJWTError:
                return _json(401, {"code": 401, "message": "invalid JWT"})
            return _json(200, {"id": claims["sub"], "email": claims.get("email")})

        if route == "logout":
            return httpx.Response(204)

        return _json(404, {"message": "unknown auth route"})

    def _session(self, user: dict[str, Any]) -> dict[str, Any]:
        return {
            "access_token": make_token(user["id"], user["email"]),
            "refresh_token": f"refresh-{user['id']}",
            "user": {"id": user["id"], "email": user["email"]},
        }

    def _with_defaults(self, row: dict[str, Any]) -> dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return row

    def _matches(self, row: dict[str, Any], column: str, expr: str) -> bool:
        op, _, raw = expr.partition(".")
        value = row.get(column)
        if op == "eq":
            return str(value) == raw
        if op == "in":
            options = [item.strip().strip('"') for item in raw.strip("()").split(",")]
            return str(value) in options
        if op == "gte":
            return value is not None and str(value) >= raw
        raise AssertionError(f"unsupported operator {op}")

    def _filtered(self, table: str, params: httpx.QueryParams) -> list[dict[str, Any]]:
        rows = self.tables.get(table, [])
        for column, expr in params.multi_items():
            if column in {"select", "order", "limit"}:
                continue
            rows = [row for row in rows if self._matches(row, column, expr)]
        return rows

    def _handle_rest(self, request: httpx.Request, table: str) -> httpx.Response:
        if (request.method, table) in self.unreachable:
            raise httpx.ConnectError("connection reset by peer", request=request)
        failure = self.failures.get((request.method, table))
        if failure is not None:
            return failure

        params = request.url.params
        wants_object = request.headers.get("accept") == "application/vnd.pgrst.object+json"
        rows = self.tables.setdefault(table, [])

        if request.method == "POST":
            payload = json.loads(request.content)
            existing = {str(row.get("id")) for row in rows}
            created = []
            for item in payload:
                if item.get("id") is not None and str(item["id"]) in existing:
                    return _json(
                        409,
                        {"code": "23505", "message": "duplicate key value violates unique constraint", "details": None, "hint": None},
                    )
                created.append(self._with_defaults(dict(item)))
            rows.extend(created)
            if wants_object:
                return _json(201, created[0])
            return _json(201, created)

        matched = self._filtered(table, params)

        if request.method in {"GET", "HEAD"}:
            order = params.get("order")
            if order:
                column, _, direction = order.partition(".")
                matched = sorted(matched, key=lambda row: str(row.get(column) or ""), reverse=direction == "desc")
            if params.get("limit"):
                matched = matched[: int(params["limit"])]
            if request.method == "HEAD":
                total = len(matched)
                return httpx.Response(200, headers={"content-range": f"0-{max(total - 1, 0)}/{total}"})
            columns = params.get("select", "*")
            if columns != "*":
                wanted = [name.strip() for name in columns.split(",")]
                matched = [{name: row.get(name) for name in wanted} for row in matched]
            if wants_object:
                if len(matched) != 1:
                    return _not_found()
                return _json(200, matched[0])
            return _json(200, matched)

        if request.method == "PATCH":
            values = json.loads(request.content)
            for row in matched:
                row.update(values)
            return _json(200, matched)

        if request.method == "DELETE":
            ids = {id(row) for row in matched}
            self.tables[table] = [row for row in rows if id(row) not in ids]
            return _json(200, matched)

        return _json(405, {"message": "method not allowed"})


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


