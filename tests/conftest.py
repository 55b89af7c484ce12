"""Shared fixtures: an in-process backend on aiohttp's TestServer, and a stub gateway.

The stub replaces only the HTTP round trip, so schema validation, header
building and error wrapping still run for real.
"""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from typing import Any, Dict, List, Tuple

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from walletpay.credentials import CredentialPair, MemoryCredentialStore
from walletpay.errors import RequestError
from walletpay.gateway import RequestGateway

PROFILE = {
    "username": "adaeze",
    "email": "a@b.com",
    "first_name": "Ada",
    "last_name": "Eze",
    "phone_number": "+2348012345678",
    "date_of_birth": None,
    "id_number_type": "NIN",
    "id_number": None,
}

LEDGER = [
    {"transaction_id": "T-3", "wallet": 7, "amount": "250.00", "entry_type": "DEBIT", "created_at": "2026-10-18T09:30:00Z"},
    {"transaction_id": "T-2", "wallet": 7, "amount": "1000.50", "entry_type": "CREDIT", "created_at": "2026-10-17T14:00:00Z"},
    {"transaction_id": "T-1", "wallet": 7, "amount": "75.25", "entry_type": "DEBIT", "created_at": "2026-10-16T08:15:00Z"},
]


class StubGateway(RequestGateway):
    """Answers from ``routes[(METHOD, path)]``: a value, an exception, or a callable taking the body."""

    def __init__(self, store, routes: Dict[Tuple[str, str], Any] = None):
        super().__init__("http://stub.invalid/api/v1", store)
        self.routes = routes or {}
        self.calls: List[Dict[str, Any]] = []

    async def _send(self, method: str, path: str, body: Any, auth: bool) -> Any:
        self.calls.append({"method": method.upper(), "path": path, "body": body, "headers": self._headers(auth)})
        r = self.routes[(method.upper(), path)]
        if callable(r):
            r = r(body)
        if isinstance(r, Exception):
            raise r
        return r

    def calls_to(self, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["path"] == path]


@pytest.fixture
def pair():
    return CredentialPair(access="tok1", refresh="tok2")


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def auth_store(pair):
    return MemoryCredentialStore(pair)


def unauthorized():
    return RequestError("Given token not valid for any token type", status=401)


# ------------------------
# in-process backend
# ------------------------
def _json(data: Any, status: int = 200) -> web.Response:
    return web.Response(text=json.dumps(data), status=status, content_type="application/json")


def make_backend_app() -> web.Application:
    app = web.Application()
    app["seen"] = []
    app["applied"] = {}

    def record(request: web.Request, body: Any = None) -> None:
        app["seen"].append({"method": request.method, "path": request.path, "headers": dict(request.headers), "body": body})

    async def login(request):
        body = await request.json()
        record(request, body)
        if body.get("email") == "a@b.com" and body.get("password") == "secret":
            return _json({"access": "tok1", "refresh": "tok2"})
        return _json({"detail": "No active account found with the given credentials"}, 401)

    async def me(request):
        record(request)
        if request.headers.get("Authorization") != "Bearer tok1":
            return _json({"detail": "Given token not valid for any token type"}, 401)
        return _json(PROFILE)

    async def balance(request):
        record(request)
        return web.Response(text='{"wallet balance": 2547850.00}', content_type="application/json")

    async def ledger(request):
        record(request)
        return _json(LEDGER)

    async def transfer(request):
        body = await request.json()
        record(request, body)
        if Decimal(body["amount"]) > Decimal("1000000"):
            return _json({"message": "Insufficient funds"}, 400)
        key = body["idempotency_key"]
        applied = app["applied"]
        if key not in applied:
            applied[key] = {"transaction_id": f"T-{len(applied) + 1}", "status": "completed"}
        return _json(applied[key], 201)

    async def html_error(request):
        return web.Response(text="<html>Bad Gateway</html>", status=502, content_type="text/html")

    async def not_json(request):
        return web.Response(text="ok, not json", content_type="text/plain")

    async def message_error(request):
        return _json({"message": "Receiver not found", "detail": "ignored"}, 404)

    async def bad_utf8(request):
        return web.Response(body=b'{"wallet balance": "\xff\xfe"}', content_type="application/json", charset="utf-8")

    async def bad_utf8_error(request):
        return web.Response(body=b'{"message": "\xff\xfe"}', status=500, content_type="application/json", charset="utf-8")

    async def empty(request):
        return web.Response(status=204)

    async def slow(request):
        await asyncio.sleep(2)
        return _json({})

    app.router.add_post("/api/v1/accounts/login/", login)
    app.router.add_get("/api/v1/accounts/me/", me)
    app.router.add_get("/api/v1/wallets/balance/", balance)
    app.router.add_get("/api/v1/transactions/ledgerEntry", ledger)
    app.router.add_post("/api/v1/transactions/transfer/", transfer)
    app.router.add_get("/api/v1/html-error", html_error)
    app.router.add_get("/api/v1/not-json", not_json)
    app.router.add_get("/api/v1/message-error", message_error)
    app.router.add_delete("/api/v1/empty", empty)
    app.router.add_get("/api/v1/bad-utf8", bad_utf8)
    app.router.add_get("/api/v1/bad-utf8-error", bad_utf8_error)
    app.router.add_get("/api/v1/slow", slow)
    return app


@pytest.fixture
async def backend():
    server = TestServer(make_backend_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def base_url(backend):
    return str(backend.make_url("/api/v1"))
