"""Request gateway: every backend call goes through ``RequestGateway.call``.

It attaches the bearer token when one is stored, speaks JSON both ways
(floats decode to Decimal, Decimals encode as strings) and turns every kind
of failure into a ``RequestError`` with a readable message.
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import RequestError, SchemaMismatchError

logger = logging.getLogger(__name__)

UnauthorizedHook = Callable[[], Awaitable[bool]]


def _json_default(o: Any) -> Any:
    if isinstance(o, Decimal):
        return str(o)
    raise TypeError(f"{type(o).__name__} is not JSON serializable")


def encode_body(body: Any) -> str:
    return json.dumps(body, default=_json_default)


def decode_body(text: str) -> Any:
    return json.loads(text, parse_float=Decimal) if text.strip() else None


def error_message(status: int, text: str) -> str:
    """Backend errors carry ``message`` or ``detail``; anything else becomes ``HTTP <status>``."""
    try:
        j = json.loads(text)
    except ValueError:
        j = None
    if isinstance(j, dict):
        for key in ("message", "detail"):
            v = j.get(key)
            if isinstance(v, str) and v:
                return v
    return f"HTTP {status}"


class RequestGateway:
    def __init__(
        self,
        base_url: str,
        store,
        timeout: float = 10.0,
        on_unauthorized: Optional[UnauthorizedHook] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.timeout = timeout
        self.on_unauthorized = on_unauthorized
        self._session: Optional[aiohttp.ClientSession] = None
        self._ssl = ssl.create_default_context()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session
        connector = aiohttp.TCPConnector(ssl=self._ssl)
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self._session

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if auth:
            pair = self.store.get()
            if pair is not None:
                headers["Authorization"] = f"Bearer {pair.access}"
        return headers

    async def _send(self, method: str, path: str, body: Any, auth: bool) -> Any:
        session = await self._ensure_session()
        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {"headers": self._headers(auth)}
        if body is not None:
            kwargs["data"] = encode_body(body)
        try:
            async with session.request(method.upper(), url, **kwargs) as resp:
                raw = await resp.read()
                status = resp.status
        except asyncio.TimeoutError:
            logger.warning("request timed out", extra={"path": path, "method": method})
            raise RequestError("Request timed out") from None
        except aiohttp.ClientError as e:
            logger.warning(f"request failed: {e}", extra={"path": path, "method": method})
            raise RequestError(str(e) or "Network error") from e

        if not 200 <= status < 300:
            msg = error_message(status, raw.decode("utf-8", errors="replace"))
            logger.info(f"backend returned {status}: {msg}", extra={"path": path, "method": method, "status": status})
            raise RequestError(msg, status=status)
        try:
            return decode_body(raw.decode("utf-8"))
        except ValueError:
            # UnicodeDecodeError included
            raise RequestError("Malformed JSON response", status=status) from None

    async def call(self, path: str, method: str = "GET", body: Any = None, *, auth: bool = True) -> Any:
        """Issue one request and return the decoded JSON (None for an empty body).

        Raises RequestError. Nothing is retried, except that a 401 on an
        authenticated call is re-issued once when ``on_unauthorized`` is set
        and reports that it renewed the credentials.
        """
        try:
            return await self._send(method, path, body, auth)
        except RequestError as e:
            if not (e.unauthorized and auth and self.on_unauthorized and self.store.get() is not None):
                raise
            if not await self.on_unauthorized():
                raise
        logger.info("credentials renewed, re-issuing request", extra={"path": path, "method": method})
        return await self._send(method, path, body, auth)

    async def call_model(self, path: str, model: Any, method: str = "GET", body: Any = None, *, auth: bool = True) -> Any:
        """Like ``call`` but validates the result against a pydantic model or TypeAdapter."""
        data = await self.call(path, method, body, auth=auth)
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            if isinstance(model, type) and issubclass(model, BaseModel):
                return model.model_validate(data)
            return TypeAdapter(model).validate_python(data)
        except ValidationError as e:
            logger.warning(f"unexpected response shape: {e.error_count()} error(s)", extra={"path": path, "method": method, "error_code": SchemaMismatchError.code})
            raise SchemaMismatchError(f"Unexpected response from {path}") from e
