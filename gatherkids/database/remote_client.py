"""
Async PostgREST client for the hosted (Supabase) store.

Wraps every HTTP call the remote adapter makes into one reusable class and
turns PostgREST / PostgreSQL failures into the typed errors from
``gatherkids.database.errors``.

Usage::

    client = PostgrestClient(url, key)
    rows   = await client.select("children", [("household_id", "eq.h1")])
    row    = await client.select_one("children", "child_id", "c1")
    await client.close()

Reads are retried with exponential backoff on transport failures and gateway
errors; writes are sent once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from gatherkids import config
from gatherkids.database.errors import (
    BackendError, BackendUnavailable, DataAccessError, DuplicateRecordError,
    ValidationError,
)

logger = logging.getLogger(__name__)

Params = Sequence[Tuple[str, str]]

NO_ROW_CODE = "PGRST116"
UNIQUE_VIOLATION = "23505"
_VALIDATION_CODES = {"23502", "23514"}
_UNAVAILABLE_STATUS = {502, 503, 504}

_SINGLE = "application/vnd.pgrst.object+json"
_RETURN_ROW = "return=representation"


class NoRowFound(DataAccessError):
    """PostgREST answered ``PGRST116``: the single-row request matched nothing."""


def _error_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text or response.reason_phrase}
    return body if isinstance(body, dict) else {"message": str(body)}


def map_error(response: httpx.Response, table: str, record_id: Optional[str] = None) -> DataAccessError:
    """Translate a failed PostgREST response into a ``DataAccessError``."""
    body = _error_body(response)
    code = str(body.get("code") or "")
    message = str(body.get("message") or f"HTTP {response.status_code}")
    status = response.status_code

    if code == NO_ROW_CODE:
        return NoRowFound(message, {"table": table, "record_id": record_id})
    if code == UNIQUE_VIOLATION:
        return DuplicateRecordError(table, record_id or "?")
    if code.startswith("22") or code in _VALIDATION_CODES or code.startswith("PGRST2"):
        errors = [{"loc": [], "msg": message, "type": code}]
        if body.get("details"):
            errors[0]["details"] = body["details"]
        return ValidationError(f"{table}: {message}", errors)
    if status in _UNAVAILABLE_STATUS:
        return BackendUnavailable(f"{table}: remote store unavailable ({message})", code=code or None, status=status)
    return BackendError(f"{table}: {message}", code=code or None, status=status)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def eq(value: Any) -> str:
    if isinstance(value, bool):
        return "eq." + ("true" if value else "false")
    return f"eq.{value}"


def is_bool(value: bool) -> str:
    return "is.true" if value else "is.false"


def ilike_any(columns: Sequence[str], term: str) -> str:
    """``or`` filter matching ``term`` as a case-insensitive substring of any column."""
    pattern = _quote(f"*{term}*")
    return "(" + ",".join(f"{col}.ilike.{pattern}" for col in columns) + ")"


class PostgrestClient:
    """Async HTTP client for ``{url}/rest/v1``.

    Instantiate once per adapter; the internal httpx.AsyncClient is lazily
    created and reused across calls.  ``transport`` lets tests serve requests
    from an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url or not key:
            raise ValueError("PostgrestClient needs both a URL and an API key")
        self.base_url = url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        self.timeout = config.REMOTE_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = max(1, config.REMOTE_MAX_RETRIES if max_retries is None else max_retries)
        self.retry_backoff = config.REMOTE_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _client_get(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _send(
        self,
        method: str,
        table: str,
        *,
        params: Params = (),
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        record_id: Optional[str] = None,
    ) -> httpx.Response:
        client = await self._client_get()
        try:
            response = await client.request(method, f"/{table}", params=list(params), json=json, headers=headers)
        except httpx.TransportError as exc:
            raise BackendUnavailable(f"{table}: {method} failed: {exc}") from exc
        if response.is_error:
            raise map_error(response, table, record_id)
        return response

    async def _get(self, table: str, params: Params, *, single: bool = False, record_id: Optional[str] = None) -> Any:
        """GET with retries and exponential backoff on unavailability."""
        headers = {"Accept": _SINGLE} if single else None
        delay = self.retry_backoff
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._send("GET", table, params=params, headers=headers, record_id=record_id)
                return response.json()
            except BackendUnavailable as exc:
                if attempt >= self.max_retries:
                    logger.error("GET %s failed after %d attempts: %s", table, attempt, exc)
                    raise
                logger.warning("GET %s failed (%s); retry %d/%d in %.1fs",
                               table, exc, attempt, self.max_retries, delay)
                await asyncio.sleep(delay)
                delay *= 2
        raise AssertionError("unreachable")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def select(self, table: str, params: Params = ()) -> List[Dict[str, Any]]:
        rows = await self._get(table, [("select", "*"), *params])
        return list(rows or [])

    async def select_one(self, table: str, id_field: str, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._get(
                table, [("select", "*"), (id_field, eq(record_id))], single=True, record_id=record_id,
            )
        except NoRowFound:
            return None

    async def insert(
        self, table: str, row: Dict[str, Any], record_id: Optional[str] = None
    ) -> Dict[str, Any]:
        response = await self._send(
            "POST", table, json=row, record_id=record_id,
            headers={"Accept": _SINGLE, "Prefer": _RETURN_ROW},
        )
        return response.json()

    async def update(self, table: str, id_field: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """PATCH one row; raises ``NoRowFound`` when the id matches nothing."""
        response = await self._send(
            "PATCH", table, params=[(id_field, eq(record_id))], json=patch, record_id=record_id,
            headers={"Accept": _SINGLE, "Prefer": _RETURN_ROW},
        )
        return response.json()

    async def delete(self, table: str, id_field: str, record_id: str) -> bool:
        """DELETE one row; ``False`` when it was already gone."""
        try:
            await self._send(
                "DELETE", table, params=[(id_field, eq(record_id))], record_id=record_id,
                headers={"Accept": _SINGLE, "Prefer": _RETURN_ROW},
            )
        except NoRowFound:
            return False
        return True

    async def close(self) -> None:
        """Cleanly close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
