"""
Gateway to the hosted store: Supabase table rows and portrait blobs.

Talks to Supabase over plain HTTP:
- Table API (PostgREST): /rest/v1/{table}
- Storage API: /storage/v1/object/{bucket}/{key}

No business logic lives here. Every failed call raises StoreError with the
service's own message; select_one raises NotFoundError when no row matches.

Environment variables (see core.config):
- SUPABASE_URL: project URL (e.g., "https://abc.supabase.co")
- SUPABASE_API_KEY: anon or service key
"""

import logging
from urllib.parse import quote

import httpx

from core import config
from core.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a failed Supabase response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error_description", "msg", "error"):
            if data.get(key):
                return str(data[key])
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class SupabaseStore:
    """Thin async client for one Supabase project."""

    def __init__(self, url: str, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _headers(self, **extra: str) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(method, f"{self.url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.debug(f"{method} {path} failed ({response.status_code}): {message}")
            raise StoreError(message, status_code=response.status_code)
        return response

    # -------------------------------------------------------------------------
    # Table API
    # -------------------------------------------------------------------------

    async def insert(self, table: str, record: dict) -> dict:
        """Insert one row and return it as stored (with id and created_at)."""
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=[record],
            headers=self._headers(Prefer="return=representation"),
        )
        rows = response.json() if response.content else []
        return rows[0] if rows else dict(record)

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict | None = None,
        order: str | None = None,
        ascending: bool = True,
    ) -> list[dict]:
        """
        Read rows.

        Args:
            table: Table name
            columns: PostgREST select list (e.g., "id,name")
            filters: column -> value equality filters
            order: Column to order by
            ascending: Sort direction for `order`
        """
        params = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"

        response = await self._request(
            "GET", f"/rest/v1/{table}", params=params, headers=self._headers()
        )
        return response.json() or []

    async def select_one(self, table: str, id: str, columns: str = "*") -> dict:
        rows = await self.select(table, columns=columns, filters={"id": id})
        if not rows:
            raise NotFoundError(f"No row in {table} with id {id}", status_code=404)
        return rows[0]

    async def update(self, table: str, id: str, patch: dict) -> None:
        await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params={"id": f"eq.{id}"},
            json=patch,
            headers=self._headers(Prefer="return=minimal"),
        )

    async def delete(self, table: str, id: str) -> None:
        await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params={"id": f"eq.{id}"},
            headers=self._headers(),
        )

    # -------------------------------------------------------------------------
    # Storage API
    # -------------------------------------------------------------------------

    async def upload_blob(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        cache_control: str = "3600",
        upsert: bool = False,
    ) -> None:
        await self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(key)}",
            content=data,
            headers=self._headers(**{
                "Content-Type": content_type,
                "cache-control": f"max-age={cache_control}",
                "x-upsert": "true" if upsert else "false",
            }),
        )

    def public_url(self, bucket: str, key: str) -> str:
        """Public URL for a blob. Pure string building, no request."""
        return f"{self.url}/storage/v1/object/public/{bucket}/{quote(key)}"

    async def delete_blob(self, bucket: str, key: str) -> None:
        await self._request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            json={"prefixes": [key]},
            headers=self._headers(),
        )


_store = None


def get_store() -> SupabaseStore:
    """Get or create the process-wide store client."""
    global _store
    if _store is not None:
        return _store
    config.require_store_config()
    _store = SupabaseStore(config.SUPABASE_URL, config.SUPABASE_API_KEY)
    return _store
