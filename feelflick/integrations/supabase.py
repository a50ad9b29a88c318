from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, AsyncClientOptions, acreate_client

from feelflick.core.config import settings
from feelflick.core.exceptions import ConfigurationError, DatastoreError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Async access to the hosted datastore (PostgREST tables and RPC functions)
    through the supabase SDK.

    Queries are built with the SDK's fluent API (``client.table("movies").select(...)``)
    and run through ``rows`` / ``execute``, which turn SDK and network failures
    into DatastoreError.
    """

    def __init__(self, sdk: AsyncClient) -> None:
        self.sdk = sdk

    @classmethod
    async def connect(
        cls,
        url: str | None = None,
        key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "SupabaseClient":
        """
        Create the SDK client. http_client replaces the SDK's own httpx client
        (tests pass one built on httpx.MockTransport).
        """
        url = url if url is not None else settings.supabase_url
        key = key if key is not None else settings.supabase_service_role_key
        if not url or not key:
            raise ConfigurationError(
                "SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not set. Put them into .env"
            )

        options: dict[str, Any] = {"postgrest_client_timeout": settings.http_timeout_secs}
        if http_client is not None:
            options["httpx_client"] = http_client
        sdk = await acreate_client(url.rstrip("/"), key, options=AsyncClientOptions(**options))
        return cls(sdk)

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.sdk.postgrest.aclose()

    # -------------------------
    # Queries
    # -------------------------

    def table(self, name: str):
        return self.sdk.table(name)

    async def execute(self, query: Any, what: str) -> Any:
        """Run a built SDK query; returns the response data."""
        try:
            resp = await query.execute()
        except APIError as e:
            raise DatastoreError(f"Datastore error on {what}: {e.message} (code={e.code})") from e
        except httpx.HTTPError as e:
            raise DatastoreError(f"Datastore network error on {what}: {e!r}") from e
        return resp.data

    async def rows(self, query: Any, what: str) -> list[dict[str, Any]]:
        data = await self.execute(query, what)
        if data is None:
            return []
        if not isinstance(data, list):
            raise DatastoreError(f"Expected a list of rows from {what}, got {type(data).__name__}")
        return data

    async def rpc(self, function: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        logger.debug("RPC %s(%s)", function, params)
        return await self.execute(self.sdk.rpc(function, dict(params or {})), f"rpc {function}")

    async def ping(self, table: str) -> None:
        """Cheapest round-trip that proves the datastore answers."""
        await self.rows(self.table(table).select("id").limit(1), f"ping {table}")
