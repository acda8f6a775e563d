"""Handler set wiring generated UIs to the server action endpoint.

The handlers follow the state conventions of the generated CRUD pages:
records live under ``/data``, modal flags and messages under ``/ui`` and the
record being edited under ``/form``.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from renderops_server.errors import ActionError
from renderops_server.ui.data_store import DataStore

logger = logging.getLogger(__name__)

ExecuteFn = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]

EXPORT_LIMIT = 10000


class RemoteActionExecutor:
    """Call ``POST {api_prefix}/actions/execute`` on a RenderOps server."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        api_prefix: str = "/api",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.api_prefix = api_prefix
        self._client = client

    async def __call__(self, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{self.api_prefix}/actions/execute"
        headers = {"Authorization": f"Bearer {self.token}"}
        payload = {"action": action, "params": params}
        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(url, json=payload, headers=headers)
        body = response.json()
        if "success" not in body:
            return {"success": False, "error": body.get("detail") or f"HTTP {response.status_code}"}
        return body


def build_client_handlers(
    store: DataStore,
    execute: ExecuteFn,
    connection_id: str,
    table: str,
) -> Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]]:
    """
    Build the handler mapping for an ``ActionDispatcher`` driving a CRUD page.

    Args:
        store: Data store of the UI session
        execute: Coroutine sending ``(action, params)`` to the server
        connection_id: Connection every database action targets
        table: Table every database action targets

    Returns:
        Mapping of action name to async handler
    """
    target = {"connectionId": connection_id, "table": table}

    async def call(action: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        return await execute(action, {**params, **target})

    async def load_data() -> None:
        await db_list({"page": 1, "limit": 20})

    def listing(action: str):
        async def handler(params: Dict[str, Any]) -> Any:
            store.set_multiple({"/ui/isLoading": True})
            result = await call(action, params)
            if not result.get("success"):
                store.set_multiple({
                    "/ui/isLoading": False,
                    "/ui/errorMessage": result.get("error") or "Failed to load records",
                })
                return []
            data = result.get("data") or {}
            store.set_multiple({
                "/data/items": data.get("items", []),
                "/data/pagination": data.get("pagination"),
                "/ui/isLoading": False,
            })
            return data.get("items", [])

        return handler

    db_list = listing("db_list")

    async def db_get(params: Dict[str, Any]) -> Any:
        result = await call("db_get", params)
        if result.get("success"):
            store.set_multiple({"/form": result.get("data"), "/ui/showEditModal": True})
        return result.get("data")

    def mutation(action: str, modal_flag: str, message: str, fallback_error: str):
        async def handler(params: Dict[str, Any]) -> Any:
            result = await call(action, params)
            if not result.get("success"):
                raise ActionError(result.get("error") or fallback_error)
            await load_data()
            store.set_multiple({modal_flag: False, "/ui/successMessage": message})
            return result.get("data")

        return handler

    async def db_export(params: Dict[str, Any]) -> Dict[str, Any]:
        result = await call("db_search", {**params, "page": 1, "limit": EXPORT_LIMIT})
        items = (result.get("data") or {}).get("items") if result.get("success") else None
        if not items:
            logger.info("Nothing to export for %s", table)
            return {"success": False}

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=list(items[0].keys()), extrasaction="ignore")
        writer.writeheader()
        writer.writerows(items)
        return {
            "success": True,
            "filename": f"{table}_{date.today().isoformat()}.csv",
            "content": buffer.getvalue(),
        }

    async def http_request(params: Dict[str, Any]) -> Any:
        result = await execute("http_request", params)
        if not result.get("success"):
            raise ActionError(result.get("error") or "Request failed")
        return result.get("data")

    async def set_data(params: Dict[str, Any]) -> Dict[str, Any]:
        return {"success": True}

    async def navigate(params: Dict[str, Any]) -> Dict[str, Any]:
        store.set_multiple({"/ui/route": params.get("to") or params.get("path")})
        return {"success": True}

    async def open_modal(params: Dict[str, Any]) -> Dict[str, Any]:
        store.set_multiple({f"/ui/show{params.get('id')}": True})
        return {"success": True}

    async def close_modal(params: Dict[str, Any]) -> Dict[str, Any]:
        store.set_multiple({f"/ui/show{params.get('id')}": False})
        return {"success": True}

    return {
        "db_list": db_list,
        "db_search": listing("db_search"),
        "db_get": db_get,
        "db_insert": mutation(
            "db_insert", "/ui/showCreateModal", "Record created successfully", "Failed to create record"
        ),
        "db_update": mutation(
            "db_update", "/ui/showEditModal", "Record updated successfully", "Failed to update record"
        ),
        "db_delete": mutation(
            "db_delete", "/ui/showDeleteModal", "Record deleted successfully", "Failed to delete record"
        ),
        "db_export": db_export,
        "http_request": http_request,
        "set_data": set_data,
        "navigate": navigate,
        "open_modal": open_modal,
        "close_modal": close_modal,
    }
