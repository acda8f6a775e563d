"""Outbound webhook calls restricted to an allowlist of hosts."""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from renderops_server.actions.base import ActionParams, ActionResult
from renderops_server.config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
USER_AGENT = "RenderOps/1.0"


def get_allowed_domains() -> list[str]:
    return [d.lower() for d in get_settings().allowed_webhook_domains]


def is_url_allowed(url: str, allowed_domains: Optional[list[str]] = None) -> bool:
    """
    Check a URL's host against the allowlist.

    An empty allowlist blocks everything. ``*.example.com`` matches
    ``example.com`` and any of its subdomains.
    """
    domains = get_allowed_domains() if allowed_domains is None else allowed_domains
    if not domains:
        return False

    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    for domain in domains:
        if domain.startswith("*."):
            base = domain[2:]
            if hostname == base or hostname.endswith("." + base):
                return True
        elif hostname == domain:
            return True
    return False


def _response_body(response: httpx.Response) -> Any:
    if "application/json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


async def http_request(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ActionResult:
    """
    Send an HTTP request to an allowlisted endpoint.

    Args:
        params: ``url``, ``method``, ``headers`` and ``body``
        user_id: Sent as ``X-Request-User``
        connection_string: Unused
        client: HTTP client to use instead of a fresh one

    Returns:
        Status, reason, headers and body of the response
    """
    if not params.url:
        return ActionResult.fail("URL is required")

    if not is_url_allowed(params.url):
        return ActionResult.fail(
            "URL domain is not in the allowlist. Contact administrator to add it."
        )

    method = (params.method or "GET").upper()
    if method not in ALLOWED_METHODS:
        return ActionResult.fail(
            f"Invalid HTTP method. Allowed methods: {', '.join(ALLOWED_METHODS)}"
        )

    headers = {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "X-Request-User": user_id,
        **(params.headers or {}),
    }
    body = params.body if params.body is not None and method != "GET" else None
    timeout = get_settings().http_request_timeout

    try:
        if client is not None:
            response = await client.request(method, params.url, headers=headers, json=body, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as session:
                response = await session.request(method, params.url, headers=headers, json=body)
    except httpx.TimeoutException:
        return ActionResult.fail(f"Request timed out after {timeout:g} seconds")
    except httpx.HTTPError as e:
        logger.error("http_request error: %s", e)
        return ActionResult.fail(str(e) or "HTTP request failed")

    data = _response_body(response)
    if not response.is_success:
        return ActionResult.fail(f"HTTP {response.status_code}: {response.reason_phrase}", data=data)

    return ActionResult(
        success=True,
        data={
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": dict(response.headers),
            "body": data,
        },
    )
