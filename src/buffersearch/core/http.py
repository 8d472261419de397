"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the spatial query client.

Design goals:
- Small surface area (async POST JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to fail (the query client maps errors to outcomes).
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "buffersearch/0.1.0 (+https://local)"


async def post_json(
    url: str,
    *,
    payload: Any,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
) -> Any:
    """POST `payload` as a JSON body and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        resp = await client.post(url, json=payload, headers=request_headers)
        resp.raise_for_status()
        return resp.json()
