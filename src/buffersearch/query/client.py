"""
Spatial query client.

This module is responsible only for:
- building an INTERSECT query for a layer and a buffer polygon,
- POSTing it to the feature backend (with simple retry/backoff for 429/transient errors),
- normalizing the response into a `QueryOutcome`.

Expected remote failures never raise: they come back as `Failure(TransportError)` or
`Failure(ParseError)` so the draw controller can always settle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from buffersearch.config.settings import Settings
from buffersearch.core.errors import InvalidParameterError, ParseError, TransportError
from buffersearch.core.geo import BufferGeometry
from buffersearch.core.http import post_json
from buffersearch.domain.models import LayerRef
from buffersearch.query.codec import build_query, decode_response, encode_request
from buffersearch.query.outcome import Failure, QueryOutcome, outcome_from_features

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class SpatialQueryClient:
    """Feature backend client returning typed outcomes."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @staticmethod
    def _parse_retry_after_seconds(value: str | None) -> float | None:
        if not value:
            return None
        try:
            seconds = float(value)
        except ValueError:
            return None
        return seconds if seconds >= 0 else None

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.backend.api_key
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    async def _post_with_retry(self, body: Any) -> Any:
        """POST JSON with retry/backoff; re-raises the last httpx error when attempts run out."""
        backend = self._settings.backend
        retry = backend.retry
        max_attempts = int(retry.max_attempts)
        base_delay_seconds = float(retry.base_delay_seconds)
        max_delay_seconds = float(retry.max_delay_seconds)

        for attempt in range(max_attempts + 1):
            try:
                return await post_json(
                    backend.query_url,
                    payload=body,
                    headers=self._headers(),
                    timeout_seconds=self._settings.app.http_timeout_seconds,
                )
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status not in RETRYABLE_STATUSES or attempt >= max_attempts:
                    raise

                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                retry_after = self._parse_retry_after_seconds(exc.response.headers.get("Retry-After"))
                if retry_after is not None:
                    delay = max(delay, retry_after)

                logger.warning(
                    "Feature query failed with status=%s; retrying in %.2fs (attempt %s/%s)",
                    status,
                    delay,
                    attempt + 1,
                    max_attempts,
                )
                await asyncio.sleep(delay)
            except httpx.TransportError:
                if attempt >= max_attempts:
                    raise
                delay = min(max_delay_seconds, base_delay_seconds * (2**attempt))
                logger.warning(
                    "Feature query transport error; retrying in %.2fs (attempt %s/%s)",
                    delay,
                    attempt + 1,
                    max_attempts,
                )
                await asyncio.sleep(delay)
        raise RuntimeError("Feature query loop exited without a response (unexpected).")

    async def query(self, layer: LayerRef, area: BufferGeometry) -> QueryOutcome:
        """Return all features of `layer` intersecting `area`."""
        try:
            body = encode_request(build_query(layer, area))
        except InvalidParameterError as exc:
            logger.error("Cannot express the buffer in layer CRS %s: %s", layer.crs, exc)
            return Failure(exc)
        logger.info(
            "Querying layer=%s within %.0fm of (%.6f, %.6f)",
            layer.id,
            area.distance_m,
            area.origin.x,
            area.origin.y,
        )

        try:
            payload = await self._post_with_retry(body)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("Feature query rejected with status=%s", status)
            return Failure(TransportError(f"Backend responded with HTTP {status}", status_code=status))
        except httpx.HTTPError as exc:
            logger.error("Feature query transport failure: %s", exc)
            return Failure(TransportError(f"Backend unreachable: {exc}"))
        except ValueError as exc:
            logger.error("Feature query returned a non-JSON body: %s", exc)
            return Failure(ParseError(f"Response is not valid JSON: {exc}"))

        try:
            features = decode_response(payload)
        except ParseError as exc:
            logger.error("Feature query returned a malformed payload: %s", exc)
            return Failure(exc)

        logger.info("Feature query on layer=%s returned %d feature(s)", layer.id, len(features))
        return outcome_from_features(features)
