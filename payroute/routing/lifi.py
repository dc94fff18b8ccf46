"""Thin async client for the LI.FI REST API.

Only the three endpoints the router uses are wrapped: advanced routes for
discovery, single-step quotes for execution, and contract-call quotes for
vault deposits. Responses are returned as decoded JSON.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from payroute.config import Settings
from payroute.errors import UpstreamError

logger = structlog.get_logger()


def parse_quantity(value: Any) -> int:
    """LI.FI returns hex or decimal quantities; missing values read as 0."""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.startswith("0x") else int(text)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class LifiClient:
    """LI.FI API client over a shared httpx.AsyncClient."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self.http = http
        self.base_url = settings.lifi_api_url.rstrip("/")
        self.integrator = settings.lifi_integrator
        self.headers = {"x-lifi-api-key": settings.lifi_api_key} if settings.lifi_api_key else {}

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("lifi_request_failed", path=path, error=str(e))
            raise UpstreamError(f"LI.FI request failed: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning(
                "lifi_error_response", path=path, status=response.status_code, error=detail
            )
            raise UpstreamError(f"LI.FI {path} failed: {detail}")

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"LI.FI {path} returned invalid JSON") from e

    async def advanced_routes(self, body: dict[str, Any]) -> list[dict[str, Any]]:
        """POST /advanced/routes; returns the routes array (possibly empty)."""
        payload = dict(body)
        payload.setdefault("options", {})
        payload["options"] = {**payload["options"], "integrator": self.integrator}
        data = await self._send("POST", "/advanced/routes", json=payload)
        return list(data.get("routes") or [])

    async def quote(self, params: dict[str, Any]) -> dict[str, Any]:
        """GET /quote; returns one executable step with transactionRequest."""
        return await self._send(
            "GET", "/quote", params={**params, "integrator": self.integrator}
        )

    async def contract_calls_quote(self, body: dict[str, Any]) -> dict[str, Any]:
        """POST /quote/contractCalls; bridge then call a destination contract."""
        return await self._send(
            "POST", "/quote/contractCalls", json={**body, "integrator": self.integrator}
        )


__all__ = ["LifiClient", "parse_quantity"]
