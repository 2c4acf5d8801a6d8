"""MCP server exposing receipt_split API capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import httpx
from fastmcp import FastMCP

from receipt_split.core.settings import get_settings

ParamValue = str | int | float | bool | None
ParamsMapping = Mapping[str, ParamValue]
GUEST_DEVICE_HEADER = "X-Guest-Device-Id"


class APIRequester(Protocol):
    """Requester abstraction to simplify HTTP boundary testing."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class HTTPAPIRequester:
    """HTTP client wrapper for receipt_split API."""

    base_url: str
    timeout_seconds: float
    default_headers: Mapping[str, str] = field(default_factory=dict)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers=dict(self.default_headers),
        ) as client:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=dict(json_body) if json_body else None,
                headers=dict(headers) if headers else None,
            )

        if response.is_success:
            return _parse_json_response(response)
        raise RuntimeError(_build_api_error(response))


def _parse_json_response(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(
            f"API returned a non-JSON response with status {response.status_code}."
        ) from exc


def _build_api_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return f"API request failed with status {response.status_code}: {text}"
        return f"API request failed with status {response.status_code}."

    if isinstance(payload, Mapping):
        error_code = payload.get("code")
        error_message = payload.get("message")
        details = payload.get("details")
        if isinstance(error_code, str) and isinstance(error_message, str):
            if details is None:
                return f"API error {error_code}: {error_message}"
            return f"API error {error_code}: {error_message} | details={details}"

    return f"API request failed with status {response.status_code}: {payload}"


def _normalize_base_url(value: str) -> str:
    return value.rstrip("/")


def _guest_headers(guest_device_id: str | None) -> dict[str, str] | None:
    if guest_device_id is None:
        return None
    return {GUEST_DEVICE_HEADER: guest_device_id}


def create_mcp_server(
    *,
    api_base_url: str | None = None,
    timeout_seconds: float | None = None,
    requester: APIRequester | None = None,
) -> FastMCP:
    """Create MCP server with curated tools mapped to REST endpoints."""

    settings = get_settings()
    resolved_base_url = _normalize_base_url(api_base_url or settings.mcp_api_base_url)
    resolved_timeout = (
        settings.mcp_api_timeout_seconds if timeout_seconds is None else timeout_seconds
    )
    if resolved_timeout <= 0:
        raise ValueError("MCP API timeout must be greater than zero.")

    mcp = FastMCP(name="Receipt Split")
    api_requester: APIRequester = requester or HTTPAPIRequester(
        base_url=resolved_base_url,
        timeout_seconds=resolved_timeout,
    )

    @mcp.tool
    async def get_receipt(code: str, guest_device_id: str | None = None) -> object:
        """Return a shared receipt and its items by 6-digit code."""

        return await api_requester.request(
            "GET",
            f"/v1/receipts/{code}",
            headers=_guest_headers(guest_device_id),
        )

    @mcp.tool
    async def list_recent_receipts(
        guest_device_id: str | None = None,
        limit: int = 30,
        include_archived: bool = False,
    ) -> object:
        """List receipts the caller owns or joined, newest first."""

        params: dict[str, ParamValue] = {"limit": limit}
        if include_archived:
            params["include_archived"] = True
        return await api_requester.request(
            "GET",
            "/v1/receipts",
            params=params,
            headers=_guest_headers(guest_device_id),
        )

    @mcp.tool
    async def join_receipt(code: str, guest_device_id: str | None = None) -> object:
        """Join a shared receipt as a participant."""

        return await api_requester.request(
            "POST",
            f"/v1/receipts/{code}/join",
            headers=_guest_headers(guest_device_id),
        )

    @mcp.tool
    async def get_live_view(code: str, guest_device_id: str | None = None) -> object:
        """Return claimed and remaining quantities with settlement totals."""

        return await api_requester.request(
            "GET",
            f"/v1/receipts/{code}/live",
            headers=_guest_headers(guest_device_id),
        )

    @mcp.tool
    async def update_claim(
        code: str,
        item_key: str,
        delta: int,
        guest_device_id: str | None = None,
    ) -> object:
        """Claim (positive delta) or release (negative delta) units of one item."""

        if delta == 0:
            raise ValueError("delta must be different from zero.")
        return await api_requester.request(
            "POST",
            f"/v1/receipts/{code}/claims",
            json_body={"item_key": item_key, "delta": delta},
            headers=_guest_headers(guest_device_id),
        )

    @mcp.tool
    async def get_usage_summary() -> object:
        """Return free bills left in the current period and credit balance."""

        return await api_requester.request("GET", "/v1/users/me/usage")

    return mcp
