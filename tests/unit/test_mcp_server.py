from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx
import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from receipt_split.mcp.server import _build_api_error, create_mcp_server

DEVICE = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"


@dataclass
class FakeRequester:
    responses: dict[tuple[str, str], object]
    calls: list[dict[str, object]] = field(default_factory=list)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int | float | bool | None] | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object:
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": dict(params) if params else None,
                "json_body": dict(json_body) if json_body else None,
                "headers": dict(headers) if headers else None,
            }
        )
        return self.responses[(method, path)]


def _call(
    requester: FakeRequester, tool: str, arguments: dict[str, object]
) -> object:
    async def scenario() -> object:
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=requester,
        )
        async with Client(server) as client:
            result = await client.call_tool(tool, arguments)
        return result.data

    return asyncio.run(scenario())


def test_create_mcp_server_registers_expected_tools() -> None:
    async def scenario() -> list[str]:
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=FakeRequester(responses={}),
        )
        async with Client(server) as client:
            tools = await client.list_tools()
        return sorted(tool.name for tool in tools)

    assert asyncio.run(scenario()) == [
        "get_live_view",
        "get_receipt",
        "get_usage_summary",
        "join_receipt",
        "list_recent_receipts",
        "update_claim",
    ]


def test_get_receipt_forwards_guest_header() -> None:
    requester = FakeRequester(
        responses={("GET", "/v1/receipts/123456"): {"share_code": "123456"}}
    )

    result = _call(
        requester, "get_receipt", {"code": "123456", "guest_device_id": DEVICE}
    )

    assert result == {"share_code": "123456"}
    assert requester.calls[0]["headers"] == {"X-Guest-Device-Id": DEVICE}


def test_list_recent_receipts_sends_archive_flag_only_when_set() -> None:
    requester = FakeRequester(responses={("GET", "/v1/receipts"): {"receipts": []}})

    _call(requester, "list_recent_receipts", {"limit": 5, "include_archived": True})

    assert requester.calls[0]["params"] == {"limit": 5, "include_archived": True}
    assert requester.calls[0]["headers"] is None


def test_update_claim_sends_item_and_delta() -> None:
    requester = FakeRequester(
        responses={("POST", "/v1/receipts/123456/claims"): {"applied_delta": -1}}
    )

    _call(
        requester,
        "update_claim",
        {"code": "123456", "item_key": "tacos", "delta": -1},
    )

    assert requester.calls[0]["json_body"] == {"item_key": "tacos", "delta": -1}


def test_update_claim_rejects_zero_delta() -> None:
    requester = FakeRequester(responses={})

    with pytest.raises(ToolError, match="different from zero"):
        _call(
            requester,
            "update_claim",
            {"code": "123456", "item_key": "tacos", "delta": 0},
        )
    assert requester.calls == []


def test_create_mcp_server_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError, match="greater than zero"):
        create_mcp_server(api_base_url="http://example.test", timeout_seconds=0)


def test_build_api_error_uses_contract_payload_shape() -> None:
    response = httpx.Response(
        status_code=409,
        json={
            "code": "CLAIMS_LOCKED",
            "message": "Cause: submitted. Action: reopen your claims.",
            "details": {"code": "123456"},
        },
        request=httpx.Request("POST", "http://example.test/v1/receipts/123456"),
    )

    error_message = _build_api_error(response)

    assert "CLAIMS_LOCKED" in error_message
    assert "details={'code': '123456'}" in error_message
