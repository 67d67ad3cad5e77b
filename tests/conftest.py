"""
Shared fixtures for Graphiti Memory tests
Copyright 2025 Jurden Bruce

FakeGraphitiServer answers MCP requests the way the Graphiti server does:
one SSE frame per response, session id in the initialize response headers.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from graphiti_memory.transport import GraphitiTransport

BASE_URL = "http://graphiti.test/mcp/"


def sse(message: Dict[str, Any]) -> str:
    return f"event: message\ndata: {json.dumps(message)}\n\n"


@dataclass
class RecordedRequest:
    headers: httpx.Headers
    body: Dict[str, Any]

    @property
    def method(self) -> str:
        return self.body["method"]

    @property
    def tool(self) -> Optional[str]:
        return (self.body.get("params") or {}).get("name")

    @property
    def arguments(self) -> Dict[str, Any]:
        return (self.body.get("params") or {}).get("arguments") or {}


class FakeGraphitiServer:
    def __init__(self, session_id: Optional[str] = "session-abc123", delay: float = 0.0):
        self.session_id = session_id
        self.delay = delay
        self.requests: List[RecordedRequest] = []
        self.tools: Dict[str, Callable[[RecordedRequest], httpx.Response]] = {}
        self.initialize_failures: List[httpx.Response] = []

    @property
    def methods(self) -> List[str]:
        return [r.method for r in self.requests]

    def reply(self, request_id, result=None, error=None, headers=None, status=200) -> httpx.Response:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            message["error"] = error
        else:
            message["result"] = result
        return httpx.Response(status, text=sse(message), headers=headers or {})

    def on_tool(self, name: str, structured: Any = None, is_error: bool = False, text: Optional[str] = None):
        def respond(req: RecordedRequest) -> httpx.Response:
            content = [{"type": "text", "text": text if text is not None else json.dumps(structured)}]
            result = {"content": content, "isError": is_error}
            if structured is not None:
                result["structuredContent"] = structured
            return self.reply(req.body["id"], result=result)
        self.tools[name] = respond

    def on_tool_response(self, name: str, responder: Callable[[RecordedRequest], httpx.Response]):
        self.tools[name] = responder

    async def handler(self, request: httpx.Request) -> httpx.Response:
        recorded = RecordedRequest(headers=request.headers, body=json.loads(request.content))
        self.requests.append(recorded)

        if self.delay:
            await asyncio.sleep(self.delay)

        if recorded.method == "initialize":
            if self.initialize_failures:
                return self.initialize_failures.pop(0)
            # give concurrent callers a chance to pile up behind the handshake
            await asyncio.sleep(0.01)
            headers = {"mcp-session-id": self.session_id} if self.session_id else {}
            return self.reply(recorded.body["id"], result={
                "protocolVersion": "2024-11-05",
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": "Graphiti Agent Memory", "version": "1.21.0"},
            }, headers=headers)

        if recorded.method == "tools/call":
            if recorded.headers.get("mcp-session-id") != self.session_id and self.session_id:
                return self.reply(recorded.body["id"], error={"code": -32600, "message": "Bad Request: Missing session ID"})
            responder = self.tools.get(recorded.tool)
            if responder is None:
                return self.reply(recorded.body["id"], result={
                    "content": [{"type": "text", "text": f"Unknown tool: {recorded.tool}"}],
                    "isError": True,
                })
            return responder(recorded)

        return self.reply(recorded.body["id"], error={"code": -32601, "message": "Method not found"})


@pytest.fixture
def make_server():
    return FakeGraphitiServer


@pytest.fixture
def server():
    return FakeGraphitiServer()


@pytest.fixture
def make_transport():
    def factory(server: FakeGraphitiServer, timeout: float = 5.0) -> GraphitiTransport:
        return GraphitiTransport(BASE_URL, timeout=timeout, http_transport=httpx.MockTransport(server.handler))
    return factory


@pytest.fixture
def transport(server, make_transport):
    return make_transport(server)
