"""
MCP Streamable-HTTP transport for Graphiti Memory
Copyright 2025 Jurden Bruce

Speaks JSON-RPC 2.0 to a Graphiti MCP server over HTTP POST. Every response
arrives as a single Server-Sent-Events frame; only its first ``data:`` line
is read. Failures are reported as ToolResult values split into two classes:

- connectivity (``is_unreachable=True``): network errors, timeouts, non-2xx
  status, envelope-level JSON-RPC errors, undecodable frames
- application (``is_unreachable=False``): the tool ran and flagged an error
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx
from mcp.types import (
    CallToolRequestParams,
    ClientCapabilities,
    Implementation,
    InitializeRequestParams,
    JSONRPCRequest,
)

from .models import ToolResult

logger = logging.getLogger("graphiti-memory.transport")

DEFAULT_TIMEOUT = 30.0
PROTOCOL_VERSION = "2024-11-05"
SESSION_HEADER = "mcp-session-id"
CLIENT_NAME = "graphiti-memory"
CLIENT_VERSION = "1.0.0"

REQUEST_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json, text/event-stream",
}


class TransportError(Exception):
    """The transport or server is unusable for this request."""
    pass


class HTTPStatusError(TransportError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP error: {status_code}")


class SSEDecodeError(TransportError):
    """Response body has no parseable data line."""
    pass


class RequestTimeout(TransportError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout}s")


def parse_sse_response(body: str) -> Dict[str, Any]:
    """Extract the JSON-RPC message from a single-shot SSE body.

    Only the first ``data:`` line counts; any further frames are ignored.
    """
    for line in body.splitlines():
        if not line.startswith("data:"):
            continue
        payload = line[5:]
        if payload.startswith(" "):
            payload = payload[1:]
        try:
            message = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SSEDecodeError(f"Invalid SSE format: data line is not JSON ({e})") from e
        if not isinstance(message, dict):
            raise SSEDecodeError("Invalid SSE format: data line is not a JSON object")
        return message
    raise SSEDecodeError("Invalid SSE format: no data line")


def extract_tool_error(result: Dict[str, Any]) -> str:
    """Pick the most specific error message from a tool result flagged isError"""
    structured = result.get("structuredContent")
    if isinstance(structured, dict) and structured.get("error"):
        return str(structured["error"])

    text = None
    content = result.get("content")
    if not isinstance(content, list):
        content = []
    for block in content:
        if isinstance(block, dict) and isinstance(block.get("text"), str) and block["text"]:
            text = block["text"]
            break

    if not text:
        return "Tool execution failed"

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text
    if isinstance(parsed, dict) and parsed.get("error"):
        return str(parsed["error"])
    return text


def unwrap_structured_content(structured: Any) -> Any:
    # The server sometimes double-wraps payloads as {"result": ...}
    if isinstance(structured, dict) and "result" in structured:
        return structured["result"]
    return structured


class GraphitiTransport:
    """Stateful JSON-RPC client for one Graphiti MCP endpoint.

    The session handshake runs lazily on first use and at most once per
    instance: concurrent first callers all await the same in-flight
    handshake task. Request ids are per instance and strictly increasing.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        client_name: str = CLIENT_NAME,
        client_version: str = CLIENT_VERSION,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.base_url = base_url
        self.timeout = timeout
        self.client_name = client_name
        self.client_version = client_version

        self._http_transport = http_transport
        self._http: Optional[httpx.AsyncClient] = None

        self.session_id: Optional[str] = None
        self._session_established = False
        self._handshake: Optional[asyncio.Task] = None
        self._request_id = 0

    @property
    def has_session(self) -> bool:
        return self._session_established

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            # Timeouts are enforced by the race in _send_request
            self._http = httpx.AsyncClient(transport=self._http_transport, timeout=None)
        return self._http

    async def close(self):
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _send_request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST one JSON-RPC request and return the decoded response envelope.

        Raises TransportError (or an httpx/OS error) when no usable response
        was obtained.

        The POST is raced against the timeout with asyncio.wait_for, so a
        request that misses the deadline is cancelled, not left in flight.
        """
        headers = dict(REQUEST_HEADERS)
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id

        request = JSONRPCRequest(jsonrpc="2.0", id=self._next_request_id(), method=method, params=params)
        body = request.model_dump(by_alias=True, mode="json", exclude_none=True)
        logger.debug(f"-> [{body['id']}] {method}")

        try:
            response = await asyncio.wait_for(
                self._get_http().post(self.base_url, headers=headers, content=json.dumps(body)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise RequestTimeout(self.timeout) from None

        if not response.is_success:
            raise HTTPStatusError(response.status_code)

        message = parse_sse_response(response.text)

        if method == "initialize" and self.session_id is None:
            session_id = response.headers.get(SESSION_HEADER)
            if session_id:
                self.session_id = session_id

        return message

    async def _handshake_once(self) -> ToolResult[None]:
        params = InitializeRequestParams(
            protocolVersion=PROTOCOL_VERSION,
            capabilities=ClientCapabilities(),
            clientInfo=Implementation(name=self.client_name, version=self.client_version),
        ).model_dump(by_alias=True, mode="json", exclude_none=True)

        try:
            message = await self._send_request("initialize", params)
        except (TransportError, httpx.HTTPError, OSError, ValueError) as e:
            logger.warning(f"Handshake with {self.base_url} failed: {e}")
            return ToolResult.fail(str(e) or type(e).__name__, is_unreachable=True)
        except Exception as e:
            logger.error(f"Handshake with {self.base_url} crashed: {e}", exc_info=True)
            return ToolResult.fail(str(e) or type(e).__name__, is_unreachable=True)

        error = message.get("error")
        if error is not None:
            error_message = _envelope_error_message(error)
            logger.warning(f"Handshake rejected by {self.base_url}: {error_message}")
            return ToolResult.fail(error_message, is_unreachable=True)

        result = message.get("result")
        if not isinstance(result, dict):
            logger.warning(f"Handshake with {self.base_url} returned no usable result")
            return ToolResult.fail("Invalid initialize response", is_unreachable=True)

        self._session_established = True
        server_info = result.get("serverInfo")
        if not isinstance(server_info, dict):
            server_info = {}
        logger.info(
            f"Session established with {server_info.get('name', self.base_url)}"
            f" (session {_short(self.session_id)})"
        )
        return ToolResult.ok()

    async def initialize_session(self) -> ToolResult[None]:
        """Run the MCP handshake unless a session is already held.

        A failed handshake is forgotten so the next call can try again.
        """
        if self._session_established:
            return ToolResult.ok()

        if self._handshake is None:
            self._handshake = asyncio.ensure_future(self._handshake_once())

        handshake = self._handshake
        try:
            result = await asyncio.shield(handshake)
        except Exception:
            if self._handshake is handshake:
                self._handshake = None
            raise
        if not result.success and self._handshake is handshake:
            self._handshake = None
        return result

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult[Any]:
        """Invoke an MCP tool and classify the outcome."""
        session = await self.initialize_session()
        if not session.success:
            return session

        params = CallToolRequestParams(name=name, arguments=arguments or {}).model_dump(
            by_alias=True, mode="json", exclude_none=True
        )

        try:
            message = await self._send_request("tools/call", params)
        except (TransportError, httpx.HTTPError, OSError, ValueError) as e:
            logger.warning(f"Tool {name} unreachable: {e}")
            return ToolResult.fail(str(e) or type(e).__name__, is_unreachable=True)
        except Exception as e:
            logger.error(f"Tool {name} request crashed: {e}", exc_info=True)
            return ToolResult.fail(str(e) or type(e).__name__, is_unreachable=True)

        error = message.get("error")
        if error is not None:
            error_message = _envelope_error_message(error)
            logger.warning(f"Tool {name} rejected at protocol level: {error_message}")
            return ToolResult.fail(error_message, is_unreachable=True)

        result = message.get("result")
        if not isinstance(result, dict):
            return ToolResult.fail("No result in response", is_unreachable=True)

        if result.get("isError"):
            error_message = extract_tool_error(result)
            logger.info(f"Tool {name} failed: {error_message}")
            return ToolResult.fail(error_message, is_unreachable=False)

        return ToolResult.ok(unwrap_structured_content(result.get("structuredContent")))


def _envelope_error_message(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message")
        if message:
            return str(message)
        if "code" in error:
            return f"JSON-RPC error {error['code']}"
    return "JSON-RPC error"


def _short(token: Optional[str]) -> str:
    if not token:
        return "none"
    return token[:8] + "..." if len(token) > 8 else token
