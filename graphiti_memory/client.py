"""
Typed Graphiti tool client
Copyright 2025 Jurden Bruce

Maps memory operations onto Graphiti MCP tools. Arguments the caller did
not supply are left out of the request entirely rather than sent as null.
"""

import logging
from typing import Any, Dict, List, Optional

from .models import (
    AddMemoryParams,
    Episode,
    Fact,
    GetEpisodesParams,
    Node,
    SearchFactsParams,
    SearchNodesParams,
    ToolResult,
)
from .transport import DEFAULT_TIMEOUT, GraphitiTransport

logger = logging.getLogger("graphiti-memory.client")

TOOL_GET_STATUS = "get_status"
TOOL_ADD_MEMORY = "add_memory"
TOOL_SEARCH_NODES = "search_nodes"
TOOL_SEARCH_FACTS = "search_memory_facts"
TOOL_GET_EPISODES = "get_episodes"
TOOL_DELETE_EPISODE = "delete_episode"
TOOL_CLEAR_GRAPH = "clear_graph"


def _put(args: Dict[str, Any], key: str, value: Any):
    if value is not None:
        args[key] = value


def _items(data: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def _message(data: Any) -> str:
    if isinstance(data, dict):
        return str(data.get("message", ""))
    if data is None:
        return ""
    return str(data)


class GraphitiClient:
    """Memory operations against a Graphiti MCP server.

    Usage:
        async with GraphitiClient("http://localhost:8000/mcp/") as client:
            await client.add_memory(AddMemoryParams(name="note", episode_body="...", group_id=ns))
            nodes = await client.search_nodes("auth", SearchNodesParams(group_ids=[ns]))
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[GraphitiTransport] = None,
        **transport_kwargs,
    ):
        self.transport = transport or GraphitiTransport(base_url, timeout=timeout, **transport_kwargs)

    @classmethod
    def from_config(cls, config, **kwargs) -> "GraphitiClient":
        return cls(config.graphiti_url, timeout=config.timeout, **kwargs)

    async def close(self):
        await self.transport.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def get_status(self) -> ToolResult[Dict[str, Any]]:
        return await self.transport.call_tool(TOOL_GET_STATUS, {})

    async def add_memory(self, params: AddMemoryParams) -> ToolResult[str]:
        args: Dict[str, Any] = {"name": params.name, "episode_body": params.episode_body}
        _put(args, "group_id", params.group_id)
        _put(args, "source", params.source)
        _put(args, "source_description", params.source_description)
        _put(args, "uuid", params.uuid)

        result = await self.transport.call_tool(TOOL_ADD_MEMORY, args)
        return result.map(_message)

    async def search_nodes(self, query: str, params: Optional[SearchNodesParams] = None) -> ToolResult[List[Node]]:
        params = params or SearchNodesParams()
        args: Dict[str, Any] = {"query": query}
        _put(args, "group_ids", params.group_ids)
        _put(args, "max_nodes", params.max_nodes)
        _put(args, "entity_types", params.entity_types)

        result = await self.transport.call_tool(TOOL_SEARCH_NODES, args)
        return result.map(lambda data: [Node.from_dict(n) for n in _items(data, "nodes")])

    async def search_facts(self, query: str, params: Optional[SearchFactsParams] = None) -> ToolResult[List[Fact]]:
        params = params or SearchFactsParams()
        args: Dict[str, Any] = {"query": query}
        _put(args, "group_ids", params.group_ids)
        _put(args, "max_facts", params.max_facts)
        _put(args, "center_node_uuid", params.center_node_uuid)

        result = await self.transport.call_tool(TOOL_SEARCH_FACTS, args)
        return result.map(lambda data: [Fact.from_dict(f) for f in _items(data, "facts")])

    async def get_episodes(self, params: Optional[GetEpisodesParams] = None) -> ToolResult[List[Episode]]:
        params = params or GetEpisodesParams()
        args: Dict[str, Any] = {}
        _put(args, "group_ids", params.group_ids)
        _put(args, "max_episodes", params.max_episodes)

        result = await self.transport.call_tool(TOOL_GET_EPISODES, args)
        return result.map(lambda data: [Episode.from_dict(e) for e in _items(data, "episodes")])

    async def delete_episode(self, uuid: str) -> ToolResult[str]:
        result = await self.transport.call_tool(TOOL_DELETE_EPISODE, {"uuid": uuid})
        return result.map(_message)

    async def clear_graph(self, group_ids: Optional[List[str]] = None) -> ToolResult[str]:
        args: Dict[str, Any] = {}
        _put(args, "group_ids", group_ids)

        logger.info(f"Clearing graph for groups: {group_ids or 'all'}")
        result = await self.transport.call_tool(TOOL_CLEAR_GRAPH, args)
        return result.map(_message)
