"""
Command-line access to Graphiti Memory
Copyright 2025 Jurden Bruce

Usage:
    graphiti-memory status
    graphiti-memory namespace
    graphiti-memory add "User prefers pnpm over npm" --name preference
    graphiti-memory search "package manager" --max 5
    graphiti-memory facts "package manager" --profile
    graphiti-memory episodes --max 10
    graphiti-memory delete EPISODE_UUID
    graphiti-memory clear --yes
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .client import GraphitiClient
from .config import ConfigError, GraphitiConfig
from .models import AddMemoryParams, GetEpisodesParams, SearchFactsParams, SearchNodesParams, ToolResult
from .namespace import NamespaceResolver
from .utils import configure_logging

logger = logging.getLogger("graphiti-memory.cli")

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_UNREACHABLE = 2


class MemoryCLI:
    """CLI interface for memory operations"""

    def __init__(self, config: GraphitiConfig, project_dir: str, client: Optional[GraphitiClient] = None):
        self.config = config
        self.project_dir = project_dir
        self.client = client or GraphitiClient.from_config(config)
        self.resolver = NamespaceResolver.from_config(config)

    def group_id(self, profile: bool = False) -> str:
        if profile:
            return self.resolver.profile_namespace()
        return self.resolver.project_namespace(self.project_dir)

    def namespace(self) -> dict:
        return {
            "project_dir": os.path.abspath(self.project_dir),
            "identity": self.resolver.canonical_identity(self.project_dir),
            "project_namespace": self.group_id(),
            "profile_namespace": self.group_id(profile=True),
        }

    async def status(self) -> ToolResult:
        return await self.client.get_status()

    async def add(self, content: str, name: Optional[str] = None, profile: bool = False,
                  source: Optional[str] = None, source_description: Optional[str] = None) -> ToolResult:
        name = name or f"memory-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')}"
        return await self.client.add_memory(AddMemoryParams(
            name=name,
            episode_body=content,
            group_id=self.group_id(profile),
            source=source,
            source_description=source_description,
        ))

    async def search(self, query: str, max_nodes: Optional[int] = None, profile: bool = False) -> ToolResult:
        result = await self.client.search_nodes(
            query, SearchNodesParams(group_ids=[self.group_id(profile)], max_nodes=max_nodes)
        )
        return result.map(lambda nodes: [n.to_dict() for n in nodes])

    async def facts(self, query: str, max_facts: Optional[int] = None, profile: bool = False) -> ToolResult:
        result = await self.client.search_facts(
            query, SearchFactsParams(group_ids=[self.group_id(profile)], max_facts=max_facts)
        )
        return result.map(lambda facts: [f.to_dict() for f in facts])

    async def episodes(self, max_episodes: Optional[int] = None, profile: bool = False) -> ToolResult:
        result = await self.client.get_episodes(
            GetEpisodesParams(group_ids=[self.group_id(profile)], max_episodes=max_episodes)
        )
        return result.map(lambda episodes: [e.to_dict() for e in episodes])

    async def delete(self, uuid: str) -> ToolResult:
        return await self.client.delete_episode(uuid)

    async def clear(self, profile: bool = False) -> ToolResult:
        return await self.client.clear_graph([self.group_id(profile)])

    async def close(self):
        await self.client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphiti-memory",
        description="Store and query agent memories in a Graphiti MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", help="Graphiti server URL (overrides GRAPHITI_URL)")
    parser.add_argument("--group-id", help="Base group id (overrides GRAPHITI_GROUP_ID)")
    parser.add_argument("--user-id", help="User id (overrides GRAPHITI_USER_ID)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: 30)")
    parser.add_argument("--cd", default=".", help="Project directory (default: current directory)")
    parser.add_argument("--pretty", action="store_true", help="Pretty print JSON output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("status", help="Check server status")
    subparsers.add_parser("namespace", help="Show the namespaces for the project directory")

    add_parser = subparsers.add_parser("add", help="Store a memory")
    add_parser.add_argument("content", help="Memory content")
    add_parser.add_argument("--name", help="Episode name (default: timestamped)")
    add_parser.add_argument("--profile", action="store_true", help="Store in the user profile namespace")
    add_parser.add_argument("--source", help="Source type, e.g. text or json")
    add_parser.add_argument("--source-description", help="Free-form source description")

    search_parser = subparsers.add_parser("search", help="Search entity nodes")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--max", type=int, help="Max nodes")
    search_parser.add_argument("--profile", action="store_true", help="Search the user profile namespace")

    facts_parser = subparsers.add_parser("facts", help="Search relationship facts")
    facts_parser.add_argument("query", help="Search query")
    facts_parser.add_argument("--max", type=int, help="Max facts")
    facts_parser.add_argument("--profile", action="store_true", help="Search the user profile namespace")

    episodes_parser = subparsers.add_parser("episodes", help="List stored episodes")
    episodes_parser.add_argument("--max", type=int, help="Max episodes")
    episodes_parser.add_argument("--profile", action="store_true", help="List the user profile namespace")

    delete_parser = subparsers.add_parser("delete", help="Delete an episode")
    delete_parser.add_argument("uuid", help="Episode UUID")

    clear_parser = subparsers.add_parser("clear", help="Delete every memory in the namespace")
    clear_parser.add_argument("--profile", action="store_true", help="Clear the user profile namespace")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm the deletion")

    return parser


def _emit(payload, pretty: bool):
    print(json.dumps(payload, indent=2 if pretty else None, default=str))


def _exit_code(result: ToolResult) -> int:
    if result.success:
        return EXIT_OK
    return EXIT_UNREACHABLE if result.is_unreachable else EXIT_REJECTED


async def main(argv: Optional[List[str]] = None, client: Optional[GraphitiClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_REJECTED

    configure_logging(args.verbose)

    try:
        config = GraphitiConfig.from_env(
            project_dir=args.cd,
            graphiti_url=args.url,
            group_id=args.group_id,
            user_id=args.user_id,
            timeout=args.timeout,
        )
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        _emit({"success": False, "error": str(e), "is_unreachable": False}, args.pretty)
        return EXIT_UNREACHABLE

    cli = MemoryCLI(config, args.cd, client=client)
    logger.debug(f"Running {args.command} against {config.graphiti_url}")
    try:
        if args.command == "namespace":
            _emit(cli.namespace(), args.pretty)
            return EXIT_OK

        if args.command == "clear" and not args.yes:
            _emit({"success": False, "error": "Refusing to clear without --yes", "is_unreachable": False}, args.pretty)
            return EXIT_REJECTED

        if args.command == "status":
            result = await cli.status()
        elif args.command == "add":
            result = await cli.add(
                content=args.content,
                name=args.name,
                profile=args.profile,
                source=args.source,
                source_description=args.source_description,
            )
        elif args.command == "search":
            result = await cli.search(args.query, max_nodes=args.max, profile=args.profile)
        elif args.command == "facts":
            result = await cli.facts(args.query, max_facts=args.max, profile=args.profile)
        elif args.command == "episodes":
            result = await cli.episodes(max_episodes=args.max, profile=args.profile)
        elif args.command == "delete":
            result = await cli.delete(args.uuid)
        else:
            result = await cli.clear(profile=args.profile)
    finally:
        await cli.close()

    _emit({
        "success": result.success,
        "data": result.data,
        "error": result.error,
        "is_unreachable": result.is_unreachable,
    }, args.pretty)
    return _exit_code(result)


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
