"""
Graphiti Memory - MCP client and project namespaces for agent memory
Copyright 2025 Jurden Bruce
"""

__version__ = "1.0.0"

from .models import ToolResult, Episode, Node, Fact, AddMemoryParams, SearchNodesParams, SearchFactsParams, GetEpisodesParams
from .cache import LRUCache
from .transport import GraphitiTransport, TransportError
from .client import GraphitiClient
from .namespace import NamespaceResolver, normalize_remote_url, fingerprint
from .config import GraphitiConfig, ConfigError

__all__ = [
    'ToolResult',
    'Episode',
    'Node',
    'Fact',
    'AddMemoryParams',
    'SearchNodesParams',
    'SearchFactsParams',
    'GetEpisodesParams',
    'LRUCache',
    'GraphitiTransport',
    'TransportError',
    'GraphitiClient',
    'NamespaceResolver',
    'normalize_remote_url',
    'fingerprint',
    'GraphitiConfig',
    'ConfigError',
]
