"""
Data models for Graphiti Memory
Copyright 2025 Jurden Bruce
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ToolResult(Generic[T]):
    """Outcome of one memory operation.

    Either ``success`` with ``data``, or a failure carrying ``error`` and
    ``is_unreachable`` (True when the service or transport itself is
    unusable, False when the server rejected this particular request).
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    is_unreachable: bool = False

    def __post_init__(self):
        if self.success and (self.error is not None or self.is_unreachable):
            raise ValueError("A successful ToolResult cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed ToolResult needs an error message")

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ToolResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, is_unreachable: bool) -> "ToolResult[T]":
        return cls(success=False, error=error, is_unreachable=is_unreachable)

    def map(self, func) -> "ToolResult":
        """Apply func to the payload of a success, pass failures through"""
        if not self.success:
            return self
        return ToolResult.ok(func(self.data))


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


@dataclass
class Episode:
    """A stored memory entry (raw episode) in the graph"""
    uuid: str
    name: str
    content: str
    source: str = ""
    source_description: str = ""
    created_at: str = ""
    group_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Episode":
        return cls(
            uuid=data.get("uuid", ""),
            name=data.get("name", ""),
            content=data.get("content", ""),
            source=data.get("source", ""),
            source_description=data.get("source_description", ""),
            created_at=data.get("created_at", ""),
            group_id=data.get("group_id", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def is_valid(value: Any) -> bool:
        if not isinstance(value, dict):
            return False
        keys = ("uuid", "name", "content", "source", "source_description", "created_at", "group_id")
        return all(_is_str(value.get(k)) for k in keys)


@dataclass
class Node:
    """An entity node extracted from episodes"""
    uuid: str
    name: str
    labels: List[str] = field(default_factory=list)
    summary: str = ""
    created_at: str = ""
    group_id: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            uuid=data.get("uuid", ""),
            name=data.get("name", ""),
            labels=list(data.get("labels") or []),
            summary=data.get("summary", ""),
            created_at=data.get("created_at", ""),
            group_id=data.get("group_id", ""),
            attributes=dict(data.get("attributes") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def is_valid(value: Any) -> bool:
        if not isinstance(value, dict):
            return False
        if not all(_is_str(value.get(k)) for k in ("uuid", "name", "summary", "created_at", "group_id")):
            return False
        labels = value.get("labels")
        if not isinstance(labels, list) or not all(_is_str(l) for l in labels):
            return False
        if "attributes" in value and not isinstance(value["attributes"], dict):
            return False
        return True


@dataclass
class Fact:
    """A relationship fact (edge) between two nodes"""
    uuid: str
    fact: str
    source_node_uuid: str = ""
    target_node_uuid: str = ""
    created_at: str = ""
    expired_at: Optional[str] = None
    group_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fact":
        return cls(
            uuid=data.get("uuid", ""),
            fact=data.get("fact", ""),
            source_node_uuid=data.get("source_node_uuid", ""),
            target_node_uuid=data.get("target_node_uuid", ""),
            created_at=data.get("created_at", ""),
            expired_at=data.get("expired_at"),
            group_id=data.get("group_id", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def is_expired(self) -> bool:
        return self.expired_at is not None

    @staticmethod
    def is_valid(value: Any) -> bool:
        if not isinstance(value, dict):
            return False
        keys = ("uuid", "fact", "source_node_uuid", "target_node_uuid", "created_at", "group_id")
        if not all(_is_str(value.get(k)) for k in keys):
            return False
        expired = value.get("expired_at")
        return expired is None or _is_str(expired)


@dataclass
class AddMemoryParams:
    """Arguments for add_memory; unset optionals are omitted on the wire"""
    name: str
    episode_body: str
    group_id: Optional[str] = None
    source: Optional[str] = None
    source_description: Optional[str] = None
    uuid: Optional[str] = None


@dataclass
class SearchNodesParams:
    group_ids: Optional[List[str]] = None
    max_nodes: Optional[int] = None
    entity_types: Optional[List[str]] = None


@dataclass
class SearchFactsParams:
    group_ids: Optional[List[str]] = None
    max_facts: Optional[int] = None
    center_node_uuid: Optional[str] = None


@dataclass
class GetEpisodesParams:
    group_ids: Optional[List[str]] = None
    max_episodes: Optional[int] = None
