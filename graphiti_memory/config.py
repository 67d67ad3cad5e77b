"""
Configuration for Graphiti Memory
Copyright 2025 Jurden Bruce
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .transport import DEFAULT_TIMEOUT

logger = logging.getLogger("graphiti-memory.config")


class ConfigError(ValueError):
    """Required configuration is missing or malformed."""
    pass


def normalize_graphiti_url(url: str) -> str:
    """Point a server address at its MCP endpoint: ``http://host:8000`` -> ``http://host:8000/mcp/``"""
    normalized = url.strip().rstrip("/")
    if not normalized.endswith("/mcp"):
        normalized += "/mcp"
    return normalized + "/"


def sanitize_namespace(name: str) -> str:
    name = re.sub(r"[^a-z0-9_-]", "_", name.lower())
    name = re.sub(r"_+", "_", name)
    return name.strip("_")


def extract_project_name(project_dir: str) -> str:
    """package.json name when present, else the directory name"""
    package_json = Path(project_dir) / "package.json"
    if package_json.is_file():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
            if isinstance(name, str) and name.strip():
                return name
        except (OSError, ValueError, AttributeError) as e:
            logger.debug(f"Ignoring unreadable {package_json}: {e}")
    return Path(project_dir).resolve().name


@dataclass(frozen=True)
class GraphitiConfig:
    graphiti_url: str
    group_id: str
    profile_group_id: str
    user_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        project_dir: Optional[str] = None,
        graphiti_url: Optional[str] = None,
        group_id: Optional[str] = None,
        user_id: Optional[str] = None,
        profile_group_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "GraphitiConfig":
        """Build a config from keyword overrides, falling back to GRAPHITI_* env vars"""
        graphiti_url = graphiti_url or os.getenv("GRAPHITI_URL")
        group_id = group_id or os.getenv("GRAPHITI_GROUP_ID")
        user_id = user_id or os.getenv("GRAPHITI_USER_ID")
        profile_group_id = profile_group_id or os.getenv("GRAPHITI_PROFILE_GROUP_ID")

        if timeout is None:
            raw_timeout = os.getenv("GRAPHITI_TIMEOUT")
            try:
                timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
            except ValueError:
                raise ConfigError(f"GRAPHITI_TIMEOUT is not a number: {raw_timeout!r}") from None
        if timeout <= 0:
            raise ConfigError("timeout must be positive")

        if not graphiti_url:
            raise ConfigError("Missing required field: graphiti_url")

        if not group_id and user_id and project_dir:
            project_name = sanitize_namespace(extract_project_name(project_dir))
            group_id = f"{user_id}_{project_name}"

        if not group_id:
            raise ConfigError("Missing required field: group_id")

        return cls(
            graphiti_url=normalize_graphiti_url(graphiti_url),
            group_id=group_id,
            profile_group_id=profile_group_id or user_id or f"{group_id}_profile",
            user_id=user_id,
            timeout=timeout,
        )
