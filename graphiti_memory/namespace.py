"""
Project namespace resolution for Graphiti Memory
Copyright 2025 Jurden Bruce

A project namespace is ``<group_id>_<fingerprint>`` where the fingerprint is
the first 8 hex characters of sha256 over the project's canonical identity:

- inside a git checkout with an ``origin`` remote: the normalized remote URL,
  plus the directory's path relative to the repository root
  (``github.com/org/repo/pkg/app``)
- anywhere else: the absolute directory path, unchanged

so SSH and HTTPS clones of the same repository share memories while monorepo
subdirectories stay apart.
"""

import hashlib
import logging
import os
import re
import subprocess
from typing import Callable, Optional, Tuple

from .cache import LRUCache

logger = logging.getLogger("graphiti-memory.namespace")

FINGERPRINT_LENGTH = 8
GIT_TIMEOUT = 5

# (normalized-or-raw remote url, path relative to the repository root)
GitLookup = Callable[[str], Optional[Tuple[str, str]]]

_SCHEME_RE = re.compile(r"^(?:https?|ssh)://", re.IGNORECASE)
_USER_RE = re.compile(r"^[^@/]+@")
# host:path shorthand, but not host:2222/path
_SCP_RE = re.compile(r"^([^/:]+):(?!\d+(?:/|$))")


def normalize_remote_url(url: str) -> str:
    """Reduce a git remote URL to ``host/path`` form.

    git@github.com:Org/Repo.git, https://github.com/org/repo and
    ssh://git@github.com/org/repo.git all become ``github.com/org/repo``.
    """
    u = (url or "").strip()
    u = _SCHEME_RE.sub("", u)
    u = _USER_RE.sub("", u)
    u = _SCP_RE.sub(r"\1/", u)
    u = u.rstrip("/")
    if u.endswith(".git"):
        u = u[:-4]
    u = u.rstrip("/")
    return u.lower()


def fingerprint(identity: str) -> str:
    """First 8 hex chars of sha256(identity)"""
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def _run_git(directory: str, args) -> Optional[str]:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=directory,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git {' '.join(args)} failed in {directory}: {e}")
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip()


def lookup_git_remote(directory: str) -> Optional[Tuple[str, str]]:
    """Return (origin url, repo-relative path) or None when there is no usable remote.

    Any failure (git missing, not a checkout, no origin) means "no remote".
    """
    remote = _run_git(directory, ["remote", "get-url", "origin"])
    if not remote:
        return None
    prefix = _run_git(directory, ["rev-parse", "--show-prefix"])
    if prefix is None:
        return None
    return remote, prefix.replace("\\", "/").strip("/")


class NamespaceResolver:
    """Maps working directories to memory namespaces.

    Fingerprints are memoized per absolute directory path in a cache owned
    by this resolver, so git is consulted at most once per directory for the
    resolver's lifetime. Pass ``cache`` to share one across resolvers.
    """

    def __init__(
        self,
        group_id: str,
        profile_group_id: str,
        git_lookup: Optional[GitLookup] = None,
        cache: Optional[LRUCache] = None,
    ):
        self.group_id = group_id
        self.profile_group_id = profile_group_id
        self._git_lookup = git_lookup or lookup_git_remote
        self._cache = cache if cache is not None else LRUCache()

    @classmethod
    def from_config(cls, config, **kwargs) -> "NamespaceResolver":
        return cls(config.group_id, config.profile_group_id, **kwargs)

    def canonical_identity(self, directory: str) -> str:
        abs_dir = os.path.abspath(directory)
        remote = None
        try:
            remote = self._git_lookup(abs_dir)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"Remote lookup failed for {abs_dir}: {e}")

        if remote:
            url, relpath = remote
            normalized = normalize_remote_url(url)
            if normalized:
                relpath = (relpath or "").strip("/")
                return f"{normalized}/{relpath}" if relpath else normalized

        return abs_dir

    def directory_fingerprint(self, directory: str) -> str:
        abs_dir = os.path.abspath(directory)
        cached = self._cache.get(abs_dir)
        if cached is not None:
            return cached

        identity = self.canonical_identity(abs_dir)
        value = fingerprint(identity)
        self._cache[abs_dir] = value
        logger.debug(f"Fingerprint for {abs_dir}: {value} ({identity})")
        return value

    def project_namespace(self, directory: str) -> str:
        return f"{self.group_id}_{self.directory_fingerprint(directory)}"

    def profile_namespace(self) -> str:
        return self.profile_group_id

    def clear_cache(self):
        self._cache.clear()
