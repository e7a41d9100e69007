"""Git data access: collaborator protocol, local CLI provider, query cache."""

from __future__ import annotations

from .cache import QUERY_CACHE_MAX, QueryCache, QueryKey
from .local import GIT_MAX_COMMITS, GIT_TIMEOUT_SECONDS, LocalGitProvider, resolve_repo_root
from .memory import InMemoryGitProvider
from .provider import GitDataProvider
from .types import EMPTY_TREE_SHA, CommitRef

__all__ = [
    "EMPTY_TREE_SHA",
    "CommitRef",
    "GitDataProvider",
    "LocalGitProvider",
    "InMemoryGitProvider",
    "resolve_repo_root",
    "GIT_TIMEOUT_SECONDS",
    "GIT_MAX_COMMITS",
    "QUERY_CACHE_MAX",
    "QueryKey",
    "QueryCache",
]
