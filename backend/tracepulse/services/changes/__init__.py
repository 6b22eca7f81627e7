"""Recent code change fetchers."""

from tracepulse.services.changes.client import (
    DiffInfo,
    FileChange,
    GitHubChangesClient,
    NullChangesClient,
    RecentChangesClient,
)

__all__ = [
    "DiffInfo",
    "FileChange",
    "GitHubChangesClient",
    "NullChangesClient",
    "RecentChangesClient",
]
