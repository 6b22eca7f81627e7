"""Recent code change lookups used as evidence for hypothesis generation."""
import structlog
import httpx
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tracepulse.services.cache import BaseCache, NullCache

logger = structlog.get_logger()

MAX_COMMITS = 20
SMALL_CHANGE_LINES = 50


@dataclass
class FileChange:
    """A file touched by a commit."""
    filename: str
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None

    @property
    def is_small(self) -> bool:
        return (self.additions + self.deletions) < SMALL_CHANGE_LINES


@dataclass
class DiffInfo:
    """A commit relevant to a service."""
    sha: str
    author: str
    message: str
    timestamp: str
    files: List[FileChange] = field(default_factory=list)

    def format(self) -> str:
        """Human-readable summary used in the evidence bundle."""
        files_summary = "\n".join(
            f"  - {f.filename} (+{f.additions}/-{f.deletions})" for f in self.files
        )
        result = (
            f"Commit {self.sha} by {self.author} ({self.timestamp})\n"
            f"Message: {self.message}\n"
            f"Files changed:\n{files_summary}"
        )

        # Include patches for small changes only
        small_patches = "\n".join(f.patch for f in self.files if f.patch and f.is_small)
        if small_patches:
            result += f"\nRelevant changes:\n{small_patches}"

        return result


class RecentChangesClient(ABC):
    """Abstract base class for recent-change fetchers."""

    @abstractmethod
    def get_recent_changes(self, service_name: str) -> List[str]:
        """Change summaries touching `service_name`. Returns [] instead of raising."""
        pass


class NullChangesClient(RecentChangesClient):
    """Fetcher used when no code host is configured."""

    def get_recent_changes(self, service_name: str) -> List[str]:
        return []


class GitHubChangesClient(RecentChangesClient):
    """Fetches recent commits from the GitHub REST API and keeps those touching a service."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str = "https://api.github.com",
        hours_back: int = 24,
        timeout_seconds: float = 10.0,
        cache: Optional[BaseCache] = None,
        cache_ttl_seconds: int = 300,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.hours_back = hours_back
        self.timeout_seconds = timeout_seconds
        self.cache = cache or NullCache()
        self.cache_ttl_seconds = cache_ttl_seconds
        self._transport = transport

    def get_recent_changes(self, service_name: str) -> List[str]:
        if not self.owner or not self.repo or not self.token:
            logger.warning("GitHub config missing", owner=self.owner, repo=self.repo)
            return []

        cache_key = f"github:diffs:{service_name}:{self.hours_back}h"
        cached = self.cache.get_json(cache_key)
        if cached is not None:
            return cached

        try:
            diffs = [d.format() for d in self._fetch_relevant_commits(service_name)]
        except httpx.HTTPError as e:
            logger.warning("GitHub fetch failed", service=service_name, error=str(e))
            return []
        except (KeyError, TypeError, ValueError) as e:
            logger.error("GitHub response malformed", service=service_name, error=str(e))
            return []

        self.cache.set_json(cache_key, diffs, self.cache_ttl_seconds)
        logger.info(
            "GitHub diffs fetched",
            service=service_name,
            diff_count=len(diffs),
            hours_back=self.hours_back,
        )
        return diffs

    def _fetch_relevant_commits(self, service_name: str) -> List[DiffInfo]:
        since = (datetime.now(timezone.utc) - timedelta(hours=self.hours_back)).isoformat()
        needle = service_name.lower()
        base = f"{self.api_url}/repos/{self.owner}/{self.repo}"

        with self._client() as client:
            response = client.get(f"{base}/commits", params={"since": since, "per_page": MAX_COMMITS})
            response.raise_for_status()

            diffs = []
            for commit in response.json():
                detail_response = client.get(f"{base}/commits/{commit['sha']}")
                detail_response.raise_for_status()
                detail = detail_response.json()

                relevant = [
                    f for f in detail.get("files") or []
                    if needle in f.get("filename", "").lower()
                    or needle in (f.get("patch") or "").lower()
                ]
                if relevant:
                    diffs.append(self._to_diff_info(commit, relevant))

        return diffs

    def _to_diff_info(self, commit: Dict[str, Any], files: List[Dict[str, Any]]) -> DiffInfo:
        author = (commit.get("commit") or {}).get("author") or {}
        message = (commit.get("commit") or {}).get("message") or ""
        return DiffInfo(
            sha=commit["sha"][:7],
            author=author.get("name") or "Unknown",
            message=message.split("\n")[0],
            timestamp=author.get("date") or "",
            files=[
                FileChange(
                    filename=f["filename"],
                    additions=f.get("additions") or 0,
                    deletions=f.get("deletions") or 0,
                    patch=f.get("patch"),
                )
                for f in files
            ],
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout_seconds,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
        )
