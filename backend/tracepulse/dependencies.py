"""Process-level wiring of the pipeline's collaborators from settings."""
import structlog
from functools import lru_cache
from typing import Optional

from tracepulse.agents.hypothesis import (
    HypothesisAdapter,
    HypothesisGenerator,
    LLMHypothesisGenerator,
    RuleBasedHypothesisGenerator,
)
from tracepulse.config import Settings, get_settings
from tracepulse.services.cache import BaseCache, create_cache
from tracepulse.services.changes import GitHubChangesClient, NullChangesClient, RecentChangesClient
from tracepulse.services.orchestration import EventProcessor
from tracepulse.services.system_map import SystemMapStore

logger = structlog.get_logger()


@lru_cache()
def get_cache() -> BaseCache:
    """Get the shared cache client."""
    return create_cache(get_settings().REDIS_URL)


@lru_cache()
def get_system_map_store() -> SystemMapStore:
    """Get the shared system map store."""
    settings = get_settings()
    return SystemMapStore(
        path=settings.SYSTEM_MAP_PATH,
        cache=get_cache(),
        ttl_seconds=settings.SYSTEM_MAP_TTL_SECONDS,
    )


def build_changes_client(settings: Settings, cache: Optional[BaseCache] = None) -> RecentChangesClient:
    """GitHub fetcher when a repository is configured, otherwise a no-op fetcher."""
    if not (settings.GITHUB_TOKEN and settings.GITHUB_OWNER and settings.GITHUB_REPO):
        return NullChangesClient()
    return GitHubChangesClient(
        owner=settings.GITHUB_OWNER,
        repo=settings.GITHUB_REPO,
        token=settings.GITHUB_TOKEN,
        api_url=settings.GITHUB_API_URL,
        hours_back=settings.RECENT_CHANGES_HOURS,
        timeout_seconds=settings.RECENT_CHANGES_TIMEOUT_SECONDS,
        cache=cache,
        cache_ttl_seconds=settings.RECENT_CHANGES_CACHE_TTL_SECONDS,
    )


def build_hypothesis_generator(settings: Settings) -> HypothesisGenerator:
    """LLM generator when an OpenAI key is configured, otherwise the rule-based one."""
    if not settings.OPENAI_API_KEY:
        logger.warning("No OpenAI API key, using rule-based hypotheses")
        return RuleBasedHypothesisGenerator()
    return LLMHypothesisGenerator(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        timeout_seconds=settings.GENERATOR_TIMEOUT_SECONDS,
        temperature=settings.GENERATOR_TEMPERATURE,
        max_tokens=settings.GENERATOR_MAX_TOKENS,
    )


def build_event_processor(settings: Optional[Settings] = None) -> EventProcessor:
    """Build an EventProcessor with collaborators configured from settings."""
    settings = settings or get_settings()
    return EventProcessor(
        hypothesis_adapter=HypothesisAdapter(
            build_hypothesis_generator(settings),
            timeout_seconds=settings.GENERATOR_TIMEOUT_SECONDS,
        ),
        changes_client=build_changes_client(settings, cache=get_cache()),
        max_workers=settings.ANALYSIS_MAX_WORKERS,
        deadline_seconds=settings.BATCH_DEADLINE_SECONDS,
    )
