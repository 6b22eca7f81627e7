"""Base agent class for LLM-backed analysis agents."""
import json
import structlog
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from openai import (
    APIConnectionError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tracepulse.config import settings

logger = structlog.get_logger()

# Transient failures worth another attempt; anything else fails fast
RETRYABLE_ERRORS = (APIConnectionError, RateLimitError, InternalServerError)


class GenerationError(Exception):
    """Raised when an agent cannot produce a usable response."""


class BaseAgent(ABC):
    """
    Abstract base class for LLM-backed agents.

    Each agent:
    1. Takes structured input data
    2. Generates a prompt using a template
    3. Calls an LLM in JSON mode
    4. Returns the decoded JSON payload

    Failures surface as GenerationError so callers can decide how to degrade.
    """

    name: str = "base"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout_seconds = timeout_seconds or settings.GENERATOR_TIMEOUT_SECONDS
        self.temperature = temperature if temperature is not None else settings.GENERATOR_TEMPERATURE
        self.max_tokens = max_tokens or settings.GENERATOR_MAX_TOKENS
        self._client = client

    @abstractmethod
    def get_prompt(self, input_data: Dict[str, Any]) -> str:
        """Generate the prompt for this agent."""
        pass

    @abstractmethod
    def get_system_prompt(self) -> str:
        """Get the system prompt for this agent."""
        pass

    def run(self, input_data: Dict[str, Any]) -> Any:
        """
        Run the agent with the given input data.

        Args:
            input_data: Input data for the agent

        Returns:
            Decoded JSON response

        Raises:
            GenerationError: If no client is available, the call fails or
                the response cannot be decoded
        """
        logger.info("Running agent", agent=self.name, model=self.model)

        client = self._get_client()
        prompt = self.get_prompt(input_data)
        system_prompt = self.get_system_prompt()

        try:
            response = self._call_llm_with_retry(client, system_prompt, prompt)
        except OpenAIError as e:
            raise GenerationError(f"LLM call failed: {e}") from e

        return self._parse_response(response)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationError("OPENAI_API_KEY is not configured")
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_seconds, max_retries=0)
        return self._client

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    def _call_llm_with_retry(self, client: OpenAI, system_prompt: str, user_prompt: str) -> str:
        """Call the LLM with retry logic."""
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"}
        )

        content = response.choices[0].message.content
        if not content:
            raise GenerationError("Empty LLM response")
        return content

    def _parse_response(self, response: str) -> Any:
        """Decode the LLM response as JSON."""
        try:
            return json.loads(response)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON response", agent=self.name, error=str(e))
            return self._try_fix_response(response)

    def _try_fix_response(self, response: str) -> Any:
        """Attempt to fix invalid JSON response."""
        response = response.strip()

        # Remove markdown code blocks if present
        if response.startswith("```json"):
            response = response[7:]
        if response.startswith("```"):
            response = response[3:]
        if response.endswith("```"):
            response = response[:-3]

        try:
            return json.loads(response.strip())
        except json.JSONDecodeError as e:
            raise GenerationError(f"Could not parse response: {response[:200]}") from e
