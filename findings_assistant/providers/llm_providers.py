# llm_providers.py
"""
Groq LLM provider for the findings assistant using LangChain.

Errors raised by the Groq client are translated into the application's LLM
error taxonomy so the router can degrade instead of failing.
"""

import logging
from typing import AsyncIterator, List, Optional

from groq import APIConnectionError, APIError, APITimeoutError, RateLimitError
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.utils.utils import convert_to_secret_str
from langchain_groq import ChatGroq

from findings_assistant.core import LLMCompletion, LLMInterface, settings
from findings_assistant.core.config import Config
from findings_assistant.core.exceptions import (
    ConfigurationError,
    LLMProviderError,
    LLMQuotaExceededError,
    LLMTimeoutError,
    LLMUnavailableError,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an audit analyst assistant. Answer questions about audit findings "
    "using only the findings provided as context. Cite finding titles, be concise "
    "and say so when the context does not contain the answer."
)


def translate_error(error: Exception) -> LLMProviderError:
    """Map a Groq client error onto the LLM error taxonomy"""
    if isinstance(error, RateLimitError):
        return LLMQuotaExceededError(f"Groq rate limit or quota exceeded: {error}")
    if isinstance(error, APITimeoutError):
        return LLMTimeoutError(f"Groq request timed out: {error}")
    if isinstance(error, APIConnectionError):
        return LLMUnavailableError(f"Groq unreachable: {error}")
    return LLMUnavailableError(f"Groq request failed: {error}")


class LangChainLLMWrapper(LLMInterface):
    """Base wrapper for LangChain chat model implementations"""

    def __init__(self, llm):
        self.llm = llm

    def _messages(self, prompt: str, context: Optional[str]) -> List[BaseMessage]:
        content = prompt if not context else f"Context:\n{context}\n\n{prompt}"
        return [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=content)]

    @staticmethod
    def _tokens_used(response) -> Optional[int]:
        usage = getattr(response, "usage_metadata", None)
        if usage and usage.get("total_tokens") is not None:
            return int(usage["total_tokens"])
        token_usage = (getattr(response, "response_metadata", None) or {}).get("token_usage") or {}
        total = token_usage.get("total_tokens")
        return int(total) if total is not None else None

    def complete(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = settings.LLM_MAX_TOKENS_FAST,
        timeout: Optional[float] = None,
    ) -> LLMCompletion:
        try:
            response = self.llm.bind(max_tokens=max_tokens).invoke(self._messages(prompt, context))
        except APIError as e:
            raise translate_error(e) from e
        return LLMCompletion(text=str(response.content), tokens_used=self._tokens_used(response))

    async def astream(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = settings.LLM_MAX_TOKENS_FAST,
    ) -> AsyncIterator[str]:
        try:
            async for chunk in self.llm.bind(max_tokens=max_tokens).astream(
                self._messages(prompt, context)
            ):
                if chunk.content:
                    yield str(chunk.content)
        except APIError as e:
            raise translate_error(e) from e


class GroqLLM(LangChainLLMWrapper):
    """
    Groq API using LangChain - free tier available with very fast inference

    Setup:
    1. Sign up at https://console.groq.com/
    2. Get free API key
    3. Set environment variable: export GROQ_API_KEY=your_key
    """

    def __init__(
        self,
        model_name: str = settings.GROQ_MODEL,
        api_key: Optional[str] = None,
        timeout: float = settings.LLM_TIMEOUT_SECONDS,
    ):
        api_key = api_key or Config.get_groq_api_key()
        if not api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")

        logger.info(f"Using Groq model {model_name}")
        llm = ChatGroq(
            model=model_name,
            temperature=0.2,
            api_key=convert_to_secret_str(api_key),
            timeout=timeout,
            # The one retry in the pipeline lives in the client adapter
            max_retries=1,
        )
        super().__init__(llm)


def create_llm(provider: Optional[str] = None, model_name: Optional[str] = None) -> Optional[LLMInterface]:
    """
    Factory function to create the configured LLM

    Args:
        provider: "groq", "mock" or "none"; defaults to settings.LLM_PROVIDER
        model_name: Groq model name to use

    Returns:
        An LLMInterface, or None when no LLM is available
    """
    provider = (provider or settings.LLM_PROVIDER).lower()
    if provider == "none":
        return None
    if provider == "mock":
        from findings_assistant.mock_llm import MockLLM

        return MockLLM()
    if provider != "groq":
        raise ConfigurationError(f"Unknown LLM provider: {provider}")

    try:
        return GroqLLM(model_name=model_name or settings.GROQ_MODEL)
    except ConfigurationError as e:
        logger.warning(f"Groq LLM unavailable ({e}); analytical queries will degrade")
        return None
