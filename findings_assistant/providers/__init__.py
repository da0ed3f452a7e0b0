# Providers package
"""External service providers for the findings assistant."""

from .llm_providers import GroqLLM, LangChainLLMWrapper, create_llm, translate_error

__all__ = ["GroqLLM", "LangChainLLMWrapper", "create_llm", "translate_error"]
