# exceptions.py
"""Custom exceptions for the findings assistant."""

from typing import List, Optional


class FindingsAssistantError(Exception):
    """Base exception for findings assistant errors"""
    pass


class InputEmptyError(FindingsAssistantError, ValueError):
    """Raised when a query is empty or whitespace only"""
    pass


class ClassificationAmbiguous(FindingsAssistantError):
    """Raised when an entity name needs user confirmation before execution"""

    def __init__(self, term: str, candidates: Optional[List] = None):
        self.term = term
        self.candidates = candidates or []
        super().__init__(f"Ambiguous entity '{term}' ({len(self.candidates)} candidates)")


class ValidationRejected(FindingsAssistantError):
    """Raised when a candidate filter fails whitelist or type checks"""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class DatabaseError(FindingsAssistantError):
    """Raised when database operations fail"""
    pass


class StoreUnavailableError(DatabaseError):
    """Raised when the document store cannot be reached or queried"""
    pass


class LLMProviderError(FindingsAssistantError):
    """Raised when LLM provider operations fail"""
    pass


class LLMUnavailableError(LLMProviderError):
    """Raised when the LLM endpoint is unreachable or not configured"""
    pass


class LLMTimeoutError(LLMUnavailableError):
    """Raised when an LLM call exceeds its time budget"""
    pass


class LLMQuotaExceededError(LLMProviderError):
    """Raised when the LLM provider rejects a call for rate or quota limits"""
    pass


class CacheUnavailableError(FindingsAssistantError):
    """Raised when the query cache cannot be read or written"""
    pass


class ConfigurationError(FindingsAssistantError):
    """Raised when configuration is invalid"""
    pass
