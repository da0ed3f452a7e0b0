# interfaces.py
"""Abstract collaborators consumed by the query routing core."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from .models import AggregationResult, Finding, Predicate


@dataclass
class LLMCompletion:
    """Text returned by an LLM call together with its token usage"""

    text: str
    tokens_used: Optional[int] = None


class LLMInterface(ABC):
    """Abstract interface for LLM implementations"""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = 1024,
        timeout: Optional[float] = None,
    ) -> LLMCompletion:
        pass

    async def astream(
        self,
        prompt: str,
        context: Optional[str] = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        """Yield the completion as text chunks.

        The default produces a single chunk from ``complete``; providers with
        native streaming override this.
        """
        completion = await asyncio.to_thread(
            self.complete, prompt, context, max_tokens
        )
        yield completion.text


class DocumentStore(ABC):
    """Read-side interface of the findings document store"""

    @abstractmethod
    def query(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        limit: Optional[int] = None,
    ) -> List[Finding]:
        pass

    @abstractmethod
    def aggregate(
        self,
        collection: str,
        group_by: Sequence[str],
        predicates: Sequence[Predicate],
        metrics: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> List[AggregationResult]:
        pass

    @abstractmethod
    def distinct_values(self, collection: str, field: str) -> List[str]:
        pass


class AuditSink(ABC):
    """Receives one audit record per processed query"""

    @abstractmethod
    def emit(self, record) -> None:
        pass
