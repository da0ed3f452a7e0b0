# analytical_handler.py
"""Handler for analytical queries that require LLM reasoning over findings."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from findings_assistant.core import Finding, LLMCompletion, LLMInterface, settings
from findings_assistant.core.exceptions import LLMTimeoutError, LLMUnavailableError
from findings_assistant.services.data_masking import DataMasker, MaskingSession
from .context_builder import ContextBlock, ContextBuilder, estimate_tokens
from .executor import QueryExecutor
from .formatter import ResultFormatter, describe_filters
from .types import Classification, FilterSet, Query, QueryResponse, QueryType

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """Question: {question}

The context above lists {count} audit findings selected for relevance
({filters}). Answer the question by reasoning over these findings: identify
recurring risks, likely root causes and concrete recommendations. Reference
finding titles where useful."""

WIDENED_PROMPT = """Question: {question}

No audit findings matched the filters ({filters}). The context above lists
{count} of the most recent findings instead. Start by saying that nothing
matched those filters, then answer from these findings: identify recurring
risks, likely root causes and concrete recommendations."""


@dataclass
class AnalysisPlan:
    """Everything needed to make, stream or finish one LLM call"""

    query_type: QueryType
    prompt: str
    context: ContextBlock
    filters: FilterSet
    confidence: float
    records_examined: int
    slow_path: bool = False
    notes: Dict[str, str] = field(default_factory=dict)
    widened: bool = False
    masking: MaskingSession = field(default_factory=lambda: MaskingSession(()))


class AnalyticalHandler:
    """Retrieves context with the structured filters and asks the LLM to reason over it"""

    query_type = QueryType.ANALYTICAL
    prompt_template = ANALYSIS_PROMPT

    def __init__(
        self,
        executor: QueryExecutor,
        llm: Optional[LLMInterface],
        context_builder: ContextBuilder,
        formatter: ResultFormatter,
        timeout: float = settings.LLM_TIMEOUT_SECONDS,
        retrieval_limit: int = settings.ANALYTICAL_RETRIEVAL_LIMIT,
        masker: Optional[DataMasker] = None,
    ):
        self.executor = executor
        self.llm = llm
        self.context_builder = context_builder
        self.formatter = formatter
        self.timeout = timeout
        self.retrieval_limit = retrieval_limit
        self.masker = masker or DataMasker(settings.MASK_SENSITIVE_DATA)

    async def retrieve(self, filters: FilterSet) -> Tuple[List[Finding], bool]:
        """Rows for the filters; True when nothing matched and recent rows stand in"""
        rows = await asyncio.to_thread(self.executor.fetch_context, filters, self.retrieval_limit)
        if not rows and not filters.without_keywords().is_empty:
            logger.info("No findings for the analytical filters, using recent findings as context")
            rows = await asyncio.to_thread(self.executor.fetch_context, FilterSet(), self.retrieval_limit)
            return rows, True
        return rows, False

    async def prepare(
        self, query: Query, filters: FilterSet, classification: Classification
    ) -> Optional[AnalysisPlan]:
        """Build the prompt; None means there is nothing to send to the LLM"""
        rows, widened = await self.retrieve(filters)
        return self._plan(
            query, filters, classification, rows, records_examined=len(rows), widened=widened
        )

    def _plan(
        self,
        query: Query,
        filters: FilterSet,
        classification: Classification,
        rows: List[Finding],
        records_examined: int,
        slow_path: bool = False,
        widened: bool = False,
    ) -> AnalysisPlan:
        selected = self.context_builder.select_relevant(
            rows, FilterSet(keywords=filters.keywords) if widened else filters
        )
        context = self.context_builder.build_context(selected, retrieved=len(rows))
        template = WIDENED_PROMPT if widened else self.prompt_template
        prompt = template.format(
            question=query.text,
            count=len(context.included),
            filters=describe_filters(filters),
        )

        masking = self.masker.session()
        prompt = masking.mask(prompt)
        context = dataclasses.replace(context, text=masking.mask(context.text))
        if masking.masked_count:
            logger.info(f"Masked {masking.masked_count} sensitive values before the LLM call")

        return AnalysisPlan(
            query_type=self.query_type,
            prompt=prompt,
            context=context,
            filters=filters,
            confidence=classification.confidence,
            records_examined=records_examined,
            slow_path=slow_path,
            notes=dict(classification.corrections),
            widened=widened,
            masking=masking,
        )

    async def complete(self, plan: AnalysisPlan, max_tokens: int) -> LLMCompletion:
        if self.llm is None:
            raise LLMUnavailableError("No LLM configured")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    self.llm.complete, plan.prompt, plan.context.text, max_tokens, self.timeout
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError(f"LLM call exceeded {self.timeout:.0f}s") from None

    async def stream(self, plan: AnalysisPlan, max_tokens: int) -> AsyncIterator[str]:
        """Yield LLM text chunks, bounded by the same overall timeout"""
        if self.llm is None:
            raise LLMUnavailableError("No LLM configured")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        chunks = self.llm.astream(plan.prompt, plan.context.text, max_tokens).__aiter__()
        # Text after an unclosed "[" may be half of a masking token
        held = ""
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise LLMTimeoutError(f"LLM stream exceeded {self.timeout:.0f}s")
            try:
                chunk = await asyncio.wait_for(chunks.__anext__(), timeout=remaining)
            except StopAsyncIteration:
                break
            except asyncio.TimeoutError:
                raise LLMTimeoutError(f"LLM stream exceeded {self.timeout:.0f}s") from None
            ready, held = plan.masking.split_partial(held + chunk)
            if ready:
                yield plan.masking.unmask(ready)
        if held:
            yield plan.masking.unmask(held)

    def finish(
        self, plan: AnalysisPlan, completion: LLMCompletion, started_at: float
    ) -> QueryResponse:
        tokens_used = completion.tokens_used
        if tokens_used is None:
            tokens_used = estimate_tokens(plan.prompt + plan.context.text + completion.text)
        return self.formatter.format_analysis(
            plan.query_type,
            plan.masking.unmask(completion.text),
            plan.context.included,
            plan.filters,
            plan.confidence,
            started_at,
            records_examined=plan.records_examined,
            tokens_used=tokens_used,
            slow_path=plan.slow_path,
            notes=plan.notes,
            widened=plan.widened,
        )

    def empty_response(
        self, filters: FilterSet, classification: Classification, started_at: float
    ) -> QueryResponse:
        return self.formatter.format_analysis(
            self.query_type,
            f"No findings matched ({describe_filters(filters)}), so there is nothing to summarise.",
            [],
            filters,
            classification.confidence,
            started_at,
            records_examined=0,
            tokens_used=0,
        )

    async def handle(
        self,
        query: Query,
        filters: FilterSet,
        classification: Classification,
        started_at: float,
        max_tokens: int = settings.LLM_MAX_TOKENS_FAST,
    ) -> QueryResponse:
        plan = await self.prepare(query, filters, classification)
        if plan is None:
            return self.empty_response(filters, classification, started_at)
        completion = await self.complete(plan, max_tokens)
        return self.finish(plan, completion, started_at)
