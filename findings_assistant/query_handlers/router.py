# router.py
"""Main orchestrating router that uses the modular query handling system."""

import asyncio
import dataclasses
import logging
import threading
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple, Union

from findings_assistant.core import AuditSink, DocumentStore, LLMCompletion, LLMInterface, settings
from findings_assistant.core.exceptions import (
    ClassificationAmbiguous,
    DatabaseError,
    LLMProviderError,
    LLMQuotaExceededError,
)
from findings_assistant.core.models import AuditRecord
from findings_assistant.services.audit_sink import LoggingAuditSink
from findings_assistant.services.query_cache import QueryCache, normalize_query
from findings_assistant.services.session_tracker import ANONYMOUS_SESSION, SessionTracker
from .analytical_handler import AnalyticalHandler
from .classifier import QueryClassifier
from .context_builder import ContextBuilder
from .entity_config import EntityConfigLoader, get_entity_config
from .executor import QueryExecutor
from .extractor import EntityExtractor
from .fallback_handler import FallbackHandler
from .filter_extractor import FilterExtractor
from .formatter import ResultFormatter, elapsed_ms
from .hybrid_handler import HybridHandler
from .lookup_handler import LookupHandler
from .types import (
    Classification,
    FilterSet,
    Query,
    QueryErrorResponse,
    QueryResponse,
    QueryType,
    Rejected,
    ResponseStatus,
    ThinkingMode,
)

logger = logging.getLogger(__name__)

RouterResult = Union[QueryResponse, QueryErrorResponse]


@dataclass
class PendingConfirmation:
    candidates: List[str]
    created_at: float


class SmartQueryRouter:
    """Classifies questions and runs the cheapest adequate strategy.

    Policy per query: cache hit, then classification, then an optional
    confirmation round-trip for ambiguous project names, then execution as
    lookup, hybrid or analytical. Store or LLM failures degrade to a keyword
    search over recently seen findings.
    """

    def __init__(
        self,
        store: DocumentStore,
        llm: Optional[LLMInterface] = None,
        cache: Optional[QueryCache] = None,
        audit_sink: Optional[AuditSink] = None,
        entity_config: Optional[EntityConfigLoader] = None,
        session_tracker: Optional[SessionTracker] = None,
        context_builder: Optional[ContextBuilder] = None,
        llm_timeout: float = settings.LLM_TIMEOUT_SECONDS,
        confirmation_ttl: float = settings.CONFIRMATION_TTL_SECONDS,
        broaden_empty_lookups: bool = settings.BROADEN_EMPTY_LOOKUPS,
        llm_filter_extraction: bool = settings.LLM_FILTER_EXTRACTION,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.llm = llm
        self.cache = cache if cache is not None else QueryCache()
        self.audit_sink = audit_sink or LoggingAuditSink()
        self.sessions = session_tracker or SessionTracker(clock=clock)
        self.confirmation_ttl = confirmation_ttl
        self.broaden_empty_lookups = broaden_empty_lookups
        self.llm_filter_extraction = llm_filter_extraction
        self.llm_timeout = llm_timeout
        self._clock = clock

        # Initialize components
        entity_config = entity_config or get_entity_config()
        self.entity_extractor = EntityExtractor(entity_config)
        self.query_classifier = QueryClassifier(self.entity_extractor)
        self.filter_extractor = FilterExtractor(entity_config, llm)
        self.executor = QueryExecutor(store)
        self.formatter = ResultFormatter()
        self.context_builder = context_builder or ContextBuilder()

        # Initialize handlers
        self.lookup_handler = LookupHandler(self.executor, self.formatter)
        self.analytical_handler = AnalyticalHandler(
            self.executor, llm, self.context_builder, self.formatter, timeout=llm_timeout
        )
        self.hybrid_handler = HybridHandler(
            self.executor, llm, self.context_builder, self.formatter, timeout=llm_timeout
        )
        self.fallback_handler = FallbackHandler(self.formatter)

        self._pending: Dict[Tuple[str, str], PendingConfirmation] = {}
        self._pending_lock = threading.Lock()

    async def process_query(
        self,
        text: str,
        thinking_mode: ThinkingMode = ThinkingMode.FAST,
        session_id: Optional[str] = None,
    ) -> RouterResult:
        """Answer one question; raises InputEmptyError for blank text"""
        query = Query.create(text, session_id, thinking_mode)
        started_at = time.perf_counter()
        query_id = self.sessions.begin(query.session_id)

        cached = self._cache_get(query.text)
        if cached is not None:
            return self._deliver(query, query_id, self._as_cache_hit(cached), started_at, cacheable=False)

        classification = self._classify(query)
        if classification is None:
            response = self.fallback_handler.degrade(
                "CLASSIFICATION_ERROR", query.text, FilterSet(), started_at
            )
            return self._deliver(query, query_id, response, started_at, cacheable=False)

        try:
            response = await self._execute(query, classification, started_at)
        except ClassificationAmbiguous as e:
            response = self._request_confirmation(query, classification, e, started_at)
            return self._deliver(query, query_id, response, started_at, cacheable=False)
        return self._deliver(query, query_id, response, started_at, cacheable=True)

    async def confirm_candidate(
        self,
        original_query: str,
        chosen_candidate: str,
        session_id: Optional[str] = None,
        thinking_mode: ThinkingMode = ThinkingMode.FAST,
    ) -> RouterResult:
        """Run the original query with the project the user picked.

        Unknown, mismatched or expired confirmations re-run classification.
        """
        query = Query.create(original_query, session_id, thinking_mode)
        pending = self._pop_pending(query)
        chosen = self._match_candidate(pending, chosen_candidate)
        if chosen is None:
            logger.info(f"Confirmation for '{query.text}' missing or expired, re-classifying")
            return await self.process_query(original_query, thinking_mode, session_id)

        started_at = time.perf_counter()
        query_id = self.sessions.begin(query.session_id)
        classification = self._classify(query)
        if classification is None:
            response = self.fallback_handler.degrade(
                "CLASSIFICATION_ERROR", query.text, FilterSet(), started_at
            )
            return self._deliver(query, query_id, response, started_at, cacheable=False)

        classification.extracted_filters = dict(classification.extracted_filters or {}, project=chosen)
        classification.requires_confirmation = False
        classification.candidates = []
        classification.ambiguous_term = None
        response = await self._execute(query, classification, started_at)
        # Confirmed answers depend on the user's choice, not only on the text
        return self._deliver(query, query_id, response, started_at, cacheable=False)

    async def stream_query(
        self,
        text: str,
        thinking_mode: ThinkingMode = ThinkingMode.FAST,
        session_id: Optional[str] = None,
    ) -> AsyncIterator[Union[str, RouterResult]]:
        """Yield answer text chunks, then exactly one final response object"""
        query = Query.create(text, session_id, thinking_mode)
        started_at = time.perf_counter()
        query_id = self.sessions.begin(query.session_id)

        cached = self._cache_get(query.text)
        if cached is not None:
            response = self._deliver(query, query_id, self._as_cache_hit(cached), started_at, cacheable=False)
            yield response.answer
            yield response
            return

        classification = self._classify(query)
        if classification is None:
            response = self.fallback_handler.degrade(
                "CLASSIFICATION_ERROR", query.text, FilterSet(), started_at
            )
            yield self._deliver(query, query_id, response, started_at, cacheable=False)
            return

        try:
            query_type, filters = await self._resolve_filters(query, classification)
        except ClassificationAmbiguous as e:
            response = self._request_confirmation(query, classification, e, started_at)
            yield self._deliver(query, query_id, response, started_at, cacheable=False)
            return

        if query_type == QueryType.LOOKUP:
            response = await self._run(query, classification, query_type, filters, started_at)
            if isinstance(response, QueryResponse):
                yield response.answer
            yield self._deliver(query, query_id, response, started_at, cacheable=True)
            return

        handler = self._handler_for(query_type)
        try:
            plan = await handler.prepare(query, filters, classification)
            if plan is None:
                response = handler.empty_response(filters, classification, started_at)
                yield response.answer
            else:
                chunks = []
                async for chunk in handler.stream(plan, self._max_tokens(query)):
                    chunks.append(chunk)
                    yield chunk
                response = handler.finish(plan, LLMCompletion(text="".join(chunks)), started_at)
            self.fallback_handler.absorb(response.rows)
        except (DatabaseError, LLMProviderError) as e:
            response = self._degrade(e, query, filters, started_at)
        except Exception:
            logger.exception(f"Unexpected failure streaming '{query.text}'")
            response = self.fallback_handler.degrade("UNAVAILABLE", query.text, filters, started_at)
        yield self._deliver(query, query_id, response, started_at, cacheable=True)

    def classify_query(self, text: str) -> Classification:
        """Classify without executing (diagnostics and the /classify endpoint)"""
        return self.query_classifier.classify_query(Query.create(text).text)

    async def refresh_entities(self) -> bool:
        """Load known project names and a fallback snapshot from the store"""
        collection = self.executor.collection
        try:
            names = await asyncio.to_thread(self.store.distinct_values, collection, "project_name")
            recent = await asyncio.to_thread(
                self.store.query, collection, [], settings.FALLBACK_DATASET_SIZE
            )
        except DatabaseError as e:
            logger.warning(f"Could not refresh entities from store: {e}")
            return False

        self.entity_extractor.update_known_projects(names)
        self.fallback_handler.absorb(recent)
        logger.info(f"Refreshed entities: {len(names)} projects, {len(recent)} findings in fallback snapshot")
        return True

    def end_session(self, session_id: str) -> None:
        """Forget a session; responses still in flight for it become stale"""
        self.sessions.end(session_id)
        with self._pending_lock:
            for key in [key for key in self._pending if key[0] == session_id]:
                del self._pending[key]

    def _classify(self, query: Query) -> Optional[Classification]:
        try:
            classification = self.query_classifier.classify_query(query.text)
        except Exception:
            logger.exception(f"Classification failed for '{query.text}'")
            return None
        logger.info(
            f"Query classified as '{classification.query_type.value}' with confidence {classification.confidence:.2f}"
        )
        return classification

    async def _resolve_filters(
        self, query: Query, classification: Classification
    ) -> Tuple[QueryType, FilterSet]:
        """Validated filters; an empty set escalates the query to analytical"""
        if classification.requires_confirmation:
            raise ClassificationAmbiguous(
                classification.ambiguous_term or query.text, classification.candidates
            )
        if (
            query.thinking_mode == ThinkingMode.DEEP
            and self.llm_filter_extraction
            and self.llm is not None
        ):
            try:
                result = await asyncio.wait_for(
                    asyncio.to_thread(self.filter_extractor.extract_with_llm, query.text, classification),
                    timeout=self.llm_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("LLM filter extraction timed out, using pattern filters")
                result = self.filter_extractor.extract(classification)
            except Exception:
                logger.exception("LLM filter extraction failed, using pattern filters")
                result = self.filter_extractor.extract(classification)
        else:
            result = self.filter_extractor.extract(classification)

        if isinstance(result, Rejected):
            if classification.group_by and classification.query_type == QueryType.LOOKUP:
                # Grouped counts over every finding need no filter
                return QueryType.LOOKUP, FilterSet()
            if result.reasons:
                logger.info(f"All filters rejected {result.reasons}, escalating to analytical")
            return QueryType.ANALYTICAL, FilterSet()
        return classification.query_type, result

    def _handler_for(self, query_type: QueryType) -> AnalyticalHandler:
        if query_type == QueryType.HYBRID:
            return self.hybrid_handler
        return self.analytical_handler

    def _max_tokens(self, query: Query) -> int:
        if query.thinking_mode == ThinkingMode.DEEP:
            return settings.LLM_MAX_TOKENS_DEEP
        return settings.LLM_MAX_TOKENS_FAST

    async def _execute(
        self, query: Query, classification: Classification, started_at: float
    ) -> RouterResult:
        query_type, filters = await self._resolve_filters(query, classification)
        return await self._run(query, classification, query_type, filters, started_at)

    async def _run(
        self,
        query: Query,
        classification: Classification,
        query_type: QueryType,
        filters: FilterSet,
        started_at: float,
    ) -> RouterResult:
        max_tokens = self._max_tokens(query)
        try:
            if query_type == QueryType.LOOKUP:
                response = await self.lookup_handler.handle(filters, classification, started_at)
                if self._is_empty(response) and self.broaden_empty_lookups and self.llm is not None:
                    logger.info("Lookup returned no rows, broadening to analytical")
                    response = await self.analytical_handler.handle(
                        query, filters, classification, started_at, max_tokens
                    )
                    response.metadata.broadened_from = QueryType.LOOKUP.value
            else:
                response = await self._handler_for(query_type).handle(
                    query, filters, classification, started_at, max_tokens
                )
        except (DatabaseError, LLMProviderError) as e:
            return self._degrade(e, query, filters, started_at)
        except Exception:
            logger.exception(f"Unexpected failure answering '{query.text}'")
            return self.fallback_handler.degrade("UNAVAILABLE", query.text, filters, started_at)

        self.fallback_handler.absorb(response.rows)
        return response

    @staticmethod
    def _is_empty(response: QueryResponse) -> bool:
        return not response.rows and not response.aggregations

    def _degrade(
        self, error: Exception, query: Query, filters: FilterSet, started_at: float
    ) -> QueryErrorResponse:
        if isinstance(error, DatabaseError):
            code = "STORE_UNAVAILABLE"
        elif isinstance(error, LLMQuotaExceededError):
            code = "AI_QUOTA_EXCEEDED"
        else:
            code = "AI_UNAVAILABLE"
        logger.warning(f"Degrading '{query.text}' to keyword search ({code}): {error}")
        return self.fallback_handler.degrade(code, query.text, filters, started_at)

    def _request_confirmation(
        self,
        query: Query,
        classification: Classification,
        ambiguity: ClassificationAmbiguous,
        started_at: float,
    ) -> QueryResponse:
        now = self._clock()
        with self._pending_lock:
            self._prune_pending_locked(now)
            self._pending[self._pending_key(query)] = PendingConfirmation(
                candidates=[candidate.value for candidate in ambiguity.candidates],
                created_at=now,
            )
        options = ", ".join(f"'{candidate.value}'" for candidate in ambiguity.candidates)
        metadata = self.formatter.metadata(
            strategy="confirmation", started_at=started_at, confidence=classification.confidence
        )
        return QueryResponse(
            query_type=classification.query_type,
            status=ResponseStatus.CONFIRMATION_REQUIRED,
            answer=f"Which project did you mean by '{ambiguity.term}'? Candidates: {options}.",
            candidates=list(ambiguity.candidates),
            metadata=metadata,
        )

    @property
    def pending_confirmations(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def _prune_pending_locked(self, now: float) -> None:
        expired = [
            key for key, pending in self._pending.items()
            if now - pending.created_at > self.confirmation_ttl
        ]
        for key in expired:
            del self._pending[key]

    def _pending_key(self, query: Query) -> Tuple[str, str]:
        return (query.session_id or ANONYMOUS_SESSION, normalize_query(query.text))

    def _pop_pending(self, query: Query) -> Optional[PendingConfirmation]:
        with self._pending_lock:
            pending = self._pending.pop(self._pending_key(query), None)
        if pending and self._clock() - pending.created_at > self.confirmation_ttl:
            logger.info("Confirmation expired")
            return None
        return pending

    @staticmethod
    def _match_candidate(pending: Optional[PendingConfirmation], chosen: str) -> Optional[str]:
        if pending is None or not chosen:
            return None
        for candidate in pending.candidates:
            if candidate.lower() == chosen.strip().lower():
                return candidate
        return None

    def _cache_get(self, text: str) -> Optional[QueryResponse]:
        try:
            return self.cache.get(text)
        except Exception as e:
            logger.warning(f"Query cache read failed, executing query: {e}")
            return None

    def _cache_put(self, text: str, response: QueryResponse) -> None:
        try:
            self.cache.put(text, self._copy(response))
        except Exception as e:
            logger.warning(f"Query cache write failed: {e}")

    @staticmethod
    def _copy(response: QueryResponse) -> QueryResponse:
        return dataclasses.replace(response, metadata=dataclasses.replace(response.metadata))

    def _as_cache_hit(self, cached: QueryResponse) -> QueryResponse:
        response = self._copy(cached)
        response.status = ResponseStatus.CACHED
        response.metadata.cache_hit = True
        return response

    def _deliver(
        self,
        query: Query,
        query_id: str,
        response: RouterResult,
        started_at: float,
        cacheable: bool,
    ) -> RouterResult:
        """Stamp timing and correlation data, then cache and audit"""
        elapsed = elapsed_ms(started_at)
        response.metadata.execution_time_ms = elapsed
        response.metadata.query_id = query_id

        outcome = "ok" if isinstance(response, QueryResponse) else response.code
        if not self.sessions.is_current(query.session_id, query_id):
            logger.info(f"Response {query_id} for session {query.session_id} is stale")
            response.metadata.stale = True
            outcome = "stale"
        elif cacheable and isinstance(response, QueryResponse) and response.status == ResponseStatus.OK:
            self._cache_put(query.text, response)

        self._audit(
            AuditRecord(
                session_id=query.session_id,
                query_text=query.text,
                strategy=response.metadata.strategy,
                elapsed_ms=elapsed,
                query_id=query_id,
                outcome=outcome,
            )
        )
        return response

    def _audit(self, record: AuditRecord) -> None:
        try:
            self.audit_sink.emit(record)
        except Exception as e:
            logger.warning(f"Audit sink failed: {e}")
