"""
Multi-Source Orchestrator

Runs the same retrieval pipeline concurrently over every corpus
(legislation, case law, parliamentary works, tax) and assembles one answer
context.

Per call:
    Idle -> Dispatching(N workers) -> Collecting -> AllEmpty | PartialOrFull -> Assembled

Every worker runs inside its own failure boundary: an exception or a
timeout yields an empty result for that corpus only. Workers still running
when the join deadline passes are abandoned and their late results
discarded. There are no retries at this layer.

Per-corpus pipeline:
    1. Vector search (ANN, sampled-scan fallback), language boost
    2. Lexical search (strategy chain) plus keyword OR-query, where enabled
    3. Context injection for follow-ups, where enabled
    4. Score fusion (dedup, authority injection, multipliers, soft filters)
    5. Cut to the per-corpus limit
"""

import time
import logging
import argparse
from enum import Enum
from typing import Optional
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, wait

from .assembler import AssembledResult, ResultAssembler
from .config import CorpusConfig, RetrievalSettings
from .corpus_store import CorpusStore, DATABASE_ERRORS, DatabaseConfig, PostgresDatabase
from .embeddings import get_embedding_service
from .errors import EmbeddingTimeoutError, QueryValidationError
from .followup import ConversationContext, FollowupExpander, split_expanded
from .fusion import ScoreFusion
from .language_config import QueryLanguageConfig
from .lexical_search import LexicalSearcher
from .metrics import get_metrics_collector
from .models import Query, RetrievalRequest, RetrievalResult, empty_result
from .tokenizer import detect_language, extract_search_keywords
from .vector_client import VectorSimilarityClient

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    ALL_EMPTY = "all_empty"
    PARTIAL_OR_FULL = "partial_or_full"
    ASSEMBLED = "assembled"


# =============================================================================
# Per-Corpus Pipeline
# =============================================================================

@dataclass
class CorpusPipeline:
    """Every retrieval stage for one corpus."""
    corpus: CorpusConfig
    store: CorpusStore
    vector: VectorSimilarityClient
    fusion: ScoreFusion
    lexical: Optional[LexicalSearcher] = None
    followup: Optional[FollowupExpander] = None

    def run(
        self,
        request: RetrievalRequest,
        question: str,
        embedding: Optional[list[float]],
        language: QueryLanguageConfig,
        context: Optional[ConversationContext] = None,
    ) -> RetrievalResult:
        """
        Retrieve, fuse and bound candidates for this corpus.

        Args:
            request: Original request (limit, filters, search mode)
            question: Effective question (after follow-up expansion)
            embedding: Query embedding, or None when embedding failed
            language: Query language settings
            context: Prior conversation turns, if any
        """
        started = time.perf_counter()
        corpus = self.corpus
        filters = request.filters
        limit = min(request.per_corpus_limit, corpus.per_corpus_limit)

        candidate_lists = []
        traces = []
        fallback = False
        vector_path = None

        if embedding is not None:
            try:
                vector_candidates, vector_path = self.vector.search(
                    embedding, limit, language_id=language.language_id, filters=filters,
                )
                candidate_lists.append(vector_candidates)
            except DATABASE_ERRORS as e:
                logger.warning(f"{corpus.name}: vector search failed, continuing without it: {e}")

        # Carried-over topic words only widen the keyword OR-query
        own_words, topic_words = split_expanded(question)

        if self.lexical is not None and corpus.lexical_enabled:
            try:
                outcome = self.lexical.search(own_words, filters, limit, mode=request.search_mode, language=language)
                traces.extend(outcome.traces)
                fallback = fallback or outcome.fallback_triggered
                candidate_lists.append(self.lexical.to_candidates(outcome.rows))

                keywords = list(dict.fromkeys(extract_search_keywords(own_words) + topic_words))
                keyword_outcome = self.lexical.search_keywords(keywords, filters, limit)
                traces.extend(keyword_outcome.traces)
                candidate_lists.append(self.lexical.to_candidates(keyword_outcome.rows))
            except DATABASE_ERRORS as e:
                logger.warning(f"{corpus.name}: lexical search failed, continuing with vector candidates: {e}")

        if self.followup is not None and corpus.context_injection and context is not None:
            candidate_lists.append(self.followup.inject_context(
                self.store,
                context,
                request.query.text,
                language_id=language.language_id,
                filters=filters,
                language=language.language,
            ))

        fused, report = self.fusion.fuse(
            candidate_lists, " ".join([own_words] + topic_words), language.language_id, filters,
        )
        candidates = fused[:limit]

        latency_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{corpus.name}: {len(candidates)} candidates in {latency_ms:.0f}ms "
            f"(vector={vector_path}, fusion={report.to_dict()})"
        )
        return RetrievalResult(
            corpus=corpus.name,
            source_kind=corpus.source_kind,
            candidates=tuple(candidates),
            traces=tuple(traces),
            vector_path=vector_path,
            latency_ms=latency_ms,
            fallback_triggered=fallback,
            status="ok" if candidates else "empty",
        )


# =============================================================================
# Orchestrator
# =============================================================================

class MultiSourceOrchestrator:
    """
    Fan-out/fan-in retrieval across corpora.

    Usage:
        orchestrator = build_default_orchestrator()
        request = RetrievalRequest(Query("Wat is de opzegtermijn voor een bediende?"))
        assembled = orchestrator.retrieve(request)
        if assembled.no_answer:
            print(assembled.message)
    """

    def __init__(
        self,
        pipelines: list[CorpusPipeline],
        embedding_service,
        settings: Optional[RetrievalSettings] = None,
        followup: Optional[FollowupExpander] = None,
    ):
        self.pipelines = pipelines
        self.embedding_service = embedding_service
        self.settings = settings or RetrievalSettings()
        self.followup = followup or FollowupExpander(self.settings.followup)

    def validate(self, request: RetrievalRequest) -> str:
        """Reject malformed queries before any retrieval."""
        text = (request.query.text or "").strip()
        if not text:
            raise QueryValidationError("Question is empty")
        if len(text) > self.settings.max_question_length:
            raise QueryValidationError(
                f"Question too long ({len(text)} > {self.settings.max_question_length} characters)"
            )
        if request.search_mode not in ("flexible", "exact"):
            raise QueryValidationError(f"Unknown search mode: {request.search_mode!r}")
        return text

    def retrieve(
        self,
        request: RetrievalRequest,
        context: Optional[ConversationContext] = None,
    ) -> AssembledResult:
        """
        Answer context for one question across every corpus.

        Raises:
            QueryValidationError: empty or overlong question
        """
        text = self.validate(request)
        collector = get_metrics_collector()
        states = [OrchestratorState.IDLE]

        with collector.track_query(text) as tracker:
            language_code = request.query.language or detect_language(text)
            language = QueryLanguageConfig.for_language(language_code)

            question = self.followup.expand(text, context, language.language)
            embedding, embedding_failed = self._embed(question)

            states.append(OrchestratorState.DISPATCHING)
            results = self._dispatch(request, question, embedding, language, context)
            states.append(OrchestratorState.COLLECTING)

            all_empty = all(result.is_empty for result in results)
            states.append(OrchestratorState.ALL_EMPTY if all_empty else OrchestratorState.PARTIAL_OR_FULL)

            diagnostics = {
                "language": language.language,
                "effective_query": question,
                "followup_expanded": question != text,
                "embedding_failed": embedding_failed,
                "corpora": [result.diagnostics() for result in results],
            }

            assembler = ResultAssembler(language=language.language)
            if all_empty:
                assembled = assembler.no_answer(text, diagnostics)
            else:
                assembled = assembler.assemble(text, results, limit=request.per_corpus_limit, diagnostics=diagnostics)

            states.append(OrchestratorState.ASSEMBLED)
            diagnostics["states"] = [state.value for state in states]
            tracker.set_results(len(assembled.candidates), no_answer=assembled.no_answer, embedding_failed=embedding_failed)

        return assembled

    def _embed(self, question: str) -> tuple[Optional[list[float]], bool]:
        """Query embedding, or (None, True) when the provider failed."""
        try:
            return self.embedding_service.generate_embedding(question), False
        except EmbeddingTimeoutError as e:
            logger.warning(f"Embedding unavailable, continuing lexical-only: {e}")
        except Exception as e:
            logger.error(f"Embedding generation failed, continuing lexical-only: {type(e).__name__}: {e}")
        return None, True

    def _dispatch(
        self,
        request: RetrievalRequest,
        question: str,
        embedding: Optional[list[float]],
        language: QueryLanguageConfig,
        context: Optional[ConversationContext],
    ) -> list[RetrievalResult]:
        """One worker per corpus; results in pipeline order."""
        if not self.pipelines:
            return []

        collector = get_metrics_collector()
        timeout = self.settings.worker_timeout
        started = time.perf_counter()

        executor = ThreadPoolExecutor(max_workers=len(self.pipelines), thread_name_prefix="corpus")
        try:
            futures = [
                executor.submit(self._run_worker, pipeline, request, question, embedding, language, context)
                for pipeline in self.pipelines
            ]
            # Workers start together, so one shared deadline bounds each of them
            done, _ = wait(futures, timeout=timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results = []
        for pipeline, future in zip(self.pipelines, futures):
            corpus = pipeline.corpus
            if future in done:
                result = future.result()
            else:
                future.cancel()
                logger.warning(f"{corpus.name}: worker timed out after {timeout}s, result discarded")
                result = empty_result(
                    corpus.name, corpus.source_kind, "timed_out",
                    latency_ms=(time.perf_counter() - started) * 1000,
                )
            collector.record_worker_outcome(corpus.name, result.status)
            results.append(result)

        logger.info(
            "Workers finished: " + ", ".join(f"{r.corpus}={r.status}({len(r.candidates)})" for r in results)
        )
        return results

    @staticmethod
    def _run_worker(
        pipeline: CorpusPipeline,
        request: RetrievalRequest,
        question: str,
        embedding: Optional[list[float]],
        language: QueryLanguageConfig,
        context: Optional[ConversationContext],
    ) -> RetrievalResult:
        """Failure boundary around one corpus pipeline."""
        started = time.perf_counter()
        try:
            return pipeline.run(request, question, embedding, language, context)
        except Exception as e:
            logger.error(f"{pipeline.corpus.name}: worker failed: {type(e).__name__}: {e}", exc_info=True)
            return empty_result(
                pipeline.corpus.name, pipeline.corpus.source_kind, "failed",
                latency_ms=(time.perf_counter() - started) * 1000,
            )

    def close(self) -> None:
        """Close the connection pools behind the corpus stores."""
        closed = set()
        for pipeline in self.pipelines:
            database = pipeline.store.database
            if id(database) in closed:
                continue
            closed.add(id(database))
            database.close()


# =============================================================================
# Factory
# =============================================================================

def build_pipeline(
    corpus: CorpusConfig,
    database: PostgresDatabase,
    settings: RetrievalSettings,
    followup: Optional[FollowupExpander] = None,
) -> CorpusPipeline:
    store = CorpusStore(database, corpus.table_prefix, corpus.source_kind)
    return CorpusPipeline(
        corpus=corpus,
        store=store,
        vector=VectorSimilarityClient(corpus, store, settings.vector),
        fusion=ScoreFusion(settings.fusion, store=store, inject_authorities=corpus.authority_injection),
        lexical=LexicalSearcher(store, corpus=corpus.name) if corpus.lexical_enabled else None,
        followup=followup,
    )


def build_default_orchestrator(
    settings: Optional[RetrievalSettings] = None,
    embedding_service=None,
    database: Optional[PostgresDatabase] = None,
) -> MultiSourceOrchestrator:
    """
    Wire every corpus against one shared connection pool.

    Args:
        settings: Defaults to RetrievalSettings.from_env()
        embedding_service: Defaults to get_embedding_service(settings.embedding_provider)
        database: Defaults to a PostgresDatabase on settings.database_url
    """
    settings = settings or RetrievalSettings.from_env()
    database = database or PostgresDatabase(DatabaseConfig(connection_string=settings.database_url))
    embedding_service = embedding_service or get_embedding_service(settings.embedding_provider)
    followup = FollowupExpander(settings.followup)

    pipelines = [build_pipeline(corpus, database, settings, followup) for corpus in settings.corpora]
    return MultiSourceOrchestrator(pipelines, embedding_service, settings=settings, followup=followup)


# CLI
def main(argv: Optional[list[str]] = None) -> int:
    from dotenv import load_dotenv
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Hybrid retrieval over Belgian legal corpora")
    parser.add_argument("question", help="Question to retrieve sources for")
    parser.add_argument("--language", choices=["nl", "fr"], default=None, help="Query language (detected when omitted)")
    parser.add_argument("--limit", type=int, default=10, help="Maximum passages per corpus")
    parser.add_argument("--exact", action="store_true", help="Match the question as an exact phrase")
    args = parser.parse_args(argv)

    orchestrator = build_default_orchestrator()
    request = RetrievalRequest(
        query=Query(text=args.question, language=args.language),
        per_corpus_limit=args.limit,
        search_mode="exact" if args.exact else "flexible",
    )
    try:
        assembled = orchestrator.retrieve(request)
    except QueryValidationError as e:
        print(f"Invalid question: {e}")
        return 2
    finally:
        orchestrator.close()

    if assembled.no_answer:
        print(assembled.message)
    else:
        print(assembled.context)
        print("\nSources:")
        for index, citation in enumerate(assembled.citations, start=1):
            print(f"  {index}. {citation.short_format()} ({citation.relevance}) {citation.url or ''}")

    print("\nMetrics:", get_metrics_collector().get_metrics_dict()["latency_ms"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
