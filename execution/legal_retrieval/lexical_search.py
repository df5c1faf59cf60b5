"""
Lexical Search Strategy Selector

Finds passages that literally contain the query terms without scanning full
content when an auxiliary index can narrow the search. Strategies are tried
in a fixed order, each with an explicit "unavailable" predicate:

1. Verified n-gram index  (3-character shingles, then substring verification)
2. Full-text index        (token-prefix tsquery ANDed over the query tokens)
3. Literal pattern scan   (LOWER(field) LIKE '%term%'; always correct)

A strategy that is unavailable is skipped; one that raises a database or
dependency error hands over to the next, as does an index whose candidate
cap filled up before enough rows survived verification. The literal scan is
the last resort and its errors propagate to the caller.

Matching semantics (flexible mode): every query token, or one of its
synonyms, must occur in the title, the tags or the body. Exact mode requires
the whole normalized phrase to occur contiguously.
"""

import re
import time
import logging
from typing import Optional
from dataclasses import dataclass, field

from .models import Candidate, RequestFilters, StrategyTrace
from .corpus_store import CorpusStore, DATABASE_ERRORS, DEFAULT_SEARCH_FIELDS, row_to_candidate
from .errors import CandidateSetTruncatedError
from .language_config import QueryLanguageConfig
from .metrics import get_metrics_collector
from .tokenizer import (
    NGRAM_SIZE,
    build_fulltext_query,
    build_ngrams,
    normalize_query,
    tokenize,
)

logger = logging.getLogger(__name__)

DOCUMENT_ID_PATTERN = re.compile(r"^\d{10}$")

# Score given to passages found by literal matching
LEXICAL_BASE_SCORE = 0.75


@dataclass
class LexicalOutcome:
    """Verified rows plus the trace of every strategy attempted."""
    rows: list = field(default_factory=list)
    traces: list = field(default_factory=list)
    strategy: Optional[str] = None

    @property
    def fallback_triggered(self) -> bool:
        return any(trace.fallback for trace in self.traces)


# =============================================================================
# Matching Helpers
# =============================================================================

def searchable_text(row: dict, fields: tuple = DEFAULT_SEARCH_FIELDS) -> list[str]:
    return [(row.get(name) or "").lower() for name in fields]


def row_matches(row: dict, groups: list[tuple], fields: tuple = DEFAULT_SEARCH_FIELDS) -> bool:
    """Every group has at least one variant occurring in at least one field."""
    texts = searchable_text(row, fields)
    for variants in groups:
        if not any(variant.lower() in text for variant in variants for text in texts):
            return False
    return True


def shortest_term(groups: list[tuple]) -> int:
    return min((len(v) for variants in groups for v in variants), default=0)


def verify_capped(strategy: str, rows: list[dict], groups: list[tuple], fetch_limit: int, limit: int) -> list[dict]:
    """
    Keep rows that truly match; refuse to answer from a saturated candidate set.

    When the index returned as many rows as it was allowed to and fewer than
    ``limit`` survive verification, rows past the cap may still match, so the
    next strategy has to take over.
    """
    verified = [row for row in rows if row_matches(row, groups)]
    dropped = len(rows) - len(verified)
    if dropped:
        logger.debug(f"{strategy} verification dropped {dropped} false positives")
    if len(rows) >= fetch_limit and len(verified) < limit:
        raise CandidateSetTruncatedError(
            f"{len(rows)} candidates hit the cap, {len(verified)} verified"
        )
    return verified[:limit]


# =============================================================================
# Strategies
# =============================================================================

class NgramStrategy:
    """Narrow by shared shingles, then keep only true substring matches."""

    name = "ngram_verified"

    def __init__(self, store: CorpusStore, candidate_multiplier: int = 5):
        self.store = store
        self.candidate_multiplier = candidate_multiplier

    def unavailable_reason(self, groups: list[tuple]) -> Optional[str]:
        if shortest_term(groups) < NGRAM_SIZE:
            return f"term shorter than {NGRAM_SIZE} characters"
        if not self.store.ngram_index_populated():
            return "n-gram index missing or empty"
        return None

    def run(self, groups: list[tuple], filters: RequestFilters, limit: int, language: QueryLanguageConfig) -> list[dict]:
        fetch_limit = limit * self.candidate_multiplier
        gram_groups = [[build_ngrams(variant) for variant in variants] for variants in groups]
        rows = self.store.ngram_candidates(gram_groups, filters, fetch_limit)
        return verify_capped(self.name, rows, groups, fetch_limit, limit)


class FullTextStrategy:
    """Prefix tsquery over the stored search_vector column."""

    name = "fulltext"

    def __init__(self, store: CorpusStore, candidate_multiplier: int = 2):
        self.store = store
        self.candidate_multiplier = candidate_multiplier

    def unavailable_reason(self, groups: list[tuple]) -> Optional[str]:
        if shortest_term(groups) < NGRAM_SIZE:
            return f"term shorter than {NGRAM_SIZE} characters"
        if not self.store.fulltext_available():
            return "full-text column missing"
        return None

    def run(self, groups: list[tuple], filters: RequestFilters, limit: int, language: QueryLanguageConfig) -> list[dict]:
        parts = []
        for variants in groups:
            alternatives = [build_fulltext_query(v) for v in variants]
            alternatives = [a for a in alternatives if a]
            if alternatives:
                parts.append("(" + " | ".join(f"({a})" for a in alternatives) + ")")
        if not parts:
            return []
        tsquery = " & ".join(parts)
        fetch_limit = limit * self.candidate_multiplier
        rows = self.store.fulltext_search(tsquery, language.fts_language, filters, fetch_limit)
        # Stemming can match forms that are not substrings of the query term
        return verify_capped(self.name, rows, groups, fetch_limit, limit)


class LiteralScanStrategy:
    """Direct substring scan; the fallback of last resort."""

    name = "literal_scan"

    def __init__(self, store: CorpusStore):
        self.store = store

    def unavailable_reason(self, groups: list[tuple]) -> Optional[str]:
        return None

    def run(self, groups: list[tuple], filters: RequestFilters, limit: int, language: QueryLanguageConfig) -> list[dict]:
        if len(groups) == 1 and len(groups[0]) == 1:
            return self.store.phrase_search(groups[0][0], filters, limit)
        return self.store.literal_search(groups, filters, limit)


# =============================================================================
# Selector
# =============================================================================

class LexicalSearcher:
    """
    Runs the ordered strategy chain for one corpus.

    Usage:
        searcher = LexicalSearcher(store)
        outcome = searcher.search("opzegtermijn bediende", filters, limit=10)
        candidates = searcher.to_candidates(outcome.rows)
    """

    def __init__(self, store: CorpusStore, strategies: Optional[list] = None, corpus: str = ""):
        self.store = store
        self.corpus = corpus or store.passages_table
        self.strategies = strategies or [
            NgramStrategy(store),
            FullTextStrategy(store),
            LiteralScanStrategy(store),
        ]

    def search(
        self,
        text: str,
        filters: Optional[RequestFilters] = None,
        limit: int = 10,
        mode: str = "flexible",
        language: Optional[QueryLanguageConfig] = None,
    ) -> LexicalOutcome:
        """
        Find passages literally matching ``text``.

        Args:
            text: Query text
            filters: Request filters applied in SQL
            limit: Maximum rows returned
            mode: "flexible" (AND over tokens) or "exact" (contiguous phrase)
            language: Query language (stop-words and FTS config)

        Returns:
            LexicalOutcome with verified rows and strategy traces
        """
        filters = filters or RequestFilters()
        language = language or QueryLanguageConfig()
        outcome = LexicalOutcome()

        term = normalize_query(text)
        if not term:
            return outcome

        if DOCUMENT_ID_PATTERN.match(term):
            started = time.perf_counter()
            rows = self.store.search_document_id(term, filters, limit)
            outcome.rows = rows
            outcome.strategy = "document_id"
            self._record(outcome, "document_id", "selected", started, len(rows), detail="10-digit identifier")
            return outcome

        if mode == "exact":
            groups = [(term,)]
        else:
            groups = [token.variants for token in tokenize(term, language.language)]
        if not groups:
            return outcome

        for index, strategy in enumerate(self.strategies):
            is_last = index == len(self.strategies) - 1
            started = time.perf_counter()
            try:
                reason = strategy.unavailable_reason(groups)
                if reason is not None:
                    self._record(outcome, strategy.name, "unavailable", started, 0, detail=reason)
                    continue
                rows = strategy.run(groups, filters, limit, language)
            except CandidateSetTruncatedError as e:
                if is_last:
                    raise
                logger.info(f"Lexical strategy {strategy.name} truncated on {self.corpus}: {e}")
                self._record(outcome, strategy.name, "truncated", started, 0, detail=str(e), fallback=True)
                continue
            except DATABASE_ERRORS as e:
                if is_last:
                    self._record(outcome, strategy.name, "failed", started, 0, error=e)
                    raise
                logger.warning(
                    f"Lexical strategy {strategy.name} failed on {self.corpus}, "
                    f"falling back: {type(e).__name__}: {e}"
                )
                self._record(outcome, strategy.name, "failed", started, 0, error=e, fallback=True)
                continue

            fallback = index > 0
            self._record(outcome, strategy.name, "selected", started, len(rows), fallback=fallback)
            outcome.rows = rows
            outcome.strategy = strategy.name
            return outcome

        return outcome

    def search_keywords(
        self,
        phrases: list[str],
        filters: Optional[RequestFilters] = None,
        limit: int = 10,
    ) -> LexicalOutcome:
        """
        OR-query over body text for extracted keyword phrases.

        Complements the vector search for questions whose wording the
        embedding handles poorly.
        """
        filters = filters or RequestFilters()
        outcome = LexicalOutcome()
        phrases = [p.lower() for p in phrases if p and p.strip()]
        if not phrases:
            return outcome
        started = time.perf_counter()
        rows = self.store.literal_search([tuple(phrases)], filters, limit, fields=("body",))
        outcome.rows = rows
        outcome.strategy = "keyword_like"
        self._record(outcome, "keyword_like", "selected", started, len(rows), detail=f"{len(phrases)} phrases")
        return outcome

    def to_candidates(self, rows: list[dict], score: float = LEXICAL_BASE_SCORE) -> list[Candidate]:
        return [
            row_to_candidate(row, self.store.source_kind, score, origin="lexical")
            for row in rows
        ]

    def _record(
        self,
        outcome: LexicalOutcome,
        strategy: str,
        reason: str,
        started: float,
        matches: int,
        detail: Optional[str] = None,
        error: Optional[Exception] = None,
        fallback: bool = False,
    ) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        trace = StrategyTrace(
            strategy=strategy,
            reason=f"{reason}: {detail}" if detail else reason,
            fallback=fallback,
            elapsed_ms=elapsed_ms,
            matches=matches,
            error=f"{type(error).__name__}: {error}" if error else None,
        )
        outcome.traces.append(trace)
        logger.info(
            f"[Lexical] {self.corpus} strategy={strategy} reason={trace.reason} "
            f"matches={matches} elapsed={elapsed_ms:.1f}ms"
        )
        get_metrics_collector().record_strategy(self.corpus, strategy, reason, fallback=fallback)
