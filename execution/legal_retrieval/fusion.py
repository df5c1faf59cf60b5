"""
Score Fusion & Boosting

Combines the candidate lists of one corpus (vector, lexical, context
injection) into a single ranking. Steps run in a fixed order because the
multipliers compound:

1. Merge & dedup         -- one instance per passage id, highest pre-boost score wins
2. Authority injection   -- pull in foundational documents the searches missed
3. Multipliers           -- foundational / sector agreement, freshness,
                            temporary measure, abolished flag, abolition text
4. Re-sort               -- descending score, ties by passage id
5. Title filter (soft)   -- skipped when it would leave fewer than the floor
6. Threshold (soft)      -- falls back to a fixed top-N when too few qualify
"""

import logging
from typing import Optional
from dataclasses import dataclass, replace

from .config import FusionConfig
from .corpus_store import CorpusStore, DATABASE_ERRORS, row_to_candidate
from .language_patterns import (
    ABOLITION_TEXT_PATTERN,
    AGREEMENT_TITLE_MARKERS,
    SECTOR_AGREEMENT_PATTERNS,
    SECTOR_KEYWORDS,
    TEMPORARY_MEASURE_PATTERN,
    TOPIC_TITLE_KEYWORDS,
)
from .legal_tables import FOUNDATIONAL_DOCUMENTS, triggered_documents
from .models import Candidate, RequestFilters

logger = logging.getLogger(__name__)

# Tie-break between duplicates with equal pre-boost score
ORIGIN_PRIORITY = {"context": 3, "authority": 2, "lexical": 1, "vector": 0}


@dataclass
class FusionReport:
    """Counts after each fusion step, for logs and diagnostics."""
    merged: int = 0
    injected: int = 0
    after_title_filter: int = 0
    title_filter_skipped: bool = False
    after_threshold: int = 0
    threshold_fallback: bool = False
    final: int = 0

    def to_dict(self) -> dict:
        return dict(self.__dict__)


def ranking_key(candidate: Candidate) -> tuple:
    return (-candidate.similarity, candidate.passage_id)


def is_sector_agreement(title: str) -> bool:
    """Narrow collective agreement (joint committee, sector CAO)."""
    if not title:
        return False
    title_lower = title.lower()
    if any(pattern.search(title_lower) for pattern in SECTOR_AGREEMENT_PATTERNS):
        return True
    if any(marker in title_lower for marker in AGREEMENT_TITLE_MARKERS):
        return any(keyword in title_lower for keyword in SECTOR_KEYWORDS)
    return False


def topic_keywords(question: str) -> list[str]:
    """Title words expected for the question's topics, plus its own longer words."""
    question_lower = question.lower()
    keywords = []
    for topic, title_words in TOPIC_TITLE_KEYWORDS.items():
        if topic in question_lower:
            keywords.extend(title_words)
    keywords.extend(word for word in question_lower.split() if len(word) >= 5)
    return list(dict.fromkeys(keywords))


def injection_terms(question: str, min_length: int = 4, root_min_length: int = 6, root_length: int = 5) -> list[str]:
    """Words longer than ``min_length - 1`` plus short roots of the long ones."""
    words = [w for w in question.lower().split() if len(w) >= min_length]
    roots = [w[:root_length] for w in words if len(w) >= root_min_length]
    return list(dict.fromkeys(words + roots))


class ScoreFusion:
    """
    Fusion stage for one corpus.

    Authority injection needs the corpus store to read passages of missing
    foundational documents; without a store (or with ``inject_authorities``
    off) the step is a no-op.

    Usage:
        fusion = ScoreFusion(FusionConfig(), store=legislation_store, inject_authorities=True)
        ranked, report = fusion.fuse([vector_hits, lexical_hits], question, language_id=1)
    """

    def __init__(
        self,
        config: Optional[FusionConfig] = None,
        store: Optional[CorpusStore] = None,
        inject_authorities: bool = False,
    ):
        self.config = config or FusionConfig()
        self.store = store
        self.inject_authorities_enabled = inject_authorities and store is not None

    def fuse(
        self,
        candidate_lists: list[list[Candidate]],
        question: str,
        language_id: Optional[int] = None,
        filters: Optional[RequestFilters] = None,
    ) -> tuple[list[Candidate], FusionReport]:
        """
        Run every fusion step.

        Args:
            candidate_lists: Lists from each retrieval strategy, in any order
            question: Effective question text (after follow-up expansion)
            language_id: Language of passages to inject
            filters: Request filters, applied to injected passages

        Returns:
            (ranked candidates, report)
        """
        report = FusionReport()
        merged = self.merge_dedup(candidate_lists)
        report.merged = len(merged)
        if not merged and not self.inject_authorities_enabled:
            return [], report

        triggered = triggered_documents(question)
        if self.inject_authorities_enabled:
            injected = self.inject_authorities(merged, triggered, question, language_id, filters)
            report.injected = len(injected)
            merged = merged + injected
        if not merged:
            return [], report

        boosted = self.apply_multipliers(merged, triggered)

        filtered, report.title_filter_skipped = self.title_filter(boosted, question)
        report.after_title_filter = len(filtered)

        thresholded, report.threshold_fallback = self.threshold_filter(filtered)
        report.after_threshold = len(thresholded)

        final = thresholded[:self.config.max_results]
        report.final = len(final)

        logger.info(
            f"Fusion: merged={report.merged} injected={report.injected} "
            f"title_filter={report.after_title_filter}{' (skipped)' if report.title_filter_skipped else ''} "
            f"threshold={report.after_threshold}{' (top-N fallback)' if report.threshold_fallback else ''} "
            f"final={report.final}"
        )
        return final, report

    # =========================================================================
    # Step 1: Merge & Dedup
    # =========================================================================

    def merge_dedup(self, candidate_lists: list[list[Candidate]]) -> list[Candidate]:
        """Union of all lists, one instance per passage id, sorted by score."""
        best = {}
        for candidates in candidate_lists:
            for candidate in candidates:
                current = best.get(candidate.passage_id)
                if current is None or self._dedup_key(candidate) > self._dedup_key(current):
                    best[candidate.passage_id] = candidate
        return sorted(best.values(), key=ranking_key)

    @staticmethod
    def _dedup_key(candidate: Candidate) -> tuple:
        return (candidate.pre_boost_score, ORIGIN_PRIORITY.get(candidate.origin, 0))

    # =========================================================================
    # Step 2: Authority Injection
    # =========================================================================

    def inject_authorities(
        self,
        merged: list[Candidate],
        triggered: dict[str, list[str]],
        question: str,
        language_id: Optional[int] = None,
        filters: Optional[RequestFilters] = None,
    ) -> list[Candidate]:
        """
        Synthesize candidates from triggered foundational documents absent from ``merged``.

        Passages are scored ``base + per_match * matches`` where matches counts
        question words and roots found in the heading or text, so an injected
        passage starts below the lexical score of a genuine match.
        """
        if not self.inject_authorities_enabled or not triggered:
            return []

        present_documents = {c.document_id for c in merged}
        present_passages = {c.passage_id for c in merged}
        missing = sorted(doc_id for doc_id in triggered if doc_id not in present_documents)
        if not missing:
            return []

        cfg = self.config
        terms = injection_terms(
            question,
            min_length=cfg.injection_min_word_length,
            root_min_length=cfg.injection_root_min_length,
            root_length=cfg.injection_root_length,
        )

        injected = []
        for document_id in missing:
            try:
                rows = self.store.fetch_document_passages(document_id, language_id or 1, cfg.injection_scan_limit)
            except DATABASE_ERRORS as e:
                logger.warning(f"Authority injection skipped {document_id}: {type(e).__name__}: {e}")
                continue
            scored = []
            for row in rows:
                if str(row["passage_id"]) in present_passages:
                    continue
                text = f"{row.get('heading') or ''} {row.get('body') or ''}".lower()
                matches = sum(1 for term in terms if term in text)
                score = cfg.injection_base_score + matches * cfg.injection_per_match
                candidate = row_to_candidate(
                    row,
                    self.store.source_kind,
                    score,
                    origin="authority",
                    injected_by_keyword=True,
                    match_count=matches,
                )
                if not candidate.title:
                    candidate = replace(candidate, title=FOUNDATIONAL_DOCUMENTS.get(document_id, ""))
                if filters is not None and not filters.accepts(candidate):
                    continue
                scored.append(candidate)

            scored.sort(key=lambda c: (-c.match_count, -c.similarity, c.passage_id))
            chosen = scored[:cfg.injection_per_document]
            if chosen:
                logger.info(
                    f"Injecting from {FOUNDATIONAL_DOCUMENTS.get(document_id, document_id)}: "
                    + ", ".join(f"{c.passage_id}({c.match_count} matches)" for c in chosen)
                )
            injected.extend(chosen)

        return injected

    # =========================================================================
    # Step 3-4: Multipliers and Re-sort
    # =========================================================================

    def boost_factor(self, candidate: Candidate, triggered: dict[str, list[str]]) -> float:
        """Compound multiplier for one candidate (applied in a fixed order)."""
        cfg = self.config
        boost = 1.0

        if candidate.document_id in FOUNDATIONAL_DOCUMENTS:
            boost = cfg.foundational_boost
            if candidate.document_id in triggered:
                boost *= cfg.trigger_bonus
        elif is_sector_agreement(candidate.title):
            boost = cfg.sector_agreement_penalty
            logger.debug(f"Sector agreement penalty: {candidate.title[:60]}")

        if candidate.modification_count > cfg.freshness_min_modifications:
            boost *= cfg.freshness_boost

        if TEMPORARY_MEASURE_PATTERN.search(candidate.title or ""):
            boost *= cfg.temporary_measure_penalty
            logger.debug(f"Temporary measure penalty: {candidate.title[:60]}")

        if candidate.is_abolished:
            boost *= cfg.abolished_flag_penalty

        if ABOLITION_TEXT_PATTERN.search(candidate.text or ""):
            boost *= cfg.abolition_text_penalty

        return boost

    def apply_multipliers(self, candidates: list[Candidate], triggered: dict[str, list[str]]) -> list[Candidate]:
        """Apply boost factors and re-sort; ``base_score`` keeps the pre-boost score."""
        boosted = []
        for candidate in candidates:
            boost = self.boost_factor(candidate, triggered)
            boosted.append(replace(
                candidate,
                similarity=candidate.similarity * boost,
                base_score=candidate.pre_boost_score,
                boosted=boost > 1.0,
            ))
        boosted.sort(key=ranking_key)

        foundational_in_top = sum(1 for c in boosted[:5] if c.document_id in FOUNDATIONAL_DOCUMENTS)
        if foundational_in_top:
            logger.info(f"Foundational boost: {foundational_in_top}/5 top results are foundational documents")
        return boosted

    # =========================================================================
    # Step 5-6: Soft Filters
    # =========================================================================

    def title_filter(self, candidates: list[Candidate], question: str) -> tuple[list[Candidate], bool]:
        """
        Drop candidates whose title has no topical link to the question.

        Returns:
            (candidates, skipped) where skipped means the filter would have
            left fewer than ``title_filter_floor`` and the input is returned
        """
        question_lower = question.lower()
        question_words = {w for w in question_lower.split() if len(w) > 3}
        keywords = topic_keywords(question_lower)

        kept = []
        for candidate in candidates:
            if candidate.document_id in FOUNDATIONAL_DOCUMENTS:
                kept.append(candidate)
                continue
            title = (candidate.title or "").lower()
            if (
                any(keyword in title for keyword in keywords)
                or question_words & set(title.split())
                or candidate.similarity >= self.config.high_score_bypass
            ):
                kept.append(candidate)

        if len(kept) < self.config.title_filter_floor:
            return candidates, True
        return kept, False

    def threshold_filter(self, candidates: list[Candidate]) -> tuple[list[Candidate], bool]:
        """Keep scores above the floor, or the top-N when too few qualify."""
        cfg = self.config
        high = [c for c in candidates if c.similarity >= cfg.similarity_floor]
        if len(high) >= cfg.floor_count:
            return high, False
        return candidates[:cfg.fallback_top_n], True
