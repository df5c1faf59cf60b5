"""
Data Model for Hybrid Legal Retrieval

Queries, requests, candidates and per-corpus results shared by every stage
of the pipeline. Candidates are tagged with an explicit source kind so the
fusion and rendering stages switch on a discriminant instead of guessing the
shape of a record.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional
from dataclasses import dataclass, field


class SourceKind(str, Enum):
    """Corpus a candidate was retrieved from."""
    LEGISLATION = "legislation"
    JURISPRUDENCE = "jurisprudence"
    PARLIAMENTARY = "parliamentary"
    TAX = "tax"


# Numeric language ids used by the passage tables
LANGUAGE_IDS = {"nl": 1, "fr": 2}


def language_code(language_id: Optional[int]) -> str:
    """Map a stored language id back to its ISO code (unknown ids read as Dutch)."""
    return "fr" if language_id == LANGUAGE_IDS["fr"] else "nl"


@dataclass(frozen=True)
class Query:
    """Raw user question. Immutable once received."""
    text: str
    language: Optional[str] = None
    conversation_id: Optional[str] = None


def parse_filter_date(value) -> Optional[date]:
    """
    Parse a filter date given as DD/MM/YYYY or YYYY-MM-DD.

    Returns:
        The parsed date, or None when the value is empty or not a valid date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if re.fullmatch(r"\d{1,2}/\d{1,2}/\d{4}", text):
        day, month, year = (int(part) for part in text.split("/"))
        try:
            return date(year, month, day)
        except ValueError:
            return None
    if re.fullmatch(r"\d{4}-\d{1,2}-\d{1,2}", text):
        try:
            return datetime.strptime(text, "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class RequestFilters:
    """Optional restrictions applied to every strategy of every corpus."""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    document_types: tuple = ()
    languages: tuple = ()  # ISO codes; empty means no language restriction
    hide_abolished: bool = False

    @classmethod
    def from_params(cls, params: dict) -> "RequestFilters":
        """Build filters from loosely typed request parameters."""
        languages = []
        if params.get("lang_nl") == "1":
            languages.append("nl")
        if params.get("lang_fr") == "1":
            languages.append("fr")
        return cls(
            date_from=parse_filter_date(params.get("date_from")),
            date_to=parse_filter_date(params.get("date_to")),
            document_types=tuple(params.get("document_types") or ()),
            languages=tuple(languages),
            hide_abolished=params.get("hide_abolished") == "1",
        )

    @property
    def language_ids(self) -> list[int]:
        return [LANGUAGE_IDS[code] for code in self.languages if code in LANGUAGE_IDS]

    def accepts(self, candidate: "Candidate") -> bool:
        """Check a candidate fetched without SQL filtering (vector results)."""
        if self.languages and language_code(candidate.language_id) not in self.languages:
            return False
        if self.hide_abolished and candidate.is_abolished:
            return False
        if self.document_types:
            if candidate.metadata.get("document_type") not in self.document_types:
                return False
        doc_date = parse_filter_date(candidate.metadata.get("document_date"))
        if doc_date is not None:
            if self.date_from and doc_date < self.date_from:
                return False
            if self.date_to and doc_date > self.date_to:
                return False
        return True


@dataclass(frozen=True)
class RetrievalRequest:
    """A query plus the per-corpus result bound and filters."""
    query: Query
    per_corpus_limit: int = 10
    filters: RequestFilters = field(default_factory=RequestFilters)
    search_mode: str = "flexible"  # "flexible" or "exact"


@dataclass(frozen=True)
class Candidate:
    """
    One retrievable passage with its score and provenance.

    ``similarity`` is the current score; ``base_score`` is the score before any
    boost or penalty was applied (kept for deduplication and display).
    """
    passage_id: str
    document_id: str
    source_kind: SourceKind
    text: str
    similarity: float
    language_id: int = 1
    title: str = ""
    heading: str = ""
    url: Optional[str] = None
    is_abolished: bool = False
    injected_by_keyword: bool = False
    injected_by_context: bool = False
    modification_count: int = 0
    implementing_decree_count: int = 0
    has_abolitions: bool = False
    origin: str = "vector"  # "vector", "lexical", "authority", "context"
    match_count: int = 0
    base_score: Optional[float] = None
    boosted: bool = False
    metadata: dict = field(default_factory=dict, hash=False, compare=False)

    @property
    def pre_boost_score(self) -> float:
        return self.similarity if self.base_score is None else self.base_score

    @property
    def language(self) -> str:
        return language_code(self.language_id)

    def to_dict(self) -> dict:
        return {
            "passage_id": self.passage_id,
            "document_id": self.document_id,
            "source_kind": self.source_kind.value,
            "title": self.title,
            "heading": self.heading,
            "similarity": self.similarity,
            "base_score": self.base_score,
            "language": self.language,
            "is_abolished": self.is_abolished,
            "injected_by_keyword": self.injected_by_keyword,
            "injected_by_context": self.injected_by_context,
            "origin": self.origin,
            "url": self.url,
        }


@dataclass(frozen=True)
class StrategyTrace:
    """Which retrieval strategy ran for one call, and why."""
    strategy: str
    reason: str
    fallback: bool = False
    elapsed_ms: float = 0.0
    matches: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class RetrievalResult:
    """
    Ranked output of one corpus pipeline.

    Invariant: ``candidates`` is sorted by descending similarity and holds each
    passage id at most once.
    """
    corpus: str
    source_kind: SourceKind
    candidates: tuple = ()
    traces: tuple = ()
    vector_path: Optional[str] = None
    latency_ms: float = 0.0
    fallback_triggered: bool = False
    status: str = "ok"  # "ok", "empty", "failed", "timed_out"

    def __post_init__(self):
        ids = [c.passage_id for c in self.candidates]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate passage ids in {self.corpus} result")
        scores = [c.similarity for c in self.candidates]
        if any(a < b for a, b in zip(scores, scores[1:])):
            raise ValueError(f"{self.corpus} result is not sorted by score")

    @property
    def is_empty(self) -> bool:
        return not self.candidates

    def diagnostics(self) -> dict:
        return {
            "corpus": self.corpus,
            "status": self.status,
            "count": len(self.candidates),
            "vector_path": self.vector_path,
            "latency_ms": round(self.latency_ms, 1),
            "fallback_triggered": self.fallback_triggered,
            "strategies": [
                {"strategy": t.strategy, "reason": t.reason, "fallback": t.fallback}
                for t in self.traces
            ],
        }


def empty_result(corpus: str, source_kind: SourceKind, status: str, latency_ms: float = 0.0) -> RetrievalResult:
    """Result used when a corpus worker failed, timed out or found nothing."""
    return RetrievalResult(
        corpus=corpus,
        source_kind=source_kind,
        candidates=(),
        latency_ms=latency_ms,
        status=status,
    )
