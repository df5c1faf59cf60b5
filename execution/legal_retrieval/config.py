"""
Retrieval Configuration

Dataclass settings for the fusion stage, the vector client and each corpus,
plus ``RetrievalSettings.from_env`` which reads the process environment
(callers load ``.env`` through python-dotenv before calling it).
"""

import os
import logging
from typing import Optional
from dataclasses import dataclass, field, replace

from .models import SourceKind

logger = logging.getLogger(__name__)


@dataclass
class FusionConfig:
    """Boost/penalty constants and filter floors for score fusion."""
    # Multipliers, applied in this order and compounded
    foundational_boost: float = 2.0
    trigger_bonus: float = 1.1
    sector_agreement_penalty: float = 0.6
    freshness_boost: float = 1.05
    freshness_min_modifications: int = 50
    temporary_measure_penalty: float = 0.7
    abolished_flag_penalty: float = 0.5
    abolition_text_penalty: float = 0.5

    # Authority injection
    injection_base_score: float = 0.70
    injection_per_match: float = 0.03
    injection_per_document: int = 2
    injection_scan_limit: int = 100
    injection_min_word_length: int = 4
    injection_root_min_length: int = 6
    injection_root_length: int = 5

    # Topical relevance filter
    title_filter_floor: int = 5
    high_score_bypass: float = 1.5

    # Similarity threshold filter
    similarity_floor: float = 0.65
    floor_count: int = 5
    fallback_top_n: int = 10

    # Final cut after filtering
    max_results: int = 15


@dataclass
class FollowupConfig:
    """Follow-up detection and conversational context injection."""
    max_short_words: int = 5
    topic_word_min_length: int = 5
    max_topic_words: int = 5
    context_documents: int = 3
    context_scan_limit: int = 20
    context_base_score: float = 0.80
    context_per_match: float = 0.02
    context_per_document: int = 2


@dataclass
class VectorClientConfig:
    """ANN service and sampled-scan fallback settings."""
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    sample_size: int = 25000
    language_boost: float = 1.20
    candidate_multiplier: int = 2


@dataclass
class CorpusConfig:
    """One independently indexed corpus and how it is searched."""
    name: str
    source_kind: SourceKind
    table_prefix: str
    ann_url: Optional[str] = None
    ann_id_field: str = "passage_id"
    lexical_enabled: bool = True
    authority_injection: bool = False
    # Inject passages of documents cited in the previous turn
    context_injection: bool = False
    per_corpus_limit: int = 10
    min_similarity: Optional[float] = None
    # Scan the whole embedding table when it holds fewer rows than the sample
    full_scan_when_small: bool = False
    check_dimensions: bool = False


@dataclass
class RetrievalSettings:
    """Top-level settings for one orchestrator instance."""
    database_url: Optional[str] = None
    embedding_provider: str = "azure_openai"
    worker_timeout: float = 30.0
    max_question_length: int = 500
    fusion: FusionConfig = field(default_factory=FusionConfig)
    vector: VectorClientConfig = field(default_factory=VectorClientConfig)
    followup: FollowupConfig = field(default_factory=FollowupConfig)
    corpora: list = field(default_factory=lambda: default_corpora())

    @classmethod
    def from_env(cls) -> "RetrievalSettings":
        """Build settings from environment variables, keeping defaults for unset ones."""
        vector = VectorClientConfig(
            sample_size=_env_int("EMBEDDING_SAMPLE_SIZE", 25000),
        )
        settings = cls(
            database_url=os.getenv("POSTGRES_URL") or os.getenv("DATABASE_URL"),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "azure_openai"),
            worker_timeout=_env_float("WORKER_TIMEOUT_SECONDS", 30.0),
            max_question_length=_env_int("MAX_QUESTION_LENGTH", 500),
            vector=vector,
            corpora=default_corpora(
                legislation_url=os.getenv("LEGISLATION_ANN_URL", "http://127.0.0.1:8767"),
                jurisprudence_url=os.getenv("JURISPRUDENCE_ANN_URL", "http://127.0.0.1:8768"),
                parliamentary_url=os.getenv("PARLIAMENTARY_ANN_URL", "http://127.0.0.1:8769"),
                tax_url=os.getenv("TAX_ANN_URL", "http://127.0.0.1:8770"),
            ),
        )
        logger.info(
            f"Loaded retrieval settings: provider={settings.embedding_provider}, "
            f"worker_timeout={settings.worker_timeout}s, corpora={[c.name for c in settings.corpora]}"
        )
        return settings

    def corpus(self, name: str) -> CorpusConfig:
        for corpus in self.corpora:
            if corpus.name == name:
                return corpus
        raise KeyError(f"Unknown corpus: {name}")

    def with_overrides(self, **changes) -> "RetrievalSettings":
        return replace(self, **changes)


def default_corpora(
    legislation_url: Optional[str] = "http://127.0.0.1:8767",
    jurisprudence_url: Optional[str] = "http://127.0.0.1:8768",
    parliamentary_url: Optional[str] = "http://127.0.0.1:8769",
    tax_url: Optional[str] = "http://127.0.0.1:8770",
) -> list[CorpusConfig]:
    """The four Belgian corpora searched for every question."""
    return [
        CorpusConfig(
            name="legislation",
            source_kind=SourceKind.LEGISLATION,
            table_prefix="legislation",
            ann_url=legislation_url,
            ann_id_field="article_id",
            authority_injection=True,
            context_injection=True,
            per_corpus_limit=10,
        ),
        CorpusConfig(
            name="jurisprudence",
            source_kind=SourceKind.JURISPRUDENCE,
            table_prefix="jurisprudence",
            ann_url=jurisprudence_url,
            ann_id_field="case_id",
            lexical_enabled=False,
            per_corpus_limit=5,
            min_similarity=0.40,
        ),
        CorpusConfig(
            name="parliamentary",
            source_kind=SourceKind.PARLIAMENTARY,
            table_prefix="parliamentary",
            ann_url=parliamentary_url,
            ann_id_field="document_id",
            lexical_enabled=False,
            per_corpus_limit=3,
            full_scan_when_small=True,
            check_dimensions=True,
        ),
        CorpusConfig(
            name="tax",
            source_kind=SourceKind.TAX,
            table_prefix="tax",
            ann_url=tax_url,
            ann_id_field="document_id",
            lexical_enabled=False,
            per_corpus_limit=3,
        ),
    ]


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={value!r}, using {default}")
        return default
