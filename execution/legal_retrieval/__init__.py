"""
Legal Retrieval - Hybrid Retrieval & Ranking for Belgian Legal Questions

This module provides:
- Bilingual (NL/FR) tokenization with legal synonym expansion
- Lexical search over an ordered strategy chain (n-gram, full-text, literal scan)
- Vector search through an ANN service with a sampled exact-scan fallback
- Score fusion with authority injection, boosts, penalties and soft filters
- Concurrent retrieval over legislation, case law, parliamentary works and tax
- Follow-up expansion and assembly of the answer context with citations
"""

from .models import Query, RequestFilters, RetrievalRequest, Candidate, RetrievalResult, SourceKind
from .errors import (
    RetrievalError,
    QueryValidationError,
    EmbeddingTimeoutError,
    DependencyUnavailableError,
)
from .config import RetrievalSettings
from .tokenizer import tokenize
from .lexical_search import LexicalSearcher
from .vector_client import VectorSimilarityClient
from .fusion import ScoreFusion
from .followup import ConversationContext, FollowupExpander
from .assembler import AssembledResult, ResultAssembler
from .orchestrator import MultiSourceOrchestrator, build_default_orchestrator

__all__ = [
    "Query",
    "RequestFilters",
    "RetrievalRequest",
    "Candidate",
    "RetrievalResult",
    "SourceKind",
    "RetrievalError",
    "QueryValidationError",
    "EmbeddingTimeoutError",
    "DependencyUnavailableError",
    "RetrievalSettings",
    "tokenize",
    "LexicalSearcher",
    "VectorSimilarityClient",
    "ScoreFusion",
    "ConversationContext",
    "FollowupExpander",
    "AssembledResult",
    "ResultAssembler",
    "MultiSourceOrchestrator",
    "build_default_orchestrator",
]

__version__ = "0.1.0"
