"""
Vector Similarity Client

Top-K passages by cosine similarity for a query embedding.

Primary path: the corpus's external ANN service, ``POST {url}/search`` with
``{"embedding": [...], "limit": n}`` answered by
``{"results": [{"<id field>": ..., "similarity": ...}, ...]}``. Any non-2xx
response, timeout or connection error means "unavailable".

Fallback path: exact cosine over a bounded sample of stored embeddings,
keeping a fixed-size top-K buffer that evicts its minimum.

After either path, hits are hydrated from the passages table and passages in
the requester's language get a multiplicative boost before re-sorting.
"""

import heapq
import time
import logging
from typing import Optional
from dataclasses import dataclass, field, replace

import numpy as np
import requests

from .config import CorpusConfig, VectorClientConfig
from .corpus_store import CorpusStore, row_to_candidate
from .errors import DependencyUnavailableError
from .metrics import get_metrics_collector
from .models import Candidate, RequestFilters

logger = logging.getLogger(__name__)


def cosine_similarity(a, b) -> float:
    """Cosine similarity; 0.0 when either vector has zero magnitude."""
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def decode_embedding(blob: bytes) -> np.ndarray:
    """Decode a little-endian float32 blob."""
    return np.frombuffer(blob, dtype="<f4")


@dataclass
class VectorHits:
    """Raw (id, similarity) hits and which path produced them."""
    hits: list = field(default_factory=list)
    path: str = "ann"
    elapsed_ms: float = 0.0


# =============================================================================
# ANN Service
# =============================================================================

class AnnServiceClient:
    """HTTP client for one corpus's nearest-neighbour service."""

    def __init__(self, base_url: str, id_field: str, config: Optional[VectorClientConfig] = None, session=None):
        self.base_url = base_url.rstrip("/")
        self.id_field = id_field
        self.config = config or VectorClientConfig()
        self.session = session or requests.Session()

    def search(self, embedding: list[float], limit: int) -> list[tuple[str, float]]:
        """
        Query the ANN service.

        Raises:
            DependencyUnavailableError: on timeout, connection failure, non-2xx
                status or a malformed body
        """
        try:
            response = self.session.post(
                f"{self.base_url}/search",
                json={"embedding": list(map(float, embedding)), "limit": limit},
                timeout=(self.config.connect_timeout, self.config.read_timeout),
            )
        except requests.RequestException as e:
            raise DependencyUnavailableError(f"ANN service {self.base_url} unreachable: {e}") from e

        if not response.ok:
            raise DependencyUnavailableError(
                f"ANN service {self.base_url} returned {response.status_code}"
            )

        try:
            data = response.json()
            results = data["results"]
            hits = [(str(r[self.id_field]), float(r["similarity"])) for r in results]
        except (ValueError, KeyError, TypeError) as e:
            raise DependencyUnavailableError(f"ANN service {self.base_url} sent a malformed body: {e}") from e

        search_ms = data.get("search_time_ms")
        if search_ms is not None:
            logger.info(f"ANN search on {self.base_url} took {float(search_ms):.1f}ms ({len(hits)} hits)")
        return hits


# =============================================================================
# Sampled Exact Scan
# =============================================================================

class SampledScanSearcher:
    """Exact cosine over a bounded random sample of stored embeddings."""

    def __init__(self, store: CorpusStore, config: Optional[VectorClientConfig] = None,
                 full_scan_when_small: bool = False, check_dimensions: bool = False):
        self.store = store
        self.config = config or VectorClientConfig()
        self.full_scan_when_small = full_scan_when_small
        self.check_dimensions = check_dimensions

    def search(self, embedding: list[float], limit: int) -> list[tuple[str, float]]:
        query = np.asarray(embedding, dtype=np.float32)
        rows = self.store.sample_embeddings(self.config.sample_size, self.full_scan_when_small)

        # Min-heap of (similarity, passage_id); the root is the current minimum
        top: list[tuple[float, str]] = []
        skipped = 0
        for passage_id, blob in rows:
            vector = decode_embedding(blob)
            if vector.shape[0] != query.shape[0]:
                if self.check_dimensions:
                    skipped += 1
                    continue
                raise DependencyUnavailableError(
                    f"Stored embedding {passage_id} has {vector.shape[0]} dims, query has {query.shape[0]}"
                )
            similarity = cosine_similarity(query, vector)
            if len(top) < limit:
                heapq.heappush(top, (similarity, passage_id))
            elif similarity > top[0][0]:
                heapq.heapreplace(top, (similarity, passage_id))

        if skipped:
            logger.warning(f"Sampled scan skipped {skipped} embeddings with mismatched dimensions")
        logger.info(f"Sampled scan over {len(rows)} embeddings kept {len(top)} hits")
        return [(pid, sim) for sim, pid in sorted(top, key=lambda item: (-item[0], item[1]))]


# =============================================================================
# Client
# =============================================================================

class VectorSimilarityClient:
    """
    ANN-first vector search for one corpus with a sampled-scan fallback.

    Usage:
        client = VectorSimilarityClient(corpus_config, store)
        candidates, path = client.search(embedding, limit=10, language_id=1)
    """

    def __init__(
        self,
        corpus: CorpusConfig,
        store: CorpusStore,
        config: Optional[VectorClientConfig] = None,
        ann: Optional[AnnServiceClient] = None,
        fallback: Optional[SampledScanSearcher] = None,
    ):
        self.corpus = corpus
        self.store = store
        self.config = config or VectorClientConfig()
        if ann is None and corpus.ann_url:
            ann = AnnServiceClient(corpus.ann_url, corpus.ann_id_field, self.config)
        self.ann = ann
        self.fallback = fallback or SampledScanSearcher(
            store,
            self.config,
            full_scan_when_small=corpus.full_scan_when_small,
            check_dimensions=corpus.check_dimensions,
        )

    def nearest(self, embedding: list[float], limit: int) -> VectorHits:
        """Raw hits from the ANN service, or from the sampled scan when it is unavailable."""
        started = time.perf_counter()
        collector = get_metrics_collector()
        if self.ann is not None:
            try:
                hits = self.ann.search(embedding, limit)
                collector.record_vector_path(self.corpus.name, "ann")
                return VectorHits(hits=hits, path="ann", elapsed_ms=(time.perf_counter() - started) * 1000)
            except DependencyUnavailableError as e:
                logger.warning(f"{self.corpus.name}: ANN unavailable, falling back to sampled scan: {e}")

        hits = self.fallback.search(embedding, limit)
        collector.record_vector_path(self.corpus.name, "sampled_scan")
        return VectorHits(hits=hits, path="sampled_scan", elapsed_ms=(time.perf_counter() - started) * 1000)

    def search(
        self,
        embedding: list[float],
        limit: int,
        language_id: Optional[int] = None,
        filters: Optional[RequestFilters] = None,
    ) -> tuple[list[Candidate], str]:
        """
        Hydrated, language-boosted candidates sorted by descending similarity.

        Args:
            embedding: Query embedding
            limit: Number of final candidates wanted; the index is asked for
                ``limit * candidate_multiplier`` hits to leave room for fusion
            language_id: Requester's language; matching passages are boosted
            filters: Request filters, checked in Python after hydration

        Returns:
            (candidates, path) where path is "ann" or "sampled_scan"
        """
        result = self.nearest(embedding, limit * self.config.candidate_multiplier)
        hits = result.hits
        if self.corpus.min_similarity is not None:
            hits = [(pid, sim) for pid, sim in hits if sim >= self.corpus.min_similarity]
        if not hits:
            return [], result.path

        rows_by_id = {str(row["passage_id"]): row for row in self.store.fetch_passages([pid for pid, _ in hits])}
        candidates = []
        for passage_id, similarity in hits:
            row = rows_by_id.get(passage_id)
            if row is None:
                continue
            candidate = row_to_candidate(row, self.corpus.source_kind, similarity, origin="vector")
            if filters is not None and not filters.accepts(candidate):
                continue
            candidates.append(candidate)

        candidates = apply_language_boost(candidates, language_id, self.config.language_boost)
        logger.info(
            f"{self.corpus.name}: vector path={result.path} hits={len(hits)} "
            f"candidates={len(candidates)} in {result.elapsed_ms:.0f}ms"
        )
        return candidates, result.path


def apply_language_boost(candidates: list[Candidate], language_id: Optional[int], boost: float) -> list[Candidate]:
    """Multiply same-language similarities by ``boost`` and re-sort (ties by passage id)."""
    boosted = []
    for candidate in candidates:
        if language_id is not None and candidate.language_id == language_id:
            candidate = replace(candidate, similarity=candidate.similarity * boost)
        boosted.append(candidate)
    return sorted(boosted, key=lambda c: (-c.similarity, c.passage_id))
