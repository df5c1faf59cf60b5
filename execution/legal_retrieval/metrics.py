"""
Metrics Collection for Legal Retrieval

Tracks query latency, which lexical strategy and vector path served each
corpus, and how each corpus worker ended. Counters are updated from the
concurrent corpus workers, so every mutation happens under one lock.
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from collections import defaultdict
from typing import Optional
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


@dataclass
class QueryMetrics:
    """Metrics for a single question."""
    query_id: str
    query_text: str
    start_time: float
    end_time: float = 0
    latency_ms: float = 0
    results_count: int = 0
    no_answer: bool = False
    embedding_failed: bool = False
    error: Optional[str] = None


@dataclass
class SystemMetrics:
    """Aggregated retrieval metrics."""
    total_queries: int = 0
    successful_queries: int = 0
    failed_queries: int = 0
    no_answer_queries: int = 0
    embedding_failures: int = 0

    # Latency tracking (in ms)
    total_latency_ms: float = 0
    min_latency_ms: float = float('inf')
    max_latency_ms: float = 0
    latencies: list = field(default_factory=list)

    # corpus -> strategy -> count
    strategies: dict = field(default_factory=lambda: defaultdict(lambda: defaultdict(int)))
    strategy_fallbacks: int = 0

    # corpus -> path ("ann" / "sampled_scan") -> count
    vector_paths: dict = field(default_factory=lambda: defaultdict(lambda: defaultdict(int)))

    # corpus -> outcome ("ok", "empty", "failed", "timed_out") -> count
    worker_outcomes: dict = field(default_factory=lambda: defaultdict(lambda: defaultdict(int)))

    errors_by_type: dict = field(default_factory=lambda: defaultdict(int))

    @property
    def avg_latency_ms(self) -> float:
        """Calculate average query latency."""
        if self.total_queries == 0:
            return 0
        return self.total_latency_ms / self.total_queries

    @property
    def p95_latency_ms(self) -> float:
        """Calculate 95th percentile latency."""
        if not self.latencies:
            return 0
        sorted_latencies = sorted(self.latencies)
        index = int(len(sorted_latencies) * 0.95)
        return sorted_latencies[min(index, len(sorted_latencies) - 1)]

    @property
    def no_answer_rate(self) -> float:
        if self.total_queries == 0:
            return 0
        return self.no_answer_queries / self.total_queries

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "queries": {
                "total": self.total_queries,
                "successful": self.successful_queries,
                "failed": self.failed_queries,
                "no_answer": self.no_answer_queries,
                "no_answer_rate": f"{self.no_answer_rate:.2%}",
                "embedding_failures": self.embedding_failures,
            },
            "latency_ms": {
                "avg": round(self.avg_latency_ms, 2),
                "min": round(self.min_latency_ms, 2) if self.min_latency_ms != float('inf') else 0,
                "max": round(self.max_latency_ms, 2),
                "p95": round(self.p95_latency_ms, 2),
            },
            "lexical": {
                "strategies": {corpus: dict(counts) for corpus, counts in self.strategies.items()},
                "fallbacks": self.strategy_fallbacks,
            },
            "vector_paths": {corpus: dict(counts) for corpus, counts in self.vector_paths.items()},
            "workers": {corpus: dict(counts) for corpus, counts in self.worker_outcomes.items()},
            "errors": dict(self.errors_by_type),
        }


class MetricsCollector:
    """
    Collects and aggregates retrieval metrics.

    Usage:
        collector = get_metrics_collector()

        with collector.track_query(question) as tracker:
            result = orchestrator.retrieve(request)
            tracker.set_results(len(result.candidates), no_answer=result.no_answer)

        summary = collector.get_metrics_dict()
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern for global metrics collection."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.metrics = SystemMetrics()
        self._query_history: list[QueryMetrics] = []
        self._max_history = 1000
        self._start_time = datetime.now()
        self._lock = threading.Lock()
        self._initialized = True

    def reset(self):
        """Reset all metrics (for testing)."""
        with self._lock:
            self.metrics = SystemMetrics()
            self._query_history = []
            self._start_time = datetime.now()

    class QueryTracker:
        """Context manager for tracking one question end to end."""

        def __init__(self, collector: 'MetricsCollector', query_text: str):
            self.collector = collector
            self.query = QueryMetrics(
                query_id=f"q_{int(time.time() * 1000)}",
                query_text=query_text[:200],
                start_time=time.time(),
            )

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            self.query.end_time = time.time()
            self.query.latency_ms = (self.query.end_time - self.query.start_time) * 1000

            if exc_type:
                self.query.error = str(exc_val)
                self.collector._record_error(exc_type.__name__)

            self.collector._record_query(self.query)
            return False  # Don't suppress exceptions

        def set_results(self, count: int, no_answer: bool = False, embedding_failed: bool = False):
            """Set query result metadata."""
            self.query.results_count = count
            self.query.no_answer = no_answer
            self.query.embedding_failed = embedding_failed

    def track_query(self, query_text: str) -> QueryTracker:
        return self.QueryTracker(self, query_text)

    def _record_query(self, query: QueryMetrics):
        with self._lock:
            self.metrics.total_queries += 1
            if query.error:
                self.metrics.failed_queries += 1
            else:
                self.metrics.successful_queries += 1
            if query.no_answer:
                self.metrics.no_answer_queries += 1
            if query.embedding_failed:
                self.metrics.embedding_failures += 1

            self.metrics.total_latency_ms += query.latency_ms
            self.metrics.min_latency_ms = min(self.metrics.min_latency_ms, query.latency_ms)
            self.metrics.max_latency_ms = max(self.metrics.max_latency_ms, query.latency_ms)
            self.metrics.latencies.append(query.latency_ms)
            if len(self.metrics.latencies) > self._max_history:
                self.metrics.latencies = self.metrics.latencies[-self._max_history:]

            self._query_history.append(query)
            if len(self._query_history) > self._max_history:
                self._query_history = self._query_history[-self._max_history:]

    def _record_error(self, error_type: str):
        with self._lock:
            self.metrics.errors_by_type[error_type] += 1

    def record_strategy(self, corpus: str, strategy: str, reason: str, fallback: bool = False):
        """Count a lexical strategy decision ("selected", "unavailable", "failed")."""
        with self._lock:
            self.metrics.strategies[corpus][f"{strategy}:{reason}"] += 1
            if fallback:
                self.metrics.strategy_fallbacks += 1

    def record_vector_path(self, corpus: str, path: str):
        with self._lock:
            self.metrics.vector_paths[corpus][path] += 1

    def record_worker_outcome(self, corpus: str, outcome: str):
        with self._lock:
            self.metrics.worker_outcomes[corpus][outcome] += 1

    def get_metrics(self) -> SystemMetrics:
        return self.metrics

    def get_metrics_dict(self) -> dict:
        with self._lock:
            return self.metrics.to_dict()

    def get_recent_queries(self, limit: int = 10) -> list[QueryMetrics]:
        return self._query_history[-limit:]

    def get_uptime(self) -> timedelta:
        return datetime.now() - self._start_time


# Global metrics collector instance
_collector = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector
