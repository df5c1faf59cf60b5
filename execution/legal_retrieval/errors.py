"""Exception types raised by the retrieval engine."""


class RetrievalError(Exception):
    """Base class for retrieval errors."""


class QueryValidationError(RetrievalError):
    """The query was rejected before any retrieval was attempted."""


class EmbeddingRateLimitError(RetrievalError):
    """The embedding provider asked us to slow down (retryable)."""


class EmbeddingTimeoutError(RetrievalError):
    """Embedding generation did not finish within its retry budget."""


class DependencyUnavailableError(RetrievalError):
    """An optional dependency (index, ANN service) cannot serve this call."""


class CandidateSetTruncatedError(DependencyUnavailableError):
    """An index hit its candidate cap before enough rows survived verification."""
