"""
Corpus Store on PostgreSQL

Read-only access to the passage, n-gram and embedding tables of one corpus.
Every corpus lives in its own set of tables named from a validated prefix:

    {prefix}_passages        one row per retrievable passage (+ tsvector column)
    {prefix}_passage_ngrams  optional 3-character shingles per passage
    {prefix}_embeddings      little-endian float32 vectors stored as bytea

Connections come from a shared psycopg2 ThreadedConnectionPool so that the
concurrent corpus workers never share a connection.
"""

import os
import re
import random
import logging
from typing import Optional
from dataclasses import dataclass

from .models import Candidate, RequestFilters, SourceKind
from .language_config import VALID_FTS_CONFIGS
from .errors import DependencyUnavailableError

try:
    import psycopg2
    import psycopg2.extras
    import psycopg2.pool
except ImportError:
    psycopg2 = None  # Will be caught at connect() time

# Errors that mean "this storage path cannot serve the call"
if psycopg2 is not None:
    DATABASE_ERRORS = (psycopg2.Error, DependencyUnavailableError)
else:
    DATABASE_ERRORS = (DependencyUnavailableError,)

logger = logging.getLogger(__name__)

TABLE_PREFIX_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

PASSAGE_COLUMNS = (
    "passage_id, document_id, language_id, title, heading, body, tags, url, "
    "document_type, document_date, is_abolished, modification_count, "
    "implementing_decree_count, has_abolitions, metadata"
)

DEFAULT_SEARCH_FIELDS = ("title", "tags", "body")


@dataclass
class DatabaseConfig:
    """Connection settings for the shared pool."""
    connection_string: Optional[str] = None
    pool_min_connections: int = 2
    pool_max_connections: int = 20
    statement_timeout_ms: int = 10000


class PostgresDatabase:
    """
    Pooled PostgreSQL access shared by every corpus store.

    Features:
    - ThreadedConnectionPool (safe across worker threads)
    - Per-connection statement timeout
    - One reconnect-and-retry on stale connections
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self._pool = None
        self._connection_string = (
            self.config.connection_string or
            os.getenv("POSTGRES_URL") or
            os.getenv("DATABASE_URL") or
            "postgresql://localhost:5432/legal_retrieval"
        )

    def connect(self) -> None:
        """Create the connection pool."""
        if psycopg2 is None:
            raise ImportError(
                "psycopg2 not installed. Run: pip install psycopg2-binary"
            )
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=self.config.pool_min_connections,
                maxconn=self.config.pool_max_connections,
                dsn=self._connection_string,
                cursor_factory=psycopg2.extras.RealDictCursor,
                options=f"-c statement_timeout={self.config.statement_timeout_ms}",
            )
            logger.info(
                f"Connection pool initialized (min={self.config.pool_min_connections}, "
                f"max={self.config.pool_max_connections})"
            )
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            raise

    def _ensure_connection(self):
        if not self._pool:
            self.connect()
        return self._pool.getconn()

    def _release_connection(self, conn) -> None:
        if self._pool and conn:
            self._pool.putconn(conn)

    def _safe_rollback(self, conn) -> None:
        """Rollback a connection, ignoring errors if the connection is dead."""
        try:
            conn.rollback()
        except (psycopg2.InterfaceError, psycopg2.OperationalError):
            pass

    def _execute_with_retry(self, operation, label="db_operation"):
        """Execute a DB operation with one retry on stale connection.

        Args:
            operation: Callable(conn) that performs the DB work and returns a result.
            label: Human-readable name for logging.

        Returns:
            Whatever ``operation`` returns.
        """
        for attempt in range(2):
            conn = self._ensure_connection()
            try:
                result = operation(conn)
                conn.rollback()  # read-only; end the implicit transaction
                self._release_connection(conn)
                return result
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                self._safe_rollback(conn)
                self._pool.putconn(conn, close=True)
                if attempt == 0:
                    logger.warning(f"{label}: stale conn, reconnecting: {e}")
                    continue
                raise
            except Exception:
                self._safe_rollback(conn)
                self._release_connection(conn)
                raise

    def query(self, sql: str, params=None, label: str = "query") -> list[dict]:
        """Run a SELECT and return all rows as dicts."""
        def _op(conn):
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [dict(row) for row in cur.fetchall()]
        return self._execute_with_retry(_op, label=label)

    def close(self) -> None:
        """Close all pooled connections."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            logger.info("Connection pool closed")


class CorpusStore:
    """Queries against the tables of a single corpus."""

    def __init__(self, database: PostgresDatabase, table_prefix: str, source_kind: SourceKind):
        if not TABLE_PREFIX_PATTERN.match(table_prefix):
            raise ValueError(f"Invalid table prefix: {table_prefix!r}")
        self.database = database
        self.source_kind = source_kind
        self.passages_table = f"{table_prefix}_passages"
        self.ngrams_table = f"{table_prefix}_passage_ngrams"
        self.embeddings_table = f"{table_prefix}_embeddings"

    # =========================================================================
    # Record Fetches
    # =========================================================================

    def fetch_passages(self, passage_ids: list[str]) -> list[dict]:
        """Fetch passages by id (order not guaranteed)."""
        if not passage_ids:
            return []
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE passage_id = ANY(%s)"
        )
        return self.database.query(sql, (list(passage_ids),), label="fetch_passages")

    def fetch_document_passages(self, document_id: str, language_id: int, limit: int = 100) -> list[dict]:
        """Fetch up to ``limit`` passages of one parent document in one language."""
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE document_id = %s AND language_id = %s "
            f"ORDER BY passage_id LIMIT %s"
        )
        return self.database.query(sql, (document_id, language_id, limit), label="fetch_document_passages")

    # =========================================================================
    # Auxiliary Index Checks
    # =========================================================================

    def ngram_index_populated(self) -> bool:
        """True when the n-gram table exists and holds at least one row."""
        exists = self.database.query(
            "SELECT to_regclass(%s) IS NOT NULL AS present",
            (self.ngrams_table,),
            label="ngram_index_check",
        )
        if not exists or not exists[0]["present"]:
            return False
        rows = self.database.query(
            f"SELECT 1 AS present FROM {self.ngrams_table} LIMIT 1",
            label="ngram_index_check",
        )
        return bool(rows)

    def fulltext_available(self) -> bool:
        """True when the passages table carries a search_vector column."""
        rows = self.database.query(
            "SELECT 1 AS present FROM information_schema.columns "
            "WHERE table_name = %s AND column_name = 'search_vector'",
            (self.passages_table,),
            label="fulltext_index_check",
        )
        return bool(rows)

    # =========================================================================
    # Lexical Queries
    # =========================================================================

    def ngram_candidates(self, gram_groups: list[list[list[str]]], filters: RequestFilters, limit: int) -> list[dict]:
        """
        Passages that, for every group, hold all shingles of one of its variants.

        ``gram_groups`` has one entry per query token; each entry lists the
        shingle set of every accepted variant of that token. The AND across
        groups happens in SQL so the LIMIT applies to the intersection.
        Co-occurrence of shingles does not imply the term occurs, so callers
        must verify the returned rows.
        """
        clauses = []
        gram_params = []
        for variants in gram_groups:
            alternatives = []
            for grams in variants:
                if not grams:
                    continue
                alternatives.append(
                    f"passage_id IN ("
                    f"SELECT passage_id FROM {self.ngrams_table} WHERE gram = ANY(%s) "
                    f"GROUP BY passage_id HAVING COUNT(DISTINCT gram) >= %s)"
                )
                gram_params.extend([list(grams), len(set(grams))])
            if not alternatives:
                return []
            clauses.append("(" + " OR ".join(alternatives) + ")")
        if not clauses:
            return []
        where, params = build_filter_clause(filters)
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE {' AND '.join(clauses)}{where} ORDER BY passage_id LIMIT %s"
        )
        return self.database.query(sql, gram_params + params + [limit], label="ngram_candidates")

    def fulltext_search(self, tsquery: str, fts_config: str, filters: RequestFilters, limit: int) -> list[dict]:
        """Full-text search with a prepared ``to_tsquery`` expression."""
        if fts_config not in VALID_FTS_CONFIGS:
            raise ValueError(f"Invalid FTS config: {fts_config!r}")
        where, params = build_filter_clause(filters)
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE search_vector @@ to_tsquery('{fts_config}', %s){where} "
            f"ORDER BY ts_rank(search_vector, to_tsquery('{fts_config}', %s)) DESC, passage_id "
            f"LIMIT %s"
        )
        return self.database.query(sql, [tsquery] + params + [tsquery, limit], label="fulltext_search")

    def literal_search(
        self,
        groups: list[tuple],
        filters: RequestFilters,
        limit: int,
        fields: tuple = DEFAULT_SEARCH_FIELDS,
    ) -> list[dict]:
        """
        Substring scan: every group must match, any variant of a group may
        match, in any of ``fields``.
        """
        groups = [tuple(g) for g in groups if g]
        if not groups:
            return []
        for field_name in fields:
            if field_name not in DEFAULT_SEARCH_FIELDS:
                raise ValueError(f"Unsupported search field: {field_name!r}")

        clauses = []
        params = []
        for variants in groups:
            ors = []
            for variant in variants:
                pattern = f"%{escape_like(variant.lower())}%"
                for field_name in fields:
                    ors.append(f"LOWER(COALESCE({field_name}, '')) LIKE %s")
                    params.append(pattern)
            clauses.append("(" + " OR ".join(ors) + ")")

        where, filter_params = build_filter_clause(filters)
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE {' AND '.join(clauses)}{where} ORDER BY passage_id LIMIT %s"
        )
        return self.database.query(sql, params + filter_params + [limit], label="literal_search")

    def phrase_search(self, phrase: str, filters: RequestFilters, limit: int) -> list[dict]:
        """The whole phrase must appear contiguously in one field."""
        return self.literal_search([(phrase,)], filters, limit)

    def search_document_id(self, document_id: str, filters: RequestFilters, limit: int) -> list[dict]:
        """Passages of the document with this identifier (e.g. a 10-digit NUMAC)."""
        where, params = build_filter_clause(filters)
        sql = (
            f"SELECT {PASSAGE_COLUMNS} FROM {self.passages_table} "
            f"WHERE document_id = %s{where} ORDER BY passage_id LIMIT %s"
        )
        return self.database.query(sql, [document_id] + params + [limit], label="search_document_id")

    # =========================================================================
    # Embedding Sample
    # =========================================================================

    def sample_embeddings(self, sample_size: int, full_scan_when_small: bool = False) -> list[tuple[str, bytes]]:
        """
        A bounded sample of (passage_id, embedding blob) rows.

        Reads a contiguous window at a random offset; when the table is known
        to be smaller than the sample and ``full_scan_when_small`` is set, the
        whole table is returned instead.
        """
        estimate_rows = self.database.query(
            "SELECT reltuples::bigint AS estimate FROM pg_class WHERE relname = %s",
            (self.embeddings_table,),
            label="embedding_estimate",
        )
        if not estimate_rows:
            raise DependencyUnavailableError(f"{self.embeddings_table} does not exist")
        total = max(int(estimate_rows[0]["estimate"] or 0), 0)

        if full_scan_when_small and total <= sample_size:
            sql = f"SELECT passage_id, embedding FROM {self.embeddings_table}"
            params = None
        else:
            offset = random.randint(0, max(total - sample_size, 0))
            sql = (
                f"SELECT passage_id, embedding FROM {self.embeddings_table} "
                f"OFFSET %s LIMIT %s"
            )
            params = (offset, sample_size)

        rows = self.database.query(sql, params, label="sample_embeddings")
        return [(row["passage_id"], bytes(row["embedding"])) for row in rows if row["embedding"] is not None]


# =============================================================================
# Helpers
# =============================================================================

def escape_like(value: str) -> str:
    """Escape LIKE wildcards (PostgreSQL default escape character is backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter_clause(filters: Optional[RequestFilters]) -> tuple[str, list]:
    """SQL fragment (starting with " AND") plus params for the request filters."""
    if filters is None:
        return "", []
    clauses = []
    params = []
    if filters.date_from:
        clauses.append("document_date >= %s")
        params.append(filters.date_from)
    if filters.date_to:
        clauses.append("document_date <= %s")
        params.append(filters.date_to)
    if filters.document_types:
        clauses.append("document_type = ANY(%s)")
        params.append(list(filters.document_types))
    if filters.languages:
        clauses.append("language_id = ANY(%s)")
        params.append(filters.language_ids)
    if filters.hide_abolished:
        clauses.append("NOT COALESCE(is_abolished, FALSE)")
    if not clauses:
        return "", []
    return " AND " + " AND ".join(clauses), params


def row_to_candidate(
    row: dict,
    source_kind: SourceKind,
    similarity: float,
    origin: str,
    **flags,
) -> Candidate:
    """Turn a passages-table row into a Candidate."""
    metadata = dict(row.get("metadata") or {})
    if row.get("document_type") is not None:
        metadata["document_type"] = row["document_type"]
    if row.get("document_date") is not None:
        metadata["document_date"] = row["document_date"]
    if row.get("tags"):
        metadata["tags"] = row["tags"]
    return Candidate(
        passage_id=str(row["passage_id"]),
        document_id=str(row.get("document_id") or ""),
        source_kind=source_kind,
        text=row.get("body") or "",
        similarity=float(similarity),
        language_id=int(row.get("language_id") or 1),
        title=row.get("title") or "",
        heading=row.get("heading") or "",
        url=row.get("url"),
        is_abolished=bool(row.get("is_abolished")),
        modification_count=int(row.get("modification_count") or 0),
        implementing_decree_count=int(row.get("implementing_decree_count") or 0),
        has_abolitions=bool(row.get("has_abolitions")),
        origin=origin,
        metadata=metadata,
        **flags,
    )
