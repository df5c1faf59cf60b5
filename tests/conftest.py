"""
Shared fixtures and test utilities for Legal Retrieval tests.

Provides an in-memory corpus store, a deterministic embedding service and
candidate/row factories so that every test runs without API keys, a
database or network access.
"""

import sys
import hashlib
from pathlib import Path

import numpy as np
import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

EMPLOYMENT_ACT = "1978070303"
COMPANIES_CODE = "2019A40586"


# ---------------------------------------------------------------------------
# Row and candidate factories
# ---------------------------------------------------------------------------

def make_row(passage_id, document_id="2000000001", title="", body="", **overrides):
    """A passages-table row as the store returns it."""
    row = {
        "passage_id": passage_id,
        "document_id": document_id,
        "language_id": 1,
        "title": title,
        "heading": "",
        "body": body,
        "tags": "",
        "url": None,
        "document_type": "wet",
        "document_date": None,
        "is_abolished": False,
        "modification_count": 0,
        "implementing_decree_count": 0,
        "has_abolitions": False,
        "metadata": {},
    }
    row.update(overrides)
    return row


def make_candidate(passage_id, similarity=0.7, **overrides):
    """A legislation Candidate with neutral defaults."""
    from execution.legal_retrieval.models import Candidate, SourceKind
    fields = {
        "passage_id": passage_id,
        "document_id": "2000000001",
        "source_kind": SourceKind.LEGISLATION,
        "text": "",
        "similarity": similarity,
        "title": "Wet betreffende de arbeidsovereenkomsten in de sector",
    }
    fields.update(overrides)
    return Candidate(**fields)


@pytest.fixture
def candidate_factory():
    return make_candidate


@pytest.fixture
def row_factory():
    return make_row


# ---------------------------------------------------------------------------
# In-memory corpus store (same interface as CorpusStore)
# ---------------------------------------------------------------------------

class FakeCorpusStore:
    """
    In-memory stand-in for CorpusStore.

    ``ngram_candidates`` mimics a shingle index: a row qualifies when, for
    every group, all grams of one variant occur somewhere in its searchable
    text, which yields the same kind of false positives the real index does.
    The limit applies after the AND across groups, as in SQL.
    """

    def __init__(self, rows=None, source_kind=None, table_prefix="legislation",
                 ngram_index=True, fulltext=False, embeddings=None):
        from execution.legal_retrieval.models import SourceKind
        self.rows = list(rows or [])
        self.source_kind = source_kind or SourceKind.LEGISLATION
        self.passages_table = f"{table_prefix}_passages"
        self.ngrams_table = f"{table_prefix}_passage_ngrams"
        self.embeddings_table = f"{table_prefix}_embeddings"
        self.ngram_index = ngram_index
        self.fulltext = fulltext
        self.embeddings = dict(embeddings or {})
        self.calls = []

    # --- helpers -----------------------------------------------------------

    @staticmethod
    def _texts(row, fields=("title", "tags", "body")):
        return [(row.get(name) or "").lower() for name in fields]

    @staticmethod
    def _passes(row, filters):
        if filters is None:
            return True
        if filters.languages and row["language_id"] not in filters.language_ids:
            return False
        if filters.hide_abolished and row.get("is_abolished"):
            return False
        if filters.document_types and row.get("document_type") not in filters.document_types:
            return False
        doc_date = row.get("document_date")
        if doc_date is not None:
            if filters.date_from and doc_date < filters.date_from:
                return False
            if filters.date_to and doc_date > filters.date_to:
                return False
        return True

    def _select(self, predicate, filters, limit):
        rows = [r for r in self.rows if predicate(r) and self._passes(r, filters)]
        return sorted(rows, key=lambda r: r["passage_id"])[:limit]

    # --- CorpusStore interface ---------------------------------------------

    def fetch_passages(self, passage_ids):
        self.calls.append(("fetch_passages", tuple(passage_ids)))
        wanted = set(passage_ids)
        return [dict(r) for r in self.rows if r["passage_id"] in wanted]

    def fetch_document_passages(self, document_id, language_id, limit=100):
        self.calls.append(("fetch_document_passages", document_id))
        rows = [
            r for r in self.rows
            if r["document_id"] == document_id and r["language_id"] == language_id
        ]
        return sorted(rows, key=lambda r: r["passage_id"])[:limit]

    def ngram_index_populated(self):
        self.calls.append(("ngram_index_check",))
        return self.ngram_index

    def fulltext_available(self):
        self.calls.append(("fulltext_index_check",))
        return self.fulltext

    def ngram_candidates(self, gram_groups, filters, limit):
        self.calls.append(("ngram_candidates", tuple(tuple(tuple(g) for g in v) for v in gram_groups)))

        def holds(row, grams):
            texts = self._texts(row)
            return all(any(g in t for t in texts) for g in grams)

        return self._select(
            lambda r: all(any(holds(r, grams) for grams in variants if grams) for variants in gram_groups),
            filters, limit,
        )

    def fulltext_search(self, tsquery, fts_config, filters, limit):
        self.calls.append(("fulltext_search", tsquery, fts_config))
        return self._select(lambda r: True, filters, limit)

    def literal_search(self, groups, filters, limit, fields=("title", "tags", "body")):
        self.calls.append(("literal_search", tuple(tuple(g) for g in groups), tuple(fields)))

        def matches(row):
            texts = self._texts(row, fields)
            return all(any(v.lower() in t for v in group for t in texts) for group in groups)

        return self._select(matches, filters, limit)

    def phrase_search(self, phrase, filters, limit):
        self.calls.append(("phrase_search", phrase))
        return self._select(lambda r: any(phrase in t for t in self._texts(r)), filters, limit)

    def search_document_id(self, document_id, filters, limit):
        self.calls.append(("search_document_id", document_id))
        return self._select(lambda r: r["document_id"] == document_id, filters, limit)

    def sample_embeddings(self, sample_size, full_scan_when_small=False):
        self.calls.append(("sample_embeddings", sample_size, full_scan_when_small))
        items = sorted(self.embeddings.items())[:sample_size]
        return [(pid, np.asarray(vec, dtype="<f4").tobytes()) for pid, vec in items]

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def fake_store_class():
    return FakeCorpusStore


# ---------------------------------------------------------------------------
# Deterministic embedding service
# ---------------------------------------------------------------------------

class FakeEmbeddingService:
    """Deterministic embeddings derived from a hash of the text."""

    def __init__(self, dimensions=8, error=None):
        self.dimensions = dimensions
        self.error = error
        self.calls = []

    def generate_embedding(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        return [((seed + i) % 97) / 97.0 + 0.01 for i in range(self.dimensions)]

    embed_query = generate_embedding


@pytest.fixture
def fake_embedding_service():
    return FakeEmbeddingService()


# ---------------------------------------------------------------------------
# Sample corpus
# ---------------------------------------------------------------------------

@pytest.fixture
def employment_rows():
    """Passages of the employment contracts act plus unrelated sector rules."""
    return [
        make_row("a-0001", EMPLOYMENT_ACT, "Wet betreffende de arbeidsovereenkomsten",
                 "De opzegtermijn voor een bediende wordt berekend volgens de anciënniteit.",
                 heading="Art. 37/2"),
        make_row("a-0002", EMPLOYMENT_ACT, "Wet betreffende de arbeidsovereenkomsten",
                 "De arbeidsovereenkomst voor onbepaalde tijd kan worden beëindigd door opzegging.",
                 heading="Art. 37"),
        make_row("a-0003", EMPLOYMENT_ACT, "Wet betreffende de arbeidsovereenkomsten",
                 "Bepalingen over de gewaarborgde loon tijdens ziekte.",
                 heading="Art. 52"),
        make_row("s-0001", "2015120101",
                 "Collectieve arbeidsovereenkomst paritair comité 124 bouw",
                 "Opzegtermijnen in de bouwsector volgens PC 124."),
        make_row("s-0002", "2016010101",
                 "Collectieve arbeidsovereenkomst paritair comité 302 horeca",
                 "Opzegging van werklieden in de horeca."),
    ]


# ---------------------------------------------------------------------------
# Singleton resets between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_metrics_singleton():
    """Reset the MetricsCollector singleton between tests."""
    import execution.legal_retrieval.metrics as metrics_mod
    metrics_mod.MetricsCollector._instance = None
    metrics_mod._collector = None
    yield
    metrics_mod.MetricsCollector._instance = None
    metrics_mod._collector = None
