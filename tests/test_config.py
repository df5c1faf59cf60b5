"""
Tests for execution/legal_retrieval/config.py

Covers: defaults, default corpora, RetrievalSettings.from_env and lookups.
"""

import pytest


class TestDefaults:

    def test_fusion_constants(self):
        from execution.legal_retrieval.config import FusionConfig
        cfg = FusionConfig()
        assert cfg.foundational_boost == 2.0
        assert cfg.sector_agreement_penalty == 0.6
        assert cfg.similarity_floor == 0.65
        assert cfg.floor_count == 5
        assert cfg.fallback_top_n == 10
        assert cfg.max_results == 15

    def test_default_corpora(self):
        from execution.legal_retrieval.config import default_corpora
        corpora = {c.name: c for c in default_corpora()}
        assert list(corpora) == ["legislation", "jurisprudence", "parliamentary", "tax"]
        assert corpora["legislation"].lexical_enabled
        assert corpora["legislation"].authority_injection
        assert corpora["legislation"].context_injection
        assert not corpora["jurisprudence"].lexical_enabled
        assert corpora["jurisprudence"].min_similarity == 0.40
        assert corpora["parliamentary"].full_scan_when_small
        assert corpora["tax"].per_corpus_limit == 3


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        from execution.legal_retrieval.config import RetrievalSettings
        monkeypatch.setenv("POSTGRES_URL", "postgresql://localhost/legal")
        monkeypatch.setenv("EMBEDDING_PROVIDER", "voyage")
        monkeypatch.setenv("WORKER_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("EMBEDDING_SAMPLE_SIZE", "1000")
        monkeypatch.setenv("TAX_ANN_URL", "http://ann:9000")

        settings = RetrievalSettings.from_env()
        assert settings.database_url == "postgresql://localhost/legal"
        assert settings.embedding_provider == "voyage"
        assert settings.worker_timeout == 12.5
        assert settings.vector.sample_size == 1000
        assert settings.corpus("tax").ann_url == "http://ann:9000"

    def test_invalid_numbers_keep_defaults(self, monkeypatch):
        from execution.legal_retrieval.config import RetrievalSettings
        monkeypatch.setenv("WORKER_TIMEOUT_SECONDS", "soon")
        monkeypatch.setenv("MAX_QUESTION_LENGTH", "long")
        settings = RetrievalSettings.from_env()
        assert settings.worker_timeout == 30.0
        assert settings.max_question_length == 500

    def test_database_url_fallback(self, monkeypatch):
        from execution.legal_retrieval.config import RetrievalSettings
        monkeypatch.delenv("POSTGRES_URL", raising=False)
        monkeypatch.setenv("DATABASE_URL", "postgresql://fallback/legal")
        assert RetrievalSettings.from_env().database_url == "postgresql://fallback/legal"


class TestLookups:

    def test_unknown_corpus(self):
        from execution.legal_retrieval.config import RetrievalSettings
        with pytest.raises(KeyError, match="regional"):
            RetrievalSettings().corpus("regional")

    def test_with_overrides(self):
        from execution.legal_retrieval.config import RetrievalSettings
        settings = RetrievalSettings().with_overrides(worker_timeout=1.0)
        assert settings.worker_timeout == 1.0
        assert RetrievalSettings().worker_timeout == 30.0
