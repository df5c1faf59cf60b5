"""Tests for QueryLanguageConfig and language configuration."""

import pytest

from execution.legal_retrieval.language_config import (
    QueryLanguageConfig,
    SUPPORTED_LANGUAGES,
    VALID_FTS_CONFIGS,
)


class TestQueryLanguageConfig:
    """Tests for the QueryLanguageConfig dataclass and factory."""

    def test_dutch_defaults(self):
        config = QueryLanguageConfig.for_language("nl")
        assert config.language == "nl"
        assert config.language_id == 1
        assert config.fts_language == "dutch"

    def test_french_defaults(self):
        config = QueryLanguageConfig.for_language("fr")
        assert config.language == "fr"
        assert config.language_id == 2
        assert config.fts_language == "french"

    def test_unsupported_language_falls_back_to_dutch(self):
        config = QueryLanguageConfig.for_language("de")
        assert config.language == "nl"
        assert config.fts_language == "dutch"

    def test_validate_fts_language_valid(self):
        assert QueryLanguageConfig.for_language("fr").validate_fts_language() is True

    def test_validate_fts_language_invalid(self):
        config = QueryLanguageConfig(fts_language="english; DROP TABLE")
        assert config.validate_fts_language() is False


class TestSupportedLanguages:

    @pytest.mark.parametrize("code,fts", [("nl", "dutch"), ("fr", "french")])
    def test_supported(self, code, fts):
        assert SUPPORTED_LANGUAGES[code]["fts_config"] == fts

    def test_valid_fts_configs_frozenset(self):
        assert isinstance(VALID_FTS_CONFIGS, frozenset)
        assert VALID_FTS_CONFIGS == {"dutch", "french"}
