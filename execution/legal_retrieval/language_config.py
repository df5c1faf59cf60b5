"""
Language Configuration for Bilingual Legal Retrieval

Belgian federal legislation is published in Dutch and French. Each query
language maps to a stored language id and a PostgreSQL full-text config.
"""

from dataclasses import dataclass


# Supported languages with their PostgreSQL FTS config names and passage language ids
SUPPORTED_LANGUAGES = {
    "nl": {
        "name": "Nederlands",
        "fts_config": "dutch",
        "language_id": 1,
    },
    "fr": {
        "name": "Français",
        "fts_config": "french",
        "language_id": 2,
    },
}

# Whitelist of valid FTS language configs (for SQL injection prevention)
VALID_FTS_CONFIGS = frozenset(lang["fts_config"] for lang in SUPPORTED_LANGUAGES.values())


@dataclass
class QueryLanguageConfig:
    """Per-query language settings."""
    language: str = "nl"
    language_id: int = 1
    fts_language: str = "dutch"

    @classmethod
    def for_language(cls, language: str) -> "QueryLanguageConfig":
        """
        Factory method returning defaults for a given language.

        Args:
            language: ISO 639-1 code ("nl" or "fr")

        Returns:
            QueryLanguageConfig with appropriate defaults. Unknown codes read as Dutch.
        """
        if language not in SUPPORTED_LANGUAGES:
            language = "nl"
        settings = SUPPORTED_LANGUAGES[language]
        return cls(
            language=language,
            language_id=settings["language_id"],
            fts_language=settings["fts_config"],
        )

    def validate_fts_language(self) -> bool:
        """Check that fts_language is in the whitelist."""
        return self.fts_language in VALID_FTS_CONFIGS
