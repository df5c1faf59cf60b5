"""
Query Tokenizer and Bilingual Synonym Expander

Turns a raw question into normalized search tokens, expands each token with
its cross-language legal equivalents, and provides the helpers the lexical
and keyword strategies share: query normalization, n-gram construction,
keyword extraction and NL/FR language detection.
"""

import re
import logging
from typing import Optional
from dataclasses import dataclass

from .legal_tables import LEGAL_TERM_EXPANSIONS, synonyms_for
from .language_patterns import (
    ALL_STOP_WORDS,
    IMPORTANT_SHORT_WORDS,
    LANGUAGE_INDICATORS,
    QUESTION_STOP_WORDS,
    STOP_WORDS,
)

logger = logging.getLogger(__name__)

# Alphanumeric runs of 2+ characters, or a lone digit ("boek 3")
TOKEN_PATTERN = re.compile(r"[^\W_]{2,}|\d")

NGRAM_SIZE = 3
MAX_KEYWORDS = 8


@dataclass(frozen=True)
class Token:
    """A normalized search unit plus its cross-language equivalents."""
    text: str
    synonyms: tuple = ()

    @property
    def expanded(self) -> bool:
        """True when synonym expansion added variants to this token."""
        return bool(self.synonyms)

    @property
    def variants(self) -> tuple:
        """The token followed by its synonyms, in match priority order."""
        return (self.text,) + tuple(s for s in self.synonyms if s != self.text)


def normalize_query(text: Optional[str]) -> str:
    """Lowercase, trim and collapse whitespace. The full phrase is kept."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.strip().lower())


def tokenize(text: Optional[str], language: Optional[str] = None, expand_synonyms: bool = True) -> list[Token]:
    """
    Split a query into ordered, deduplicated tokens.

    Stop-words are dropped unless every token is a stop-word, in which case
    the stop-words themselves are kept so the query stays usable.

    Args:
        text: Raw query text
        language: "nl" or "fr" to use that stop-word list; None uses both
        expand_synonyms: Attach bilingual legal synonyms to each token

    Returns:
        List of Token in first-occurrence order
    """
    if not text:
        return []

    stop_words = STOP_WORDS.get(language, ALL_STOP_WORDS)
    raw = []
    seen = set()
    for unit in TOKEN_PATTERN.findall(text.lower()):
        if unit not in seen:
            seen.add(unit)
            raw.append(unit)

    kept = [unit for unit in raw if unit not in stop_words]
    if not kept:
        kept = raw

    return [
        Token(text=unit, synonyms=synonyms_for(unit) if expand_synonyms else ())
        for unit in kept
    ]


def rejoin(tokens: list[Token]) -> str:
    """Render tokens back into a query string (surface forms only)."""
    return " ".join(token.text for token in tokens)


def build_ngrams(term: str, size: int = NGRAM_SIZE) -> list[str]:
    """
    Distinct fixed-size character shingles of a term.

    Returns an empty list when the term is shorter than the shingle size.
    """
    if not term or len(term) < size:
        return []
    grams = []
    seen = set()
    for i in range(len(term) - size + 1):
        gram = term[i:i + size]
        if gram not in seen:
            seen.add(gram)
            grams.append(gram)
    return grams


def build_fulltext_query(term: str) -> str:
    """
    Prefix query for PostgreSQL ``to_tsquery``: every token must match as a prefix.

    Example: "arbeids overeenkomst" -> "arbeids:* & overeenkomst:*"
    """
    units = TOKEN_PATTERN.findall(term.lower())
    return " & ".join(f"{unit}:*" for unit in units)


def extract_search_keywords(question: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """
    Pick lexical search phrases for a natural-language question.

    Legal-term expansions come first; when they yield fewer than three
    phrases, up to four meaningful question words are added.
    """
    phrases = []
    for pattern, terms in LEGAL_TERM_EXPANSIONS:
        if pattern.search(question):
            phrases.extend(terms)

    stop_words = QUESTION_STOP_WORDS["nl"] | QUESTION_STOP_WORDS["fr"]
    words = [w for w in re.split(r"\W+", question.lower()) if w]
    keywords = [
        w for w in words
        if (len(w) >= 4 or w in IMPORTANT_SHORT_WORDS) and w not in stop_words
    ]

    result = list(dict.fromkeys(phrases))
    if len(result) < 3:
        result.extend(keywords[:4])
    return list(dict.fromkeys(result))[:limit]


def detect_language(question: str, default: str = "nl") -> str:
    """
    Guess whether a question is Dutch or French.

    French wins only with a clear majority (more French than Dutch evidence,
    and at least two points of it); everything else reads as ``default``.
    """
    lowered = question.lower()
    words = re.sub(r"[?!.,]", "", lowered).split()

    scores = {}
    for language, indicators in LANGUAGE_INDICATORS.items():
        score = sum(1 for w in words if w in indicators["words"])
        for pattern, weight in indicators["boosters"]:
            if pattern.search(lowered):
                score += weight
        scores[language] = score

    if scores["fr"] > scores["nl"] and scores["fr"] >= 2:
        return "fr"
    return default if default in ("nl", "fr") else "nl"
