"""
Follow-up Context Expander

Short or anaphoric questions ("en voor bedienden?", "wat zijn die
voorwaarden?") lean on the previous turn. When one is detected:

- the effective query gets the salient words of the previous question
  appended, before tokenization and embedding;
- passages of documents cited in the previous answer are injected at a high
  base score, at the same point in fusion as authority-injected passages.

Conversation state is read-only here.
"""

import re
import logging
from typing import Optional
from dataclasses import dataclass

from .config import FollowupConfig
from .corpus_store import CorpusStore, DATABASE_ERRORS, row_to_candidate
from .language_patterns import FOLLOWUP_PATTERNS
from .models import Candidate, RequestFilters

logger = logging.getLogger(__name__)

# Suffix appended to an expanded follow-up: "... (context: w1 w2 w3)"
CONTEXT_SUFFIX_PATTERN = re.compile(r"\s*\(context: ([^()]*)\)\s*$")


def split_expanded(question: str) -> tuple[str, list[str]]:
    """
    Separate an expanded follow-up into the user's own words and the topic
    words carried over from the previous turn.

    Lexical matching ANDs over query tokens, so only the user's own words may
    be required; topic words can widen an OR-query but never narrow one.
    """
    match = CONTEXT_SUFFIX_PATTERN.search(question or "")
    if not match:
        return question, []
    return question[:match.start()], match.group(1).split()


@dataclass(frozen=True)
class ConversationContext:
    """Prior turns of a conversation, oldest first."""
    previous_questions: tuple = ()
    cited_document_ids: tuple = ()

    @property
    def last_question(self) -> Optional[str]:
        for question in reversed(self.previous_questions):
            if question and question.strip():
                return question
        return None

    @property
    def is_empty(self) -> bool:
        return self.last_question is None and not self.cited_document_ids


class FollowupExpander:
    """Detects elliptical follow-ups and compensates with prior-turn context."""

    def __init__(self, config: Optional[FollowupConfig] = None):
        self.config = config or FollowupConfig()

    def is_followup(self, question: str, language: Optional[str] = None) -> bool:
        """
        Short questions, or questions matching a continuation pattern.

        Args:
            question: Current question
            language: Query language; None checks the patterns of every language
        """
        q = (question or "").strip().lower()
        if not q:
            return False
        if len(q.split()) <= self.config.max_short_words:
            return True

        if language in FOLLOWUP_PATTERNS:
            patterns = FOLLOWUP_PATTERNS[language]
        else:
            patterns = [p for group in FOLLOWUP_PATTERNS.values() for p in group]
        return any(pattern.search(q) for pattern in patterns)

    def expand(self, question: str, context: Optional[ConversationContext], language: Optional[str] = None) -> str:
        """Append topic words of the previous question to a follow-up."""
        if context is None or not self.is_followup(question, language):
            return question
        last_question = context.last_question
        if not last_question:
            return question

        # Parentheses would break the suffix that split_expanded reads back
        words = (re.sub(r"[()]", "", w).strip("?!.,;:\"'") for w in last_question.lower().split())
        topic_words = [
            w for w in words
            if len(w) >= self.config.topic_word_min_length
        ][:self.config.max_topic_words]
        if not topic_words:
            return question

        expanded = f"{question} (context: {' '.join(topic_words)})"
        logger.info(f"Expanded follow-up: {expanded}")
        return expanded

    def inject_context(
        self,
        store: CorpusStore,
        context: Optional[ConversationContext],
        question: str,
        language_id: int = 1,
        filters: Optional[RequestFilters] = None,
        language: Optional[str] = None,
    ) -> list[Candidate]:
        """
        Passages from documents cited in the previous turn.

        Up to ``context_per_document`` passages per document, scored
        ``context_base_score + context_per_match * matches`` where matches
        counts words of the current question found in the passage.
        """
        if context is None or not context.cited_document_ids:
            return []
        if not self.is_followup(question, language):
            return []

        cfg = self.config
        keywords = [w for w in question.lower().split() if len(w) > 3]
        document_ids = list(dict.fromkeys(context.cited_document_ids))[:cfg.context_documents]

        injected = []
        for document_id in document_ids:
            try:
                rows = store.fetch_document_passages(document_id, language_id, cfg.context_scan_limit)
            except DATABASE_ERRORS as e:
                logger.warning(f"Context injection skipped {document_id}: {type(e).__name__}: {e}")
                continue
            scored = []
            for row in rows:
                text = f"{row.get('heading') or ''} {row.get('body') or ''}".lower()
                matches = sum(1 for keyword in keywords if keyword in text)
                candidate = row_to_candidate(
                    row,
                    store.source_kind,
                    cfg.context_base_score + matches * cfg.context_per_match,
                    origin="context",
                    injected_by_context=True,
                    match_count=matches,
                )
                if filters is not None and not filters.accepts(candidate):
                    continue
                scored.append(candidate)
            scored.sort(key=lambda c: (-c.similarity, c.passage_id))
            injected.extend(scored[:cfg.context_per_document])

        logger.info(f"Injected {len(injected)} passages from conversation context ({', '.join(document_ids)})")
        return injected
