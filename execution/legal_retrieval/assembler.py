"""
Result Assembler

Final bound-and-shape step. Takes the per-corpus results, truncates each to
the requested limit and produces:

- a rendered context: one text block per passage, headed
  ``[Bron N - LABEL (NL|FR)]`` plus provenance flags (abolished, amendment
  and implementing-decree counts), grouped by corpus in orchestration order;
- a parallel list of citations, in the same order as the blocks;
- topic notices prepended for questions about abolished or regional rules.

When no corpus produced anything the result is the no-answer state, carrying
the localized "no relevant information" message.

Same input always yields the same output.
"""

import logging
from typing import Optional
from dataclasses import dataclass, field

from .citation import Citation, CitationBuilder
from .language_patterns import ABOLITION_WARNING_PATTERN, LABELS, PARLIAMENT_NAMES, TOPIC_NOTICES
from .models import Candidate, RetrievalResult, SourceKind

logger = logging.getLogger(__name__)

DEFAULT_TEXT_LIMIT = 4000
BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class AssembledResult:
    """What the answer-generation collaborator consumes."""
    question: str
    language: str
    candidates: tuple = ()
    citations: tuple = ()
    context: str = ""
    notices: tuple = ()
    no_answer: bool = False
    message: Optional[str] = None
    diagnostics: dict = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "language": self.language,
            "no_answer": self.no_answer,
            "message": self.message,
            "context": self.context,
            "notices": list(self.notices),
            "sources": [citation.to_dict() for citation in self.citations],
            "diagnostics": self.diagnostics,
        }


class ResultAssembler:
    """
    Renders ranked candidates into context blocks and citations.

    Usage:
        assembler = ResultAssembler(language="nl")
        assembled = assembler.assemble(question, results, limit=10)
        print(assembled.context)
    """

    def __init__(self, language: str = "nl", text_limit: int = DEFAULT_TEXT_LIMIT):
        self.language = language if language in LABELS else "nl"
        self.labels = LABELS[self.language]
        self.text_limit = text_limit
        self.citations = CitationBuilder(ui_language=self.language)

    def assemble(
        self,
        question: str,
        results: list[RetrievalResult],
        limit: Optional[int] = None,
        diagnostics: Optional[dict] = None,
    ) -> AssembledResult:
        """
        Bound, render and cite.

        Args:
            question: The user's question (used for topic notices)
            results: Per-corpus results in orchestration order
            limit: Maximum passages kept per corpus (None keeps all)
            diagnostics: Passed through to the result

        Returns:
            AssembledResult, or the no-answer state when nothing remains
        """
        selected: list[Candidate] = []
        for result in results:
            kept = list(result.candidates)
            if limit is not None:
                kept = kept[:limit]
            selected.extend(kept)

        if not selected:
            return self.no_answer(question, diagnostics)

        blocks = [self.render_block(index, candidate) for index, candidate in enumerate(selected, start=1)]
        context = BLOCK_SEPARATOR.join(blocks)

        notices = self.topic_notices(question)
        if notices:
            context = "\n\n".join(notices) + "\n\n---\n" + self.labels["sources_header"] + "\n" + context

        citations: list[Citation] = self.citations.build(selected)
        logger.info(f"Assembled {len(selected)} passages from {len(results)} corpora ({len(notices)} notices)")
        return AssembledResult(
            question=question,
            language=self.language,
            candidates=tuple(selected),
            citations=tuple(citations),
            context=context,
            notices=tuple(notices),
            diagnostics=diagnostics or {},
        )

    def no_answer(self, question: str, diagnostics: Optional[dict] = None) -> AssembledResult:
        """The distinct terminal state for "nothing relevant found"."""
        logger.info(f"No answer for: {question[:100]}")
        return AssembledResult(
            question=question,
            language=self.language,
            no_answer=True,
            message=self.labels["no_answer"],
            diagnostics=diagnostics or {},
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def topic_notices(self, question: str) -> list[str]:
        question_lower = (question or "").lower()
        return [
            notice for keywords, notice in TOPIC_NOTICES
            if any(keyword in question_lower for keyword in keywords)
        ]

    def flags(self, candidate: Candidate) -> list[str]:
        """Provenance markers shown after the block header."""
        labels = self.labels
        flags = []
        if candidate.is_abolished:
            flags.append(labels["abolished"])
        if ABOLITION_WARNING_PATTERN.search(candidate.text[:self.text_limit]):
            flags.append(labels["abolition_text"])
        if candidate.implementing_decree_count > 0:
            flags.append(labels["decrees"].format(count=candidate.implementing_decree_count))
        if candidate.modification_count > 0:
            flags.append(labels["modifications"].format(count=candidate.modification_count))
        if candidate.has_abolitions:
            flags.append(labels["has_abolitions"])
        return flags

    def render_block(self, index: int, candidate: Candidate) -> str:
        labels = self.labels
        header = f"[{labels['source']} {index} - {labels[candidate.source_kind.value]} ({candidate.language.upper()})]"
        flags = self.flags(candidate)
        if flags:
            header = f"{header} {' '.join(flags)}"

        text = candidate.text[:self.text_limit]
        lines = [header] + self._detail_lines(candidate)
        return "\n".join(line for line in lines if line) + f"\n\n{text}"

    def _detail_lines(self, candidate: Candidate) -> list[str]:
        labels = self.labels
        meta = candidate.metadata

        if candidate.source_kind == SourceKind.JURISPRUDENCE:
            return [
                f"ECLI: {meta['ecli']}" if meta.get("ecli") else "",
                f"{labels['court']}: {meta['court']}" if meta.get("court") else "",
                f"{labels['date']}: {meta.get('decision_date') or meta.get('document_date')}"
                if meta.get("decision_date") or meta.get("document_date") else "",
                candidate.title,
            ]

        if candidate.source_kind == SourceKind.PARLIAMENTARY:
            parliament = meta.get("parliament")
            dossier = meta.get("dossier")
            number = meta.get("document_number")
            return [
                f"{labels['parliament']}: {PARLIAMENT_NAMES.get(parliament, parliament)}" if parliament else "",
                f"{labels['dossier']}: {dossier}/{number}" if dossier and number else
                (f"{labels['dossier']}: {dossier}" if dossier else ""),
                f"{labels['title']}: {candidate.title}" if candidate.title else "",
            ]

        if candidate.source_kind == SourceKind.TAX:
            document_type = meta.get("document_type")
            article = meta.get("article_number")
            section = meta.get("section_path")
            title_line = f"{document_type} - {candidate.title}" if document_type else candidate.title
            article_line = ""
            if article:
                article_line = f"{labels['article']} {article}" + (f" ({section})" if section else "")
            return [title_line, article_line]

        return [
            f"{labels['law']} {candidate.document_id}: {candidate.title}" if candidate.title
            else f"{labels['law']} {candidate.document_id}",
            candidate.heading,
        ]
