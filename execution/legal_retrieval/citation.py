"""
Citation Records for Retrieved Passages

One citation per rendered passage, carrying what the UI needs to link and
attribute a source without querying storage again: identifiers, title, a
rounded relevance, a URL fragment and provenance flags.

URL fragments per corpus:
    legislation    /{ui language}/{document_id}
    tax            /laws/fisconet_{passage_id}
    jurisprudence  stored url
    parliamentary  stored url
"""

from typing import Optional
from dataclasses import dataclass

from .language_patterns import PARLIAMENT_NAMES
from .models import Candidate, SourceKind


@dataclass(frozen=True)
class Citation:
    """A source reference for one passage."""
    passage_id: str
    document_id: str
    source_kind: SourceKind
    title: str
    heading: str
    relevance: float
    url: Optional[str]
    language: str  # "NL" or "FR"
    abolished: bool = False
    injected: bool = False
    modification_count: int = 0
    implementing_decree_count: int = 0
    has_abolitions: bool = False
    reference: str = ""  # ECLI, dossier number or article number where known

    def short_format(self) -> str:
        """Short inline citation format."""
        parts = [self.title or self.document_id]
        if self.heading:
            parts.append(self.heading)
        if self.reference:
            parts.append(self.reference)
        return f"[{', '.join(parts)}]"

    def to_dict(self) -> dict:
        data = {
            "type": self.source_kind.value,
            "passage_id": self.passage_id,
            "document_id": self.document_id,
            "title": self.title,
            "heading": self.heading,
            "relevance": self.relevance,
            "url": self.url,
            "language": self.language,
            "short_citation": self.short_format(),
        }
        # Optional keys only when set, matching what the UI expects
        if self.abolished:
            data["abolished"] = True
        if self.injected:
            data["injected"] = True
        if self.modification_count:
            data["modification_count"] = self.modification_count
        if self.implementing_decree_count:
            data["implementing_decree_count"] = self.implementing_decree_count
        if self.has_abolitions:
            data["has_abolitions"] = True
        if self.reference:
            data["reference"] = self.reference
        return data


def citation_url(candidate: Candidate, ui_language: str = "nl") -> Optional[str]:
    """URL fragment for a candidate, by corpus."""
    if candidate.source_kind == SourceKind.LEGISLATION:
        return f"/{ui_language}/{candidate.document_id}"
    if candidate.source_kind == SourceKind.TAX:
        return f"/laws/fisconet_{candidate.passage_id}"
    return candidate.url or None


def citation_reference(candidate: Candidate) -> str:
    """Corpus-specific reference string (ECLI, dossier, article number)."""
    meta = candidate.metadata
    if candidate.source_kind == SourceKind.JURISPRUDENCE:
        return str(meta.get("ecli") or meta.get("case_number") or "")
    if candidate.source_kind == SourceKind.PARLIAMENTARY:
        dossier = meta.get("dossier")
        if not dossier:
            return ""
        parliament = PARLIAMENT_NAMES.get(meta.get("parliament"), meta.get("parliament") or "")
        number = f"{dossier}/{meta['document_number']}" if meta.get("document_number") else str(dossier)
        return f"{parliament} {number}".strip()
    if candidate.source_kind == SourceKind.TAX:
        return str(meta.get("article_number") or "")
    return ""


class CitationBuilder:
    """
    Builds citation records from ranked candidates.

    Usage:
        builder = CitationBuilder(ui_language="fr")
        citations = builder.build(candidates)
    """

    def __init__(self, ui_language: str = "nl", precision: int = 3):
        self.ui_language = ui_language if ui_language in ("nl", "fr") else "nl"
        self.precision = precision

    def build_one(self, candidate: Candidate) -> Citation:
        return Citation(
            passage_id=candidate.passage_id,
            document_id=candidate.document_id,
            source_kind=candidate.source_kind,
            title=candidate.title,
            heading=candidate.heading,
            relevance=round(candidate.similarity, self.precision),
            url=citation_url(candidate, self.ui_language),
            language=candidate.language.upper(),
            abolished=candidate.is_abolished,
            injected=candidate.injected_by_keyword or candidate.injected_by_context,
            modification_count=candidate.modification_count,
            implementing_decree_count=candidate.implementing_decree_count,
            has_abolitions=candidate.has_abolitions,
            reference=citation_reference(candidate),
        )

    def build(self, candidates: list[Candidate]) -> list[Citation]:
        return [self.build_one(candidate) for candidate in candidates]
