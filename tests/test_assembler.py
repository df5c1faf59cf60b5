"""
Tests for execution/legal_retrieval/assembler.py

Covers: per-corpus bounding, global block numbering, citation order,
        provenance flags, detail lines per corpus, topic notices,
        no-answer state, determinism.
"""

from datetime import date

from tests.conftest import EMPLOYMENT_ACT, make_candidate


def _result(corpus, candidates):
    from execution.legal_retrieval.models import RetrievalResult, SourceKind
    return RetrievalResult(corpus=corpus, source_kind=SourceKind(corpus), candidates=tuple(candidates))


def _legislation():
    return _result("legislation", [
        make_candidate("a-0001", 1.8, document_id=EMPLOYMENT_ACT, heading="Art. 37/2",
                       title="Wet betreffende de arbeidsovereenkomsten", text="De opzegtermijn ..."),
        make_candidate("a-0002", 0.9, document_id=EMPLOYMENT_ACT, heading="Art. 37",
                       title="Wet betreffende de arbeidsovereenkomsten", text="Opzegging ..."),
        make_candidate("a-0003", 0.7, document_id=EMPLOYMENT_ACT, text="Gewaarborgd loon ..."),
    ])


def _jurisprudence():
    from execution.legal_retrieval.models import SourceKind
    return _result("jurisprudence", [
        make_candidate(
            "j-0001", 0.6, source_kind=SourceKind.JURISPRUDENCE, document_id="C.19.0123.N",
            title="Arrest", text="Het hof oordeelt ...",
            metadata={"ecli": "ECLI:BE:CASS:2020:ARR.1", "court": "Hof van Cassatie",
                      "decision_date": date(2020, 1, 15)},
        ),
    ])


class TestAssemble:

    def test_numbering_runs_across_corpora(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler().assemble("opzegtermijn", [_legislation(), _jurisprudence()])

        blocks = assembled.context.split("\n\n---\n\n")
        assert len(blocks) == 4
        assert blocks[0].startswith("[Bron 1 - WET (NL)]")
        assert blocks[2].startswith("[Bron 3 - WET (NL)]")
        assert blocks[3].startswith("[Bron 4 - RECHTSPRAAK (NL)]")
        assert not assembled.no_answer

    def test_citations_parallel_to_blocks(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler().assemble("opzegtermijn", [_legislation(), _jurisprudence()])
        assert [c.passage_id for c in assembled.citations] == [c.passage_id for c in assembled.candidates]
        assert [c.passage_id for c in assembled.citations] == ["a-0001", "a-0002", "a-0003", "j-0001"]

    def test_limit_per_corpus(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler().assemble("opzegtermijn", [_legislation(), _jurisprudence()], limit=1)
        assert [c.passage_id for c in assembled.candidates] == ["a-0001", "j-0001"]

    def test_french_labels(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler(language="fr").assemble("préavis", [_jurisprudence()])
        assert assembled.context.startswith("[Source 1 - JURISPRUDENCE (NL)]")
        assert "Cour: Hof van Cassatie" in assembled.context

    def test_deterministic(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        first = ResultAssembler().assemble("opzegtermijn", [_legislation(), _jurisprudence()])
        second = ResultAssembler().assemble("opzegtermijn", [_legislation(), _jurisprudence()])
        assert first == second
        assert first.context == second.context

    def test_to_dict(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        data = ResultAssembler().assemble("opzegtermijn", [_jurisprudence()], diagnostics={"k": 1}).to_dict()
        assert data["sources"][0]["type"] == "jurisprudence"
        assert data["diagnostics"] == {"k": 1}
        assert data["no_answer"] is False


class TestNoAnswer:

    def test_all_empty(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        from execution.legal_retrieval.language_patterns import LABELS
        assembled = ResultAssembler().assemble("xyz", [_result("legislation", []), _result("tax", [])])
        assert assembled.no_answer
        assert assembled.message == LABELS["nl"]["no_answer"]
        assert assembled.candidates == ()
        assert assembled.context == ""

    def test_localized_message(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler(language="fr").no_answer("xyz")
        assert assembled.message.startswith("Je n'ai pas trouvé")


class TestRendering:

    def test_flags(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        candidate = make_candidate(
            "a-0009", 0.8,
            is_abolished=True,
            implementing_decree_count=4,
            modification_count=12,
            has_abolitions=True,
            text="Dit artikel is vervallen.",
        )
        header = ResultAssembler().render_block(1, candidate).split("\n")[0]
        assert "[OPGEHEVEN/ABROGÉ]" in header
        assert "[BEPALING MOGELIJK OPGEHEVEN" in header
        assert "[HEEFT 4 UITVOERINGSBESLUITEN]" in header
        assert "[GEWIJZIGD DOOR 12 WETTEN]" in header
        assert "[BEVAT OPGEHEVEN BEPALINGEN" in header

    def test_no_flags(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        header = ResultAssembler().render_block(2, make_candidate("a-0001", text="Gewone tekst.")).split("\n")[0]
        assert header == "[Bron 2 - WET (NL)]"

    def test_legislation_detail_lines(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        block = ResultAssembler().render_block(1, _legislation().candidates[0])
        lines = block.split("\n")
        assert lines[1] == f"Wet {EMPLOYMENT_ACT}: Wet betreffende de arbeidsovereenkomsten"
        assert lines[2] == "Art. 37/2"
        assert block.endswith("\n\nDe opzegtermijn ...")

    def test_jurisprudence_detail_lines(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        block = ResultAssembler().render_block(1, _jurisprudence().candidates[0])
        assert "ECLI: ECLI:BE:CASS:2020:ARR.1" in block
        assert "Hof: Hof van Cassatie" in block
        assert "Datum: 2020-01-15" in block

    def test_parliamentary_detail_lines(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        from execution.legal_retrieval.models import SourceKind
        candidate = make_candidate(
            "p-0001", source_kind=SourceKind.PARLIAMENTARY, title="Wetsontwerp eenheidsstatuut",
            metadata={"parliament": "kamer", "dossier": "53-3144", "document_number": "1"},
        )
        block = ResultAssembler().render_block(1, candidate)
        assert block.startswith("[Bron 1 - PARLEMENTAIRE VOORBEREIDING (NL)]")
        assert "Parlement: Kamer" in block
        assert "Dossier: 53-3144/1" in block
        assert "Titel: Wetsontwerp eenheidsstatuut" in block

    def test_tax_detail_lines(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        from execution.legal_retrieval.models import SourceKind
        candidate = make_candidate(
            "t-0001", source_kind=SourceKind.TAX, title="WIB 92",
            metadata={"document_type": "Wetboek", "article_number": "215", "section_path": "Titel II"},
        )
        lines = ResultAssembler().render_block(1, candidate).split("\n")
        assert lines[1] == "Wetboek - WIB 92"
        assert lines[2] == "Artikel 215 (Titel II)"

    def test_text_truncated(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        block = ResultAssembler(text_limit=10).render_block(1, make_candidate("a-0001", text="x" * 50))
        assert block.endswith("\n\n" + "x" * 10)


class TestTopicNotices:

    def test_abolished_probation_notice(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler().assemble("Hoe lang duurt de proefperiode?", [_legislation()])
        assert len(assembled.notices) == 1
        assert assembled.context.startswith("KRITIEKE CONTEXT: de proefperiode")
        assert "\n\n---\nBRONNEN (let op: kunnen verouderde info bevatten):\n[Bron 1" in assembled.context

    def test_regional_notice(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assert ResultAssembler().topic_notices("Hoeveel bedraagt de huurwaarborg?")[0].startswith("REGIONAAL")

    def test_no_notice(self):
        from execution.legal_retrieval.assembler import ResultAssembler
        assembled = ResultAssembler().assemble("opzegtermijn", [_legislation()])
        assert assembled.notices == ()
        assert assembled.context.startswith("[Bron 1")
