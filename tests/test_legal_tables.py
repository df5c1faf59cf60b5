"""
Tests for execution/legal_retrieval/legal_tables.py

Covers: read-only tables, synonyms_for, triggered_documents (word-start matching).
"""

import pytest


class TestTables:

    def test_tables_are_read_only(self):
        from execution.legal_retrieval.legal_tables import (
            FOUNDATIONAL_DOCUMENTS, LEGAL_SYNONYMS, TRIGGER_KEYWORDS,
        )
        with pytest.raises(TypeError):
            LEGAL_SYNONYMS["nieuw"] = ("new",)
        with pytest.raises(TypeError):
            FOUNDATIONAL_DOCUMENTS["0000000000"] = "Nieuwe wet"
        with pytest.raises(TypeError):
            TRIGGER_KEYWORDS["nieuw"] = ("0000000000",)

    def test_trigger_targets_are_foundational(self):
        from execution.legal_retrieval.legal_tables import FOUNDATIONAL_DOCUMENTS, TRIGGER_KEYWORDS
        targets = {doc for docs in TRIGGER_KEYWORDS.values() for doc in docs}
        assert targets <= set(FOUNDATIONAL_DOCUMENTS)

    def test_synonyms_are_bilingual(self):
        from execution.legal_retrieval.legal_tables import synonyms_for
        assert synonyms_for("cassatie") == ("cassation", "pourvoi")
        assert synonyms_for("arrêté") == ("besluit",)
        assert synonyms_for("onbekend") == ()


class TestTriggeredDocuments:

    def test_prefix_keyword_fires_inside_longer_word(self):
        from execution.legal_retrieval.legal_tables import triggered_documents
        hits = triggered_documents("Wat is de opzegtermijn voor een bediende?")
        assert "1978070303" in hits
        assert {"opzegtermijn", "opzeg"} <= set(hits["1978070303"])

    def test_keyword_must_start_a_word(self):
        from execution.legal_retrieval.legal_tables import triggered_documents
        assert "2019A40586" not in triggered_documents("wat betekent ebvb")
        assert "2019A40586" in triggered_documents("minimumkapitaal van een bv")

    def test_case_insensitive(self):
        from execution.legal_retrieval.legal_tables import triggered_documents
        assert "1971062850" in triggered_documents("VAKANTIE en feestdagen")

    def test_no_trigger(self):
        from execution.legal_retrieval.legal_tables import triggered_documents
        assert triggered_documents("xyz") == {}
