"""
Tests for execution/legal_retrieval/followup.py

Covers: ConversationContext, follow-up detection (short questions, per-language
        patterns), query expansion, splitting an expanded question back into
        own words and topic words, context injection of cited documents.
"""

import pytest

from tests.conftest import EMPLOYMENT_ACT, FakeCorpusStore


PREVIOUS = "Wat is de opzegtermijn voor een bediende met tien jaar anciënniteit"


class TestConversationContext:

    def test_last_question_skips_blanks(self):
        from execution.legal_retrieval.followup import ConversationContext
        context = ConversationContext(previous_questions=("eerste vraag", "tweede vraag", "  "))
        assert context.last_question == "tweede vraag"

    def test_is_empty(self):
        from execution.legal_retrieval.followup import ConversationContext
        assert ConversationContext().is_empty
        assert not ConversationContext(cited_document_ids=(EMPLOYMENT_ACT,)).is_empty


class TestIsFollowup:

    def test_short_question(self):
        from execution.legal_retrieval.followup import FollowupExpander
        assert FollowupExpander().is_followup("en voor arbeiders?")

    def test_anaphora_in_long_question(self):
        from execution.legal_retrieval.followup import FollowupExpander
        question = "Kan je meer uitleggen over de voorwaarden die daarvoor gelden in de praktijk"
        assert FollowupExpander().is_followup(question, "nl")

    def test_french_continuation(self):
        from execution.legal_retrieval.followup import FollowupExpander
        question = "Et pour les ouvriers qui travaillent depuis plus de dix ans chez le même employeur"
        assert FollowupExpander().is_followup(question, "fr")

    def test_standalone_question(self):
        from execution.legal_retrieval.followup import FollowupExpander
        question = "Hoeveel vakantiedagen heeft een voltijdse werknemer in België recht op per jaar"
        assert not FollowupExpander().is_followup(question, "nl")

    def test_only_query_language_patterns_when_known(self):
        from execution.legal_retrieval.followup import FollowupExpander
        # "en" is an anaphoric pronoun in French but a conjunction in Dutch
        question = "Hoeveel vakantiedagen krijgen arbeiders en bedienden in ons land elk jaar"
        expander = FollowupExpander()
        assert not expander.is_followup(question, "nl")
        assert expander.is_followup(question, None)

    def test_empty(self):
        from execution.legal_retrieval.followup import FollowupExpander
        assert not FollowupExpander().is_followup("   ")


class TestExpand:

    def test_appends_topic_words(self):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        context = ConversationContext(previous_questions=(PREVIOUS,))
        expanded = FollowupExpander().expand("en voor arbeiders?", context, "nl")
        assert expanded == "en voor arbeiders? (context: opzegtermijn bediende anciënniteit)"

    def test_topic_words_are_capped(self):
        from execution.legal_retrieval.config import FollowupConfig
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        context = ConversationContext(previous_questions=("alpha bravo charlie delta echo foxtrot golf",))
        expander = FollowupExpander(FollowupConfig(max_topic_words=2))
        assert expander.expand("en dan?", context) == "en dan? (context: alpha bravo)"

    @pytest.mark.parametrize("context", [
        None,
        "empty",
    ])
    def test_without_previous_question(self, context):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        if context == "empty":
            context = ConversationContext()
        assert FollowupExpander().expand("en voor arbeiders?", context) == "en voor arbeiders?"

    def test_standalone_question_unchanged(self):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        question = "Hoeveel vakantiedagen heeft een voltijdse werknemer in België recht op per jaar"
        context = ConversationContext(previous_questions=(PREVIOUS,))
        assert FollowupExpander().expand(question, context, "nl") == question

    def test_parentheses_and_punctuation_stripped_from_topic_words(self):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        context = ConversationContext(previous_questions=("Geldt artikel 37/2 (opzegtermijn) ook voor bedienden?",))
        expanded = FollowupExpander().expand("en dan?", context, "nl")
        assert expanded == "en dan? (context: geldt artikel opzegtermijn bedienden)"


class TestSplitExpanded:

    def test_separates_own_words_from_topic_words(self):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander, split_expanded
        context = ConversationContext(previous_questions=(PREVIOUS,))
        expanded = FollowupExpander().expand("en voor arbeiders?", context, "nl")
        own_words, topic_words = split_expanded(expanded)
        assert own_words == "en voor arbeiders?"
        assert topic_words == ["opzegtermijn", "bediende", "anciënniteit"]

    def test_plain_question_unchanged(self):
        from execution.legal_retrieval.followup import split_expanded
        assert split_expanded("Wat is de opzegtermijn?") == ("Wat is de opzegtermijn?", [])

    def test_parenthesis_inside_own_words_is_kept(self):
        from execution.legal_retrieval.followup import split_expanded
        question = "Wat zegt art. 37 (oud)?"
        assert split_expanded(question) == (question, [])


class FailingStore(FakeCorpusStore):

    def fetch_document_passages(self, document_id, language_id, limit=100):
        if document_id == EMPLOYMENT_ACT:
            from execution.legal_retrieval.errors import DependencyUnavailableError
            raise DependencyUnavailableError("replica offline")
        return super().fetch_document_passages(document_id, language_id, limit)


class TestInjectContext:

    QUESTION = "en de opzegtermijn voor bedienden"

    def _context(self):
        from execution.legal_retrieval.followup import ConversationContext
        return ConversationContext(
            previous_questions=(PREVIOUS,),
            cited_document_ids=(EMPLOYMENT_ACT, EMPLOYMENT_ACT, "2015120101", "9999999999", "2016010101"),
        )

    def test_injects_cited_documents(self, employment_rows):
        from execution.legal_retrieval.followup import FollowupExpander
        store = FakeCorpusStore(employment_rows)
        injected = FollowupExpander().inject_context(store, self._context(), self.QUESTION)

        assert [c.passage_id for c in injected] == ["a-0001", "a-0002", "s-0001"]
        assert all(c.injected_by_context and c.origin == "context" for c in injected)
        # 0.80 + 2 matches ("opzegtermijn", "voor") * 0.02
        assert injected[0].similarity == pytest.approx(0.84)
        fetched = [call[1] for call in store.called("fetch_document_passages")]
        assert fetched == [EMPLOYMENT_ACT, "2015120101", "9999999999"]

    def test_requires_followup(self, employment_rows):
        from execution.legal_retrieval.followup import FollowupExpander
        store = FakeCorpusStore(employment_rows)
        question = "Hoeveel vakantiedagen heeft een voltijdse werknemer in België recht op per jaar"
        assert FollowupExpander().inject_context(store, self._context(), question, language="nl") == []
        assert store.calls == []

    def test_no_cited_documents(self, employment_rows):
        from execution.legal_retrieval.followup import ConversationContext, FollowupExpander
        store = FakeCorpusStore(employment_rows)
        context = ConversationContext(previous_questions=(PREVIOUS,))
        assert FollowupExpander().inject_context(store, context, self.QUESTION) == []

    def test_database_error_skips_document(self, employment_rows):
        from execution.legal_retrieval.followup import FollowupExpander
        injected = FollowupExpander().inject_context(FailingStore(employment_rows), self._context(), self.QUESTION)
        assert [c.passage_id for c in injected] == ["s-0001"]

    def test_filters(self, employment_rows):
        from execution.legal_retrieval.followup import FollowupExpander
        from execution.legal_retrieval.models import RequestFilters
        store = FakeCorpusStore(employment_rows)
        injected = FollowupExpander().inject_context(
            store, self._context(), self.QUESTION, filters=RequestFilters(languages=("fr",)),
        )
        assert injected == []
