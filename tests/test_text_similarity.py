"""
Tests for tokenization and lexical similarity scoring.
"""

import math

import pytest

from business_logic.text_similarity import (
    Corpus, tokenize, tfidf_similarity, jaccard_similarity, combined_similarity,
    name_match_boost, category_match_boost
)


class TestTokenize:
    """Test cases for the shared tokenizer."""

    def test_lowercases_and_drops_short_tokens(self):
        assert tokenize("Hello, World! AI is on") == ["hello", "world"]

    def test_punctuation_splits_tokens(self):
        assert tokenize("AI-assisted task_prioritization") == ["assisted", "task", "prioritization"]

    def test_preserves_order_and_duplicates(self):
        assert tokenize("focus timer focus") == ["focus", "timer", "focus"]

    def test_idempotent(self):
        text = "Calendar integration, Focus timer with break reminders!"
        tokens = tokenize(text)
        assert tokenize(" ".join(tokens)) == tokens

    def test_tokens_are_lowercase_alphanumeric(self):
        for token in tokenize("Ünïcode $9.99/mo 24-hours CamelCase x1 abc123"):
            assert len(token) >= 3
            assert token == token.lower()
            assert token.isalnum()

    def test_empty_text(self):
        assert tokenize("") == []


class TestSimilarity:
    """Test cases for TF-IDF and Jaccard scores."""

    def test_disjoint_vocabularies_score_zero(self):
        corpus = Corpus(["cherry grape", "lemon lime"])
        assert jaccard_similarity("apple banana", "cherry grape") == 0.0
        assert tfidf_similarity("apple banana", "cherry grape", corpus) == 0.0
        assert combined_similarity("apple banana", "cherry grape", corpus) == 0.0

    def test_identical_sets_jaccard_one(self):
        assert jaccard_similarity("focus timer", "timer focus") == 1.0

    def test_jaccard_partial_overlap(self):
        assert jaccard_similarity("focus timer calendar", "focus timer notes") == pytest.approx(2 / 4)

    def test_empty_inputs_score_zero(self):
        corpus = Corpus(["focus"])
        assert jaccard_similarity("", "focus") == 0.0
        assert tfidf_similarity("", "focus", corpus) == 0.0
        assert tfidf_similarity("focus", "", corpus) == 0.0

    def test_tfidf_divides_by_all_query_tokens(self):
        corpus = Corpus(["focus timer", "something else entirely"])
        score = tfidf_similarity("focus timer unrelated words", "focus timer", corpus)

        # Two matched terms with idf ln(3/2), spread over four query tokens
        assert score == pytest.approx(2 * math.log(3 / 2) / 4)

    def test_term_in_every_document_has_lower_idf(self):
        corpus = Corpus(["focus timer", "focus notes"])
        assert corpus.idf("focus") < corpus.idf("timer")

    def test_combined_similarity_weights(self):
        corpus = Corpus(["focus timer", "something else entirely"])
        expected = (0.7 * tfidf_similarity("focus timer", "focus timer", corpus) +
                    0.3 * jaccard_similarity("focus timer", "focus timer"))
        assert combined_similarity("focus timer", "focus timer", corpus) == pytest.approx(expected)


class TestBoosts:
    """Test cases for name and category boosts."""

    def test_name_contained_either_way(self):
        assert name_match_boost("focus", "FocusFlow") == 0.5
        assert name_match_boost("FocusFlow Pro", "FocusFlow") == 0.5
        assert name_match_boost("NoteNest", "FocusFlow") == 0.0

    def test_category_matches_product_id_prefix(self):
        assert category_match_boost("productivity tools", "productivity_focusflow") == 0.2
        assert category_match_boost("Sustainability", "sustainability_ecobottle") == 0.2
        assert category_match_boost("fitness", "productivity_focusflow") == 0.0
