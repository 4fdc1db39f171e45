"""
Text Matching Tests

Keyword extraction and phrase matching shared by every detector.
"""

from dataclasses import replace

from forensic_engine.rules import DEFAULT_RULES
from forensic_engine.rules.matching import (
    contains_phrase, is_negated, normalize_text, topic_keywords
)


def keywords(text, rules=DEFAULT_RULES):
    return topic_keywords(normalize_text(text), rules)


class TestTopicKeywords:

    def test_negation_stop_words_and_short_tokens_dropped(self):
        assert keywords("I never received the $500 on 2023-01-10") == frozenset(
            {"received", "500", "2023"}
        )

    def test_contractions_are_negations(self):
        assert keywords("We didn't sign the contract") == frozenset({"sign", "contract"})

    def test_minimum_length_is_configurable(self):
        rules = replace(DEFAULT_RULES, min_keyword_length=2)
        assert keywords("Paid on 2023-01-10", rules) == frozenset({"paid", "2023", "01", "10"})

    def test_negated_text_keeps_its_topic(self):
        # Negation marks polarity, not subject
        assert keywords("The contract was not signed") == keywords("The contract was signed")
        assert is_negated(normalize_text("The contract was not signed"), DEFAULT_RULES)


class TestPhrases:

    def test_word_boundaries(self):
        assert contains_phrase("she refused the offer", "refused")
        assert not contains_phrase("she refused the offer", "refuse")

    def test_curly_quotes_fold(self):
        assert contains_phrase(normalize_text("I didn’t pay"), "didn't pay")
