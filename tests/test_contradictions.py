"""
Contradiction Detection Tests

INVARIANTS TESTED:
1. Each rule fires on its own canonical pair, first match wins
2. Pass determines the contradiction type (sentiment rule excepted)
3. Legal trigger follows the pass and the speakers, never the retyped kind
4. Severity = rounded confidence plus bonuses, clamped to 1..10
5. Every unordered pair is reported at most once per rule
6. Output is identical with and without worker threads
"""

import pytest

from forensic_engine.analysis.contradictions import (
    ContradictionDetector, ContradictionConfig
)
from forensic_engine.contracts.base import (
    ContradictionRule, ContradictionType, LegalCategory, LegalTrigger
)
from forensic_engine.temporal.timeline import TimelineBuilder

from tests.fixtures import extract, make_entry, make_statement


@pytest.fixture
def detector():
    return ContradictionDetector()


def detect_in(detector, *entries):
    return detector.detect(extract(*entries))


def detect_dated(detector, *entries):
    statements = extract(*entries)
    return detector.detect(statements, TimelineBuilder().build(statements).timestamps_by_statement())


class TestLexicalOpposition:

    def test_denial_then_admission_same_document(self, detector):
        found = detect_in(detector, make_entry(
            "chat",
            "Marius: I never received the payment.\n"
            "Marius: I confirmed I received the payment last week.",
        ))

        assert len(found) == 1
        c = found[0]
        assert c.contradiction_type == ContradictionType.DIRECT
        assert c.rule == ContradictionRule.LEXICAL_OPPOSITION
        assert c.description == "Opposing claims: 'never received' vs 'received'"
        assert c.confidence == 0.8
        # 8 + admission/denial 2 + same speaker 1, clamped
        assert c.severity == 10
        assert c.legal_trigger == LegalTrigger.UNRELIABLE_TESTIMONY
        assert c.financial is True
        assert c.pass_number == 1
        assert c.affected_speakers == ("Marius",)

    def test_amounts_are_carried(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "Bob: I received the $500.\nBob: I did not receive the $500."
        ))

        assert len(found) == 1
        c = found[0]
        assert c.description == "Opposing claims: 'received' vs 'did not receive'"
        assert c.severity == 9
        assert c.amounts == (500.0,)
        assert c.financial is True

    def test_opposite_phrase_on_both_sides_is_not_opposition(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "Kim: I never received the invoice.\nKim: I never received the receipt."
        ))
        assert found == ()

    def test_find_opposition_direction(self, detector):
        assert detector.find_opposition("we agree", "we disagree") == ("agree", "disagree")
        assert detector.find_opposition("we disagree", "we agree") == ("disagree", "agree")
        assert detector.find_opposition("we agree", "we agree") is None


class TestPasses:

    def test_different_speakers_need_topic_overlap(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "Alice: I received the $500.\nBob: I did not receive the $500."
        ))

        assert len(found) == 1
        c = found[0]
        assert c.contradiction_type == ContradictionType.ENTITY
        assert c.pass_number == 3
        assert c.severity == 8
        assert c.legal_trigger == LegalTrigger.FINANCIAL_DISCREPANCY
        assert c.affected_speakers == ("Alice", "Bob")

    def test_unrelated_speakers_are_not_compared(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "Alice: The weather is nice.\nBob: I never bought a car."
        ))
        assert found == ()

    def test_same_speaker_across_documents(self, detector):
        found = detect_in(
            detector,
            make_entry("a", "Carol: The contract was signed on Monday."),
            make_entry("b", "Carol: The contract was not signed on Monday."),
        )

        assert len(found) == 1
        c = found[0]
        assert c.contradiction_type == ContradictionType.CROSS_DOCUMENT
        assert c.rule == ContradictionRule.NEGATION_MISMATCH
        assert c.description == "Contradictory statements about: contract, monday, signed"
        assert c.severity == 10
        assert c.legal_trigger == LegalTrigger.UNRELIABLE_TESTIMONY

    def test_speaker_identity_ignores_case(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "MARIUS: I never received the payment.\nMarius: I received the payment."
        ))
        assert len(found) == 1
        assert found[0].pass_number == 1


class TestRules:

    def test_negation_mismatch_same_document(self, detector):
        found = detect_in(detector, make_entry(
            "memo",
            "Carol: The contract was signed on Monday.\n"
            "Carol: The contract was not signed on Monday.",
        ))
        assert len(found) == 1
        assert found[0].rule == ContradictionRule.NEGATION_MISMATCH
        assert found[0].contradiction_type == ContradictionType.DIRECT
        assert found[0].severity == 10

    def test_trigger_phrase(self, detector):
        found = detect_in(detector, make_entry(
            "chat", "Dan: The shipment left on time.\nDan: To clarify, the shipment was delayed."
        ))
        assert len(found) == 1
        c = found[0]
        assert c.rule == ContradictionRule.TRIGGER_PHRASE
        assert c.confidence == 0.95
        assert c.severity == 10
        assert "'to clarify'" in c.description

    def test_sentiment_divergence_is_semantic(self, detector):
        found = detect_in(detector, make_entry(
            "review",
            "Eve: The renovation work was excellent.\nFrank: The renovation work was terrible.",
        ))
        assert len(found) == 1
        c = found[0]
        assert c.rule == ContradictionRule.SENTIMENT_DIVERGENCE
        assert c.contradiction_type == ContradictionType.SEMANTIC
        assert c.severity == 10
        assert c.legal_trigger == LegalTrigger.MISREPRESENTATION
        assert c.description == "Opposing sentiment on same subject: positive vs negative"

    def test_claim_denial(self, detector):
        found = detect_in(detector, make_entry(
            "board",
            "Gina: The director approved the merger.\nHank: The director refused the merger.",
        ))
        assert len(found) == 1
        c = found[0]
        assert c.rule == ContradictionRule.CLAIM_DENIAL
        assert c.contradiction_type == ContradictionType.ENTITY
        # 0.85 * 10 rounds half up
        assert c.severity == 9
        assert c.legal_trigger == LegalTrigger.MISREPRESENTATION

    def test_financial_statement_is_not_a_claim(self, detector):
        statements = extract(make_entry(
            "ledger",
            "Alice: The invoice payment was sent.\nBob: She refused the invoice payment.",
        ))
        assert [s.legal_category for s in statements] == [
            LegalCategory.FINANCIAL, LegalCategory.DENIAL
        ]
        assert detector.detect(statements) == ()

    def test_first_matching_rule_wins(self, detector):
        # Opposition and trigger both apply; opposition is checked first
        found = detect_in(detector, make_entry(
            "chat", "Ivy: We agree on the price.\nIvy: Actually we disagree on the price."
        ))
        assert len(found) == 1
        assert found[0].rule == ContradictionRule.LEXICAL_OPPOSITION


class TestSeverity:

    def test_minimum_clamp(self):
        detector = ContradictionDetector()
        a = make_statement("x", "s1", speaker="A", document_id="d")
        b = make_statement("y", "s2", speaker="B", document_id="d")
        assert detector.severity(0.0, a, b) == 1

    def test_bonuses(self):
        detector = ContradictionDetector()
        admission = make_statement("x", "s1", speaker="A", document_id="d1",
                                   category=LegalCategory.ADMISSION)
        denial = make_statement("y", "s2", speaker="B", document_id="d2",
                                category=LegalCategory.DENIAL)
        # 5 + admission/denial 2 + cross-document 1
        assert detector.severity(0.5, admission, denial) == 8

    def test_admission_then_denial_is_unreliable_testimony(self):
        admission = make_statement("x", "s1", speaker="A", category=LegalCategory.ADMISSION)
        denial = make_statement("y", "s2", speaker="B", category=LegalCategory.DENIAL)
        trigger = ContradictionDetector.legal_trigger(admission, denial, ContradictionType.ENTITY)
        assert trigger == LegalTrigger.UNRELIABLE_TESTIMONY


class TestLegalTrigger:

    def test_same_speaker_precedes_cross_document(self):
        a = make_statement("x", "s1", speaker="A", document_id="d1")
        b = make_statement("y", "s2", speaker="A", document_id="d2")
        # Same speaker is checked before the pass
        assert ContradictionDetector.legal_trigger(
            a, b, ContradictionType.CROSS_DOCUMENT
        ) == LegalTrigger.UNRELIABLE_TESTIMONY

    def test_financial_side_between_speakers(self):
        a = make_statement("x", "s1", speaker="A", category=LegalCategory.FINANCIAL)
        b = make_statement("y", "s2", speaker="B", category=LegalCategory.ASSERTION)
        assert ContradictionDetector.legal_trigger(
            a, b, ContradictionType.ENTITY
        ) == LegalTrigger.FINANCIAL_DISCREPANCY

    @pytest.mark.parametrize("pass_type", [
        ContradictionType.ENTITY, ContradictionType.TEMPORAL,
    ])
    def test_cross_speaker_is_misrepresentation(self, pass_type):
        a = make_statement("x", "s1", speaker="A")
        b = make_statement("y", "s2", speaker="B")
        assert ContradictionDetector.legal_trigger(a, b, pass_type) == \
            LegalTrigger.MISREPRESENTATION


class TestTemporalRule:

    def test_later_denial_of_dated_promise(self, detector):
        found = detect_dated(detector, make_entry(
            "chat",
            "Lena: I will deliver the shipment to the Durban warehouse on 2023-01-10.\n"
            "Omar: We refused the shipment on 2024-02-01.",
        ))

        assert len(found) == 1
        c = found[0]
        assert c.rule == ContradictionRule.TEMPORAL_SEQUENCE
        assert c.contradiction_type == ContradictionType.TEMPORAL
        assert c.pass_number == 4
        assert c.severity == 8
        assert c.legal_trigger == LegalTrigger.MISREPRESENTATION
        assert c.affected_speakers == ("Lena", "Omar")
        assert c.description == (
            "Promise dated 2023-01-10 contradicted by denial dated 2024-02-01 about: shipment"
        )

    def test_denial_dated_before_promise_is_ignored(self, detector):
        found = detect_dated(detector, make_entry(
            "chat",
            "Lena: I will deliver the shipment to the Durban warehouse on 2024-02-01.\n"
            "Omar: We refused the shipment on 2023-01-10.",
        ))
        assert found == ()

    def test_needs_timestamps(self, detector):
        found = detect_in(detector, make_entry(
            "chat",
            "Lena: I will deliver the shipment to the Durban warehouse on 2023-01-10.\n"
            "Omar: We refused the shipment on 2024-02-01.",
        ))
        assert found == ()

    def test_coexists_with_pairwise_rule(self, detector):
        found = detect_dated(detector, make_entry(
            "chat",
            "Lena: I will deliver the shipment on 2023-01-10.\n"
            "Omar: We refused the shipment on 2023-02-01.",
        ))

        assert [c.rule for c in found] == [
            ContradictionRule.CLAIM_DENIAL, ContradictionRule.TEMPORAL_SEQUENCE
        ]
        assert [c.pass_number for c in found] == [3, 4]
        claim, temporal = found
        assert claim.pair_key == temporal.pair_key
        assert claim.contradiction_id != temporal.contradiction_id
        assert temporal.description.endswith("about: 2023, shipment")

    def test_reported_once_per_pair(self, detector):
        entry = make_entry(
            "chat",
            "Lena: I will deliver the shipment on 2023-01-10.\n"
            "Omar: We refused the shipment on 2023-02-01.",
        )
        found = detect_dated(detector, entry)
        keys = [c.rule_key for c in found]
        assert len(keys) == len(set(keys))
        assert detect_dated(detector, entry) == found


class TestDeterminism:

    ENTRIES = (
        make_entry("chat", (
            "Marius: I never received the payment.\n"
            "Marius: I confirmed I received the payment last week.\n"
            "Alice: I received the $500.\n"
            "Bob: I did not receive the $500.\n"
            "Eve: The renovation work was excellent.\n"
            "Frank: The renovation work was terrible.\n"
        )),
        make_entry("memo", "Marius: Actually the payment never arrived."),
    )

    def test_pairs_are_unique(self, detector):
        found = detect_in(detector, *self.ENTRIES)
        keys = [c.pair_key for c in found]
        assert len(keys) == len(set(keys))
        assert all(c.source_statement_id != c.target_statement_id for c in found)

    def test_output_is_ordered_by_pass_then_ordinal(self, detector):
        statements = extract(*self.ENTRIES)
        ordinal = {s.statement_id: s.ordinal for s in statements}
        found = detector.detect(statements)

        order = [
            (c.pass_number, ordinal[c.source_statement_id], ordinal[c.target_statement_id])
            for c in found
        ]
        assert order == sorted(order)

    def test_worker_threads_do_not_change_output(self):
        statements = extract(*self.ENTRIES)
        sequential = ContradictionDetector().detect(statements)
        threaded = ContradictionDetector(config=ContradictionConfig(max_workers=4)).detect(statements)
        assert threaded == sequential

    def test_input_order_does_not_matter(self, detector):
        statements = extract(*self.ENTRIES)
        assert detector.detect(tuple(reversed(statements))) == detector.detect(statements)

    def test_ids_are_stable(self, detector):
        first = detect_in(detector, *self.ENTRIES)
        second = detect_in(detector, *self.ENTRIES)
        assert [c.contradiction_id for c in first] == [c.contradiction_id for c in second]
        assert all(c.contradiction_id.startswith("ctr_") for c in first)

    def test_empty_and_single(self, detector):
        assert detector.detect(()) == ()
        assert detect_in(detector, make_entry("d", "Alice: Only one statement.")) == ()
