"""
Scoring Tests

One formula per metric:
- Statement severity and flagging
- Dishonesty percentage
- Liability aggregation and ranking
- Integrity penalties
- Recommended actions
"""

import pytest

from forensic_engine.analysis.subjects import SubjectClassifier
from forensic_engine.contracts.base import (
    AnomalyType, ContradictionRule, ContradictionType, LegalSubject, SeverityLevel
)
from forensic_engine.contracts.events import (
    BehavioralAnomaly, Contradiction, LiabilityEntry, Omission, SubjectTagging
)
from forensic_engine.rules import DEFAULT_RULES
from forensic_engine.scoring import (
    ActionRecommender, IntegrityScorer, LiabilityRanker, ScoringConfig,
    SeverityScorer, dishonesty_score
)
from forensic_engine.temporal.timeline import TimelineBuilder

from tests.fixtures import make_statement


def make_contradiction(source, target, financial=False):
    return Contradiction(
        contradiction_id=f"ctr_{source}_{target}",
        contradiction_type=ContradictionType.DIRECT,
        source_statement_id=source,
        target_statement_id=target,
        severity=8,
        description="test",
        rule=ContradictionRule.LEXICAL_OPPOSITION,
        confidence=0.8,
        similarity_score=0.5,
        pass_number=1,
        affected_speakers=("Alice",),
        financial=financial,
    )


def liability(subject, total, count=0, recurrence=0):
    return LiabilityEntry(
        subject=subject,
        total_severity=total,
        contradiction_count=count,
        recurrence=recurrence,
    )


class TestStatementSeverity:

    def assess(self, statements, **findings):
        tags = SubjectClassifier().tag_statements(statements)
        return SeverityScorer().assess(statements, statement_tags=tags, **findings)

    def test_admission_keyword_is_medium_and_flagged(self):
        (assessment,) = self.assess((make_statement("I admit I was there.", "s1"),))
        assert assessment.severity == SeverityLevel.MEDIUM
        assert assessment.keywords == ("admit",)
        assert assessment.flagged is True

    def test_anomaly_evidence_is_high(self):
        statement = make_statement("You're imagining things.", "s1")
        anomaly = BehavioralAnomaly(
            anomaly_id="anm_1",
            speaker="Alice",
            anomaly_type=AnomalyType.GASLIGHTING,
            severity=2,
            evidence_statement_ids=("s1",),
            description="Gaslighting pattern",
        )
        (assessment,) = self.assess((statement,), anomalies=(anomaly,))
        assert assessment.severity == SeverityLevel.HIGH
        assert assessment.anomaly_types == (AnomalyType.GASLIGHTING,)
        assert assessment.flagged is True

    def test_subject_without_keyword_is_medium_but_not_flagged(self):
        (assessment,) = self.assess((make_statement("The dividend is due.", "s1"),))
        assert assessment.severity == SeverityLevel.MEDIUM
        assert assessment.subjects == (LegalSubject.SHAREHOLDER_OPPRESSION,)
        assert assessment.flagged is False

    def test_contradiction_participation_flags_low_statement(self):
        statements = (
            make_statement("It was blue.", "s1"),
            make_statement("It was green.", "s2", ordinal=1),
        )
        assessments = self.assess(statements, contradictions=(make_contradiction("s1", "s2"),))
        assert [a.severity for a in assessments] == [SeverityLevel.LOW, SeverityLevel.LOW]
        assert all(a.flagged for a in assessments)

    def test_omission_flags_statement(self):
        statement = make_statement("See attachment.", "s1")
        omission = Omission(
            omission_id="omi_1",
            indicator="[redacted]",
            description="Content explicitly redacted",
            severity=SeverityLevel.HIGH,
            statement_id="s1",
        )
        (assessment,) = self.assess((statement,), omissions=(omission,))
        assert assessment.flagged is True

    def test_unremarkable_statement(self):
        (assessment,) = self.assess((make_statement("It was raining.", "s1"),))
        assert assessment.severity == SeverityLevel.LOW
        assert assessment.flagged is False

    def test_category_scores_list_every_subject(self):
        statements = (
            make_statement("The dividend is due.", "s1"),
            make_statement("He admitted the dividend was forged.", "s2", ordinal=1),
        )
        assessments = self.assess(statements)
        scores = dict(SeverityScorer.category_scores(assessments))

        assert list(scores) == list(LegalSubject)
        assert scores[LegalSubject.SHAREHOLDER_OPPRESSION] == 4
        assert scores[LegalSubject.FRAUDULENT_EVIDENCE] == 2
        assert scores[LegalSubject.CYBERCRIME] == 0


class TestDishonesty:

    def test_percentage_of_flagged(self):
        scorer = SeverityScorer()
        statements = (
            make_statement("I admit it.", "s1"),
            make_statement("It rained.", "s2", ordinal=1),
            make_statement("It snowed.", "s3", ordinal=2),
            make_statement("It was sunny.", "s4", ordinal=3),
        )
        assert dishonesty_score(scorer.assess(statements)) == 25.0

    def test_empty_case(self):
        assert dishonesty_score(()) == 0.0


class TestLiability:

    def test_contradiction_count_breaks_severity_tie(self):
        a = liability(LegalSubject.FRAUDULENT_EVIDENCE, 40, count=3)
        b = liability(LegalSubject.CYBERCRIME, 40, count=5)
        assert LiabilityRanker.rank([a, b]) == (b, a)

    def test_recurrence_then_taxonomy_order(self):
        a = liability(LegalSubject.EMOTIONAL_EXPLOITATION, 10, count=1, recurrence=4)
        b = liability(LegalSubject.CYBERCRIME, 10, count=1, recurrence=2)
        c = liability(LegalSubject.SHAREHOLDER_OPPRESSION, 10, count=1, recurrence=2)
        assert LiabilityRanker.rank([b, c, a]) == (a, c, b)

    def test_top_respects_config(self):
        entries = [liability(s, i) for i, s in enumerate(LegalSubject)]
        top = LiabilityRanker(ScoringConfig(top_liabilities=2)).top(entries)
        assert [e.subject for e in top] == [
            LegalSubject.EMOTIONAL_EXPLOITATION, LegalSubject.FRAUDULENT_EVIDENCE
        ]

    def test_build_aggregates_assessments_and_contradiction_tags(self):
        statements = (
            make_statement("The dividend is due.", "s1"),
            make_statement("I admit the dividend was hidden.", "s2", ordinal=1),
        )
        tags = SubjectClassifier().tag_statements(statements)
        assessments = SeverityScorer().assess(statements, statement_tags=tags)
        contradiction_tags = (
            SubjectTagging("ctr_1", (LegalSubject.SHAREHOLDER_OPPRESSION,)),
        )
        entries = {e.subject: e for e in LiabilityRanker.build(assessments, contradiction_tags)}

        shareholder = entries[LegalSubject.SHAREHOLDER_OPPRESSION]
        assert shareholder.total_severity == 4
        assert shareholder.recurrence == 2
        assert shareholder.contradiction_count == 1
        assert entries[LegalSubject.CYBERCRIME].total_severity == 0
        assert len(entries) == len(LegalSubject)


class TestIntegrity:

    def test_penalties(self):
        scorer = IntegrityScorer()
        contradictions = (
            make_contradiction("s1", "s2", financial=True),
            make_contradiction("s3", "s4"),
        )
        gaps = TimelineBuilder().build((
            make_statement("A.", "s5", timestamp="2023-01-01"),
            make_statement("B.", "s6", ordinal=1, timestamp="2023-03-15"),
        )).gaps
        # 100 - 2 x 15 - 1 x 5 - 1 x 10 - 1 x 20
        assert scorer.score(contradictions, 1, gaps) == 35.0

    def test_clamped_at_zero(self):
        scorer = IntegrityScorer()
        contradictions = tuple(make_contradiction(f"a{i}", f"b{i}", True) for i in range(5))
        assert scorer.score(contradictions, 0, ()) == 0.0

    def test_clean_case(self):
        assert IntegrityScorer().score((), 0, ()) == 100.0

    def test_count_evasion(self):
        statements = (
            make_statement("I don't recall. No comment.", "s1"),
            make_statement("I’m not sure.", "s2", ordinal=1),
        )
        assert IntegrityScorer().count_evasion(statements) == 3

    def test_weights_come_from_rules(self):
        lenient = DEFAULT_RULES.derive("test-lenient", contradiction_penalty=1.0)
        scorer = IntegrityScorer(rules=lenient)
        assert scorer.score((make_contradiction("s1", "s2"),), 0, ()) == 99.0


class TestActions:

    def test_only_liabilities_with_severity(self):
        top = (
            liability(LegalSubject.CYBERCRIME, 12),
            liability(LegalSubject.SHAREHOLDER_OPPRESSION, 0),
        )
        actions = ActionRecommender().recommend(top)
        assert len(actions) == 1
        assert actions[0].subject == LegalSubject.CYBERCRIME
        assert actions[0].authority == "SAPS (South African Police Service)"

    def test_every_subject_has_an_action(self):
        for subject in LegalSubject:
            assert DEFAULT_RULES.action_for(subject).subject == subject

    def test_missing_action_raises(self):
        rules = DEFAULT_RULES.derive("test-empty", recommended_actions=())
        with pytest.raises(KeyError):
            rules.action_for(LegalSubject.CYBERCRIME)
