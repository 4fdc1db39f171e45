"""
Legal Subject Classifier

Tags contradictions and statements with categories of the fixed five-subject
taxonomy. Membership is keyword based and non-exclusive: one text may carry
several subjects, or none. Subjects are always listed in taxonomy order.
"""

from __future__ import annotations
from typing import Dict, List, Mapping, Tuple

from ..contracts.base import LegalSubject
from ..contracts.events import Contradiction, Statement, SubjectTagging
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import normalize_text, matched_phrases


class SubjectClassifier:

    def __init__(self, rules: RuleTable = DEFAULT_RULES):
        self._rules = rules

    def classify_text(self, text: str) -> Tuple[Tuple[LegalSubject, ...], Tuple[str, ...]]:
        """Return (subjects, matched keywords) for one text."""
        normalized = normalize_text(text)
        subjects: List[LegalSubject] = []
        keywords: List[str] = []
        for subject, subject_keywords in self._rules.subject_keywords:
            hits = matched_phrases(normalized, subject_keywords)
            if hits:
                subjects.append(subject)
                keywords.extend(hits)
        order = {s: i for i, s in enumerate(LegalSubject)}
        subjects.sort(key=order.__getitem__)
        return tuple(subjects), tuple(dict.fromkeys(keywords))

    def tag_statements(self, statements: Tuple[Statement, ...]) -> Tuple[SubjectTagging, ...]:
        tags = []
        for statement in statements:
            subjects, keywords = self.classify_text(statement.text)
            tags.append(SubjectTagging(
                target_id=statement.statement_id,
                subjects=subjects,
                matched_keywords=keywords,
            ))
        return tuple(tags)

    def tag_contradictions(
        self,
        contradictions: Tuple[Contradiction, ...],
        statements: Mapping[str, Statement]
    ) -> Tuple[SubjectTagging, ...]:
        """Classify each contradiction on the combined text of both sides."""
        tags = []
        for contradiction in contradictions:
            source = statements[contradiction.source_statement_id]
            target = statements[contradiction.target_statement_id]
            subjects, keywords = self.classify_text(f"{source.text} {target.text}")
            tags.append(SubjectTagging(
                target_id=contradiction.contradiction_id,
                subjects=subjects,
                matched_keywords=keywords,
            ))
        return tuple(tags)


def subjects_by_target(tags: Tuple[SubjectTagging, ...]) -> Dict[str, Tuple[LegalSubject, ...]]:
    return {tag.target_id: tag.subjects for tag in tags}
