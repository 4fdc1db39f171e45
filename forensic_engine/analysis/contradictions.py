"""
Contradiction Detector
======================

Pairwise comparison of statements in three passes and five ordered rules,
plus one timeline rule over dated statements.

PASSES (each unordered pair is evaluated in exactly one pass):
==============================================================
1. DIRECT          - same speaker, same document
2. CROSS_DOCUMENT  - same speaker, different documents
3. ENTITY          - different speakers, topic similarity above threshold

RULES (first match wins):
=========================
1. Lexical opposition   (e.g. "received" vs "never received")
2. Negation mismatch    (shared keywords, exactly one side negated)
3. Trigger phrase       (in the later statement)
4. Sentiment divergence (same subject, opposite polarity) -> SEMANTIC
5. Claim / denial       (same subject)

TIMELINE RULE (pass 4, independent of the five above):
======================================================
A dated promise followed by a later-dated denial sharing a keyword
-> TEMPORAL. Runs only when statement timestamps are supplied.

NO TRUTH ADJUDICATION:
======================
A contradiction records that two statements conflict. It never records
which of them is true.
"""

from __future__ import annotations
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from ..contracts.base import (
    content_id, clamp, round_half_up, ContradictionRule, ContradictionType,
    LegalCategory, LegalTrigger
)
from ..contracts.events import Contradiction, Statement
from ..rules import RuleTable, DEFAULT_RULES
from ..rules.matching import (
    normalize_text, contains_phrase, first_phrase, mask_phrases,
    is_negated, topic_keywords, jaccard
)


PASS_TYPES = {
    1: ContradictionType.DIRECT,
    2: ContradictionType.CROSS_DOCUMENT,
    3: ContradictionType.ENTITY,
    4: ContradictionType.TEMPORAL,
}

TEMPORAL_PASS = 4

CLAIM_CATEGORIES = frozenset({
    LegalCategory.ASSERTION, LegalCategory.ADMISSION, LegalCategory.PROMISE,
})


@dataclass
class ContradictionConfig:
    """Configuration for contradiction detection."""
    max_workers: int = 1  # >1 evaluates pairs on a thread pool


@dataclass(frozen=True)
class StatementProfile:
    """Statement plus the derived text features every rule needs."""
    statement: Statement
    normalized: str
    keywords: FrozenSet[str]
    negated: bool


@dataclass(frozen=True)
class RuleMatch:
    """Which rule fired, how confidently, and why."""
    rule: ContradictionRule
    confidence: float
    description: str


class ContradictionDetector:
    """
    Three-pass, five-rule contradiction detector.

    Output order is fixed: (pass, lower ordinal, higher ordinal), whether
    pairs were evaluated sequentially or on worker threads.
    """

    def __init__(
        self,
        rules: RuleTable = DEFAULT_RULES,
        config: Optional[ContradictionConfig] = None
    ):
        self._rules = rules
        self._config = config or ContradictionConfig()

    # =========================================================================
    # PUBLIC INTERFACE
    # =========================================================================

    def detect(
        self,
        statements: Tuple[Statement, ...],
        timestamps: Optional[Mapping[str, datetime]] = None
    ) -> Tuple[Contradiction, ...]:
        """
        All contradictions in a case.

        ``timestamps`` maps statement id to its normalized timestamp (see
        ``Timeline.timestamps_by_statement``); without it the timeline rule
        is skipped.
        """
        profiles = [self.profile(s) for s in sorted(statements, key=lambda s: s.ordinal)]
        candidates = self.candidate_pairs(profiles)

        if self._config.max_workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
                outcomes = list(pool.map(lambda c: self.compare(*c), candidates))
        else:
            outcomes = [self.compare(*c) for c in candidates]

        if timestamps:
            outcomes.extend(self.detect_temporal(profiles, timestamps))

        ordinals = {p.statement.statement_id: p.statement.ordinal for p in profiles}
        seen = set()
        found: List[Tuple[Tuple[int, int, int], Contradiction]] = []
        for outcome in outcomes:
            if outcome is None or outcome.rule_key in seen:
                continue
            seen.add(outcome.rule_key)
            order = (
                outcome.pass_number,
                ordinals[outcome.source_statement_id],
                ordinals[outcome.target_statement_id],
            )
            found.append((order, outcome))

        found.sort(key=lambda item: item[0])
        return tuple(c for _, c in found)

    def detect_temporal(
        self,
        profiles: List[StatementProfile],
        timestamps: Mapping[str, datetime]
    ) -> List[Contradiction]:
        """
        Dated promise contradicted by a strictly later dated denial.

        Only the category pairing and one shared keyword are required; the
        five pairwise rules are not consulted.
        """
        rules = self._rules
        dated = sorted(
            (p for p in profiles if p.statement.statement_id in timestamps),
            key=lambda p: (timestamps[p.statement.statement_id], p.statement.ordinal)
        )

        found: List[Contradiction] = []
        for i, promise in enumerate(dated):
            if promise.statement.legal_category != LegalCategory.PROMISE:
                continue
            promised_at = timestamps[promise.statement.statement_id]
            for denial in dated[i + 1:]:
                if denial.statement.legal_category != LegalCategory.DENIAL:
                    continue
                denied_at = timestamps[denial.statement.statement_id]
                shared = promise.keywords & denial.keywords
                if denied_at <= promised_at or len(shared) < rules.temporal_min_shared_keywords:
                    continue
                match = RuleMatch(
                    rule=ContradictionRule.TEMPORAL_SEQUENCE,
                    confidence=rules.temporal_confidence,
                    description=(
                        f"Promise dated {promised_at.date().isoformat()} contradicted by "
                        f"denial dated {denied_at.date().isoformat()} about: "
                        + ", ".join(sorted(shared)[:5])
                    ),
                )
                found.append(self._build(TEMPORAL_PASS, promise, denial, match))
        return found

    def profile(self, statement: Statement) -> StatementProfile:
        normalized = normalize_text(statement.text)
        return StatementProfile(
            statement=statement,
            normalized=normalized,
            keywords=topic_keywords(normalized, self._rules),
            negated=is_negated(normalized, self._rules),
        )

    def candidate_pairs(
        self,
        profiles: List[StatementProfile]
    ) -> List[Tuple[int, StatementProfile, StatementProfile]]:
        """
        Enumerate (pass, earlier, later) for every pair worth comparing.

        Passes 1 and 2 cover every same-speaker pair. Pass 3 uses a keyword
        inverted index: a similarity above zero needs a shared keyword, so
        the index never hides a qualifying pair.
        """
        candidates: List[Tuple[int, StatementProfile, StatementProfile]] = []

        by_speaker: Dict[str, List[StatementProfile]] = defaultdict(list)
        for p in profiles:
            by_speaker[p.statement.speaker_key].append(p)

        same_speaker: List[Tuple[int, StatementProfile, StatementProfile]] = []
        for speaker in sorted(by_speaker):
            group = by_speaker[speaker]
            for i, left in enumerate(group):
                for right in group[i + 1:]:
                    same_doc = left.statement.document_id == right.statement.document_id
                    same_speaker.append((1 if same_doc else 2, left, right))
        same_speaker.sort(key=lambda c: (c[0], c[1].statement.ordinal, c[2].statement.ordinal))
        candidates.extend(same_speaker)

        index: Dict[str, List[int]] = defaultdict(list)
        for position, p in enumerate(profiles):
            for keyword in p.keywords:
                index[keyword].append(position)

        cross_pairs = set()
        for positions in index.values():
            for i, left_pos in enumerate(positions):
                for right_pos in positions[i + 1:]:
                    left, right = profiles[left_pos], profiles[right_pos]
                    if left.statement.speaker_key != right.statement.speaker_key:
                        cross_pairs.add((left_pos, right_pos))

        threshold = self._rules.topic_similarity_threshold
        for left_pos, right_pos in sorted(cross_pairs):
            left, right = profiles[left_pos], profiles[right_pos]
            if jaccard(left.keywords, right.keywords) > threshold:
                candidates.append((3, left, right))

        return candidates

    def compare(
        self,
        pass_number: int,
        earlier: StatementProfile,
        later: StatementProfile
    ) -> Optional[Contradiction]:
        """Apply the rules to one pair; None when no rule fires."""
        match = self.match_rules(earlier, later, jaccard(earlier.keywords, later.keywords))
        if match is None:
            return None
        return self._build(pass_number, earlier, later, match)

    def _build(
        self,
        pass_number: int,
        left: StatementProfile,
        right: StatementProfile,
        match: RuleMatch
    ) -> Contradiction:
        if left.statement.ordinal > right.statement.ordinal:
            left, right = right, left
        source, target = left.statement, right.statement
        similarity = jaccard(left.keywords, right.keywords)

        pass_type = PASS_TYPES[pass_number]
        if match.rule == ContradictionRule.SENTIMENT_DIVERGENCE:
            contradiction_type = ContradictionType.SEMANTIC
        else:
            contradiction_type = pass_type

        if match.rule == ContradictionRule.TEMPORAL_SEQUENCE:
            contradiction_id = content_id(
                "ctr", source.statement_id, target.statement_id, match.rule.value
            )
        else:
            contradiction_id = content_id("ctr", source.statement_id, target.statement_id)

        return Contradiction(
            contradiction_id=contradiction_id,
            contradiction_type=contradiction_type,
            source_statement_id=source.statement_id,
            target_statement_id=target.statement_id,
            severity=self.severity(match.confidence, source, target),
            description=match.description,
            rule=match.rule,
            confidence=match.confidence,
            similarity_score=similarity,
            pass_number=pass_number,
            affected_speakers=tuple(sorted({source.speaker, target.speaker})),
            legal_trigger=self.legal_trigger(source, target, pass_type),
            amounts=tuple(sorted(set(source.amounts + target.amounts))),
            financial=source.financial or target.financial,
        )

    # =========================================================================
    # RULES
    # =========================================================================

    def match_rules(
        self,
        earlier: StatementProfile,
        later: StatementProfile,
        similarity: float
    ) -> Optional[RuleMatch]:
        rules = self._rules
        same_subject = similarity > rules.topic_similarity_threshold

        opposition = self.find_opposition(earlier.normalized, later.normalized)
        if opposition is not None:
            return RuleMatch(
                rule=ContradictionRule.LEXICAL_OPPOSITION,
                confidence=rules.lexical_confidence,
                description=f"Opposing claims: '{opposition[0]}' vs '{opposition[1]}'",
            )

        shared = earlier.keywords & later.keywords
        if len(shared) >= rules.negation_min_shared_keywords and earlier.negated != later.negated:
            return RuleMatch(
                rule=ContradictionRule.NEGATION_MISMATCH,
                confidence=rules.negation_confidence,
                description="Contradictory statements about: " + ", ".join(sorted(shared)[:5]),
            )

        trigger = first_phrase(later.normalized, rules.trigger_phrases)
        if trigger is not None:
            return RuleMatch(
                rule=ContradictionRule.TRIGGER_PHRASE,
                confidence=rules.trigger_confidence,
                description=f"Explicit contradiction: '{trigger}' in response to earlier statement",
            )

        divergence = abs(earlier.statement.sentiment - later.statement.sentiment)
        if same_subject and divergence > rules.sentiment_divergence_threshold:
            return RuleMatch(
                rule=ContradictionRule.SENTIMENT_DIVERGENCE,
                confidence=clamp(divergence / 2.0, 0.0, 1.0),
                description=(
                    "Opposing sentiment on same subject: "
                    f"{_polarity(earlier.statement.sentiment)} vs "
                    f"{_polarity(later.statement.sentiment)}"
                ),
            )

        if same_subject and _is_claim_denial(earlier.statement, later.statement):
            return RuleMatch(
                rule=ContradictionRule.CLAIM_DENIAL,
                confidence=rules.claim_denial_confidence,
                description="Claim directly contradicted by denial",
            )

        return None

    def find_opposition(self, left: str, right: str) -> Optional[Tuple[str, str]]:
        """
        First registered opposition between two normalized texts.

        A term only counts when it is not part of one of its own opposite
        phrases, so "never received" alone does not also read as "received".
        """
        for term, opposites in self._rules.lexical_oppositions:
            left_term = contains_phrase(mask_phrases(left, opposites), term)
            right_opposite = first_phrase(right, opposites)
            if left_term and right_opposite:
                return term, right_opposite

            left_opposite = first_phrase(left, opposites)
            right_term = contains_phrase(mask_phrases(right, opposites), term)
            if left_opposite and right_term:
                return left_opposite, term
        return None

    # =========================================================================
    # SEVERITY AND LEGAL TRIGGER
    # =========================================================================

    def severity(self, confidence: float, source: Statement, target: Statement) -> int:
        rules = self._rules
        score = round_half_up(confidence * 10)
        categories = {source.legal_category, target.legal_category}
        if categories == {LegalCategory.ADMISSION, LegalCategory.DENIAL}:
            score += rules.admission_denial_bonus
        if source.speaker_key == target.speaker_key:
            score += rules.same_speaker_bonus
        if source.document_id != target.document_id:
            score += rules.cross_document_bonus
        return clamp(score, 1, 10)

    @staticmethod
    def legal_trigger(
        source: Statement,
        target: Statement,
        pass_type: ContradictionType
    ) -> LegalTrigger:
        """
        Legal consequence of a pair, looked up by the pass that found it.

        The sentiment rule's SEMANTIC retyping does not take part: a
        cross-speaker divergence still reads as misrepresentation.
        """
        if (source.legal_category == LegalCategory.ADMISSION
                and target.legal_category == LegalCategory.DENIAL):
            return LegalTrigger.UNRELIABLE_TESTIMONY
        if source.speaker_key == target.speaker_key:
            return LegalTrigger.UNRELIABLE_TESTIMONY
        if pass_type == ContradictionType.CROSS_DOCUMENT:
            return LegalTrigger.MISREPRESENTATION
        if LegalCategory.FINANCIAL in (source.legal_category, target.legal_category):
            return LegalTrigger.FINANCIAL_DISCREPANCY
        if pass_type == ContradictionType.ENTITY or source.speaker_key != target.speaker_key:
            return LegalTrigger.MISREPRESENTATION
        return LegalTrigger.CONCEALMENT


def _polarity(sentiment: float) -> str:
    if sentiment > 0:
        return "positive"
    if sentiment < 0:
        return "negative"
    return "neutral"


def _is_claim_denial(left: Statement, right: Statement) -> bool:
    if left.legal_category == LegalCategory.DENIAL:
        return right.legal_category in CLAIM_CATEGORIES
    if right.legal_category == LegalCategory.DENIAL:
        return left.legal_category in CLAIM_CATEGORIES
    return False
