"""
Rule Table

Every keyword list, phrase table and threshold used by the analysis stages
lives in one versioned, immutable RuleTable. Stages receive the table through
their constructor; nothing reads rule constants from module globals.

VERSIONING:
===========
- DEFAULT_RULES carries RULE_VERSION; the version is stamped on every Report
- A changed table MUST carry a new version (see RuleTable.derive)
- Tables are ordered tuples: iteration order is part of the rule semantics
  (first match wins for lexical oppositions and categories)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Tuple

from ..contracts.base import AnomalyType, EventType, LegalSubject, SeverityLevel
from ..contracts.events import RecommendedAction


RULE_VERSION = "1.0.0"


# =============================================================================
# TEXT VOCABULARY
# =============================================================================

STOP_WORDS = frozenset({
    'the', 'a', 'an', 'is', 'are', 'was', 'were', 'be', 'been', 'being',
    'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could',
    'should', 'may', 'might', 'must', 'shall', 'can', 'to', 'of', 'in',
    'for', 'on', 'with', 'at', 'by', 'from', 'as', 'into', 'through', 'and',
    'or', 'but', 'i', 'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him',
    'her', 'us', 'them', 'my', 'your', 'his', 'its', 'our', 'their', 'this',
    'that', 'these', 'those', 'about', 'then', 'there',
})

NEGATION_WORDS = (
    'not', 'never', 'no', 'none', 'nobody', 'nothing', 'neither', 'nowhere',
    'cannot',
)

# Contractions such as didn't, won't and isn't
NEGATION_SUFFIX = "n't"

# Ordered: the first term with a match decides the reported pair
LEXICAL_OPPOSITIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('agree', ('disagree', 'oppose', 'reject')),
    ('accept', ('refuse', 'reject', 'decline')),
    ('true', ('false', 'untrue', 'incorrect')),
    ('always', ('never',)),
    ('paid', ('never paid', "didn't pay", 'did not pay', 'refused to pay', 'unpaid')),
    ('received', ('never received', "didn't receive", 'did not receive')),
    ('sent', ('never sent', "didn't send", 'did not send', 'withheld')),
    ('promised', ('never promised', 'broke the promise')),
    ('agreed', ('disagreed', 'never agreed')),
    ('signed', ('never signed', "didn't sign", 'did not sign', 'refused to sign')),
    ('said', ('never said', "didn't say", 'did not say')),
    ('knew', ("didn't know", 'did not know', 'never knew', 'was unaware')),
    ('told', ('never told', "didn't tell", 'did not tell')),
    ('confirmed', ('denied', 'never confirmed', 'disputed')),
    ('admitted', ('denied', 'never admitted')),
    ('guilty', ('innocent', 'not guilty')),
    ('responsible', ('not responsible', 'irresponsible')),
    ('complete', ('incomplete', 'unfinished')),
    ('increase', ('decrease',)),
    ('profit', ('loss',)),
)

TRIGGER_PHRASES = (
    "that's not what i said", "i never said that", "contrary to",
    "that's false", "that's incorrect", "i deny", "that's a lie",
    "you're wrong", "actually", "in fact", "to correct", "to clarify",
    "the truth is", "what really happened",
)


# =============================================================================
# STATEMENT CATEGORIES
# =============================================================================

ADMISSION_KEYWORDS = (
    'admit', 'admits', 'admitted', 'confirm', 'confirms', 'confirmed',
    'acknowledge', 'acknowledged', 'confess', 'confessed', 'yes i did',
)

DENIAL_KEYWORDS = (
    'never', 'deny', 'denies', 'denied', 'did not', "didn't", 'was not',
    "wasn't", 'refuse', 'refused', 'reject', 'rejected',
)

PROMISE_KEYWORDS = (
    'will', 'promise', 'promised', 'shall', 'commit', 'guarantee', 'assure',
    'pledge',
)

CURRENCY_SYMBOLS = ('$', '£', '€')

FINANCIAL_KEYWORDS = (
    'pay', 'paid', 'payment', 'owe', 'owed', 'amount', 'cost', 'price', 'fee',
    'invoice', 'dollar', 'dollars', 'pound', 'pounds', 'euro', 'euros', 'rand',
    'money', 'funds', 'transfer', 'transferred', 'deposit', 'withdrawal',
    'loan', 'usd', 'eur', 'gbp', 'aed', 'zar',
)


# =============================================================================
# SENTIMENT AND CERTAINTY
# =============================================================================

POSITIVE_WORDS = (
    'good', 'great', 'excellent', 'happy', 'pleased', 'agree', 'agreed',
    'yes', 'correct', 'true', 'confirm', 'confirmed', 'love', 'wonderful',
    'appreciate', 'thank', 'thanks', 'glad',
)

NEGATIVE_WORDS = (
    'bad', 'terrible', 'wrong', 'disagree', 'no', 'false', 'deny', 'denied',
    'reject', 'hate', 'awful', 'never', 'not', 'refuse', 'refused',
    'disappointed', 'upset', 'angry', 'lie', 'lied',
)

CERTAIN_WORDS = (
    'definitely', 'certainly', 'absolutely', 'sure', 'know', 'fact', 'proven',
    'clearly', 'always', 'every', 'undoubtedly',
)

HEDGING_WORDS = (
    'maybe', 'perhaps', 'possibly', 'might', 'could', 'uncertain', 'unclear',
    'i think', 'i believe', 'i guess', 'probably', 'likely', 'i suppose',
)


# =============================================================================
# LEGAL SUBJECTS
# =============================================================================

SUBJECT_KEYWORDS: Tuple[Tuple[LegalSubject, Tuple[str, ...]], ...] = (
    (LegalSubject.SHAREHOLDER_OPPRESSION, (
        'shareholder', 'shareholders', 'dividend', 'dividends', 'equity',
        'shares', 'profit distribution', 'ownership', 'voting rights',
        'board meeting', 'oppression',
    )),
    (LegalSubject.BREACH_OF_FIDUCIARY_DUTY, (
        'fiduciary', 'duty', 'conflict of interest', 'self-dealing', 'loyalty',
        'good faith', 'director', 'trustee', 'misappropriated',
    )),
    (LegalSubject.CYBERCRIME, (
        'hack', 'hacked', 'hacking', 'unauthorized access', 'password',
        'breach', 'cyber', 'computer', 'data theft', 'malware', 'phishing',
        'intrusion',
    )),
    (LegalSubject.FRAUDULENT_EVIDENCE, (
        'forged', 'forgery', 'fake', 'fabricated', 'doctored', 'altered',
        'manipulated', 'falsified', 'counterfeit', 'tampered',
    )),
    (LegalSubject.EMOTIONAL_EXPLOITATION, (
        'manipulate', 'gaslight', 'gaslighting', 'pressure', 'pressured',
        'coerce', 'coerced', 'threaten', 'threatened', 'exploit', 'exploited',
        'emotional', 'abuse', 'abused', 'intimidate', 'intimidated', 'harass',
        'harassed',
    )),
)

FLAG_KEYWORDS = (
    'admit', 'admitted', 'deny', 'denied', 'forged', 'delete', 'deleted',
    'access', 'accessed', 'refuse', 'refused', 'invoice', 'invoices',
    'profit', 'profits',
)

RECOMMENDED_ACTIONS: Tuple[RecommendedAction, ...] = (
    RecommendedAction(
        subject=LegalSubject.SHAREHOLDER_OPPRESSION,
        authority="RAKEZ",
        action="File for shareholder injunction",
        legal_basis="UAE Commercial Companies Law Article 110 - Protection against oppressive conduct",
    ),
    RecommendedAction(
        subject=LegalSubject.BREACH_OF_FIDUCIARY_DUTY,
        authority="Civil Court",
        action="File damages claim for breach of fiduciary duty",
        legal_basis="Common law fiduciary duties - Duty of loyalty and duty of care",
    ),
    RecommendedAction(
        subject=LegalSubject.CYBERCRIME,
        authority="SAPS (South African Police Service)",
        action="Request cybercrime device seizure and forensic analysis",
        legal_basis="Cybercrimes Act 19 of 2020 - Unauthorized access and data interference",
    ),
    RecommendedAction(
        subject=LegalSubject.FRAUDULENT_EVIDENCE,
        authority="Civil Court",
        action="Pursue damages claim for fraud and misrepresentation",
        legal_basis="Common law fraud - Material misrepresentation with intent to deceive",
    ),
    RecommendedAction(
        subject=LegalSubject.EMOTIONAL_EXPLOITATION,
        authority="Civil Court",
        action="File damages claim for emotional distress and manipulation",
        legal_basis="Tort law - Intentional infliction of emotional distress",
    ),
)


# =============================================================================
# BEHAVIOR
# =============================================================================

BEHAVIOR_PHRASES: Tuple[Tuple[AnomalyType, Tuple[str, ...]], ...] = (
    (AnomalyType.GASLIGHTING, (
        "you're imagining", "that never happened", "you're crazy",
        "i never said that", "you're confused", "you misunderstood",
        "you're overreacting", "you're being paranoid",
    )),
    (AnomalyType.DEFLECTION, (
        "what about", "but you", "that's not the point", "let's focus on",
        "the real issue is",
    )),
    (AnomalyType.PRESSURE_TACTICS, (
        "you need to decide now", "this offer expires", "take it or leave it",
        "everyone else agrees", "don't miss out", "act fast", "limited time",
    )),
    (AnomalyType.FINANCIAL_MANIPULATION, (
        "just this once", "i'll pay you back", "trust me",
        "it's an investment", "you'll make it back", "guaranteed return",
        "no risk",
    )),
    (AnomalyType.EMOTIONAL_MANIPULATION, (
        "if you loved me", "after all i've done", "you owe me",
        "don't you trust me", "i thought we were friends",
    )),
    (AnomalyType.BLAME_SHIFTING, (
        "it's your fault", "you made me", "because of you", "if you hadn't",
        "you should have",
    )),
    (AnomalyType.OVER_EXPLAINING, (
        "let me explain", "the reason is", "you see", "what happened was",
        "it's complicated", "there's more to it",
    )),
    (AnomalyType.PASSIVE_ADMISSION, (
        "i thought i was in the clear", "i didn't think anyone would notice",
        "i assumed it would be fine", "technically", "in a way",
    )),
)

EVASION_PHRASES = (
    "i don't recall", "i do not recall", "i don't remember",
    "i can't remember", "i cannot remember", "no comment",
    "i'm not sure", "i decline to answer", "i'd rather not say",
    "that's irrelevant",
)


# =============================================================================
# OMISSIONS AND TIMELINE
# =============================================================================

OMISSION_INDICATORS: Tuple[Tuple[str, str, SeverityLevel], ...] = (
    ("...", "Ellipsis may indicate removed content", SeverityLevel.MEDIUM),
    ("[deleted]", "Content explicitly marked as deleted", SeverityLevel.HIGH),
    ("[redacted]", "Content explicitly redacted", SeverityLevel.HIGH),
    ("cropped", "Reference to cropped material", SeverityLevel.MEDIUM),
    ("missing", "Reference to missing material", SeverityLevel.MEDIUM),
    ("not provided", "Material stated as not provided", SeverityLevel.MEDIUM),
    ("unavailable", "Material stated as unavailable", SeverityLevel.MEDIUM),
    ("can't find", "Material stated as not found", SeverityLevel.MEDIUM),
    ("lost", "Material stated as lost", SeverityLevel.HIGH),
    ("gap in", "Reference to a gap in the record", SeverityLevel.MEDIUM),
)

# Ordered: first type with a keyword match wins, STATEMENT otherwise
EVENT_TYPE_KEYWORDS: Tuple[Tuple[EventType, Tuple[str, ...]], ...] = (
    (EventType.PAYMENT, (
        'paid', 'pay', 'payment', 'transfer', 'transferred', 'deposit',
        'invoice', 'received',
    )),
    (EventType.LEGAL_ACTION, (
        'lawsuit', 'court', 'lawyer', 'attorney', 'sue', 'sued', 'legal',
    )),
    (EventType.DEADLINE, ('deadline', 'due', 'expires', 'expired')),
    (EventType.AGREEMENT, ('agree', 'agreed', 'agreement', 'contract', 'signed', 'deal')),
    (EventType.PROMISE, ('promise', 'promised', 'will', 'guarantee')),
    (EventType.MEETING, ('meet', 'meeting', 'met', 'call', 'conference')),
    (EventType.REQUEST, ('request', 'requested', 'asked', 'please')),
    (EventType.COMMUNICATION, ('email', 'emailed', 'message', 'wrote', 'sent', 'told')),
)

MONTH_NAMES = (
    'january', 'february', 'march', 'april', 'may', 'june', 'july',
    'august', 'september', 'october', 'november', 'december',
)


# =============================================================================
# RULE TABLE
# =============================================================================

@dataclass(frozen=True)
class RuleTable:
    """
    Versioned, immutable table of every analysis constant.

    Stages MUST take the table as an argument. Two runs with equal tables
    and equal evidence produce equal findings.
    """
    version: str = RULE_VERSION

    # Vocabulary
    stop_words: frozenset = STOP_WORDS
    negation_words: Tuple[str, ...] = NEGATION_WORDS
    negation_suffix: str = NEGATION_SUFFIX
    min_keyword_length: int = 3
    lexical_oppositions: Tuple[Tuple[str, Tuple[str, ...]], ...] = LEXICAL_OPPOSITIONS
    trigger_phrases: Tuple[str, ...] = TRIGGER_PHRASES

    # Categories
    admission_keywords: Tuple[str, ...] = ADMISSION_KEYWORDS
    denial_keywords: Tuple[str, ...] = DENIAL_KEYWORDS
    promise_keywords: Tuple[str, ...] = PROMISE_KEYWORDS
    currency_symbols: Tuple[str, ...] = CURRENCY_SYMBOLS
    financial_keywords: Tuple[str, ...] = FINANCIAL_KEYWORDS

    # Sentiment / certainty
    positive_words: Tuple[str, ...] = POSITIVE_WORDS
    negative_words: Tuple[str, ...] = NEGATIVE_WORDS
    certain_words: Tuple[str, ...] = CERTAIN_WORDS
    hedging_words: Tuple[str, ...] = HEDGING_WORDS

    # Legal subjects and scoring
    subject_keywords: Tuple[Tuple[LegalSubject, Tuple[str, ...]], ...] = SUBJECT_KEYWORDS
    flag_keywords: Tuple[str, ...] = FLAG_KEYWORDS
    recommended_actions: Tuple[RecommendedAction, ...] = RECOMMENDED_ACTIONS

    # Behavior
    behavior_phrases: Tuple[Tuple[AnomalyType, Tuple[str, ...]], ...] = BEHAVIOR_PHRASES
    evasion_phrases: Tuple[str, ...] = EVASION_PHRASES

    # Omissions and timeline
    omission_indicators: Tuple[Tuple[str, str, SeverityLevel], ...] = OMISSION_INDICATORS
    event_type_keywords: Tuple[Tuple[EventType, Tuple[str, ...]], ...] = EVENT_TYPE_KEYWORDS
    month_names: Tuple[str, ...] = MONTH_NAMES

    # Contradiction thresholds
    topic_similarity_threshold: float = 0.3
    sentiment_divergence_threshold: float = 1.0
    negation_min_shared_keywords: int = 2
    lexical_confidence: float = 0.8
    negation_confidence: float = 0.9
    trigger_confidence: float = 0.95
    claim_denial_confidence: float = 0.85
    temporal_confidence: float = 0.8
    temporal_min_shared_keywords: int = 1
    admission_denial_bonus: int = 2
    same_speaker_bonus: int = 1
    cross_document_bonus: int = 1

    # Behavior thresholds
    tone_shift_threshold: float = 0.5
    certainty_decline_threshold: float = 0.3
    sudden_denial_severity: int = 8
    pattern_severity_steps: Tuple[Tuple[int, int], ...] = ((5, 10), (3, 8), (2, 5))
    pattern_base_severity: int = 2

    # Timeline thresholds (days)
    gap_threshold_days: float = 30.0
    high_gap_days: float = 90.0
    critical_gap_days: float = 365.0

    # Integrity weights
    contradiction_penalty: float = 15.0
    evasion_penalty: float = 5.0
    timeline_penalty: float = 10.0
    financial_penalty: float = 20.0

    def __post_init__(self):
        if not self.version:
            raise ValueError("RuleTable version must be a non-empty string")
        if not 0.0 <= self.topic_similarity_threshold <= 1.0:
            raise ValueError("topic_similarity_threshold must be between 0.0 and 1.0")
        if not 0 < self.gap_threshold_days <= self.high_gap_days <= self.critical_gap_days:
            raise ValueError("gap thresholds must be positive and ascending")

    def derive(self, version: str, **changes) -> RuleTable:
        """Return a new table with changed entries under a new version."""
        if version == self.version:
            raise ValueError("a derived RuleTable must carry a new version")
        return replace(self, version=version, **changes)

    def action_for(self, subject: LegalSubject) -> RecommendedAction:
        for action in self.recommended_actions:
            if action.subject == subject:
                return action
        raise KeyError(f"No recommended action registered for {subject.name}")


DEFAULT_RULES = RuleTable()
