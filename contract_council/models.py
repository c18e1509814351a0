"""Frozen dataclasses for the contract debate pipeline. No logic beyond severity helpers."""

from dataclasses import dataclass, field
from typing import Literal

Severity = Literal["low", "medium", "high", "critical"]

FindingCategory = Literal[
    "legal_risk",
    "financial_risk",
    "security_risk",
    "operational_risk",
    "compliance_risk",
    "reputational_risk",
]

ApprovalRecommendation = Literal["approve", "approve_with_conditions", "reject", "needs_review"]

# Ordinal scale, lowest first. Severity moves along this at most one step per debate.
SEVERITY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")

SEVERITY_WEIGHTS: dict[str, int] = {
    "low": 1,
    "medium": 2,
    "high": 3,
    "critical": 4,
}

FINDING_CATEGORIES: tuple[str, ...] = (
    "legal_risk",
    "financial_risk",
    "security_risk",
    "operational_risk",
    "compliance_risk",
    "reputational_risk",
)


def highest_severity(severities) -> str:
    """Return the most severe level among `severities`, or "low" when empty."""
    best = "low"
    for severity in severities:
        if SEVERITY_WEIGHTS[severity] > SEVERITY_WEIGHTS[best]:
            best = severity
    return best


# --- Contract (passed through opaquely as debate context) ---


@dataclass(frozen=True)
class Party:
    id: str
    name: str
    role: str = "other"       # "client", "vendor", "partner", "other"
    is_our_side: bool = False


@dataclass(frozen=True)
class Clause:
    id: str
    number: str
    type: str                 # "payment", "liability", ..., "general"
    title: str
    content: str
    sub_clauses: tuple["Clause", ...] = ()


@dataclass(frozen=True)
class ContractMetadata:
    language: str = "en"
    parsed_at: str = ""
    page_count: int | None = None
    word_count: int | None = None
    version: str | None = None


@dataclass(frozen=True)
class Contract:
    id: str
    title: str
    parties: tuple[Party, ...] = ()
    clauses: tuple[Clause, ...] = ()
    raw_text: str = ""
    metadata: ContractMetadata = field(default_factory=ContractMetadata)


# --- Analyzer output ---


@dataclass(frozen=True)
class Finding:
    id: str
    persona: str              # originating analyzer, e.g. "legal_expert"
    clause_ref: str
    severity: Severity
    category: FindingCategory
    title: str
    issue: str
    impact: str
    recommendation: str
    evidence: tuple[str, ...] = ()
    clause_number: str = ""
    related_findings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PersonaAnalysis:
    persona: str
    analyzed_at: str
    findings: tuple[Finding, ...]
    summary: str
    overall_risk: Severity
    confidence: float         # 0-1


# --- Debate ---


@dataclass(frozen=True)
class Argument:
    position: str
    reasoning: str
    evidence: tuple[str, ...] = ()
    counterpoints: tuple[str, ...] = ()


@dataclass(frozen=True)
class Verdict:
    adjusted_severity: Severity
    rationale: str
    action_required: bool
    priority: int             # 1 = most urgent
    negotiation_advice: str


@dataclass(frozen=True)
class Outcome:
    finding_id: str
    finding: Finding
    devil_argument: Argument
    angel_argument: Argument
    verdict: Verdict
    debated_at: str           # ISO-8601, UTC


@dataclass(frozen=True)
class Round:
    number: int
    topic: str
    findings: tuple[Finding, ...]
    outcomes: tuple[Outcome, ...]
    completed_at: str


@dataclass(frozen=True)
class SeverityAdjustments:
    upgraded: int = 0
    downgraded: int = 0
    unchanged: int = 0


@dataclass(frozen=True)
class DebateStatistics:
    total_findings: int
    debated_findings: int
    devil_wins: int
    angel_wins: int
    ties: int
    average_devil_score: float
    average_angel_score: float
    severity_adjustments: SeverityAdjustments


@dataclass(frozen=True)
class VerdictSynthesis:
    overall_risk: Severity
    approval_recommendation: ApprovalRecommendation
    key_actions: tuple[str, ...]
    summary: str


@dataclass(frozen=True)
class ArenaOutput:
    rounds: tuple[Round, ...]
    all_outcomes: tuple[Outcome, ...]
    synthesis: VerdictSynthesis
    statistics: DebateStatistics
