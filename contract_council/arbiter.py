"""Arbiter: scores both advocates, adjusts severity, issues verdicts and the overall synthesis.

Each argument is scored on four criteria normalized to [0, 1]:

  evidence       volume of evidence and whether any item is quantitative
  logic          structure, causal connectives, concession-and-rebuttal
  practicality   concrete mitigation/negotiation actions, feasibility claims
  industry norm  references to standard practice and comparable cases

The weighted sum decides the severity move: a lead of more than 0.3 for the
devil raises severity one level, the same lead for the angel lowers it one
level, anything closer leaves it unchanged.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from config.config_loader import JudgingCriteria
from contract_council.models import (
    SEVERITY_LEVELS,
    SEVERITY_WEIGHTS,
    Argument,
    Finding,
    Outcome,
    Verdict,
    VerdictSynthesis,
    highest_severity,
)

logger = logging.getLogger(__name__)

# Score difference beyond which severity moves one level.
SEVERITY_SHIFT_THRESHOLD = 0.3
# Score differences separating a clear / slight / marginal win in the rationale.
_CLEAR_MARGIN = 0.3
_SLIGHT_MARGIN = 0.1

_MAX_KEY_ACTIONS = 5

# Percentages, currency amounts, counts and years.
_QUANTITATIVE = re.compile(
    r"\d+(?:\.\d+)?\s?%"
    r"|[$€£¥]\s?\d"
    r"|\d[\d,.]*\s?(?:thousand|million|billion|yen|dollars?|usd|eur|jpy)\b"
    r"|\b\d+\s+(?:cases|incidents|claims|times|instances)\b"
    r"|\b\d+\s+years?\b"
    r"|\b(?:19|20)\d{2}\b",
    re.IGNORECASE,
)
_STRUCTURE = re.compile(r"\[[^\]\n]+\]|^\s*\d+\.\s|•|→", re.MULTILINE)
_CAUSALITY = re.compile(
    r"\b(?:because|therefore|due to|as a result|consequently|thus|hence)\b", re.IGNORECASE
)
_CONCESSION = re.compile(
    r"\b(?:however|although|on the other hand|that said|nevertheless|admittedly)\b", re.IGNORECASE
)
_ACTIONABLE = re.compile(
    r"\b(?:mitigat\w*|countermeasures?|negotiat\w*|renegotiat\w*|amend\w*|revis\w*)", re.IGNORECASE
)
_FEASIBILITY = re.compile(r"\b(?:feasible|achievable|manageable|workable|attainable)\b", re.IGNORECASE)
_STANDARD_PRACTICE = re.compile(
    r"\b(?:industry standard|industry practice|standard|common(?:ly)?|typical(?:ly)?|customary|usual(?:ly)?)\b",
    re.IGNORECASE,
)
_COMPARABLE_CASE = re.compile(
    r"\b(?:peers?|competitors?|other companies|precedents?|cases?|examples?|comparable)\b", re.IGNORECASE
)

# Added to the severity weight when ranking verdict priority.
CATEGORY_PRIORITY_BOOST: dict[str, float] = {
    "legal_risk": 1.0,
    "compliance_risk": 1.0,
    "security_risk": 0.5,
    "financial_risk": 0.5,
    "operational_risk": 0.0,
    "reputational_risk": 0.0,
}

_RECOMMENDATION_LABELS: dict[str, str] = {
    "approve": "APPROVE: signing is recommended",
    "approve_with_conditions": "APPROVE WITH CONDITIONS: sign once the listed items are resolved",
    "reject": "REJECT: signing is not recommended",
    "needs_review": "NEEDS REVIEW: further review is required",
}


@dataclass(frozen=True)
class ArgumentScore:
    evidence: float
    logic: float
    practicality: float
    industry_norm: float
    total: float


def score_evidence(evidence) -> float:
    if not evidence:
        return 0.2
    quantity = min(len(evidence) / 3, 1) * 0.5
    quality = 0.5 if any(_QUANTITATIVE.search(item) for item in evidence) else 0.3
    return quantity + quality


def score_logic(reasoning: str) -> float:
    score = 0.5
    if _STRUCTURE.search(reasoning):
        score += 0.2
    if _CAUSALITY.search(reasoning):
        score += 0.15
    if _CONCESSION.search(reasoning):
        score += 0.15
    return min(score, 1.0)


def score_practicality(argument: Argument) -> float:
    text = argument.position + argument.reasoning
    score = 0.5
    if _ACTIONABLE.search(text):
        score += 0.25
    if _FEASIBILITY.search(text):
        score += 0.25
    return min(score, 1.0)


def score_industry_norm(argument: Argument) -> float:
    text = argument.position + argument.reasoning
    score = 0.4
    if _STANDARD_PRACTICE.search(text):
        score += 0.3
    if _COMPARABLE_CASE.search(text):
        score += 0.3
    return min(score, 1.0)


def adjust_severity(original: str, devil_score: float, angel_score: float) -> str:
    """Move `original` at most one level in the direction of the winning side."""
    index = SEVERITY_LEVELS.index(original)
    diff = devil_score - angel_score

    step = 0
    if diff > SEVERITY_SHIFT_THRESHOLD:
        step = 1
    elif diff < -SEVERITY_SHIFT_THRESHOLD:
        step = -1

    new_index = max(0, min(len(SEVERITY_LEVELS) - 1, index + step))
    return SEVERITY_LEVELS[new_index]


def verdict_priority(severity: str, category: str) -> int:
    """1 is most urgent; a critical legal finding scores 1, a low operational one 9."""
    boost = CATEGORY_PRIORITY_BOOST.get(category, 0.0)
    return max(1, int(11 - (SEVERITY_WEIGHTS[severity] + boost) * 2))


class Arbiter:
    """Neutral judge between the devil's and the angel's arguments."""

    def __init__(self, criteria: JudgingCriteria | None = None) -> None:
        self._criteria = criteria or JudgingCriteria()

    @property
    def criteria(self) -> JudgingCriteria:
        return self._criteria

    def score_argument(self, argument: Argument) -> ArgumentScore:
        evidence = score_evidence(argument.evidence)
        logic = score_logic(argument.reasoning)
        practicality = score_practicality(argument)
        industry_norm = score_industry_norm(argument)
        total = (
            evidence * self._criteria.evidence_weight
            + logic * self._criteria.logic_weight
            + practicality * self._criteria.practicality_weight
            + industry_norm * self._criteria.industry_norm_weight
        )
        return ArgumentScore(
            evidence=evidence,
            logic=logic,
            practicality=practicality,
            industry_norm=industry_norm,
            total=total,
        )

    async def deliberate(self, finding: Finding, devil_argument: Argument, angel_argument: Argument) -> Outcome:
        """Score both sides and issue the verdict for one finding.

        Returns:
            Outcome binding the finding, both arguments and the verdict. The
            verdict depends only on the inputs; only `debated_at` varies.
        """
        verdict = self.judge(finding, devil_argument, angel_argument)
        return Outcome(
            finding_id=finding.id,
            finding=finding,
            devil_argument=devil_argument,
            angel_argument=angel_argument,
            verdict=verdict,
            debated_at=datetime.now(timezone.utc).isoformat(),
        )

    def judge(self, finding: Finding, devil_argument: Argument, angel_argument: Argument) -> Verdict:
        devil_score = self.score_argument(devil_argument).total
        angel_score = self.score_argument(angel_argument).total
        adjusted = adjust_severity(finding.severity, devil_score, angel_score)

        logger.debug(
            "Finding %s: devil %.3f vs angel %.3f, %s -> %s",
            finding.id, devil_score, angel_score, finding.severity, adjusted,
        )

        return Verdict(
            adjusted_severity=adjusted,
            rationale=self._build_rationale(finding, devil_score, angel_score, adjusted),
            action_required=adjusted in ("medium", "high", "critical"),
            priority=verdict_priority(adjusted, finding.category),
            negotiation_advice=self._negotiation_advice(finding, adjusted, angel_argument),
        )

    def _build_rationale(self, finding: Finding, devil_score: float, angel_score: float, adjusted: str) -> str:
        devil_wins = devil_score > angel_score
        winner = "devil's advocate" if devil_wins else "angel's advocate"
        diff = abs(devil_score - angel_score)
        if diff > _CLEAR_MARGIN:
            margin = "clearly"
        elif diff > _SLIGHT_MARGIN:
            margin = "slightly"
        else:
            margin = "marginally"

        rationale = "[Verdict]\n"
        rationale += f"The {winner} {margin} prevails.\n\n"
        rationale += "[Scores]\n"
        rationale += f"Devil's advocate: {devil_score * 100:.1f} points\n"
        rationale += f"Angel's advocate: {angel_score * 100:.1f} points\n\n"

        if adjusted != finding.severity:
            rationale += "[Severity adjustment]\n"
            rationale += f"{finding.severity} -> {adjusted}\n"
            rationale += "Severity was adjusted in light of the debate.\n\n"

        rationale += "[Grounds]\n"
        if devil_wins:
            rationale += "• The risk raised by the devil's advocate is realistic and cannot be ignored\n"
            rationale += "• The angel's mitigations help but do not remove the risk\n"
            rationale += "• Addressing this risk should be a condition of signing\n"
        else:
            rationale += "• The mitigations put forward by the angel's advocate are workable and effective\n"
            rationale += "• The devil's concerns describe a worst case with a low likelihood\n"
            rationale += "• With proper management the contract can proceed\n"
        return rationale

    def _negotiation_advice(self, finding: Finding, severity: str, angel_argument: Argument) -> str:
        recommendation = finding.recommendation
        if severity == "critical":
            advice = "[Must negotiate] Do not sign unless this clause is amended.\n"
            advice += f"Negotiation point: {recommendation}\n"
            advice += "If negotiation fails, consider walking away from the contract."
        elif severity == "high":
            advice = "[Strongly recommended] Press firmly for an amendment to this clause.\n"
            advice += f"Negotiation point: {recommendation}\n"
            advice += "If the counterparty refuses, accepting the risk needs a management decision."
        elif severity == "medium":
            advice = "[Recommended] Ask for an amendment where possible.\n"
            advice += f"Negotiation point: {recommendation}\n"
            advice += "If an amendment is hard to get, internal mitigation is sufficient."
        else:
            advice = "[Suggestion] Propose an improvement if time allows.\n"
            advice += f"Improvement point: {recommendation}\n"
            advice += "This item alone is no reason to hold the contract."

        if angel_argument.counterpoints:
            advice += "\n\n[Alternative]\n"
            advice += f"If an amendment is not possible: {angel_argument.counterpoints[0]}"
        return advice

    def synthesize_verdicts(self, outcomes) -> VerdictSynthesis:
        """Roll all outcomes up into an overall risk level and approval recommendation."""
        counts = {level: 0 for level in SEVERITY_LEVELS}
        key_actions: list[str] = []

        for outcome in outcomes:
            verdict = outcome.verdict
            counts[verdict.adjusted_severity] += 1
            if verdict.action_required and verdict.negotiation_advice:
                key_actions.append(verdict.negotiation_advice.split("\n")[0])

        overall_risk = highest_severity(level for level in SEVERITY_LEVELS if counts[level])

        if counts["critical"]:
            recommendation = "reject"
        elif counts["high"] or counts["medium"]:
            recommendation = "approve_with_conditions"
        else:
            recommendation = "approve"

        return VerdictSynthesis(
            overall_risk=overall_risk,
            approval_recommendation=recommendation,
            key_actions=tuple(key_actions[:_MAX_KEY_ACTIONS]),
            summary=self._synthesis_summary(len(outcomes), counts, recommendation),
        )

    def _synthesis_summary(self, total: int, counts: dict[str, int], recommendation: str) -> str:
        summary = "[Arbiter's overall judgment]\n\n"
        summary += f"Findings debated: {total}\n"
        summary += f"• Critical: {counts['critical']}\n"
        summary += f"• High: {counts['high']}\n"
        summary += f"• Medium: {counts['medium']}\n"
        summary += f"• Low: {counts['low']}\n\n"

        summary += "[Recommendation]\n"
        summary += _RECOMMENDATION_LABELS[recommendation] + "\n\n"

        if recommendation == "reject":
            summary += "Critical risks remain, so the contract should not be signed as written.\n"
            summary += "A fundamental renegotiation with the counterparty is required.\n"
        elif recommendation == "approve_with_conditions":
            summary += "The contract can proceed on condition that the listed risks are addressed.\n"
            summary += "Resolve the negotiation items before seeking final approval.\n"
        else:
            summary += "No significant risks were found. The contract can proceed.\n"
        return summary
