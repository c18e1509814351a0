"""Devil's advocate: reads every finding in its worst plausible light."""

import logging
import re
from dataclasses import dataclass

from contract_council.advocates.base import Advocate, DebateContext, bullets
from contract_council.models import Argument, Contract, Finding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAmplification:
    worst_case_scenarios: tuple[str, ...]
    historical_references: tuple[str, ...]
    hidden_dangers: tuple[str, ...]


RISK_AMPLIFICATION_PATTERNS: dict[str, RiskAmplification] = {
    "legal_risk": RiskAmplification(
        worst_case_scenarios=(
            "The dispute escalates to litigation with a large damages claim",
            "Business is suspended over an alleged breach, threatening continuity",
            "A court adopts the counterparty's reading of the clause and it hardens into precedent",
            "The counterparty uses the contract in bad faith to shift legal liability onto us",
        ),
        historical_references=(
            "Damages in the hundreds of millions have been awarded over similarly vague clauses",
            "Exclusion clauses have been struck down, leaving the signer liable in full",
            "Signers litigating under a foreign governing law tend to receive unfavourable judgments",
        ),
        hidden_dangers=(
            "A future change in law could invalidate this clause",
            "If the counterparty fails, this contract may remain on our books as a liability",
            "After an acquisition by a competitor, the contract could be turned against us",
        ),
    ),
    "financial_risk": RiskAmplification(
        worst_case_scenarios=(
            "Hidden costs accumulate until spend exceeds three times the original estimate",
            "Currency swings inflate payments far beyond budget",
            "Penalty clauses force large payments even when the service goes unused",
            "A missed auto-renewal keeps an unwanted contract running for years",
        ),
        historical_references=(
            "Companies have lost hundreds of millions a year to minimum-commitment clauses",
            "Price revision clauses have doubled fees within a single contract term",
            "Early termination fees exceeding the total contract value have been reported",
        ),
        hidden_dangers=(
            "The definition of additional fees is vague enough to permit unexpected invoices",
            "Currency exposure is unhedged and payments rise with every depreciation",
            "Tax treatment is unclear, so consumption tax may be billed on top",
        ),
    ),
    "security_risk": RiskAmplification(
        worst_case_scenarios=(
            "A personal data leak brings massive damages and a regulatory suspension order",
            "A cyber attack exfiltrates customer data and destroys trust in the company",
            "Regulators find a legal violation and suspend operations",
            "An incident at a subcontractor is attributed to us",
        ),
        historical_references=(
            "Settlements above 50 billion yen have followed personal data breaches",
            "GDPR fines above 4% of annual turnover have been imposed",
            "Prime contractors have been held liable for misconduct by their subcontractors",
        ),
        hidden_dangers=(
            "Encryption requirements are too weak to stop the data being decrypted",
            "Without audit rights we cannot verify the counterparty's security posture",
            "Deletion of our data after termination is not guaranteed",
        ),
    ),
    "operational_risk": RiskAmplification(
        worst_case_scenarios=(
            "An unachievable SLA means paying penalties every single month",
            "Round-the-clock support obligations burn the team out",
            "Vague acceptance criteria mean acceptance never completes",
            "Transition obligations bind us for years after termination",
        ),
        historical_references=(
            "Contracts promising 99.99% availability have been terminated when the SLA was missed",
            "Unlimited change requests have sunk entire projects",
            "Ten-year warranty terms have produced support costs above the contract margin",
        ),
        hidden_dangers=(
            "The scope of reasonable cooperation is open-ended and can be stretched without limit",
            "Reporting duties are heavy enough to disrupt core work",
            "Dedicated-staff requirements may be impossible to meet, exposing us to breach claims",
        ),
    ),
    "compliance_risk": RiskAmplification(
        worst_case_scenarios=(
            "A regulatory violation leads to a suspension order that ends the business line",
            "Administrative sanctions wreck the brand and the share price collapses",
            "Executives face personal and even criminal liability",
        ),
        historical_references=(
            "Companies have received business improvement orders under data protection law",
            "Fair trade regulators have issued recommendations over subcontracting abuses",
            "Cross-border data transfers have been halted by regulatory injunctions",
        ),
        hidden_dangers=(
            "What is lawful today may become unlawful after the next legislative change",
            "Alignment with industry guidelines is unclear and will be flagged in audits",
            "Foreign regulation such as GDPR may apply and has been overlooked",
        ),
    ),
    "reputational_risk": RiskAmplification(
        worst_case_scenarios=(
            "We are dragged into a counterparty scandal and our reputation suffers",
            "The contract terms are exposed on social media and provoke a backlash",
            "Unfavourable terms leak to competitors and we lose negotiating leverage",
        ),
        historical_references=(
            "Share prices have fallen after a business partner's accounting fraud came to light",
            "Leaked contract terms have damaged standing across an entire industry",
        ),
        hidden_dangers=(
            "The counterparty's finances are deteriorating and insolvency is possible",
            "There are signs of weaknesses in the counterparty's compliance framework",
        ),
    ),
}

_FALLBACK_AMPLIFICATION = RiskAmplification(
    worst_case_scenarios=("This issue could trigger an unforeseen chain of losses",),
    historical_references=(),
    hidden_dangers=("Further risks that have not yet surfaced are likely hiding behind this one",),
)

SEVERITY_EMPHASIS: dict[str, str] = {
    "critical": "This contract has a fatal defect and should not be signed under any circumstances.",
    "high": "This contract carries a serious risk; signing it as written cannot be recommended.",
    "medium": "This contract carries a real risk that calls for careful review.",
    "low": "This risk is easy to dismiss, yet it can grow into a larger problem.",
}

# (pattern, concern) pairs scanned against the whole contract text; first match wins.
_CONCERN_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"sole discretion|as determined by the (?:vendor|supplier|provider|licensor)", re.IGNORECASE),
        "Discretion is concentrated in the counterparty",
    ),
    (re.compile(r"unilateral(?:ly)?|at any time", re.IGNORECASE), "Powers can be exercised unilaterally"),
    (re.compile(r"promptly|immediately|without delay", re.IGNORECASE), "Deadlines are vaguely defined"),
)


class DevilsAdvocate(Advocate):
    """Risk-maximizing side: treats the stated impact as the probable outcome."""

    def name(self) -> str:
        return "devil"

    async def argue(self, context: DebateContext) -> Argument:
        finding = context.finding
        pattern = RISK_AMPLIFICATION_PATTERNS.get(finding.category, _FALLBACK_AMPLIFICATION)

        argument = Argument(
            position=self._build_position(finding, pattern, context.round),
            reasoning=self._build_reasoning(finding, pattern),
            evidence=self._gather_evidence(finding, context.contract),
            counterpoints=self._prepare_counterpoints(context.opponent_argument),
        )
        logger.debug("Devil argued finding %s (round %d)", finding.id, context.round)
        return argument

    def _build_position(self, finding: Finding, pattern: RiskAmplification, round_number: int) -> str:
        position = SEVERITY_EMPHASIS[finding.severity]
        if round_number == 1:
            position += f"\n\n[Probable outcome]\n{finding.impact}"
            position += "\n\n[Worst-case scenarios]\n" + bullets(pattern.worst_case_scenarios, 2)
        else:
            position += "\n\nNothing said in the earlier rounds has reduced this risk."
            position += "\n\n[Overlooked dangers]\n" + bullets(pattern.hidden_dangers, 2)
        return position

    def _build_reasoning(self, finding: Finding, pattern: RiskAmplification) -> str:
        reasoning = "[Grounds for the risk]\n"
        reasoning += f"1. {finding.issue}\n"
        reasoning += "2. The counterparty is likely to read the contract in its own favour\n"
        reasoning += "3. In a dispute we would start from the weaker position\n"

        if pattern.historical_references:
            reasoning += "\n[Track record]\n" + bullets(pattern.historical_references, 2)

        reasoning += "\n\n[Conclusion]\n"
        reasoning += (
            "Signing with this clause left as it stands means accepting a risk "
            "the company cannot tolerate."
        )
        return reasoning

    def _gather_evidence(self, finding: Finding, contract: Contract) -> tuple[str, ...]:
        evidence = list(finding.evidence)
        for regex, concern in _CONCERN_PATTERNS:
            if regex.search(contract.raw_text):
                evidence.append(f"Contract-wide concern: {concern}")
                break
        return tuple(evidence)

    def _prepare_counterpoints(self, opponent: Argument | None) -> tuple[str, ...]:
        if opponent is None:
            return ()

        position = opponent.position.lower()
        counterpoints: list[str] = []

        if "unlikely" in position or "limited" in position or "minor" in position:
            counterpoints.append(
                "Calling the risk unlikely is not risk management. A low-probability event "
                "still needs a countermeasure when its impact would be severe."
            )
        if "negotiat" in position or "amend" in position:
            counterpoints.append(
                "Nothing guarantees the counterparty will accept an amendment. If negotiation "
                "fails, we are left carrying this risk as written."
            )
        if "benefit" in position or "profit" in position or "opportunit" in position:
            counterpoints.append(
                "Short-term business benefits fade next to long-term exposure. A single incident "
                "can cost far more than the deal ever earns."
            )
        if not counterpoints:
            counterpoints.append(
                "The mitigating case is too optimistic. Risk management has to plan for the worst case."
            )
        return tuple(counterpoints)
