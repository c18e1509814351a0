"""Angel's advocate: defends the deal and proposes mitigations for each finding."""

import logging
import re
from dataclasses import dataclass

from contract_council.advocates.base import Advocate, DebateContext, bullets
from contract_council.models import Argument, Contract, Finding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskMitigation:
    strategies: tuple[str, ...]
    justifications: tuple[str, ...]
    practices: tuple[str, ...]
    negotiation_tips: tuple[str, ...]


RISK_MITIGATION_PATTERNS: dict[str, RiskMitigation] = {
    "legal_risk": RiskMitigation(
        strategies=(
            "A detailed legal review followed by an amendment request covers this",
            "Insurance such as D&O or E&O cover can hedge the exposure",
            "A good working relationship with the counterparty lowers the chance of a dispute",
            "Adding a periodic contract review clause lets us react if problems arise",
        ),
        justifications=(
            "This level of legal risk is within ordinary business tolerance",
            "Peer companies sign contracts on similar terms",
            "The long-term value of the relationship outweighs the exposure",
        ),
        practices=(
            "These terms are widely used as an industry standard",
            "Major competitors accept the same conditions",
            "Disputes over such clauses rarely reach litigation in practice",
        ),
        negotiation_tips=(
            "Proposing a mutual version of the clause makes acceptance easier",
            "A liability cap is a standard request that counterparties usually accept",
            "Governing law can be negotiated flexibly in proportion to deal size",
        ),
    ),
    "financial_risk": RiskMitigation(
        strategies=(
            "Building headroom into the budget absorbs additional costs",
            "Forward contracts or hedges reduce the currency exposure",
            "Renegotiating terms at renewal keeps long-term cost under control",
            "Moving to outcome-based payment spreads the risk",
        ),
        justifications=(
            "The expected return from this investment comfortably exceeds its cost",
            "The spend is needed to differentiate from competitors",
            "Buying is more cost-efficient than building in-house",
        ),
        practices=(
            "This price range is in line with the market",
            "Advance payment is common industry practice",
            "Auto-renewal clauses exist to simplify administration",
        ),
        negotiation_tips=(
            "There is room to negotiate a volume discount",
            "A longer commitment can bring the unit price down",
            "More flexible payment terms are usually acceptable to the counterparty",
        ),
    ),
    "security_risk": RiskMitigation(
        strategies=(
            "The counterparty's ISO 27001 certification provides a baseline assurance",
            "Adding security requirements to the contract raises the protection level",
            "Cyber insurance can transfer part of the risk",
            "Regular security audits give continuous visibility",
        ),
        justifications=(
            "The efficiency gained from using the data is substantial",
            "A specialist provider may be more secure than an in-house build",
            "Outsourcing regulatory controls reduces total cost",
        ),
        practices=(
            "Large enterprises use comparable cloud services",
            "Working with certified providers is standard in the industry",
            "A data processing agreement satisfies the legal requirements",
        ),
        negotiation_tips=(
            "Counterparties often welcome additional security clauses",
            "Audit rights are open to negotiation",
            "Clarifying incident notification duties benefits both sides",
        ),
    ),
    "operational_risk": RiskMitigation(
        strategies=(
            "A phased rollout spreads the operational load",
            "Strengthening the internal team makes the SLA achievable",
            "External resources can cover temporary peaks",
            "Tighter project management reduces schedule risk",
        ),
        justifications=(
            "The operational effort is justified by the process improvements",
            "The engagement builds the team's skills",
            "It lays the groundwork for bringing the work in-house later",
        ),
        practices=(
            "This SLA level is commonly achieved across the industry",
            "Similar projects have a record of success",
            "The workload fits a standard resourcing plan",
        ),
        negotiation_tips=(
            "Proposing a stepped SLA ramp-up makes acceptance easier",
            "Mutual KPIs make the contract more balanced",
            "An extended transition support period is negotiable",
        ),
    ),
    "compliance_risk": RiskMitigation(
        strategies=(
            "Advice from counsel or consultants covers the requirements",
            "Checking the counterparty's compliance framework up front reduces the risk",
            "Regular monitoring of legislative changes keeps us current",
            "Strengthening the compliance programme addresses the gap",
        ),
        justifications=(
            "Compliance capability becomes a future competitive advantage",
            "Moving early on regulation secures an edge over competitors",
            "It raises stakeholder trust",
        ),
        practices=(
            "Peers operate under the same regulatory environment",
            "Following industry association guidelines is sufficient",
            "Companies with good regulator relationships rarely run into trouble",
        ),
        negotiation_tips=(
            "Counterparties usually see added compliance clauses as desirable",
            "Mutual obligations on regulatory change are negotiable",
            "Sharing of compliance costs is open for discussion",
        ),
    ),
    "reputational_risk": RiskMitigation(
        strategies=(
            "A reputation and credit check on the counterparty assesses the risk in advance",
            "Confidentiality clauses prevent the terms from leaking",
            "A crisis management plan lets us respond properly if problems arise",
            "Transparent stakeholder communication reduces the risk",
        ),
        justifications=(
            "The relationship strengthens our brand",
            "Working with an industry leader raises our market credibility",
            "Meeting social responsibilities raises long-term enterprise value",
        ),
        practices=(
            "Working with trusted partners is common sense in the industry",
            "With proper due diligence the risk is manageable",
            "Even when problems occur, a proper response minimises the impact",
        ),
        negotiation_tips=(
            "Stronger mutual confidentiality benefits both sides",
            "An escalation clause allows problems to be resolved early",
            "Regular review meetings keep the relationship healthy",
        ),
    ),
}

_FALLBACK_MITIGATION = RiskMitigation(
    strategies=("With a proper management framework this risk is manageable",),
    justifications=("The business benefits outweigh the risk",),
    practices=("Many companies trade while managing similar risks",),
    negotiation_tips=("Discussion with the counterparty may resolve the concern",),
)

SEVERITY_RESPONSE: dict[str, str] = {
    "critical": "This finding matters, but with the right countermeasures the risk is manageable.",
    "high": "We acknowledge this risk; mitigation measures can address it.",
    "medium": "This level of risk is within business tolerance and a standard response is sufficient.",
    "low": "This risk is minor and does not warrant excessive concern.",
}

# (pattern, benefit) pairs scanned against the whole contract text; first match wins.
_POSITIVE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"mutual.{0,10}cooperat", re.IGNORECASE),
        "A mutual cooperation clause signals a constructive relationship",
    ),
    (
        re.compile(r"good.{0,10}faith", re.IGNORECASE),
        "A good-faith consultation clause shows willingness to resolve issues",
    ),
    (
        re.compile(r"periodic.{0,10}review", re.IGNORECASE),
        "A periodic review clause allows flexible adjustment",
    ),
)

_PEER_PRACTICE_EVIDENCE = "Peer companies have signed contracts on similar terms"


class AngelsAdvocate(Advocate):
    """Risk-mitigating side: frames the risk as manageable and answers the devil."""

    def name(self) -> str:
        return "angel"

    async def argue(self, context: DebateContext) -> Argument:
        finding = context.finding
        mitigation = RISK_MITIGATION_PATTERNS.get(finding.category, _FALLBACK_MITIGATION)

        argument = Argument(
            position=self._build_position(finding, mitigation, context.round),
            reasoning=self._build_reasoning(mitigation),
            evidence=self._gather_evidence(finding, context.contract),
            counterpoints=self._prepare_counterpoints(context.opponent_argument),
        )
        logger.debug("Angel argued finding %s (round %d)", finding.id, context.round)
        return argument

    def _build_position(self, finding: Finding, mitigation: RiskMitigation, round_number: int) -> str:
        position = SEVERITY_RESPONSE[finding.severity]
        if round_number == 1:
            position += "\n\n[Mitigations]\n" + bullets(mitigation.strategies, 2)
            position += "\n\n[Business justification]\n" + bullets(mitigation.justifications, 1)
        else:
            position += "\n\nThe risk-maximizing concerns are understood, but they are overly pessimistic."
            position += "\n\n[Resolvable through negotiation]\n" + bullets(mitigation.negotiation_tips, 2)
        return position

    def _build_reasoning(self, mitigation: RiskMitigation) -> str:
        reasoning = "[Risk management view]\n"
        reasoning += "1. This risk is widely recognised and established ways of managing it exist\n"
        reasoning += "2. With suitable mitigation, the chance of actual harm can be reduced\n"
        reasoning += "3. Demanding zero risk means giving up the business opportunity\n"

        if mitigation.practices:
            reasoning += "\n[Industry reality]\n" + bullets(mitigation.practices, 2)

        reasoning += "\n\n[Conclusion]\n"
        reasoning += "Walking away over this risk would forfeit the opportunity. "
        reasoning += "We recommend signing once suitable mitigation is in place."
        return reasoning

    def _gather_evidence(self, finding: Finding, contract: Contract) -> tuple[str, ...]:
        evidence: list[str] = []
        for regex, benefit in _POSITIVE_PATTERNS:
            if regex.search(contract.raw_text):
                evidence.append(benefit)
                break
        if finding.recommendation:
            evidence.append(f"Recommended measure: {finding.recommendation}")
        evidence.append(_PEER_PRACTICE_EVIDENCE)
        return tuple(evidence)

    def _prepare_counterpoints(self, opponent: Argument | None) -> tuple[str, ...]:
        if opponent is None:
            return ()

        position = opponent.position.lower()
        reasoning = opponent.reasoning.lower()
        counterpoints: list[str] = []

        if "worst" in position or "fatal" in position:
            counterpoints.append(
                "Planning for the worst case matters, but so does its probability. Overreacting "
                "to low-probability risks means losing business opportunities."
            )
        if "track record" in reasoning or "precedent" in reasoning or "awarded" in reasoning:
            counterpoints.append(
                "Past failures are lessons, not forecasts. Given our circumstances and the "
                "counterparty's reliability, the same problems can be avoided."
            )
        if "should not be signed" in position or "cannot be recommended" in position or "reject" in position:
            counterpoints.append(
                "Declining the contract has a cost too. If a competitor wins this opportunity, "
                "our market position suffers."
            )
        if not counterpoints:
            counterpoints.append(
                "The risk-maximizing case is overly pessimistic. Recognising the risk and managing "
                "it properly still lets us realise the business value."
            )
        return tuple(counterpoints)
