"""Tests for the devil's and angel's advocates."""

from contract_council.advocates.angel import RISK_MITIGATION_PATTERNS, SEVERITY_RESPONSE, AngelsAdvocate
from contract_council.advocates.base import DebateContext, bullets
from contract_council.advocates.devil import RISK_AMPLIFICATION_PATTERNS, SEVERITY_EMPHASIS, DevilsAdvocate
from contract_council.models import Argument
from tests.conftest import make_finding


def test_bullets_limits_items():
    assert bullets(["a", "b", "c"], 2) == "• a\n• b"
    assert bullets([], 2) == ""


def test_advocate_names():
    assert DevilsAdvocate().name() == "devil"
    assert AngelsAdvocate().name() == "angel"


# --- Devil's advocate ---


async def test_devil_first_round_position(sample_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(sample_contract, sample_finding, round=1))
    scenarios = RISK_AMPLIFICATION_PATTERNS["legal_risk"].worst_case_scenarios

    assert argument.position.startswith(SEVERITY_EMPHASIS["high"])
    assert f"[Probable outcome]\n{sample_finding.impact}" in argument.position
    assert "[Worst-case scenarios]" in argument.position
    assert scenarios[0] in argument.position
    assert scenarios[1] in argument.position
    assert scenarios[2] not in argument.position


async def test_devil_later_round_raises_overlooked_dangers(sample_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(sample_contract, sample_finding, round=2))
    assert "[Overlooked dangers]" in argument.position
    assert "[Probable outcome]" not in argument.position
    assert RISK_AMPLIFICATION_PATTERNS["legal_risk"].hidden_dangers[0] in argument.position


async def test_devil_reasoning_cites_issue_and_track_record(sample_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(sample_contract, sample_finding, round=1))
    assert f"1. {sample_finding.issue}" in argument.reasoning
    assert "[Track record]" in argument.reasoning
    assert "[Conclusion]" in argument.reasoning


async def test_devil_evidence_adds_first_contract_concern(sample_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(sample_contract, sample_finding, round=1))
    assert argument.evidence == (
        *sample_finding.evidence,
        "Contract-wide concern: Discretion is concentrated in the counterparty",
    )


async def test_devil_evidence_without_concerns(plain_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(plain_contract, sample_finding, round=1))
    assert argument.evidence == sample_finding.evidence


async def test_devil_unknown_category_uses_fallback(plain_contract):
    finding = make_finding(category="environmental_risk")
    argument = await DevilsAdvocate().argue(DebateContext(plain_contract, finding, round=1))
    assert "unforeseen chain of losses" in argument.position
    assert "[Track record]" not in argument.reasoning


async def test_devil_without_opponent_has_no_counterpoints(plain_contract, sample_finding):
    argument = await DevilsAdvocate().argue(DebateContext(plain_contract, sample_finding, round=1))
    assert argument.counterpoints == ()


async def test_devil_counterpoints_follow_opponent(plain_contract, sample_finding):
    opponent = Argument(position="The risk is limited and we can negotiate an amendment.", reasoning="")
    argument = await DevilsAdvocate().argue(
        DebateContext(plain_contract, sample_finding, round=1, opponent_argument=opponent)
    )
    assert len(argument.counterpoints) == 2
    assert argument.counterpoints[0].startswith("Calling the risk unlikely")
    assert "amendment" in argument.counterpoints[1]


async def test_devil_default_counterpoint(plain_contract, sample_finding):
    opponent = Argument(position="We disagree.", reasoning="")
    argument = await DevilsAdvocate().argue(
        DebateContext(plain_contract, sample_finding, round=1, opponent_argument=opponent)
    )
    assert argument.counterpoints == (
        "The mitigating case is too optimistic. Risk management has to plan for the worst case.",
    )


# --- Angel's advocate ---


async def test_angel_first_round_position(plain_contract, sample_finding):
    argument = await AngelsAdvocate().argue(DebateContext(plain_contract, sample_finding, round=1))
    mitigation = RISK_MITIGATION_PATTERNS["legal_risk"]

    assert argument.position.startswith(SEVERITY_RESPONSE["high"])
    assert "[Mitigations]" in argument.position
    assert mitigation.strategies[1] in argument.position
    assert mitigation.strategies[2] not in argument.position
    assert f"[Business justification]\n• {mitigation.justifications[0]}" in argument.position


async def test_angel_later_round_offers_negotiation(plain_contract, sample_finding):
    argument = await AngelsAdvocate().argue(DebateContext(plain_contract, sample_finding, round=2))
    assert "[Resolvable through negotiation]" in argument.position
    assert "[Mitigations]" not in argument.position


async def test_angel_reasoning_structure(plain_contract, sample_finding):
    argument = await AngelsAdvocate().argue(DebateContext(plain_contract, sample_finding, round=1))
    assert argument.reasoning.startswith("[Risk management view]")
    assert "[Industry reality]" in argument.reasoning
    assert "[Conclusion]" in argument.reasoning


async def test_angel_evidence(sample_contract, sample_finding):
    argument = await AngelsAdvocate().argue(DebateContext(sample_contract, sample_finding, round=1))
    assert argument.evidence == (
        "A good-faith consultation clause shows willingness to resolve issues",
        f"Recommended measure: {sample_finding.recommendation}",
        "Peer companies have signed contracts on similar terms",
    )


async def test_angel_evidence_without_recommendation(plain_contract):
    finding = make_finding(recommendation="")
    argument = await AngelsAdvocate().argue(DebateContext(plain_contract, finding, round=1))
    assert argument.evidence == ("Peer companies have signed contracts on similar terms",)


async def test_angel_rebuts_real_devil_argument(plain_contract):
    finding = make_finding(severity="critical")
    devil_argument = await DevilsAdvocate().argue(DebateContext(plain_contract, finding, round=1))
    argument = await AngelsAdvocate().argue(
        DebateContext(plain_contract, finding, round=1, opponent_argument=devil_argument)
    )
    # Worst case, track record and the refusal to sign are each answered.
    assert len(argument.counterpoints) == 3
    assert argument.counterpoints[0].startswith("Planning for the worst case")
    assert argument.counterpoints[1].startswith("Past failures")
    assert argument.counterpoints[2].startswith("Declining the contract")


async def test_angel_default_counterpoint(plain_contract, sample_finding):
    opponent = Argument(position="A risk exists.", reasoning="Plainly.")
    argument = await AngelsAdvocate().argue(
        DebateContext(plain_contract, sample_finding, round=1, opponent_argument=opponent)
    )
    assert len(argument.counterpoints) == 1
    assert argument.counterpoints[0].startswith("The risk-maximizing case is overly pessimistic")


async def test_advocates_are_stateless(sample_contract, sample_finding):
    devil = DevilsAdvocate()
    context = DebateContext(sample_contract, sample_finding, round=1)
    assert await devil.argue(context) == await devil.argue(context)
