"""Tests for contract_council/arena.py."""

import logging

import pytest

from config.config_loader import ArenaConfig
from contract_council.arbiter import Arbiter
from contract_council.arena import (
    ANGEL_ARGUE,
    ARENA_COMPLETE,
    ARENA_START,
    DEBATE_START,
    DEVIL_ARGUE,
    JUDGE_DELIBERATE,
    ROUND_COMPLETE,
    ROUND_START,
    DebateArena,
    find_related_outcome,
)
from contract_council.models import Argument, Outcome, Verdict
from tests.conftest import FailingAdvocate, ScriptedAdvocate, make_finding


def _scripted_arena(config: ArenaConfig, even_arguments) -> tuple[DebateArena, ScriptedAdvocate, ScriptedAdvocate]:
    devil_argument, angel_argument = even_arguments
    devil = ScriptedAdvocate("devil", devil_argument)
    angel = ScriptedAdvocate("angel", angel_argument)
    return DebateArena(config, devil=devil, angel=angel), devil, angel


def _ids(findings) -> list[str]:
    return [f.id for f in findings]


# --- Round batching ---


async def test_conduct_respects_capacity(sample_contract, sample_findings, sample_arena_config, even_arguments):
    arena, _, _ = _scripted_arena(sample_arena_config, even_arguments)
    output = await arena.conduct(sample_contract, sample_findings)

    assert len(output.rounds) == 2
    assert [len(r.outcomes) for r in output.rounds] == [2, 2]
    assert len(output.all_outcomes) == 4
    # The low reputational finding ranks last and is left undebated.
    assert "f4" not in [o.finding_id for o in output.all_outcomes]
    assert output.statistics.total_findings == 5
    assert output.statistics.debated_findings == 4


async def test_conduct_stops_when_findings_run_out(sample_contract, even_arguments):
    config = ArenaConfig(max_rounds=3, findings_per_round=2)
    arena, _, _ = _scripted_arena(config, even_arguments)
    findings = [make_finding(f"f{i}") for i in range(3)]

    output = await arena.conduct(sample_contract, findings)

    assert [r.number for r in output.rounds] == [1, 2]
    assert [len(r.findings) for r in output.rounds] == [2, 1]


async def test_round_records_topic_and_outcomes(sample_contract, even_arguments):
    arena, _, _ = _scripted_arena(ArenaConfig(max_rounds=1, findings_per_round=2), even_arguments)
    findings = [make_finding("a", title="Uncapped liability"), make_finding("b", title="Auto renewal")]

    output = await arena.conduct(sample_contract, findings)
    rnd = output.rounds[0]

    assert rnd.topic == "Round 1: Uncapped liability, Auto renewal"
    assert _ids(rnd.findings) == ["a", "b"]
    assert [o.finding_id for o in rnd.outcomes] == ["a", "b"]
    assert rnd.completed_at


async def test_conduct_empty_findings(sample_contract, even_arguments):
    arena, devil, _ = _scripted_arena(ArenaConfig(), even_arguments)
    output = await arena.conduct(sample_contract, [])

    assert output.rounds == ()
    assert output.all_outcomes == ()
    assert output.synthesis.overall_risk == "low"
    assert output.synthesis.approval_recommendation == "approve"
    assert output.statistics.debated_findings == 0
    assert output.statistics.average_devil_score == 0.0
    assert devil.contexts == []


async def test_conduct_does_not_reorder_input(sample_contract, sample_findings, sample_arena_config, even_arguments):
    arena, _, _ = _scripted_arena(sample_arena_config, even_arguments)
    before = list(sample_findings)
    await arena.conduct(sample_contract, sample_findings)
    assert sample_findings == before


# --- Prioritization ---


def test_prioritize_by_severity(sample_findings):
    arena = DebateArena(ArenaConfig(prioritize_by="severity"))
    assert _ids(arena.prioritize(sample_findings)) == ["f2", "f3", "f5", "f1", "f4"]


def test_prioritize_by_category(sample_findings):
    arena = DebateArena(ArenaConfig(prioritize_by="category"))
    assert _ids(arena.prioritize(sample_findings)) == ["f3", "f5", "f2", "f1", "f4"]


def test_prioritize_by_category_breaks_ties_on_severity():
    arena = DebateArena(ArenaConfig(prioritize_by="category"))
    findings = [make_finding("minor", "low"), make_finding("major", "critical")]
    assert _ids(arena.prioritize(findings)) == ["major", "minor"]


def test_prioritize_mixed(sample_findings):
    arena = DebateArena(ArenaConfig(prioritize_by="mixed"))
    assert _ids(arena.prioritize(sample_findings)) == ["f2", "f3", "f5", "f1", "f4"]


def test_prioritize_mixed_category_lifts_within_severity():
    arena = DebateArena(ArenaConfig(prioritize_by="mixed"))
    findings = [make_finding("ops", "high", "operational_risk"), make_finding("legal", "high", "legal_risk")]
    assert _ids(arena.prioritize(findings)) == ["legal", "ops"]


@pytest.mark.parametrize("mode", ["severity", "category", "mixed"])
def test_prioritize_is_stable(mode):
    arena = DebateArena(ArenaConfig(prioritize_by=mode))
    findings = [make_finding(name, "medium", "financial_risk") for name in ("c", "a", "d", "b")]
    assert _ids(arena.prioritize(findings)) == ["c", "a", "d", "b"]


# --- Progressive debate ---


async def test_progressive_debate_cites_earlier_round(sample_contract, even_arguments):
    config = ArenaConfig(max_rounds=2, findings_per_round=1, enable_progressive_debate=True)
    arena, devil, angel = _scripted_arena(config, even_arguments)
    findings = [
        make_finding("first", "high", clause_ref="c1", title="Uncapped liability"),
        make_finding("second", "medium", clause_ref="c1", title="Indemnity scope"),
    ]

    output = await arena.conduct(sample_contract, findings)
    first, second = output.all_outcomes

    assert first.devil_argument.evidence == ()
    assert second.devil_argument.evidence == ("Related earlier debate: Uncapped liability",)
    # The angel answered the devil's argument as originally made.
    assert angel.contexts[1].opponent_argument == even_arguments[0]
    assert [c.round for c in devil.contexts] == [1, 2]
    assert devil.contexts[0].opponent_argument is None


async def test_progressive_debate_ignores_same_round(sample_contract, even_arguments):
    config = ArenaConfig(max_rounds=1, findings_per_round=2, enable_progressive_debate=True)
    arena, _, _ = _scripted_arena(config, even_arguments)
    findings = [make_finding("a", clause_ref="c1"), make_finding("b", clause_ref="c1")]

    output = await arena.conduct(sample_contract, findings)

    assert all(o.devil_argument.evidence == () for o in output.all_outcomes)


async def test_progressive_debate_disabled(sample_contract, even_arguments):
    config = ArenaConfig(max_rounds=2, findings_per_round=1, enable_progressive_debate=False)
    arena, _, _ = _scripted_arena(config, even_arguments)
    findings = [make_finding("a", clause_ref="c1"), make_finding("b", clause_ref="c1")]

    output = await arena.conduct(sample_contract, findings)

    assert all(o.devil_argument.evidence == () for o in output.all_outcomes)


def _prior(finding) -> Outcome:
    argument = Argument(position="p", reasoning="r")
    verdict = Verdict(finding.severity, "r", True, 5, "advice")
    return Outcome(finding.id, finding, argument, argument, verdict, "2026-01-01T00:00:00+00:00")


def test_find_related_outcome_prefers_same_clause():
    same_category = _prior(make_finding("cat", category="legal_risk", clause_ref="c9"))
    same_clause = _prior(make_finding("clause", category="financial_risk", clause_ref="c1"))
    finding = make_finding("new", category="legal_risk", clause_ref="c1")

    assert find_related_outcome(finding, [same_category, same_clause]) is same_clause


def test_find_related_outcome_falls_back_to_category():
    earlier = _prior(make_finding("cat", category="legal_risk", clause_ref="c9"))
    finding = make_finding("new", category="legal_risk", clause_ref="c1")
    assert find_related_outcome(finding, [earlier]) is earlier


def test_find_related_outcome_none():
    earlier = _prior(make_finding("x", category="financial_risk", clause_ref="c9"))
    assert find_related_outcome(make_finding("new", clause_ref="c1"), [earlier]) is None
    assert find_related_outcome(make_finding("new"), []) is None


# --- Observer ---


async def test_observer_receives_events_in_order(sample_contract, even_arguments):
    arena, _, _ = _scripted_arena(ArenaConfig(max_rounds=1, findings_per_round=1), even_arguments)
    events = []

    await arena.conduct(sample_contract, [make_finding()], on_event=events.append)

    assert [e.type for e in events] == [
        ARENA_START,
        ROUND_START,
        DEBATE_START,
        DEVIL_ARGUE,
        ANGEL_ARGUE,
        JUDGE_DELIBERATE,
        ROUND_COMPLETE,
        ARENA_COMPLETE,
    ]
    assert events[0].data["total_findings"] == 1
    assert events[-2].data["round"] == 1
    assert events[-1].data["output"].all_outcomes


async def test_failing_observer_does_not_affect_result(sample_contract, sample_findings, even_arguments, caplog):
    def broken(event):
        raise RuntimeError("observer down")

    arena, _, _ = _scripted_arena(ArenaConfig(max_rounds=1, findings_per_round=2), even_arguments)
    with caplog.at_level(logging.WARNING, logger="contract_council.arena"):
        output = await arena.conduct(sample_contract, sample_findings, on_event=broken)

    quiet, _, _ = _scripted_arena(ArenaConfig(max_rounds=1, findings_per_round=2), even_arguments)
    expected = await quiet.conduct(sample_contract, sample_findings)

    assert [o.verdict for o in output.all_outcomes] == [o.verdict for o in expected.all_outcomes]
    assert "observer down" in caplog.text


# --- Failure propagation ---


async def test_advocate_failure_propagates(sample_contract, sample_findings, sample_arena_config, even_arguments):
    _, angel_argument = even_arguments
    arena = DebateArena(
        sample_arena_config,
        devil=FailingAdvocate(fail_on="f3"),
        angel=ScriptedAdvocate("angel", angel_argument),
    )
    with pytest.raises(RuntimeError, match="advocate failed on f3"):
        await arena.conduct(sample_contract, sample_findings)


async def test_arbiter_failure_propagates(sample_contract, even_arguments):
    class BrokenArbiter(Arbiter):
        async def deliberate(self, finding, devil_argument, angel_argument):
            raise ValueError("cannot judge")

    devil_argument, angel_argument = even_arguments
    arena = DebateArena(
        devil=ScriptedAdvocate("devil", devil_argument),
        angel=ScriptedAdvocate("angel", angel_argument),
        arbiter=BrokenArbiter(),
    )
    with pytest.raises(ValueError, match="cannot judge"):
        await arena.conduct(sample_contract, [make_finding()])


# --- Statistics ---


def _adjusted(finding_severity: str, adjusted: str) -> Outcome:
    finding = make_finding(severity=finding_severity)
    argument = Argument(position="p", reasoning="r")
    verdict = Verdict(adjusted, "r", adjusted != "low", 5, "advice")
    return Outcome(finding.id, finding, argument, argument, verdict, "2026-01-01T00:00:00+00:00")


def test_calculate_statistics():
    outcomes = [_adjusted("high", "critical"), _adjusted("high", "medium"), _adjusted("medium", "medium")]
    stats = DebateArena.calculate_statistics([make_finding()] * 5, outcomes)

    assert stats.total_findings == 5
    assert stats.debated_findings == 3
    assert (stats.devil_wins, stats.angel_wins, stats.ties) == (1, 1, 1)
    assert stats.severity_adjustments.upgraded == 1
    assert stats.severity_adjustments.downgraded == 1
    assert stats.severity_adjustments.unchanged == 1
    # Averages come from adjusted severity weights: (4 + 2 + 2) / 4 / 3 and (0 + 2 + 2) / 4 / 3.
    assert stats.average_devil_score == pytest.approx(2 / 3)
    assert stats.average_angel_score == pytest.approx(1 / 3)


def test_calculate_statistics_empty():
    stats = DebateArena.calculate_statistics([], [])
    assert stats.debated_findings == 0
    assert stats.average_devil_score == 0.0
    assert stats.average_angel_score == 0.0


# --- Default advocates end to end ---


async def test_default_advocates_debate(sample_contract, sample_finding):
    output = await DebateArena().conduct(sample_contract, [sample_finding])
    outcome = output.all_outcomes[0]

    assert outcome.verdict.adjusted_severity == "high"
    assert outcome.devil_argument.counterpoints == ()
    assert outcome.angel_argument.counterpoints
    assert output.synthesis.approval_recommendation == "approve_with_conditions"
    assert output.synthesis.key_actions == (
        "[Strongly recommended] Press firmly for an amendment to this clause.",
    )


async def test_quick_judge(sample_contract):
    finding = make_finding(severity="low", category="operational_risk")
    outcome = await DebateArena().quick_judge(finding)

    assert outcome.finding_id == finding.id
    assert outcome.devil_argument.reasoning == finding.issue
    assert outcome.angel_argument.reasoning == finding.recommendation
    assert outcome.verdict.adjusted_severity == "low"
