"""Debate arena: prioritize findings, batch them into rounds, run devil -> angel -> arbiter."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from config.config_loader import ArenaConfig
from contract_council.advocates.angel import AngelsAdvocate
from contract_council.advocates.base import Advocate, DebateContext
from contract_council.advocates.devil import DevilsAdvocate
from contract_council.arbiter import Arbiter
from contract_council.models import (
    SEVERITY_WEIGHTS,
    ArenaOutput,
    Argument,
    Contract,
    DebateStatistics,
    Finding,
    Outcome,
    Round,
    SeverityAdjustments,
)

logger = logging.getLogger(__name__)

# Higher debates first under "category" and "mixed" prioritization.
CATEGORY_PRIORITY: dict[str, int] = {
    "legal_risk": 6,
    "compliance_risk": 5,
    "security_risk": 4,
    "financial_risk": 3,
    "operational_risk": 2,
    "reputational_risk": 1,
}

ARENA_START = "arena:start"
ROUND_START = "round:start"
DEBATE_START = "debate:start"
DEVIL_ARGUE = "devil:argue"
ANGEL_ARGUE = "angel:argue"
JUDGE_DELIBERATE = "judge:deliberate"
ROUND_COMPLETE = "round:complete"
ARENA_COMPLETE = "arena:complete"


@dataclass(frozen=True)
class ArenaEvent:
    type: str
    data: dict[str, Any] = field(default_factory=dict)


ArenaObserver = Callable[[ArenaEvent], None]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DebateArena:
    """Runs the adversarial review of a contract's findings.

    The arena owns no domain knowledge: arguments come from the two
    advocates, judgment from the arbiter. It decides which findings are
    debated, in which round, and in what order.
    """

    def __init__(
        self,
        config: ArenaConfig | None = None,
        *,
        devil: Advocate | None = None,
        angel: Advocate | None = None,
        arbiter: Arbiter | None = None,
    ) -> None:
        self._config = config or ArenaConfig()
        self._devil = devil or DevilsAdvocate()
        self._angel = angel or AngelsAdvocate()
        self._arbiter = arbiter or Arbiter()

    @property
    def config(self) -> ArenaConfig:
        return self._config

    async def conduct(
        self,
        contract: Contract,
        findings: Sequence[Finding],
        *,
        on_event: ArenaObserver | None = None,
    ) -> ArenaOutput:
        """Debate the top-priority findings and synthesize the verdicts.

        Args:
            contract: Document passed to the advocates as context. Never mutated.
            findings: All findings from the analyzers. Findings beyond
                max_rounds * findings_per_round are left undebated.
            on_event: Optional observer notified of lifecycle events. Observer
                failures are logged and never affect the result.

        Returns:
            ArenaOutput with rounds, outcomes, synthesis and statistics.

        Raises:
            Whatever an advocate or the arbiter raises, unchanged. The run
            stops at that finding; no partial outcome is recorded for it.
        """
        self._notify(on_event, ARENA_START, total_findings=len(findings))

        prioritized = self.prioritize(findings)
        capacity = self._config.max_rounds * self._config.findings_per_round
        to_debate = prioritized[:capacity]

        logger.info(
            "Debating %d of %d finding(s) over up to %d round(s)",
            len(to_debate), len(findings), self._config.max_rounds,
        )

        rounds: list[Round] = []
        all_outcomes: list[Outcome] = []

        for round_num in range(1, self._config.max_rounds + 1):
            start = (round_num - 1) * self._config.findings_per_round
            batch = to_debate[start:start + self._config.findings_per_round]
            if not batch:
                break

            # Outcomes from earlier rounds only; this round's are appended once it closes.
            current_round = await self._conduct_round(
                round_num, batch, contract, tuple(all_outcomes), on_event
            )
            rounds.append(current_round)
            all_outcomes.extend(current_round.outcomes)

        synthesis = self._arbiter.synthesize_verdicts(all_outcomes)
        statistics = self.calculate_statistics(findings, all_outcomes)

        output = ArenaOutput(
            rounds=tuple(rounds),
            all_outcomes=tuple(all_outcomes),
            synthesis=synthesis,
            statistics=statistics,
        )
        self._notify(on_event, ARENA_COMPLETE, output=output)

        logger.info(
            "Arena complete: %d outcome(s), overall risk %s, recommendation %s",
            len(all_outcomes), synthesis.overall_risk, synthesis.approval_recommendation,
        )
        return output

    def prioritize(self, findings: Sequence[Finding]) -> list[Finding]:
        """Stable descending sort by the configured priority key."""
        mode = self._config.prioritize_by

        if mode == "severity":
            def key(f: Finding):
                return SEVERITY_WEIGHTS[f.severity]
        elif mode == "category":
            def key(f: Finding):
                return (CATEGORY_PRIORITY.get(f.category, 0), SEVERITY_WEIGHTS[f.severity])
        else:
            def key(f: Finding):
                return SEVERITY_WEIGHTS[f.severity] * 10 + CATEGORY_PRIORITY.get(f.category, 0)

        # sorted() with reverse=True keeps equal keys in input order.
        return sorted(findings, key=key, reverse=True)

    async def _conduct_round(
        self,
        round_num: int,
        findings: list[Finding],
        contract: Contract,
        previous_outcomes: tuple[Outcome, ...],
        on_event: ArenaObserver | None,
    ) -> Round:
        self._notify(on_event, ROUND_START, round=round_num, findings=tuple(findings))
        logger.info("Starting round %d with %d finding(s)", round_num, len(findings))

        outcomes: list[Outcome] = []
        for finding in findings:
            outcome = await self._debate_finding(finding, contract, round_num, previous_outcomes, on_event)
            outcomes.append(outcome)

        completed = Round(
            number=round_num,
            topic=f"Round {round_num}: " + ", ".join(f.title for f in findings),
            findings=tuple(findings),
            outcomes=tuple(outcomes),
            completed_at=_now(),
        )
        self._notify(on_event, ROUND_COMPLETE, round=round_num, outcomes=completed.outcomes)
        logger.info("Round %d complete: %d outcome(s)", round_num, len(outcomes))
        return completed

    async def _debate_finding(
        self,
        finding: Finding,
        contract: Contract,
        round_num: int,
        previous_outcomes: tuple[Outcome, ...],
        on_event: ArenaObserver | None,
    ) -> Outcome:
        self._notify(on_event, DEBATE_START, finding_id=finding.id, topic=finding.title)

        base_context = DebateContext(contract=contract, finding=finding, round=round_num)

        devil_argument = await self._devil.argue(base_context)
        self._notify(on_event, DEVIL_ARGUE, finding_id=finding.id, argument=devil_argument)

        angel_context = replace(base_context, opponent_argument=devil_argument)
        angel_argument = await self._angel.argue(angel_context)
        self._notify(on_event, ANGEL_ARGUE, finding_id=finding.id, argument=angel_argument)

        if self._config.enable_progressive_debate and previous_outcomes:
            related = find_related_outcome(finding, previous_outcomes)
            if related is not None:
                devil_argument = replace(
                    devil_argument,
                    evidence=(*devil_argument.evidence, f"Related earlier debate: {related.finding.title}"),
                )

        outcome = await self._arbiter.deliberate(finding, devil_argument, angel_argument)
        self._notify(on_event, JUDGE_DELIBERATE, finding_id=finding.id, outcome=outcome)
        return outcome

    async def quick_judge(self, finding: Finding) -> Outcome:
        """Judge a minor finding without a full debate, from two scripted arguments."""
        devil_argument = Argument(
            position="The risk is minor, but it should not be ignored.",
            reasoning=finding.issue,
            evidence=tuple(finding.evidence),
        )
        angel_argument = Argument(
            position="This risk is within a manageable range.",
            reasoning=finding.recommendation,
        )
        return await self._arbiter.deliberate(finding, devil_argument, angel_argument)

    @staticmethod
    def calculate_statistics(all_findings: Sequence[Finding], outcomes: Sequence[Outcome]) -> DebateStatistics:
        """Win/loss and adjustment counts over all outcomes.

        Average scores are approximated from the adjusted severity weight
        (weight/4 for the devil, (4 - weight)/4 for the angel) rather than
        from the arbiter's actual scores.
        """
        upgraded = downgraded = unchanged = 0
        total_devil = total_angel = 0.0

        for outcome in outcomes:
            original = SEVERITY_WEIGHTS[outcome.finding.severity]
            adjusted = SEVERITY_WEIGHTS[outcome.verdict.adjusted_severity]

            if adjusted > original:
                upgraded += 1
            elif adjusted < original:
                downgraded += 1
            else:
                unchanged += 1

            total_devil += adjusted / 4
            total_angel += (4 - adjusted) / 4

        count = len(outcomes)
        return DebateStatistics(
            total_findings=len(all_findings),
            debated_findings=count,
            devil_wins=upgraded,
            angel_wins=downgraded,
            ties=unchanged,
            average_devil_score=total_devil / count if count else 0.0,
            average_angel_score=total_angel / count if count else 0.0,
            severity_adjustments=SeverityAdjustments(
                upgraded=upgraded,
                downgraded=downgraded,
                unchanged=unchanged,
            ),
        )

    @staticmethod
    def _notify(on_event: ArenaObserver | None, event_type: str, **data: Any) -> None:
        if on_event is None:
            return
        try:
            on_event(ArenaEvent(type=event_type, data=data))
        except Exception as exc:
            logger.warning("Arena observer failed on %s: %s", event_type, exc)


def find_related_outcome(finding: Finding, previous_outcomes: Sequence[Outcome]) -> Outcome | None:
    """First earlier outcome on the same clause, else the first in the same category."""
    for outcome in previous_outcomes:
        if outcome.finding.clause_ref == finding.clause_ref:
            return outcome
    for outcome in previous_outcomes:
        if outcome.finding.category == finding.category:
            return outcome
    return None
