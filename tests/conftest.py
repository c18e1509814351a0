"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from config.config_loader import AppConfig, ArenaConfig, InboxConfig, JudgingCriteria, OutputConfig
from contract_council.advocates.base import Advocate, DebateContext
from contract_council.models import Argument, Clause, Contract, Finding, Party


def make_finding(
    finding_id: str = "f1",
    severity: str = "high",
    category: str = "legal_risk",
    clause_ref: str = "c1",
    **overrides,
) -> Finding:
    fields = dict(
        id=finding_id,
        persona="legal_expert",
        clause_ref=clause_ref,
        severity=severity,
        category=category,
        title=f"Finding {finding_id}",
        issue="The liability clause has no upper limit",
        impact="Exposure to unbounded damages claims",
        recommendation="Cap liability at twelve months of fees",
    )
    fields.update(overrides)
    return Finding(**fields)


@pytest.fixture
def sample_contract() -> Contract:
    return Contract(
        id="msa-001",
        title="Master Services Agreement",
        parties=(
            Party(id="p1", name="Acme Corp", role="client", is_our_side=True),
            Party(id="p2", name="Vendor Ltd", role="vendor"),
        ),
        clauses=(
            Clause(id="c1", number="7.1", type="liability", title="Liability", content="Vendor liability..."),
            Clause(id="c2", number="9.3", type="termination", title="Termination", content="Either party..."),
        ),
        raw_text="The Vendor may amend these terms at its sole discretion. Both parties act in good faith.",
    )


@pytest.fixture
def plain_contract() -> Contract:
    """Contract whose text triggers none of the advocates' pattern scans."""
    return Contract(id="plain-001", title="Plain Agreement", raw_text="Payment is due in thirty days.")


@pytest.fixture
def sample_finding() -> Finding:
    return make_finding(evidence=("Clause 7.1 places no cap on vendor claims",))


@pytest.fixture
def sample_findings() -> list[Finding]:
    return [
        make_finding("f1", "medium", "operational_risk", "c2"),
        make_finding("f2", "critical", "financial_risk", "c1"),
        make_finding("f3", "high", "legal_risk", "c1"),
        make_finding("f4", "low", "reputational_risk", "c2"),
        make_finding("f5", "high", "security_risk", "c3"),
    ]


@pytest.fixture
def sample_arena_config() -> ArenaConfig:
    return ArenaConfig(max_rounds=2, findings_per_round=2, prioritize_by="severity", enable_progressive_debate=True)


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        arena=ArenaConfig(),
        judging=JudgingCriteria(),
        output=OutputConfig(output_dir=tmp_path / "output"),
        inbox=InboxConfig(dir=tmp_path / "inbox", archive_dir=tmp_path / "inbox" / "archive"),
    )


class ScriptedAdvocate(Advocate):
    """Test double Advocate that returns a fixed argument and records its contexts."""

    def __init__(self, side: str, argument: Argument) -> None:
        self._side = side
        self._argument = argument
        self.contexts: list[DebateContext] = []

    def name(self) -> str:
        return self._side

    async def argue(self, context: DebateContext) -> Argument:
        self.contexts.append(context)
        return self._argument


class FailingAdvocate(Advocate):
    """Raises on the finding whose id matches `fail_on`; argues plainly otherwise."""

    def __init__(self, fail_on: str) -> None:
        self._fail_on = fail_on

    def name(self) -> str:
        return "failing"

    async def argue(self, context: DebateContext) -> Argument:
        if context.finding.id == self._fail_on:
            raise RuntimeError(f"advocate failed on {self._fail_on}")
        return Argument(position="plain position", reasoning="plain reasoning")


@pytest.fixture
def even_arguments() -> tuple[Argument, Argument]:
    """Identical plain arguments for both sides; severity never moves."""
    argument = Argument(position="plain position", reasoning="plain reasoning")
    return argument, argument
