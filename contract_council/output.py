"""Rich console output and markdown file save for arena results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from contract_council.models import ArenaOutput, Argument, Contract, Finding, Outcome, Round
from contract_council.synthesis import FindingSynthesis

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}

_RECOMMENDATION_STYLES = {
    "approve": "bold green",
    "approve_with_conditions": "bold yellow",
    "reject": "bold red",
    "needs_review": "bold cyan",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _severity_change(outcome: Outcome) -> str:
    original = outcome.finding.severity
    adjusted = outcome.verdict.adjusted_severity
    if original == adjusted:
        return adjusted
    return f"{original} -> {adjusted}"


def print_round_summary(rnd: Round) -> None:
    """Print one panel per outcome of the round."""
    console.print(Rule(f"[bold cyan]Round {rnd.number}[/bold cyan]"))
    for outcome in rnd.outcomes:
        verdict = outcome.verdict
        style = _SEVERITY_STYLES[verdict.adjusted_severity]
        console.print(
            Panel(
                Text(verdict.negotiation_advice.split("\n")[0]),
                title=f"[bold]{escape(outcome.finding.title)}[/bold] ({outcome.finding.category})",
                subtitle=f"[{style}]{_severity_change(outcome)}[/{style}] | priority {verdict.priority}",
                border_style="dim",
            )
        )


def print_synthesis(output: ArenaOutput, findings: FindingSynthesis | None = None) -> None:
    """Print the overall recommendation, statistics and, when given, every finding after the debate."""
    synthesis = output.synthesis
    stats = output.statistics

    console.print(Rule("[bold green]Arbiter's Synthesis[/bold green]"))
    style = _RECOMMENDATION_STYLES[synthesis.approval_recommendation]
    console.print(
        Text(
            f"Recommendation: {synthesis.approval_recommendation} | Overall risk: {synthesis.overall_risk}",
            style=style,
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Debated")
    table.add_column("Upgraded")
    table.add_column("Downgraded")
    table.add_column("Unchanged")
    table.add_row(
        f"{stats.debated_findings}/{stats.total_findings}",
        str(stats.severity_adjustments.upgraded),
        str(stats.severity_adjustments.downgraded),
        str(stats.severity_adjustments.unchanged),
    )
    console.print(table)

    if synthesis.key_actions:
        console.print(Markdown("\n".join(f"- {action}" for action in synthesis.key_actions)))

    if findings is None:
        return

    by_id = {o.finding_id: o for o in output.all_outcomes}
    findings_table = Table(title="All findings", show_header=True, header_style="bold")
    findings_table.add_column("Finding")
    findings_table.add_column("Category")
    findings_table.add_column("Clause")
    findings_table.add_column("Severity")
    for finding in findings.all_findings:
        style = _SEVERITY_STYLES[finding.severity]
        findings_table.add_row(
            finding.title,
            finding.category,
            finding.clause_number or finding.clause_ref,
            Text(_finding_status(finding, by_id), style=style),
        )
    console.print(findings_table)


def _finding_status(finding: Finding, by_id: dict[str, Outcome]) -> str:
    outcome = by_id.get(finding.id)
    if outcome is None:
        return f"{finding.severity} (not debated)"
    return _severity_change(outcome)


def _findings_lines(findings: FindingSynthesis, by_id: dict[str, Outcome]) -> list[str]:
    lines = ["## All Findings", ""]
    for finding in findings.all_findings:
        clause = finding.clause_number or finding.clause_ref
        lines.append(
            f"- **{finding.title}** ({finding.category}, clause {clause}): {_finding_status(finding, by_id)}"
        )
    lines.append("")

    if findings.clause_summaries:
        lines += ["## Clause Summaries", ""]
        for summary in findings.clause_summaries:
            lines.append(f"### Clause {summary.clause_number} ({summary.clause_type}): {summary.overall_risk}")
            lines += ["", summary.recommendation, ""]

    if findings.prioritized_actions:
        lines += ["## Prioritized Actions", ""]
        for action in findings.prioritized_actions:
            deadline = f" *({action.deadline})*" if action.deadline else ""
            lines.append(f"{action.priority}. {action.action}{deadline} [{', '.join(action.related_findings)}]")
        lines.append("")
    return lines


def _argument_lines(label: str, argument: Argument) -> list[str]:
    lines = [f"#### {label}", "", argument.position, "", argument.reasoning, ""]
    if argument.evidence:
        lines.append("**Evidence:**")
        lines += [f"- {item}" for item in argument.evidence]
        lines.append("")
    if argument.counterpoints:
        lines.append("**Counterpoints:**")
        lines += [f"- {item}" for item in argument.counterpoints]
        lines.append("")
    return lines


def render_report(contract: Contract, output: ArenaOutput, findings: FindingSynthesis | None = None) -> str:
    """Render the full debate record as markdown.

    With `findings`, the report also lists every finding (debated or not),
    the per-clause summaries and the prioritized actions.
    """
    synthesis = output.synthesis
    stats = output.statistics
    adjustments = stats.severity_adjustments

    lines: list[str] = [
        f"# Contract Council Review: {contract.title[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Contract:** {contract.id}",
        f"**Parties:** {', '.join(p.name for p in contract.parties) or 'n/a'}",
        f"**Recommendation:** {synthesis.approval_recommendation}",
        f"**Overall risk:** {synthesis.overall_risk}",
        f"**Debated:** {stats.debated_findings} of {stats.total_findings} finding(s) "
        f"in {len(output.rounds)} round(s)",
        "",
        "---",
        "",
        "## Summary",
        "",
        synthesis.summary,
        "",
    ]

    if synthesis.key_actions:
        lines += ["## Key Actions", ""]
        lines += [f"{i}. {action}" for i, action in enumerate(synthesis.key_actions, start=1)]
        lines.append("")

    lines += [
        "## Statistics",
        "",
        f"- Upgraded: {adjustments.upgraded}",
        f"- Downgraded: {adjustments.downgraded}",
        f"- Unchanged: {adjustments.unchanged}",
        f"- Average devil score: {stats.average_devil_score:.2f}",
        f"- Average angel score: {stats.average_angel_score:.2f}",
        "",
    ]

    if findings is not None:
        lines += _findings_lines(findings, {o.finding_id: o for o in output.all_outcomes})

    for rnd in output.rounds:
        lines.append(f"## Round {rnd.number}")
        lines.append("")
        for outcome in rnd.outcomes:
            finding = outcome.finding
            verdict = outcome.verdict
            lines.append(f"### {finding.title} ({finding.category}, clause {finding.clause_number or finding.clause_ref})")
            lines.append("")
            lines.append(f"*Severity: {_severity_change(outcome)} | Priority: {verdict.priority}"
                         + (" | Action required" if verdict.action_required else "") + "*")
            lines.append("")
            lines += _argument_lines("Devil's advocate", outcome.devil_argument)
            lines += _argument_lines("Angel's advocate", outcome.angel_argument)
            lines += ["#### Verdict", "", verdict.rationale, "", verdict.negotiation_advice, ""]

    return "\n".join(lines)


def save_to_file(
    contract: Contract,
    output: ArenaOutput,
    output_dir: Path,
    slug_override: str | None = None,
    findings: FindingSynthesis | None = None,
) -> Path:
    """Save the full debate record as a markdown file.

    Args:
        contract: The reviewed contract.
        output: The completed ArenaOutput.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the contract title. Useful for inbox mode.
        findings: Optional post-debate finding synthesis to include.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(contract.title)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    filepath.write_text(render_report(contract, output, findings), encoding="utf-8")
    logger.info("Review saved to: %s", filepath)
    return filepath
