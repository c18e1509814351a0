"""Finding synthesis: merge analyzer output, apply debate verdicts, build clause summaries and actions."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from contract_council.models import (
    SEVERITY_WEIGHTS,
    Clause,
    Contract,
    Finding,
    Outcome,
    PersonaAnalysis,
    highest_severity,
)

logger = logging.getLogger(__name__)

_MAX_MEDIUM_ACTIONS = 5


@dataclass(frozen=True)
class MergedFindings:
    all_findings: tuple[Finding, ...]
    by_clause: dict[str, list[Finding]]
    by_severity: dict[str, list[Finding]]


@dataclass(frozen=True)
class ClauseSummary:
    clause_id: str
    clause_number: str
    clause_type: str
    findings: tuple[Finding, ...]
    overall_risk: str
    recommendation: str


@dataclass(frozen=True)
class PrioritizedAction:
    priority: int
    action: str
    related_findings: tuple[str, ...]
    deadline: str | None = None


@dataclass(frozen=True)
class SynthesisStatistics:
    total_findings: int
    unique_findings: int
    findings_by_severity: dict[str, int]
    findings_by_category: dict[str, int] = field(default_factory=dict)
    findings_by_clause: dict[str, int] = field(default_factory=dict)
    findings_by_persona: dict[str, int] = field(default_factory=dict)
    average_severity: float = 0.0


@dataclass(frozen=True)
class FindingSynthesis:
    all_findings: tuple[Finding, ...]
    clause_summaries: tuple[ClauseSummary, ...]
    prioritized_actions: tuple[PrioritizedAction, ...]
    statistics: SynthesisStatistics


def merge_persona_analyses(analyses: Sequence[PersonaAnalysis]) -> MergedFindings:
    """Flatten analyzer output and group it by clause and by severity."""
    all_findings: list[Finding] = []
    by_clause: dict[str, list[Finding]] = {}
    by_severity: dict[str, list[Finding]] = {}

    for analysis in analyses:
        for finding in analysis.findings:
            all_findings.append(finding)
            by_clause.setdefault(finding.clause_ref, []).append(finding)
            by_severity.setdefault(finding.severity, []).append(finding)

    return MergedFindings(all_findings=tuple(all_findings), by_clause=by_clause, by_severity=by_severity)


def analyses_from_findings(findings: Sequence[Finding], analyzed_at: str = "") -> list[PersonaAnalysis]:
    """Regroup a flat finding list into one PersonaAnalysis per originating analyzer.

    Review requests carry findings only, so summary is empty and confidence 1.0.
    Personas appear in first-seen order.
    """
    grouped: dict[str, list[Finding]] = {}
    for finding in findings:
        grouped.setdefault(finding.persona, []).append(finding)

    return [
        PersonaAnalysis(
            persona=persona,
            analyzed_at=analyzed_at,
            findings=tuple(persona_findings),
            summary="",
            overall_risk=highest_severity(f.severity for f in persona_findings),
            confidence=1.0,
        )
        for persona, persona_findings in grouped.items()
    ]


def sort_findings_by_severity(findings: Sequence[Finding]) -> list[Finding]:
    """Most severe first; equal severities keep their input order."""
    return sorted(findings, key=lambda f: SEVERITY_WEIGHTS[f.severity], reverse=True)


def _union(first: Sequence[str], second: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys([*first, *second]))


def deduplicate_findings(findings: Sequence[Finding]) -> list[Finding]:
    """Collapse findings sharing (clause_ref, category, title).

    The more severe record wins; evidence is unioned and the absorbed
    finding's id lands in related_findings. Inputs are never mutated.
    """
    seen: dict[tuple[str, str, str], Finding] = {}

    for finding in findings:
        key = (finding.clause_ref, finding.category, finding.title)
        existing = seen.get(key)
        if existing is None:
            seen[key] = finding
            continue

        if SEVERITY_WEIGHTS[finding.severity] > SEVERITY_WEIGHTS[existing.severity]:
            seen[key] = replace(
                finding,
                evidence=_union(existing.evidence, finding.evidence),
                related_findings=(*existing.related_findings, existing.id),
            )
        else:
            seen[key] = replace(
                existing,
                evidence=_union(existing.evidence, finding.evidence),
                related_findings=(*existing.related_findings, finding.id),
            )

    return list(seen.values())


def apply_debate_adjustments(findings: Sequence[Finding], outcomes: Sequence[Outcome]) -> list[Finding]:
    """Return findings with severity replaced by the matching verdict's adjusted severity."""
    by_id = {o.finding_id: o for o in outcomes}
    adjusted: list[Finding] = []
    for finding in findings:
        outcome = by_id.get(finding.id)
        if outcome and outcome.verdict.adjusted_severity != finding.severity:
            finding = replace(finding, severity=outcome.verdict.adjusted_severity)
        adjusted.append(finding)
    return adjusted


def _collect_findings(analyses: Sequence[PersonaAnalysis], outcomes: Sequence[Outcome]) -> list[Finding]:
    findings = list(merge_persona_analyses(analyses).all_findings)
    known = {f.id for f in findings}
    for outcome in outcomes:
        if outcome.finding.id not in known:
            findings.append(outcome.finding)
            known.add(outcome.finding.id)
    return findings


def _merge_recommendations(findings: Sequence[Finding]) -> str:
    recommendations = list(dict.fromkeys(f.recommendation for f in sort_findings_by_severity(findings)))
    if not recommendations:
        return "No specific recommendation."
    if len(recommendations) == 1:
        return recommendations[0]
    return "\n".join(f"{i}. {r}" for i, r in enumerate(recommendations, start=1))


def _find_clause(clauses: Sequence[Clause], clause_id: str) -> Clause | None:
    for clause in clauses:
        if clause.id == clause_id:
            return clause
        nested = _find_clause(clause.sub_clauses, clause_id)
        if nested is not None:
            return nested
    return None


def build_clause_summaries(findings: Sequence[Finding], clauses: Sequence[Clause]) -> list[ClauseSummary]:
    """One summary per referenced clause, riskiest clause first."""
    grouped: dict[str, list[Finding]] = {}
    for finding in findings:
        grouped.setdefault(finding.clause_ref, []).append(finding)

    summaries: list[ClauseSummary] = []
    for clause_ref, clause_findings in grouped.items():
        clause = _find_clause(clauses, clause_ref)
        summaries.append(
            ClauseSummary(
                clause_id=clause_ref,
                clause_number=clause.number if clause else clause_ref,
                clause_type=clause.type if clause else "general",
                findings=tuple(clause_findings),
                overall_risk=highest_severity(f.severity for f in clause_findings),
                recommendation=_merge_recommendations(clause_findings),
            )
        )

    return sorted(summaries, key=lambda s: SEVERITY_WEIGHTS[s.overall_risk], reverse=True)


def _estimate_deadline(finding: Finding, outcome: Outcome | None) -> str | None:
    if finding.severity == "critical":
        return "Must be resolved before signing"
    if finding.severity == "high":
        return "Should be resolved before signing"
    if outcome is not None and outcome.verdict.action_required:
        return "Consider before signing"
    return None


def extract_prioritized_actions(findings: Sequence[Finding], outcomes: Sequence[Outcome]) -> list[PrioritizedAction]:
    """Critical and high findings first, then up to five medium ones."""
    by_id = {o.finding_id: o for o in outcomes}
    urgent = [f for f in findings if f.severity in ("critical", "high")]
    medium = [f for f in findings if f.severity == "medium"][:_MAX_MEDIUM_ACTIONS]

    actions = [
        PrioritizedAction(
            priority=i,
            action=f.recommendation,
            related_findings=(f.id,),
            deadline=_estimate_deadline(f, by_id.get(f.id)),
        )
        for i, f in enumerate(urgent, start=1)
    ]
    actions += [
        PrioritizedAction(priority=len(urgent) + i, action=f.recommendation, related_findings=(f.id,))
        for i, f in enumerate(medium, start=1)
    ]
    return actions


def _calculate_statistics(raw: Sequence[Finding], unique: Sequence[Finding]) -> SynthesisStatistics:
    by_severity = {level: 0 for level in ("critical", "high", "medium", "low")}
    by_category: dict[str, int] = {}
    by_clause: dict[str, int] = {}
    by_persona: dict[str, int] = {}
    total_weight = 0

    for finding in unique:
        by_severity[finding.severity] += 1
        total_weight += SEVERITY_WEIGHTS[finding.severity]
        by_category[finding.category] = by_category.get(finding.category, 0) + 1
        by_clause[finding.clause_ref] = by_clause.get(finding.clause_ref, 0) + 1
        by_persona[finding.persona] = by_persona.get(finding.persona, 0) + 1

    return SynthesisStatistics(
        total_findings=len(raw),
        unique_findings=len(unique),
        findings_by_severity=by_severity,
        findings_by_category=by_category,
        findings_by_clause=by_clause,
        findings_by_persona=by_persona,
        average_severity=total_weight / len(unique) if unique else 0.0,
    )


def synthesize_findings(
    contract: Contract,
    persona_analyses: Sequence[PersonaAnalysis],
    outcomes: Sequence[Outcome],
) -> FindingSynthesis:
    """Collect, deduplicate, adjust and rank every finding for the report.

    Args:
        contract: Source of clause numbers and types for the summaries.
        persona_analyses: Raw analyzer output.
        outcomes: Debate outcomes; their adjusted severities override the
            analyzers' original ones.

    Returns:
        FindingSynthesis with sorted findings, clause summaries, actions and statistics.
    """
    raw = _collect_findings(persona_analyses, outcomes)
    unique = deduplicate_findings(raw)
    adjusted = apply_debate_adjustments(unique, outcomes)
    ranked = sort_findings_by_severity(adjusted)

    logger.info("Synthesized %d finding(s) into %d unique", len(raw), len(ranked))

    return FindingSynthesis(
        all_findings=tuple(ranked),
        clause_summaries=tuple(build_clause_summaries(ranked, contract.clauses)),
        prioritized_actions=tuple(extract_prioritized_actions(ranked, outcomes)),
        statistics=_calculate_statistics(raw, ranked),
    )
