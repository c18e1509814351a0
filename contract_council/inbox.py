"""Review request files: inbox scanning, frontmatter parsing, archive logic.

A review request is a Markdown file. Its YAML frontmatter carries the contract
header, clause list and the analyzers' findings; the body is the contract text.

    ---
    contract_id: msa-2026-014
    title: Master Services Agreement
    parties:
      - {id: p1, name: Acme Corp, role: client, is_our_side: true}
    clauses:
      - {id: c7, number: "7.2", type: liability, title: Liability, content: "..."}
    findings:
      - id: legal-1
        persona: legal_expert
        clause_ref: c7
        severity: high
        category: legal_risk
        title: Uncapped liability
        issue: ...
        impact: ...
        recommendation: ...
        evidence: ["..."]
    rounds: 1              # optional per-file overrides
    ---
    <contract text>
"""

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import frontmatter

from contract_council.models import (
    FINDING_CATEGORIES,
    SEVERITY_LEVELS,
    Clause,
    Contract,
    ContractMetadata,
    Finding,
    Party,
)

# Frontmatter keys that override arena settings for a single file.
OVERRIDE_KEYS = ("rounds", "findings_per_round", "prioritize_by", "progressive")


@dataclass(frozen=True)
class ReviewRequest:
    contract: Contract
    findings: tuple[Finding, ...]
    overrides: dict = field(default_factory=dict)


def ensure_dirs(*dirs: Path) -> None:
    """Create the inbox and archive folders on first use."""
    for directory in dirs:
        directory.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Pending review requests, oldest first. Equal mtimes fall back to file name."""
    return sorted(inbox_dir.glob("*.md"), key=lambda p: (p.stat().st_mtime, p.name))


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Split a review request into contract text and request header.

    Returns:
        (body, header). The body is the contract text with surrounding
        whitespace stripped; the header is the frontmatter mapping, or {}
        when the file is plain contract text with nothing to debate.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move a handled review request out of the inbox.

    The archived name is ``[FAILED_]<YYYYmmdd_HHMMSS>_<original name>``.
    Requests with the same name archived within the same second get a
    ``-2``, ``-3``... suffix on the stem instead of replacing each other.

    Returns:
        Path to the archived file.
    """
    prefix = "FAILED_" if failed else ""
    stem = f"{prefix}{datetime.now().strftime('%Y%m%d_%H%M%S')}_{file_path.stem}"
    dest = archive_dir / f"{stem}{file_path.suffix}"
    n = 1
    while dest.exists():
        n += 1
        dest = archive_dir / f"{stem}-{n}{file_path.suffix}"
    shutil.move(str(file_path), str(dest))
    return dest


def _tuple_of_str(value) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def finding_from_dict(raw: dict) -> Finding:
    """Build a Finding from frontmatter. Raises KeyError/ValueError on bad input."""
    severity = str(raw["severity"]).lower()
    if severity not in SEVERITY_LEVELS:
        raise ValueError(f"Unknown severity {severity!r} in finding {raw.get('id')!r}")
    category = str(raw["category"]).lower()
    if category not in FINDING_CATEGORIES:
        raise ValueError(f"Unknown category {category!r} in finding {raw.get('id')!r}")

    return Finding(
        id=str(raw["id"]),
        persona=str(raw.get("persona", "unknown")),
        clause_ref=str(raw["clause_ref"]),
        clause_number=str(raw.get("clause_number", "")),
        severity=severity,
        category=category,
        title=str(raw["title"]),
        issue=str(raw["issue"]),
        impact=str(raw["impact"]),
        recommendation=str(raw.get("recommendation", "")),
        evidence=_tuple_of_str(raw.get("evidence")),
        related_findings=_tuple_of_str(raw.get("related_findings")),
    )


def _clause_from_dict(raw: dict) -> Clause:
    return Clause(
        id=str(raw["id"]),
        number=str(raw.get("number", raw["id"])),
        type=str(raw.get("type", "general")),
        title=str(raw.get("title", "")),
        content=str(raw.get("content", "")),
        sub_clauses=tuple(_clause_from_dict(c) for c in raw.get("sub_clauses") or ()),
    )


def _party_from_dict(raw: dict) -> Party:
    return Party(
        id=str(raw["id"]),
        name=str(raw["name"]),
        role=str(raw.get("role", "other")),
        is_our_side=bool(raw.get("is_our_side", False)),
    )


def load_review_request(file_path: Path) -> ReviewRequest:
    """Read a review request file into a Contract, its findings and per-file overrides."""
    body, meta = parse_file(file_path)

    contract = Contract(
        id=str(meta.get("contract_id", file_path.stem)),
        title=str(meta.get("title", file_path.stem)),
        parties=tuple(_party_from_dict(p) for p in meta.get("parties") or ()),
        clauses=tuple(_clause_from_dict(c) for c in meta.get("clauses") or ()),
        raw_text=body,
        metadata=ContractMetadata(
            language=str(meta.get("language", "en")),
            parsed_at=datetime.now().isoformat(timespec="seconds"),
            word_count=len(body.split()),
        ),
    )
    findings = tuple(finding_from_dict(f) for f in meta.get("findings") or ())
    overrides = {k: meta[k] for k in OVERRIDE_KEYS if k in meta}
    return ReviewRequest(contract=contract, findings=findings, overrides=overrides)
