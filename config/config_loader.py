"""Load settings.yaml into typed dataclasses. Validates arena options at startup."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"
_SETTINGS_ENV = "CONTRACT_COUNCIL_SETTINGS"

PRIORITIZE_OPTIONS = ("severity", "category", "mixed")


@dataclass
class ArenaConfig:
    max_rounds: int = 2
    findings_per_round: int = 5
    prioritize_by: str = "severity"      # "severity", "category", "mixed"
    enable_progressive_debate: bool = True

    def __post_init__(self) -> None:
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {self.max_rounds}")
        if self.findings_per_round < 1:
            raise ValueError(f"findings_per_round must be >= 1, got {self.findings_per_round}")
        if self.prioritize_by not in PRIORITIZE_OPTIONS:
            raise ValueError(
                f"prioritize_by must be one of {', '.join(PRIORITIZE_OPTIONS)}, got {self.prioritize_by!r}"
            )


@dataclass
class JudgingCriteria:
    evidence_weight: float = 0.35
    logic_weight: float = 0.25
    practicality_weight: float = 0.25
    industry_norm_weight: float = 0.15


@dataclass
class OutputConfig:
    output_dir: Path = Path("./output")


@dataclass
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass
class AppConfig:
    arena: ArenaConfig
    judging: JudgingCriteria
    output: OutputConfig
    inbox: InboxConfig


def default_settings_path() -> Path:
    """Settings path from $CONTRACT_COUNCIL_SETTINGS, else the bundled settings.yaml."""
    override = os.environ.get(_SETTINGS_ENV, "").strip()
    return Path(override) if override else _SETTINGS_PATH


def load_config(settings_path: Path | None = None) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Raises ValueError if an arena option is out of range. The judging,
    output and inbox sections are optional and fall back to defaults.
    """
    if settings_path is None:
        settings_path = default_settings_path()
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    arena_raw = raw["arena"]
    arena = ArenaConfig(
        max_rounds=int(arena_raw.get("max_rounds", 2)),
        findings_per_round=int(arena_raw.get("findings_per_round", 5)),
        prioritize_by=str(arena_raw.get("prioritize_by", "severity")),
        enable_progressive_debate=bool(arena_raw.get("enable_progressive_debate", True)),
    )

    judging_raw = raw.get("judging") or {}
    defaults = JudgingCriteria()
    judging = JudgingCriteria(
        evidence_weight=float(judging_raw.get("evidence_weight", defaults.evidence_weight)),
        logic_weight=float(judging_raw.get("logic_weight", defaults.logic_weight)),
        practicality_weight=float(judging_raw.get("practicality_weight", defaults.practicality_weight)),
        industry_norm_weight=float(judging_raw.get("industry_norm_weight", defaults.industry_norm_weight)),
    )
    total_weight = (
        judging.evidence_weight + judging.logic_weight
        + judging.practicality_weight + judging.industry_norm_weight
    )
    if abs(total_weight - 1.0) > 1e-6:
        logger.warning("Judging weights sum to %.3f, not 1.0; scores will not be normalized", total_weight)

    output_raw = raw.get("output") or {}
    output = OutputConfig(output_dir=Path(output_raw.get("output_dir", "./output")))

    inbox_raw = raw.get("inbox") or {}
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    logger.info(
        "Arena config: %d round(s) x %d finding(s), prioritize by %s, progressive=%s",
        arena.max_rounds,
        arena.findings_per_round,
        arena.prioritize_by,
        arena.enable_progressive_debate,
    )

    return AppConfig(arena=arena, judging=judging, output=output, inbox=inbox)
