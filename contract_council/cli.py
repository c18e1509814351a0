"""Command-line entry point: settings, review requests, the debate arena and report output."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import PRIORITIZE_OPTIONS, AppConfig, ArenaConfig, load_config
from contract_council.arbiter import Arbiter
from contract_council.arena import JUDGE_DELIBERATE, ROUND_COMPLETE, ArenaEvent, DebateArena
from contract_council.inbox import ReviewRequest, archive_file, ensure_dirs, load_review_request, scan_inbox
from contract_council.output import print_round_summary, print_synthesis, save_to_file
from contract_council.synthesis import analyses_from_findings, synthesize_findings

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _resolve_arena_config(
    base: ArenaConfig,
    file_overrides: dict,
    rounds_cli: int | None,
    per_round_cli: int | None,
    prioritize_cli: str | None,
    no_progressive_cli: bool,
) -> ArenaConfig:
    """Precedence: CLI flag > frontmatter > settings.yaml."""
    max_rounds = (
        rounds_cli if rounds_cli is not None
        else int(file_overrides["rounds"]) if "rounds" in file_overrides
        else base.max_rounds
    )
    findings_per_round = (
        per_round_cli if per_round_cli is not None
        else int(file_overrides["findings_per_round"]) if "findings_per_round" in file_overrides
        else base.findings_per_round
    )
    prioritize_by = (
        prioritize_cli if prioritize_cli is not None
        else str(file_overrides["prioritize_by"]) if "prioritize_by" in file_overrides
        else base.prioritize_by
    )
    progressive = (
        False if no_progressive_cli
        else bool(file_overrides["progressive"]) if "progressive" in file_overrides
        else base.enable_progressive_debate
    )
    return replace(
        base,
        max_rounds=max_rounds,
        findings_per_round=findings_per_round,
        prioritize_by=prioritize_by,
        enable_progressive_debate=progressive,
    )


async def _run_single(
    request: ReviewRequest,
    config: AppConfig,
    arena_config: ArenaConfig,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Run one arena over a review request and return the saved report path."""
    contract = request.contract
    capacity = arena_config.max_rounds * arena_config.findings_per_round

    console.print(f"\n[bold cyan]Contract Council[/bold cyan]: {escape(contract.title)}")
    console.print(
        f"Findings: {len(request.findings)} (debating up to {capacity}) | "
        f"Prioritize by: {arena_config.prioritize_by} | "
        f"Progressive: {'on' if arena_config.enable_progressive_debate else 'off'}\n"
    )

    arena = DebateArena(arena_config, arbiter=Arbiter(config.judging))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Debating findings...", total=None)

        def on_event(event: ArenaEvent) -> None:
            if event.type == JUDGE_DELIBERATE:
                progress.update(task, description=f"Judged {event.data['finding_id']}")
            elif event.type == ROUND_COMPLETE:
                progress.print(
                    f"[green]OK[/green] Round {event.data['round']} complete "
                    f"({len(event.data['outcomes'])} verdicts)"
                )

        output = await arena.conduct(contract, request.findings, on_event=on_event)

    for rnd in output.rounds:
        print_round_summary(rnd)

    # Findings beyond arena capacity keep their original severity here.
    findings = synthesize_findings(
        contract,
        analyses_from_findings(request.findings, contract.metadata.parsed_at),
        output.all_outcomes,
    )

    print_synthesis(output, findings)

    saved_path = save_to_file(contract, output, output_dir, slug_override=slug_override, findings=findings)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return saved_path


async def _run_inbox(
    config: AppConfig,
    inbox_dir: Path,
    archive_dir: Path,
    rounds_cli: int | None,
    per_round_cli: int | None,
    prioritize_cli: str | None,
    no_progressive_cli: bool,
    output_dir: Path,
) -> None:
    """Process all .md review requests in the inbox folder.

    Precedence for per-file settings: CLI flag > frontmatter > config default.
    A failing file is logged and archived with a FAILED_ prefix; the rest continue.
    """
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        try:
            request = load_review_request(file_path)
            arena_config = _resolve_arena_config(
                config.arena, request.overrides, rounds_cli, per_round_cli, prioritize_cli, no_progressive_cli
            )
            saved = await _run_single(
                request=request,
                config=config,
                arena_config=arena_config,
                output_dir=output_dir,
                slug_override=file_path.stem,
            )
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {saved} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


@click.command()
@click.argument("request_file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--rounds", default=None, type=int, help="Maximum debate rounds (default: from config)")
@click.option("--per-round", "per_round", default=None, type=int,
              help="Findings debated per round (default: from config)")
@click.option("--prioritize-by", "prioritize_by", default=None, type=click.Choice(PRIORITIZE_OPTIONS),
              help="Ordering used to pick findings for debate (default: from config)")
@click.option("--no-progressive", is_flag=True, default=False,
              help="Do not cite related earlier-round debates as evidence")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Path to settings.yaml (default: $CONTRACT_COUNCIL_SETTINGS or bundled)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--inbox", "use_inbox", is_flag=True, default=False,
              help="Process all .md review requests in the inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
def main(
    request_file: str | None,
    rounds: int | None,
    per_round: int | None,
    prioritize_by: str | None,
    no_progressive: bool,
    output_path: str | None,
    settings_path: str | None,
    verbose: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
) -> None:
    """Contract Council -- adversarial debate over contract review findings.

    \b
    Examples:
      contract-council review.md
      contract-council review.md --rounds 1 --per-round 3
      contract-council review.md --prioritize-by mixed --no-progressive
      contract-council --inbox
      contract-council --inbox --inbox-dir ./my_queue
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path) if settings_path else None)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    effective_output = Path(output_path) if output_path else config.output.output_dir

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
        asyncio.run(
            _run_inbox(
                config=config,
                inbox_dir=inbox_dir,
                archive_dir=config.inbox.archive_dir,
                rounds_cli=rounds,
                per_round_cli=per_round,
                prioritize_cli=prioritize_by,
                no_progressive_cli=no_progressive,
                output_dir=effective_output,
            )
        )
        return

    if not request_file:
        console.print("[bold red]Error:[/bold red] Provide a REQUEST_FILE argument or --inbox.")
        sys.exit(1)

    try:
        request = load_review_request(Path(request_file))
        arena_config = _resolve_arena_config(
            config.arena, request.overrides, rounds, per_round, prioritize_by, no_progressive
        )
    except (KeyError, ValueError) as exc:
        console.print(f"[bold red]Invalid review request:[/bold red] {exc}")
        sys.exit(1)

    asyncio.run(
        _run_single(
            request=request,
            config=config,
            arena_config=arena_config,
            output_dir=effective_output,
        )
    )


if __name__ == "__main__":
    main()
