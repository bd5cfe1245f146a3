#!/usr/bin/env python3
"""CLI runner for the Crossfire debate engine.

This script takes a claim as input, runs the Believer, Skeptic and Judge,
and prints both arguments, the verdict and the top evidence.

Usage:
    python run_cli.py "Remote work increases productivity"
    python run_cli.py --length short "Coffee improves long-term memory"
    python run_cli.py --parallel "Electric cars are cleaner than gasoline cars"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

import structlog  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.markdown import Markdown  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from agents.evidence_tracker import EvidenceTracker  # noqa: E402
from graph.state import (  # noqa: E402
    AgentResponse,
    DebateLength,
    DebateResult,
    EvidenceItem,
    StageEventType,
    Verdict,
    resolve_max_tokens,
)
from graph.workflow import DebateOrchestrator  # noqa: E402
from middleware.sanitization import sanitize_claim  # noqa: E402
from utils.logging import configure_logging  # noqa: E402
from utils.resilience import DebateError, validate_claim  # noqa: E402


console = Console()
logger = structlog.get_logger(__name__)

TOP_EVIDENCE = 5


def print_header():
    """Print the Crossfire header."""
    console.print()
    console.print("[bold blue]Crossfire[/bold blue] - Three-Role Claim Debate", justify="center")
    console.print("[dim]A Believer, a Skeptic and a Judge argue your claim[/dim]", justify="center")
    console.print()


def print_progress(stage: str, detail: str = ""):
    """Print a progress indicator for a completed stage.

    Args:
        stage: Stage name.
        detail: Additional detail to show.
    """
    stage_indicators = {
        "believer": "[green][BELIEVER][/green]",
        "skeptic": "[red][SKEPTIC][/red]",
        "judge": "[magenta][JUDGE][/magenta]",
        "completed": "[bold green][COMPLETED][/bold green]",
        "failed": "[bold red][FAILED][/bold red]",
    }

    indicator = stage_indicators.get(stage.lower(), f"[{stage}]")

    if detail:
        console.print(f"  {indicator} {detail}")
    else:
        console.print(f"  {indicator}")


def print_argument(title: str, response: AgentResponse, border_style: str):
    """Print one side's argument in a panel."""
    console.print()
    console.print(Panel(
        Markdown(response.content),
        title=f"[bold]{title}[/bold]",
        subtitle=f"[dim]{response.provider_used} {response.model}[/dim]",
        border_style=border_style,
        padding=(1, 2),
    ))


def print_verdict(verdict: Verdict):
    """Print the parsed verdict as a table."""
    console.print()
    console.print("[bold]Verdict[/bold]")

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Verdict", f"[bold]{verdict.label.value}[/bold]")
    table.add_row("Confidence claim is true", f"{verdict.confidence}%")
    table.add_row("Believer case", verdict.believer_strength.value)
    table.add_row("Skeptic case", verdict.skeptic_strength.value)
    table.add_row("Harm if wrong", verdict.harm_if_wrong.value)
    table.add_row("Opportunity if wrong", verdict.opportunity_if_wrong.value)
    table.add_row("Overall risk", verdict.risk_assessment)
    for index, factor in enumerate(verdict.key_factors, start=1):
        table.add_row(f"Key factor {index}", factor)
    if verdict.critical_gaps:
        table.add_row("Critical gaps", verdict.critical_gaps)

    console.print(table)

    if verdict.parse_warnings:
        console.print(f"  [dim]Defaulted fields: {', '.join(verdict.parse_warnings)}[/dim]")


def print_evidence(evidence: list[EvidenceItem]):
    """Print the highest-credibility evidence."""
    if not evidence:
        console.print()
        console.print("[dim]No evidence was cited.[/dim]")
        return

    ranked = sorted(evidence, key=lambda item: item.credibility_score, reverse=True)

    console.print()
    console.print("[bold]Top Evidence[/bold]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Domain", style="cyan")
    table.add_column("Credibility", justify="right")
    table.add_column("Cited by")
    table.add_column("URL")

    for index, item in enumerate(ranked[:TOP_EVIDENCE], start=1):
        score = item.credibility_score
        color = "green" if score >= 80 else "yellow" if score >= 55 else "red"
        url = item.source_url if len(item.source_url) <= 60 else item.source_url[:57] + "..."
        table.add_row(
            str(index),
            item.domain,
            f"[{color}]{score}[/{color}]",
            item.mentioned_by.value,
            url,
        )

    console.print(table)

    if len(evidence) > TOP_EVIDENCE:
        console.print(f"  [dim]... and {len(evidence) - TOP_EVIDENCE} more sources[/dim]")


def print_result(result: DebateResult):
    """Print a completed debate."""
    print_argument("Believer", result.believer_response, "green")
    print_argument("Skeptic", result.skeptic_response, "red")
    print_verdict(result.verdict)
    print_evidence(result.evidence)


async def run_streamed(orchestrator: DebateOrchestrator, claim: str, max_tokens: int) -> DebateResult:
    """Run the debate stage by stage, reporting progress as stages finish."""
    tracker = EvidenceTracker()
    responses: dict[StageEventType, AgentResponse] = {}
    verdict = None

    async for event in orchestrator.run_stream(claim, max_tokens, tracker=tracker):
        responses[event.type] = event.response
        detail = (
            f"{event.response.provider_used} - {event.response.tokens_used} tokens, "
            f"{len(event.response.evidence)} sources"
        )
        print_progress(event.stage.value, detail)
        if event.verdict is not None:
            verdict = event.verdict

    return DebateResult(
        claim=claim,
        believer_response=responses[StageEventType.BELIEVER_COMPLETE],
        skeptic_response=responses[StageEventType.SKEPTIC_COMPLETE],
        judge_response=responses[StageEventType.JUDGE_COMPLETE],
        verdict=verdict,
        evidence=tracker.all(),
    )


async def single_claim(claim: str, length: DebateLength, parallel: bool = False):
    """Debate a single claim and print the result.

    Args:
        claim: The claim to debate.
        length: Argument length preset.
        parallel: Run Believer and Skeptic concurrently (no progress output).
    """
    try:
        claim = validate_claim(sanitize_claim(claim))
    except DebateError as e:
        console.print(f"[bold red]Invalid claim:[/bold red] {e.message}")
        sys.exit(2)

    max_tokens = resolve_max_tokens(length)
    print_header()
    console.print(f"[bold]Claim:[/bold] {claim}")
    console.print(f"[dim]Length: {length.value} ({max_tokens} tokens per argument)[/dim]")
    console.print()

    orchestrator = DebateOrchestrator()

    try:
        if parallel:
            with console.status("[bold]Believer and Skeptic are arguing...[/bold]"):
                result = await orchestrator.run(claim, max_tokens)
        else:
            result = await run_streamed(orchestrator, claim, max_tokens)
    except DebateError as e:
        print_progress("failed", e.message)
        stage = e.details.get("stage")
        if stage:
            console.print(f"  [dim]Stage: {stage}[/dim]")
        sys.exit(1)

    print_progress("completed")
    print_result(result)


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Crossfire CLI - Three-Role Claim Debate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Remote work increases productivity"
  %(prog)s --length long "Nuclear power is the safest energy source"
  %(prog)s --parallel "Coffee improves long-term memory"
        """,
    )

    parser.add_argument(
        "claim",
        help="The claim to debate (10-500 characters)",
    )

    parser.add_argument(
        "-l", "--length",
        choices=[length.value for length in DebateLength],
        default=DebateLength.MEDIUM.value,
        help="Argument length (default: medium)",
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Run Believer and Skeptic concurrently",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    configure_logging(
        log_level="DEBUG" if args.verbose else "WARNING",
        stream=sys.stderr,
    )

    asyncio.run(single_claim(
        args.claim,
        DebateLength(args.length),
        parallel=args.parallel,
    ))


if __name__ == "__main__":
    main()
