"""CLI entry point for memboard."""

import asyncio
import json
import logging
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from memboard.adapters.base import SubjectNotResolvedError, is_address
from memboard.analyzers.engagement import compute_engagement_rank
from memboard.analyzers.feed import rank_subjects
from memboard.analyzers.integrity import build_integrity_actions, compute_integrity_badges
from memboard.analyzers.matching import match_wallets
from memboard.analyzers.pipeline import ScoringPipeline
from memboard.analyzers.scorer import explain_legitimacy_score
from memboard.analyzers.tiers import compute_tier_progress
from memboard.models.schemas import (
    FeedSubject,
    LegitimacyOptions,
    Quantiles,
    ScoringStats,
)

app = typer.Typer(help="Wallet legitimacy, engagement and match scoring.")

console = Console()

# Population breakpoints observed on Base wallets
DEFAULT_STATS = ScoringStats(
    tx_count_quantiles=Quantiles(p50=12, p75=55, p90=200),
    follower_log_quantiles=Quantiles(p50=1.5, p75=3.2, p90=5.0),
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show adapter logs"),
) -> None:
    """Wallet legitimacy, engagement and match scoring."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def parse_weights(raw: str | None) -> dict[str, float] | None:
    """Parse ``name=value,name=value`` into a weight mapping.

    Raises:
        typer.BadParameter: If an entry is malformed.
    """
    if not raw:
        return None
    weights = {}
    for part in raw.split(","):
        name, sep, value = part.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected name=value, got '{part}'")
        try:
            weights[name.strip()] = float(value)
        except ValueError:
            raise typer.BadParameter(f"Weight for '{name.strip()}' is not a number")
    return weights


def _options(weights: str | None) -> LegitimacyOptions:
    return LegitimacyOptions(weights=parse_weights(weights), stats=DEFAULT_STATS)


def _score_bar(score: float, width: int = 20) -> str:
    """Create a visual score bar."""
    filled = int(score / 100 * width)
    empty = width - filled
    color = _color(score)
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"


def _color(score: float) -> str:
    return "green" if score >= 80 else "yellow" if score >= 60 else "red"


def _save(output: Path | None, data: dict) -> None:
    if output:
        output.write_text(json.dumps(data, indent=2, default=str))
        console.print(f"\n[green]Saved to {output}[/green]")


def _fail(error: Exception) -> None:
    console.print(f"[red]Unable to compute: {error}[/red]")
    raise typer.Exit(1)


async def _require_subject(pipeline: ScoringPipeline, subject: str) -> None:
    if not is_address(subject):
        await pipeline.ens.require_address(subject)


@app.command()
def score(
    subject: str = typer.Argument(..., help="Wallet address or ENS name"),
    weights: str | None = typer.Option(None, "--weights", "-w", help="Dimension weights, e.g. identity=0.4,wallet=0.3"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
) -> None:
    """Compute the legitimacy score of a wallet."""
    asyncio.run(_score(subject, weights, output))


async def _score(subject: str, weights: str | None, output: Path | None) -> None:
    """Async implementation of score."""
    options = _options(weights)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Gathering signals...", total=None)
        try:
            async with ScoringPipeline() as pipeline:
                await _require_subject(pipeline, subject)
                inputs = await pipeline.gather_inputs(subject)
            result = explain_legitimacy_score(inputs, options)
        except SubjectNotResolvedError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        except Exception as e:
            _fail(e)

    progress_info = compute_tier_progress(result.score)
    tier = progress_info.tier
    meta = result.breakdown.meta

    console.print()
    console.print(
        Panel(
            f"[bold][{_color(result.score)}]{result.score}[/{_color(result.score)}][/bold] / 100  "
            f"Tier: [bold]{tier.label}[/bold]\n[dim]{tier.description}[/dim]",
            title=f"Legitimacy: {subject}",
            expand=False,
        )
    )
    if progress_info.next_tier:
        console.print(
            f"[dim]{progress_info.points_to_next} points to {progress_info.next_tier.label}[/dim]"
        )
    if meta.reason:
        console.print(f"[yellow]No data: {meta.reason}[/yellow]")
    if meta.degraded:
        console.print("[yellow]Some sources were unavailable; partial data was used.[/yellow]")

    table = Table(title="Score Breakdown", show_header=True)
    table.add_column("Dimension", style="bold")
    table.add_column("Health", justify="right")
    table.add_column("Weight", justify="right", style="dim")
    table.add_column("Bar", width=20)

    breakdown = result.breakdown
    for name in ("identity", "wallet", "social", "ens", "memory", "external", "overlap"):
        dimension = getattr(breakdown, name)
        health = dimension.normalized * 100
        table.add_row(
            name.title(),
            f"[{_color(health)}]{health:.0f}[/{_color(health)}]",
            f"{dimension.weight * 100:.0f}%",
            _score_bar(health),
        )
    console.print(table)

    info = Table(show_header=False, box=None)
    info.add_column("Key", style="bold")
    info.add_column("Value")
    info.add_row("Identities", f"{meta.identity_count} on {meta.platform_count} platforms")
    info.add_row("Verified", f"{meta.verified}/{meta.total}")
    info.add_row("Wallet age", f"{meta.wallet_age_days:.0f} days" if meta.wallet_age_days is not None else "-")
    info.add_row("Transactions", str(meta.tx_count) if meta.tx_count is not None else "-")
    info.add_row("MEM balance", f"{meta.balance:,.2f}" if meta.balance is not None else "-")
    info.add_row("ENS", meta.ens_name or "-")
    info.add_row("Basename", meta.bns_name or "-")
    console.print(info)

    badges = compute_integrity_badges(result.breakdown)
    if badges:
        console.print(f"\n[bold]Badges:[/bold] {', '.join(badge.label for badge in badges)}")

    actions = build_integrity_actions(result.breakdown)
    if not meta.reason:
        console.print("\n[bold]Where to improve[/bold]")
        for action in actions[:3]:
            console.print(f"  [cyan]{action.label}[/cyan] ({action.severity.value}): {action.summary}")
            for step in action.actions:
                console.print(f"    [dim]- {step}[/dim]")

    _save(
        output,
        {
            "subject": subject,
            **result.model_dump(mode="json"),
            "tier": progress_info.model_dump(mode="json"),
            "badges": [badge.model_dump(mode="json") for badge in badges],
            "actions": [action.model_dump(mode="json") for action in actions],
        },
    )


@app.command()
def engagement(
    subject: str = typer.Argument(..., help="Wallet address or ENS name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
) -> None:
    """Compute the engagement rank of a wallet."""
    asyncio.run(_engagement(subject, output))


async def _engagement(subject: str, output: Path | None) -> None:
    """Async implementation of engagement."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Gathering signals...", total=None)
        try:
            async with ScoringPipeline() as pipeline:
                inputs = await pipeline.gather_inputs(subject)
            rank = compute_engagement_rank(inputs.identities, inputs.onchain_data)
        except Exception as e:
            _fail(e)

    console.print()
    console.print(
        Panel(
            f"[bold][{_color(rank.score)}]{rank.score}[/{_color(rank.score)}][/bold] / 100  "
            f"[bold]{rank.label}[/bold]  (top {rank.percentile_approx}%)",
            title=f"Engagement: {subject}",
            expand=False,
        )
    )
    b = rank.breakdown
    info = Table(show_header=False, box=None)
    info.add_column("Key", style="bold")
    info.add_column("Value")
    info.add_row("Followers", f"{b.total_followers:,}")
    info.add_row("Verified identities", str(b.verified_count))
    info.add_row("Reliability", f"x{b.reliability_mult}")
    info.add_row("Consistency bonus", f"+{b.consistency_bonus}")
    info.add_row("On-chain bonus", f"+{b.onchain_bonus}")
    console.print(info)

    _save(output, {"subject": subject, **rank.model_dump(mode="json")})


@app.command()
def match(
    wallet_a: str = typer.Argument(..., help="First wallet or ENS name"),
    wallet_b: str = typer.Argument(..., help="Second wallet or ENS name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
) -> None:
    """Compute how similar two wallets are."""
    asyncio.run(_match(wallet_a, wallet_b, output))


async def _match(wallet_a: str, wallet_b: str, output: Path | None) -> None:
    """Async implementation of match."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Comparing wallets...", total=None)
        try:
            async with ScoringPipeline() as pipeline:
                result = await match_wallets(wallet_a, wallet_b, pipeline, options=_options(None))
        except Exception as e:
            _fail(e)

    console.print()
    console.print(
        Panel(
            f"[bold][{_color(result.match_score)}]{result.match_score}[/{_color(result.match_score)}][/bold] / 100",
            title="Match Score",
            expand=False,
        )
    )

    table = Table(title="Similarity Breakdown", show_header=True)
    table.add_column("Signal", style="bold")
    table.add_column("Similarity", justify="right")
    table.add_column("Bar", width=20)
    for name, value in result.breakdown.model_dump().items():
        pct = value * 100
        table.add_row(name.replace("_", " ").capitalize(), f"{pct:.0f}%", _score_bar(pct))
    console.print(table)

    console.print()
    console.print(result.explanation)

    _save(output, result.model_dump(mode="json"))


@app.command()
def rank(
    subjects: list[str] = typer.Argument(..., help="Wallets or ENS names to rank"),
    weights: str | None = typer.Option(None, "--weights", "-w", help="Feed weights, e.g. legitimacy=0.6,engagement=0.3,freshness=0.1"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
) -> None:
    """Rank wallets into a feed by legitimacy, engagement and freshness."""
    asyncio.run(_rank(subjects, weights, output))


async def _rank(subjects: list[str], weights: str | None, output: Path | None) -> None:
    """Async implementation of rank."""
    feed_subjects = [FeedSubject(wallet_or_ens=s, id=s) for s in subjects]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Scoring {len(subjects)} wallets...", total=None)
        try:
            async with ScoringPipeline() as pipeline:
                ranking = await rank_subjects(
                    feed_subjects,
                    pipeline,
                    weights=parse_weights(weights),
                    options=_options(None),
                )
        except typer.BadParameter:
            raise
        except Exception as e:
            _fail(e)

    table = Table(title="Feed Ranking")
    table.add_column("Rank", style="dim", width=6)
    table.add_column("Wallet", style="cyan")
    table.add_column("Feed", justify="right")
    table.add_column("Legitimacy", justify="right")
    table.add_column("Engagement", justify="right")
    table.add_column("Freshness", justify="right")

    for i, item in enumerate(ranking.items, 1):
        table.add_row(
            str(i),
            item.wallet_or_ens or "-",
            f"[{_color(item.feed_score)}]{item.feed_score}[/{_color(item.feed_score)}]",
            str(item.legitimacy_score),
            str(item.engagement_score),
            str(item.freshness_score),
        )
    console.print(table)

    w = ranking.meta.weights
    console.print(
        f"[dim]Weights: legitimacy {w.legitimacy:.2f}, engagement {w.engagement:.2f}, freshness {w.freshness:.2f}[/dim]"
    )

    _save(output, ranking.model_dump(mode="json", exclude={"items": {"__all__": {"inputs"}}}))


@app.command()
def candidates(
    wallet: str = typer.Argument(..., help="Wallet address or ENS name"),
) -> None:
    """List wallets worth matching against."""
    asyncio.run(_candidates(wallet))


async def _candidates(wallet: str) -> None:
    """Async implementation of candidates."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task("Discovering candidates...", total=None)
        try:
            async with ScoringPipeline() as pipeline:
                found = await pipeline.discover_candidates(wallet)
        except Exception as e:
            _fail(e)

    if not found:
        console.print("[yellow]No candidates found.[/yellow]")
        return

    table = Table(title=f"{len(found)} Candidates")
    table.add_column("#", style="dim", width=4)
    table.add_column("Wallet", style="cyan")
    for i, candidate in enumerate(found, 1):
        table.add_row(str(i), candidate)
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from memboard import __version__

    console.print(f"memboard v{__version__}")


if __name__ == "__main__":
    app()
