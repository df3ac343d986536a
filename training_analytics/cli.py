"""Command-line interface for the Training Analytics engine."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .config import config
from .db import get_db
from .errors import TrainingAnalyticsError, ValidationError
from .service import TrainingAnalyticsService

console = Console()

STATUS_COLORS = {
    "underworked": "yellow",
    "balanced": "green",
    "overworked": "red",
    "ready": "green",
    "caution": "yellow",
    "needs_rest": "red",
    "good": "green",
    "moderate": "yellow",
    "needs_attention": "red",
}


def _load_json(path: str):
    try:
        return json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise ValidationError(f"Could not read {path}: {e}") from e


def _parse_timestamp(value) -> datetime:
    """ISO timestamp to naive UTC."""
    if not value:
        raise ValidationError("Session is missing 'completed_at'")
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp {value!r}") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _colored(value: str) -> str:
    color = STATUS_COLORS.get(value, "white")
    return f"[{color}]{value}[/{color}]"


@click.group()
def cli():
    """Training Analytics: personal records, muscle balance and progression."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
def init_db():
    """Create the database tables."""
    db = get_db()
    db.create_tables()
    console.print(f"[green]✅ Database ready at {db.database_url}[/green]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def import_exercises(file):
    """Import exercise definitions from a JSON list."""
    try:
        items = _load_json(file)
        if not isinstance(items, list):
            raise ValidationError("Exercise file must contain a JSON list")

        store = TrainingAnalyticsService(get_db()).store
        count = 0
        for item in items:
            if not isinstance(item, dict):
                raise ValidationError("Each exercise must be a JSON object")
            store.add_exercise(
                name=item.get("name"),
                muscle_group=item.get("muscle_group"),
                primary_muscles=item.get("primary_muscles"),
                secondary_muscles=item.get("secondary_muscles"),
                category=item.get("category", "Strength"),
                exercise_type=item.get("type", "compound"),
                equipment=item.get("equipment"),
                difficulty=item.get("difficulty", "beginner"),
            )
            count += 1

        console.print(f"[green]✅ Imported {count} exercises[/green]")
    except TrainingAnalyticsError as e:
        console.print(f"[red]❌ Error: {e}[/red]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def import_session(file):
    """Import completed sessions from JSON and update personal records."""
    try:
        data = _load_json(file)
        sessions = data if isinstance(data, list) else [data]
        service = TrainingAnalyticsService(get_db())

        for item in sessions:
            if not isinstance(item, dict):
                raise ValidationError("Each session must be a JSON object")
            session_id = service.store.add_session(
                user_id=item.get("user_id"),
                completed_at=_parse_timestamp(item.get("completed_at")),
                exercises=item.get("exercises", []),
                duration=item.get("duration"),
                rating=item.get("rating"),
                notes=item.get("notes"),
            )
            result = service.record_workout_completion(session_id)
            console.print(f"[green]✅ Session {session_id} imported[/green]")

            for update in result["pr_updates"]:
                gain = update["improvement_pct"]
                gain_text = f" (+{gain:.1f}%)" if gain is not None else ""
                console.print(
                    f"  🏆 {update['exercise_name']}: {update['type']} "
                    f"{update['previous_value']:g} → {update['value']:g}{gain_text}"
                )
    except TrainingAnalyticsError as e:
        console.print(f"[red]❌ Error: {e}[/red]")


@cli.command()
@click.option("--user", required=True, help="User ID")
@click.option("--force", is_flag=True, help="Regenerate even if the cached analysis is fresh")
def recommend(user, force):
    """Show the training analysis and exercise recommendations."""
    console.print(Panel.fit("🎯 Training Analysis", style="bold blue"))

    try:
        analysis = TrainingAnalyticsService(get_db()).get_or_generate_recommendations(user, force=force)
    except TrainingAnalyticsError as e:
        console.print(f"[red]❌ Error: {e}[/red]")
        return

    insights = analysis["training_insights"]
    distribution = insights["volume_distribution"]
    summary = f"""
[bold]Balance Score:[/bold] {insights['balance_score']:.0f}/100
[bold]Recovery Status:[/bold] {_colored(insights['recovery_status'])}
[bold]Weak Points:[/bold] {', '.join(insights['weak_points']) or 'none'}
[bold]Strong Points:[/bold] {', '.join(insights['strong_points']) or 'none'}
[bold]Volume Split:[/bold] push {distribution['push']:.0f}% · pull {distribution['pull']:.0f}% · legs {distribution['legs']:.0f}% · core {distribution['core']:.0f}%
"""
    console.print(Panel(summary.strip(), title=f"Updated {analysis['last_updated'][:16]}", border_style="blue"))

    if analysis["muscle_group_balance"]:
        table = Table(title="Muscle Group Balance", box=box.ROUNDED)
        table.add_column("Muscle Group", style="cyan")
        table.add_column("Volume", justify="right")
        table.add_column("Sessions", justify="right")
        table.add_column("Share", justify="right")
        table.add_column("Status")
        for entry in analysis["muscle_group_balance"]:
            table.add_row(
                entry["muscle_group"],
                f"{entry['volume']:,.0f}",
                str(entry["frequency"]),
                f"{entry['percentage']:.1f}%",
                _colored(entry["status"]),
            )
        console.print(table)
    else:
        console.print("[yellow]⚠️  No completed sessions in the analysis window[/yellow]")

    if analysis["exercise_recommendations"]:
        table = Table(title="Exercise Recommendations", box=box.ROUNDED)
        table.add_column("Exercise", style="cyan")
        table.add_column("Type")
        table.add_column("P", justify="right")
        table.add_column("Progress", justify="right")
        table.add_column("Suggestion")
        for rec in sorted(analysis["exercise_recommendations"], key=lambda r: -r["priority"]):
            metrics = rec["related_metrics"]
            table.add_row(
                rec["exercise_name"],
                rec["type"],
                str(rec["priority"]),
                f"{metrics['progress_rate_pct']:+.1f}%",
                rec["suggestion"],
            )
        console.print(table)

    out_of_band = [c for c in analysis["correlations"] if c["recommendation"] != "Good balance between muscle groups"]
    for correlation in out_of_band:
        console.print(
            f"  ⚖️  {correlation['muscle_a']} / {correlation['muscle_b']}: "
            f"ratio {correlation['balance_ratio']:.2f}, {correlation['recommendation']}"
        )


@cli.command()
@click.option("--user", required=True, help="User ID")
@click.option("--force", is_flag=True, help="Regenerate even if the cached analysis is fresh")
def muscles(user, force):
    """Show per muscle group fatigue, recovery and focus areas."""
    console.print(Panel.fit("💪 Muscle Analysis", style="bold blue"))

    try:
        analysis = TrainingAnalyticsService(get_db()).get_or_generate_muscle_analysis(user, force=force)
    except TrainingAnalyticsError as e:
        console.print(f"[red]❌ Error: {e}[/red]")
        return

    if not analysis["muscle_groups"]:
        console.print("[yellow]⚠️  No completed sessions in the analysis window[/yellow]")
        return

    table = Table(title="Muscle Groups", box=box.ROUNDED)
    table.add_column("Muscle Group", style="cyan")
    table.add_column("Category")
    table.add_column("Week Vol", justify="right")
    table.add_column("Month Vol", justify="right")
    table.add_column("Fatigue")
    table.add_column("Recovery")
    table.add_column("Rest", justify="right")
    table.add_column("Recent PRs", justify="right")
    for group in analysis["muscle_groups"]:
        metrics = group["metrics"]
        table.add_row(
            group["name"],
            group["category"],
            f"{metrics['weekly_volume']:,.0f}",
            f"{metrics['monthly_volume']:,.0f}",
            f"{group['fatigue']['current']} → {group['fatigue']['risk']}",
            _colored(group["recovery"]["status"]),
            str(group["recovery"]["suggested_rest_days"]),
            str(len(group["recent_prs"])),
        )
    console.print(table)

    symmetry = analysis["development_insights"]["symmetry"]
    console.print(f"\n[bold]Symmetry Score:[/bold] {symmetry['overall_score']:.0f}/100")
    for imbalance in symmetry["imbalances"]:
        console.print(f"  • {imbalance['description']} (severity {imbalance['severity']}): {imbalance['correction_plan']}")

    if analysis["focus_areas"]:
        console.print("\n[bold]Focus Areas:[/bold]")
        for area in sorted(analysis["focus_areas"], key=lambda a: -a["priority"]):
            suggestions = ", ".join(s["name"] for s in area["suggested_exercises"])
            console.print(f"  🎯 {area['muscle_group']} (priority {area['priority']}): {area['reason']}")
            if suggestions:
                console.print(f"     Try: {suggestions}")


@cli.command()
@click.option("--user", required=True, help="User ID")
@click.option("--exercise", type=int, help="Show a single exercise with its full history")
def records(user, exercise):
    """Show personal records."""
    console.print(Panel.fit("🏆 Personal Records", style="bold blue"))
    service = TrainingAnalyticsService(get_db())

    if exercise is not None:
        record = service.get_personal_record(user, exercise)
        table = Table(box=box.ROUNDED)
        table.add_column("Record", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Date")
        for name, entry in record["records"].items():
            table.add_row(name, f"{entry['value']:g}", (entry["date"] or "-")[:10])
        console.print(table)

        for entry in reversed(record["history"]):
            console.print(f"  {entry['date'][:10]}  {entry['type']}: {entry['previous_value']:g} → {entry['value']:g}")
        return

    grouped = service.get_all_personal_records(user)
    if not grouped:
        console.print("[yellow]⚠️  No personal records yet[/yellow]")
        return

    for muscle_group, entries in grouped.items():
        table = Table(title=muscle_group, box=box.ROUNDED)
        table.add_column("Exercise", style="cyan")
        table.add_column("Max Weight", justify="right")
        table.add_column("Max Reps", justify="right")
        table.add_column("Best Set", justify="right")
        table.add_column("Best Session", justify="right")
        for entry in entries:
            recs = entry["records"]
            table.add_row(
                entry["exercise"],
                f"{recs['max_weight']['value']:g}",
                f"{recs['max_reps']['value']:g}",
                f"{recs['max_set_volume']['value']:g}",
                f"{recs['max_session_volume']['value']:g}",
            )
        console.print(table)


@cli.command()
def status():
    """Show database statistics."""
    console.print(Panel.fit("ℹ️  System Status", style="bold blue"))

    try:
        db = get_db()
        with db.get_session() as session:
            from .db.models import (
                Exercise, WorkoutSession, PersonalRecord, TrainingAnalysisDocument, MuscleAnalysisDocument,
            )
            console.print(f"[bold]📊 Database Statistics:[/bold] {db.database_url}")
            console.print(f"  • Exercises: {session.query(Exercise).count()}")
            console.print(f"  • Sessions: {session.query(WorkoutSession).count()}")
            console.print(f"  • Personal records: {session.query(PersonalRecord).count()}")
            console.print(f"  • Training analyses: {session.query(TrainingAnalysisDocument).count()}")
            console.print(f"  • Muscle analyses: {session.query(MuscleAnalysisDocument).count()}")

            last_session = session.query(WorkoutSession).order_by(WorkoutSession.completed_at.desc()).first()
            if last_session:
                console.print(f"\n[bold]Last session:[/bold] {last_session.completed_at.strftime('%Y-%m-%d %H:%M')}")
    except Exception as e:
        console.print(f"[red]❌ Database error: {e}[/red]")


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")


if __name__ == "__main__":
    main()
