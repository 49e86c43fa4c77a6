"""Command-line interface for chordlens.

Provides commands for:
- detect: Rank chords and scales for a set of notes
- patterns: List the chord and scale catalog
- replay: Feed a timed note-event file through a real-time detection session
"""

import json
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .core import ChordlensWarning, DetectionConfig, dedupe, format_pitch_classes
from .inference import Category, DetectionEngine, SuggestionFinder, all_patterns
from .realtime import AnalysisOutcome, DetectionSession, ManualScheduler

app = typer.Typer(
    name="chordlens",
    help="Chord and scale detection for sets of notes",
    rich_markup_mode="markdown",
)
console = Console()

CATEGORY_CHOICES = ("chord", "scale", "both")


def _load_config(config_path: Optional[Path]) -> DetectionConfig:
    if config_path is None:
        return DetectionConfig()
    if not config_path.exists():
        console.print(f"[red]Error: Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    try:
        return DetectionConfig.load(config_path)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        console.print(f"[red]Error: Could not read config {config_path}: {e}[/red]")
        raise typer.Exit(1)


def _categories(category: str) -> List[Category]:
    category = category.lower()
    if category not in CATEGORY_CHOICES:
        console.print(
            f"[red]Error: Unknown category '{category}' (choose from {', '.join(CATEGORY_CHOICES)})[/red]"
        )
        raise typer.Exit(1)
    if category == "both":
        return [Category.CHORD, Category.SCALE]
    return [Category(category)]


def _print_warnings(caught) -> None:
    for w in caught:
        if issubclass(w.category, ChordlensWarning):
            console.print(f"[yellow]Warning: {w.message}[/yellow]")


@app.command()
def detect(
    notes: List[str] = typer.Argument(..., help="Note names, e.g. C4 E4 G4 or Bb"),
    category: str = typer.Option(
        "both", "-c", "--category", help="What to detect: chord, scale or both"
    ),
    chord_sensitivity: Optional[float] = typer.Option(
        None, "--chord-sensitivity", help="Minimum chord confidence (0-1)"
    ),
    scale_sensitivity: Optional[float] = typer.Option(
        None, "--scale-sensitivity", help="Minimum scale confidence (0-1)"
    ),
    max_results: Optional[int] = typer.Option(
        None, "-n", "--max-results", help="Results per category"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="JSON config file"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Detect chords and scales in a set of notes.

    **Examples:**

        chordlens detect C E G

        chordlens detect A3 C4 E4 --category chord

        chordlens detect C D E F G A B -c scale --json
    """
    config = _load_config(config_path)
    categories = _categories(category)

    overrides: Dict[str, Any] = {}
    if chord_sensitivity is not None:
        overrides["chord_sensitivity"] = chord_sensitivity
    if scale_sensitivity is not None:
        overrides["scale_sensitivity"] = scale_sensitivity
    if max_results is not None:
        overrides["max_chord_results"] = max_results
        overrides["max_scale_results"] = max_results
    config.update(**overrides)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        pitch_classes = dedupe(notes)
    if not json_output:
        _print_warnings(caught)

    if not pitch_classes:
        console.print("[red]Error: No valid notes given[/red]")
        raise typer.Exit(1)

    engine = DetectionEngine()
    finder = SuggestionFinder()

    results = {}
    suggestions = {}
    for cat in categories:
        results[cat] = engine.detect(pitch_classes, cat, config)
        if config.enable_suggestions:
            suggestions[cat] = finder.suggest(pitch_classes, cat, config)

    if json_output:
        data = {
            "notes": format_pitch_classes(pitch_classes).split(", "),
            "config": config.to_dict(),
        }
        for cat in categories:
            data[f"{cat.value}s"] = [r.to_dict() for r in results[cat]]
            if cat in suggestions:
                data[f"{cat.value}_suggestions"] = [s.to_dict() for s in suggestions[cat]]
        console.print_json(data=data)
        return

    console.print(f"\n[bold blue]Notes:[/bold blue] {format_pitch_classes(pitch_classes)}\n")
    for cat in categories:
        _show_results_table(results[cat], cat)
        if suggestions.get(cat):
            _show_suggestions_table(suggestions[cat], cat)


@app.command()
def patterns(
    category: str = typer.Option(
        "both", "-c", "--category", help="Which catalog: chord, scale or both"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output the catalog as JSON"
    ),
):
    """List the chord and scale patterns the detector knows."""
    categories = _categories(category)

    if json_output:
        data = {
            f"{cat.value}s": [
                {
                    "id": p.id,
                    "name": p.name,
                    "intervals": sorted(p.intervals),
                    "weight": p.weight,
                    "common": p.common,
                    "aliases": list(p.aliases),
                }
                for p in all_patterns(cat)
            ]
            for cat in categories
        }
        console.print_json(data=data)
        return

    for cat in categories:
        table = Table(title=f"{cat.value.title()} Patterns")
        table.add_column("Name", style="cyan")
        table.add_column("Intervals", style="green")
        table.add_column("Weight", style="yellow")
        table.add_column("Common", style="magenta")
        table.add_column("Aliases", style="blue")

        for p in all_patterns(cat):
            table.add_row(
                p.name,
                " ".join(str(i) for i in sorted(p.intervals)),
                f"{p.weight:.2f}",
                "yes" if p.common else "",
                ", ".join(p.aliases),
            )
        console.print(table)


@app.command()
def replay(
    events_file: Path = typer.Argument(..., help='JSON list of {"t_ms": int, "notes": [...]}'),
    debounce: Optional[int] = typer.Option(
        None, "-d", "--debounce", help="Debounce time in ms (overrides config)"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="JSON config file"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Replay timed note-set changes through a real-time detection session.

    Time is simulated, so a replay runs instantly and always gives the
    same result.

    **Examples:**

        chordlens replay session.json

        chordlens replay session.json --debounce 150 --json
    """
    if not events_file.exists():
        console.print(f"[red]Error: File not found: {events_file}[/red]")
        raise typer.Exit(1)

    try:
        with open(events_file, "r") as f:
            events = json.load(f)
        events = sorted(
            ({"t_ms": int(e["t_ms"]), "notes": list(e["notes"])} for e in events),
            key=lambda e: e["t_ms"],
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Error: Invalid event file {events_file}: {e}[/red]")
        raise typer.Exit(1)

    config = _load_config(config_path)
    if debounce is not None:
        config.set_debounce_ms(debounce)

    scheduler = ManualScheduler()
    session = DetectionSession(config=config, scheduler=scheduler)
    outcomes: List[AnalysisOutcome] = []
    session.on_update(outcomes.append)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        for event in events:
            scheduler.advance_to(event["t_ms"] / 1000.0)
            session.note_set_changed(event["notes"])
        scheduler.run_all()
    if not json_output:
        _print_warnings(caught)

    if json_output:
        console.print_json(data={
            "analyses": [_outcome_to_dict(o) for o in outcomes],
            "progressions": [p.to_dict() for p in session.progression_history],
            "summary": session.summary(),
        })
        return

    console.print(
        f"\n[bold blue]Replayed {len(events)} events:[/bold blue] "
        f"{len(outcomes)} analyses\n"
    )
    _show_outcomes_table(outcomes)
    _show_progressions_table(session.progression_history)


def _outcome_to_dict(outcome: AnalysisOutcome) -> Dict[str, Any]:
    return {
        "t_ms": round(outcome.timestamp * 1000),
        "notes": format_pitch_classes(outcome.notes).split(", ") if outcome.notes else [],
        "chords": [r.to_dict() for r in outcome.chords],
        "scales": [r.to_dict() for r in outcome.scales],
        "chord_suggestions": [s.to_dict() for s in outcome.chord_suggestions],
        "scale_suggestions": [s.to_dict() for s in outcome.scale_suggestions],
        "duration_ms": outcome.duration_ms,
    }


def _show_results_table(results, category: Category):
    """Display ranked detections in a table."""
    if not results:
        console.print(f"[yellow]No {category.value}s detected[/yellow]")
        return

    table = Table(title=f"Detected {category.value.title()}s")
    table.add_column("Label", style="cyan")
    table.add_column("Symbol", style="green")
    table.add_column("Confidence", style="magenta")
    table.add_column("Completeness", style="yellow")
    table.add_column("Quality", style="blue")

    for r in results:
        table.add_row(
            r.label,
            r.symbol if category is Category.CHORD else "",
            f"{r.confidence:.2f}",
            f"{r.completeness:.2f}",
            r.quality_tier.value,
        )

    console.print(table)


def _show_suggestions_table(suggestions, category: Category):
    """Display completion suggestions in a table."""
    table = Table(title=f"{category.value.title()} Suggestions")
    table.add_column("Label", style="cyan")
    table.add_column("Add", style="green")
    table.add_column("Present", style="magenta")

    for s in suggestions:
        table.add_row(s.label, format_pitch_classes(s.missing), f"{s.confidence:.2f}")

    console.print(table)


def _show_outcomes_table(outcomes: List[AnalysisOutcome]):
    """Display each published analysis in a table."""
    table = Table(title="Analyses")
    table.add_column("Time (ms)", style="yellow")
    table.add_column("Notes", style="cyan")
    table.add_column("Top Chord", style="green")
    table.add_column("Top Scale", style="blue")
    table.add_column("Confidence", style="magenta")

    for o in outcomes:
        top = o.top_chord
        table.add_row(
            str(round(o.timestamp * 1000)),
            format_pitch_classes(o.notes) if o.notes else "-",
            top.label if top else "-",
            o.top_scale.label if o.top_scale else "-",
            f"{top.confidence:.2f}" if top else "-",
        )

    console.print(table)


def _show_progressions_table(progressions):
    """Display sealed progressions in a table."""
    if not progressions:
        console.print("[dim]No progressions[/dim]")
        return

    table = Table(title="Progressions")
    table.add_column("Key", style="cyan")
    table.add_column("Chords", style="green")
    table.add_column("Roman", style="yellow")
    table.add_column("Name", style="blue")
    table.add_column("Quality", style="magenta")

    for p in progressions:
        table.add_row(
            p.key_name,
            " - ".join(p.symbols),
            " ".join(p.roman_numerals),
            p.common_name or "",
            p.quality,
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
