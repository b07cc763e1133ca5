"""Command-line interface for Chordlock.

Provides commands for:
- detect: Identify the chord formed by MIDI notes
- batch: Identify chords for every note set in a file
- notes: Convert a chord name to MIDI notes
- degree: Convert a roman numeral degree to a chord name in a key
- roman: Convert a chord name to a roman numeral in a key
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .core import DEFAULT_VELOCITY, midi_note_name
from .detector import ChordDetector, DetectorConfig
from .inference import (
    KeyContext,
    analyze_degree,
    chord_name_to_notes,
    degree_to_chord_name,
    parse_chord_name,
    parse_note_name,
)
from .output import candidate_to_dict, result_to_dict, statistics_to_dict

app = typer.Typer(
    name="chordlock",
    help="Real-time chord identification from MIDI notes",
    rich_markup_mode="markdown",
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )


def _parse_key(key: str, minor: bool) -> Tuple[int, bool]:
    """Parse 'C', 'Bb', 'F#m' or 'Am' into (tonic, is_minor)."""
    key = key.strip()
    if len(key) > 1 and key.endswith("m"):
        return parse_note_name(key[:-1]), True
    return parse_note_name(key), minor


def _require_key(key: Optional[str], minor: bool) -> KeyContext:
    if not key:
        console.print("[red]Error: --key is required[/red]")
        raise typer.Exit(1)
    try:
        tonic, is_minor = _parse_key(key, minor)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    return KeyContext(tonic=tonic, is_minor=is_minor)


def _parse_note_line(line: str) -> List[int]:
    """Parse '60,64,67', '[60, 64, 67]' or '60 64 67' into MIDI notes."""
    tokens = [t for t in re.split(r"[\s,]+", line.strip().strip("[]")) if t]
    if not tokens:
        raise ValueError("No notes on line")
    try:
        midi_notes = [int(t) for t in tokens]
    except ValueError:
        raise ValueError(f"Invalid note list: {line}")
    invalid = [n for n in midi_notes if not 0 <= n <= 127]
    if invalid:
        raise ValueError(f"MIDI values must be 0-127, got {invalid}")
    return midi_notes


@app.command()
def detect(
    notes: List[int] = typer.Argument(..., help="MIDI note numbers, e.g. 60 64 67"),
    key: Optional[str] = typer.Option(
        None, "-k", "--key", help="Key tonic for functional ranking (e.g. C, Bb, F#m)"
    ),
    minor: bool = typer.Option(
        False, "--minor", help="Treat the key as minor"
    ),
    alternatives: int = typer.Option(
        3, "-a", "--alternatives", help="Number of candidates to show"
    ),
    detailed: bool = typer.Option(
        False, "-d", "--detailed", help="Detailed analysis with diagnostics and equivalences"
    ),
    velocity_sensitive: bool = typer.Option(
        True, "--velocity-sensitive/--no-velocity", help="Weight notes by velocity and role"
    ),
    slash: bool = typer.Option(
        True, "--slash/--no-slash", help="Allow slash chords and inversions"
    ),
    velocity: int = typer.Option(
        DEFAULT_VELOCITY, "--velocity", help="Velocity for every note (0-127)"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Identify the chord formed by MIDI notes.

    **Examples:**

        chordlock detect 60 64 67

        chordlock detect 59 62 67 --key C --detailed

        chordlock detect 57 60 64 --key A --minor --json
    """
    _configure_logging(verbose)

    if alternatives < 1:
        console.print("[red]Error: --alternatives must be at least 1[/red]")
        raise typer.Exit(1)
    invalid = [n for n in notes if not 0 <= n <= 127]
    if invalid or not 0 <= velocity <= 127:
        console.print(f"[red]Error: MIDI values must be 0-127, got {invalid or velocity}[/red]")
        raise typer.Exit(1)

    detector = ChordDetector(DetectorConfig(
        velocity_sensitive=velocity_sensitive,
        slash_chord_detection=slash,
    ))
    key_context = None
    if key:
        key_context = _require_key(key, minor)
        detector.set_key_context(key_context.tonic, key_context.is_minor)
    detector.set_chord_from_midi(notes, velocity)

    if detailed:
        candidates = detector.detect_detailed(alternatives)
    else:
        candidates = detector.detect_alternatives(alternatives)

    if json_output:
        data = result_to_dict(candidates, sorted(notes), key_context, detailed)
        data["complexity"] = detector.chord_complexity()
        console.print_json(data=data)
        return

    names = " ".join(midi_note_name(n) for n in sorted(set(notes)))
    console.print(f"[blue]Notes:[/blue] {names}")
    if key_context is not None:
        console.print(f"[blue]Key:[/blue] {key_context.name}")
    if not candidates:
        console.print("[yellow]No chord detected[/yellow]")
        return

    console.print(f"[green]Chord:[/green] [bold]{candidates[0].name}[/bold]")
    _show_candidates_table(candidates, key_context, detailed)


@app.command()
def batch(
    input_file: Path = typer.Argument(..., help="Text file with one note set per line"),
    key: Optional[str] = typer.Option(
        None, "-k", "--key", help="Key tonic for functional ranking (e.g. C, Bb, F#m)"
    ),
    minor: bool = typer.Option(
        False, "--minor", help="Treat the key as minor"
    ),
    alternatives: int = typer.Option(
        3, "-a", "--alternatives", help="Number of candidates per line"
    ),
    slash: bool = typer.Option(
        True, "--slash/--no-slash", help="Allow slash chords and inversions"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Identify the chord of every note set in a file.

    Each line holds MIDI notes separated by commas or spaces, optionally in
    brackets. Empty lines and lines starting with # are skipped.

    **Examples:**

        chordlock batch chords.txt

        chordlock batch chords.txt --key C --json
    """
    _configure_logging(verbose)

    if alternatives < 1:
        console.print("[red]Error: --alternatives must be at least 1[/red]")
        raise typer.Exit(1)
    if not input_file.is_file():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    detector = ChordDetector(DetectorConfig(slash_chord_detection=slash))
    key_context = None
    if key:
        key_context = _require_key(key, minor)
        detector.set_key_context(key_context.tonic, key_context.is_minor)

    results = []
    for line_number, line in enumerate(input_file.read_text().splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            midi_notes = _parse_note_line(line)
        except ValueError as e:
            results.append({"line": line_number, "error": str(e)})
            continue

        detector.set_chord_from_midi(midi_notes)
        result = result_to_dict(detector.detect_alternatives(alternatives), midi_notes, key_context)
        result["line"] = line_number
        result["complexity"] = detector.chord_complexity()
        results.append(result)

    if json_output:
        data = {
            "results": results,
            "statistics": statistics_to_dict(detector.statistics),
        }
        if key_context is not None:
            data["key"] = key_context.name
        console.print_json(data=data)
        return

    if key_context is not None:
        console.print(f"[blue]Key:[/blue] {key_context.name}")
    _show_batch_table(results, key_context)

    stats = detector.statistics
    console.print(
        f"[blue]Detected:[/blue] {stats.successful_detections}/{stats.total_detections} "
        f"note sets, {stats.average_detection_ms:.3f} ms average"
    )


@app.command()
def notes(
    chord: str = typer.Argument(..., help="Chord name, e.g. Cmaj7, F#m7b5, G/B"),
    octave: int = typer.Option(
        4, "-o", "--octave", help="Octave of the root (C4 = 60)"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Convert a chord name to MIDI notes."""
    try:
        spec = parse_chord_name(chord)
        midi_notes = chord_name_to_notes(chord, octave)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if json_output:
        console.print_json(data={
            "chord": spec.symbol,
            "notes": midi_notes,
            "names": [midi_note_name(n) for n in midi_notes],
        })
        return

    console.print(f"[green]{spec.symbol}:[/green] {' '.join(str(n) for n in midi_notes)}")
    console.print(f"  {' '.join(midi_note_name(n) for n in midi_notes)}")


@app.command()
def degree(
    numeral: str = typer.Argument(..., help="Roman numeral degree, e.g. V7, ii, bVII"),
    key: Optional[str] = typer.Option(
        None, "-k", "--key", help="Key tonic (e.g. C, Bb, F#m)"
    ),
    minor: bool = typer.Option(
        False, "--minor", help="Treat the key as minor"
    ),
    show_notes: bool = typer.Option(
        False, "-n", "--notes", help="Also print the MIDI notes"
    ),
):
    """Convert a roman numeral degree to a chord name in a key."""
    key_context = _require_key(key, minor)
    try:
        name = degree_to_chord_name(numeral, key_context.tonic, key_context.is_minor)
        midi_notes = chord_name_to_notes(name) if show_notes else []
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"{numeral} in {key_context.name}: [bold]{name}[/bold]")
    if show_notes:
        console.print(f"  {' '.join(str(n) for n in midi_notes)}")


@app.command()
def roman(
    chord: str = typer.Argument(..., help="Chord name, e.g. G7, Am, D7"),
    key: Optional[str] = typer.Option(
        None, "-k", "--key", help="Key tonic (e.g. C, Bb, F#m)"
    ),
    minor: bool = typer.Option(
        False, "--minor", help="Treat the key as minor"
    ),
):
    """Convert a chord name to a roman numeral in a key."""
    key_context = _require_key(key, minor)
    try:
        numeral = analyze_degree(chord, key_context.tonic, key_context.is_minor)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"{chord} in {key_context.name}: [bold]{numeral}[/bold]")


def _show_candidates_table(candidates, key_context, detailed):
    """Display candidates in a table."""
    table = Table(title="Chord Candidates")
    table.add_column("#", style="dim")
    table.add_column("Chord", style="cyan")
    table.add_column("Confidence", style="magenta")
    if key_context is not None:
        table.add_column("Roman", style="green")
    if detailed:
        table.add_column("Type", style="yellow")
        table.add_column("Inversion")
        table.add_column("Missing")
        table.add_column("Extra")

    for i, candidate in enumerate(candidates, 1):
        data = candidate_to_dict(candidate, key_context, detailed)
        row = [str(i), data["name"], f"{data['confidence']:.2f}"]
        if key_context is not None:
            row.append(data["roman"])
        if detailed:
            row.extend([
                data["interpretation"],
                str(data["inversion_degree"]) if data["is_inversion"] else "-",
                ",".join(data["missing_notes"]) or "-",
                ",".join(data["extra_notes"]) or "-",
            ])
        table.add_row(*row)

    console.print(table)


def _show_batch_table(results, key_context):
    """Display one row per input line."""
    table = Table(title="Batch Results")
    table.add_column("Line", style="dim")
    table.add_column("Notes")
    table.add_column("Chord", style="cyan")
    table.add_column("Confidence", style="magenta")
    if key_context is not None:
        table.add_column("Roman", style="green")

    for result in results:
        if "error" in result:
            row = [str(result["line"]), Text(result["error"], style="yellow"), "-", "-"]
            if key_context is not None:
                row.append("-")
            table.add_row(*row)
            continue

        best = result["candidates"][0] if result["candidates"] else None
        row = [
            str(result["line"]),
            " ".join(str(n) for n in result["notes"]),
            result["chord"] or "-",
            f"{result['confidence']:.2f}",
        ]
        if key_context is not None:
            row.append(best["roman"] if best else "-")
        table.add_row(*row)

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
