"""
Command Line Interface

CLI for the clinical transcription pipeline.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from clinical_transcriber.exceptions import TranscriberError
from clinical_transcriber.pipeline.config import PipelineConfig
from clinical_transcriber.pipeline.pipeline import Pipeline
from clinical_transcriber.transcription.gcloud_client import CloudConfig

app = typer.Typer(
    name="clinical-transcriber",
    help="Clinical dictation: record, transcribe, template, clean and securely dispose",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_pipeline(config: Optional[Path]) -> Pipeline:
    if config:
        if not config.exists():
            console.print(f"[red]Error: Config file not found: {config}[/red]")
            raise typer.Exit(1)
        return Pipeline.from_config(config)
    pipeline_config = PipelineConfig()
    pipeline_config.cloud = CloudConfig.from_env()
    return Pipeline(pipeline_config)


def _status(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Clinical transcription pipeline."""
    _setup_logging(verbose)


def _run_transcription(
    pipeline: Pipeline,
    audio_file: Path,
    patient: str,
    dob: str,
    template: Optional[str],
    clean: bool,
) -> None:
    try:
        result = pipeline.transcribe_recording(
            audio_file, patient, dob, template_name=template, clean=clean, on_status=_status
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Transcription cancelled[/yellow]")
        raise typer.Exit(1)
    except (TranscriberError, ValueError, KeyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Transcription saved to: {result.document_path}[/green]")
    if not result.audio_disposed:
        console.print("[yellow]Warning: audio was not securely deleted (see audit log)[/yellow]")


@app.command()
def record(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
    transcribe: bool = typer.Option(False, "--transcribe", "-t", help="Transcribe after recording"),
    patient: Optional[str] = typer.Option(None, "--patient", "-p", help="Patient name"),
    dob: Optional[str] = typer.Option(None, "--dob", help="Date of birth (MM/DD/YYYY)"),
    template: Optional[str] = typer.Option(None, "--template", help="Template name"),
    clean: bool = typer.Option(False, "--clean", help="Remove filler words"),
) -> None:
    """Record from the microphone until Enter is pressed."""
    pipeline = _load_pipeline(config)

    if transcribe and not (patient and dob):
        console.print("[red]Error: --patient and --dob are required with --transcribe[/red]")
        raise typer.Exit(1)

    try:
        session = pipeline.start_recording()
    except TranscriberError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold]Recording to {session.file_path}[/bold]")
    try:
        console.input("[dim]Press Enter to stop.[/dim]")
    except (KeyboardInterrupt, EOFError):
        pass
    audio = pipeline.stop_recording()

    if audio is None:
        console.print("[red]Error: recording could not be saved[/red]")
        raise typer.Exit(1)
    console.print(
        f"[green]Saved {audio.duration_seconds:.1f}s of audio to {audio.path}[/green]"
    )

    if transcribe:
        _run_transcription(pipeline, audio.path, patient, dob, template, clean)


@app.command("transcribe")
def transcribe_file(
    audio_file: Path = typer.Argument(..., help="WAV file to transcribe"),
    patient: str = typer.Option(..., "--patient", "-p", help="Patient name"),
    dob: str = typer.Option(..., "--dob", help="Date of birth (MM/DD/YYYY)"),
    template: Optional[str] = typer.Option(None, "--template", help="Template name"),
    clean: bool = typer.Option(False, "--clean", help="Remove filler words"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Transcribe an audio file, save the document and securely delete the audio."""
    if not audio_file.exists():
        console.print(f"[red]Error: File not found: {audio_file}[/red]")
        raise typer.Exit(1)

    pipeline = _load_pipeline(config)
    _run_transcription(pipeline, audio_file, patient, dob, template, clean)


@app.command("clean")
def clean_file(
    input_file: Path = typer.Argument(..., help="Transcription text file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    in_place: bool = typer.Option(False, "--in-place", "-i", help="Overwrite the input file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Remove filler words from a transcription."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    pipeline = _load_pipeline(config)
    cleaned = pipeline.clean_text(input_file.read_text(encoding="utf-8"))

    target = input_file if in_place else output
    if target:
        pipeline.store.save(target, cleaned)
        console.print(f"[green]Output saved to: {target}[/green]")
    else:
        console.print(cleaned, markup=False, highlight=False)


@app.command()
def render(
    template: str = typer.Argument(..., help="Template name"),
    transcript_file: Path = typer.Argument(..., help="Transcript text file"),
    patient: str = typer.Option("", "--patient", "-p", help="Patient name"),
    dob: str = typer.Option("", "--dob", help="Date of birth"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Fill a template with a transcript and print the result."""
    if not transcript_file.exists():
        console.print(f"[red]Error: File not found: {transcript_file}[/red]")
        raise typer.Exit(1)

    pipeline = _load_pipeline(config)
    transcript = transcript_file.read_text(encoding="utf-8")
    try:
        document = pipeline.compose(transcript, patient, dob, template_name=template)
    except KeyError as e:
        console.print(f"[red]Error: {e.args[0]}[/red]")
        raise typer.Exit(1)
    console.print(document, markup=False, highlight=False)


@app.command()
def shred(
    path: Path = typer.Argument(..., help="File to securely delete"),
    patient: str = typer.Option("", "--patient", "-p", help="Patient name for the audit log"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Overwrite a file with random data and delete it."""
    if not path.exists():
        console.print(f"[yellow]Nothing to delete: {path}[/yellow]")
        raise typer.Exit(0)

    pipeline = _load_pipeline(config)
    if pipeline.disposal.dispose(path, patient):
        console.print(
            f"[green]Securely deleted {path} ({pipeline.config.security.overwrite_passes} passes)[/green]"
        )
    else:
        console.print(f"[red]Error: secure deletion of {path} failed (see audit log)[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_transcriptions(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List saved transcriptions, newest first."""
    pipeline = _load_pipeline(config)
    files = pipeline.store.list_transcriptions()

    if not files:
        console.print("[yellow]No transcriptions found[/yellow]")
        raise typer.Exit(0)

    for path in files:
        console.print(f"  {path.name}")


@app.command()
def templates(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List available templates and their placeholders."""
    pipeline = _load_pipeline(config)

    console.print("[bold]Available templates:[/bold]\n")
    for name in pipeline.templates.names():
        keys = ", ".join(pipeline.templates.get(name).placeholders) or "-"
        console.print(f"  {name}\n      Placeholders: {keys}")


@app.command()
def audit(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Show the most recent audit log entries."""
    pipeline = _load_pipeline(config)
    entries = pipeline.audit.entries()[-limit:] if limit > 0 else []

    if not entries:
        console.print("[yellow]Audit log is empty[/yellow]")
        raise typer.Exit(0)

    table = Table(title=str(pipeline.audit.path))
    for column in ("Timestamp", "Action", "File", "Patient", "Details"):
        table.add_column(column)
    for entry in entries:
        table.add_row(
            entry.timestamp, entry.action, entry.subject_path, entry.patient_ref, entry.details
        )
    console.print(table)


@app.command()
def devices() -> None:
    """List available audio input devices."""
    from clinical_transcriber.capture import AudioCapture

    try:
        devices = AudioCapture.list_devices()
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not devices:
        console.print("[yellow]No audio input devices found[/yellow]")
        raise typer.Exit(0)

    console.print("[bold]Available audio input devices:[/bold]\n")
    for device in devices:
        console.print(
            f"  [{device['index']}] {device['name']}"
            f"\n      Channels: {device['channels']}, "
            f"Sample Rate: {device['sample_rate']} Hz"
        )


@app.command()
def version() -> None:
    """Show version information."""
    from clinical_transcriber import __version__

    console.print(f"clinical-transcriber version {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
