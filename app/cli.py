from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.filesystem.protocol_repository import FileSystemProtocolRepository
from app.config import AppSettings, load_settings
from app.pipeline_wiring import (
    OutputFormat,
    build_document_writer,
    build_pipeline,
    configure_logging,
)
from domain.element_type_labels import humanize_element_type
from domain.errors import ProtocolSourceError
from domain.models import ProtocolDocument

app = typer.Typer(no_args_is_help=True)
render_app = typer.Typer(no_args_is_help=True)
app.add_typer(render_app, name="render")
console = Console()

ConfigOption = typer.Option(None, "--config", help="YAML settings file.")


def _settings(config_path: Path | None) -> AppSettings:
    try:
        settings = load_settings(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(code=1) from exc
    configure_logging(settings.log_level)
    return settings


def _load_documents(input_path: Path) -> list[tuple[Path, ProtocolDocument]]:
    repository = FileSystemProtocolRepository()
    try:
        if input_path.is_dir():
            return repository.load_all_with_paths(input_path)
        return [(input_path, repository.load_by_path(input_path))]
    except ProtocolSourceError as exc:
        console.print(f"[red]Cannot load protocol:[/] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _render(input_path: Path, output_dir: Path, config: Path | None, fmt: OutputFormat) -> None:
    settings = _settings(config)
    pairs = _load_documents(input_path)
    if not pairs:
        console.print(f"[yellow]No protocol files found in {input_path}[/]")
        raise typer.Exit(code=0)

    pipeline = build_pipeline(settings)
    writer = build_document_writer(settings, fmt)
    output_dir.mkdir(parents=True, exist_ok=True)
    for path, document in pairs:
        output = pipeline.build(document)
        target_path = output_dir / f"{path.stem}{writer.suffix}"
        writer.save(output, target_path)
        console.print(f"[green]Wrote[/] {target_path}")


@render_app.command("html")
def render_html(
    input_path: Path = typer.Argument(..., help="Protocol JSON file or directory."),
    output_dir: Path = typer.Option(Path("data/html"), help="Directory to write HTML files."),
    config: Path | None = ConfigOption,
) -> None:
    _render(input_path, output_dir, config, "html")


@render_app.command("json")
def render_json(
    input_path: Path = typer.Argument(..., help="Protocol JSON file or directory."),
    output_dir: Path = typer.Option(
        Path("data/json"), help="Directory to write the laid-out document tree."
    ),
    config: Path | None = ConfigOption,
) -> None:
    _render(input_path, output_dir, config, "json")


@app.command("pack")
def pack(
    input_path: Path = typer.Argument(..., help="Protocol JSON file."),
    config: Path | None = ConfigOption,
) -> None:
    settings = _settings(config)
    pipeline = build_pipeline(settings)
    for path, document in _load_documents(input_path):
        ordered = sorted(document.elements, key=lambda element: element.order)
        rows = pipeline.pack_rows(ordered)
        table = Table(title=f"{path.name}: {len(rows)} row(s)")
        table.add_column("Row", justify="right")
        table.add_column("Elements")
        table.add_column("Widths")
        table.add_column("Full width")
        for idx, row in enumerate(rows, start=1):
            table.add_row(
                str(idx),
                ", ".join(
                    f"{element.element_id} ({humanize_element_type(element.type_tag) or '?'})"
                    for element in row.elements
                ),
                " + ".join(str(width) for width in row.widths),
                "yes" if row.full_width else "",
            )
        console.print(table)


@app.command("validate")
def validate(
    input_path: Path = typer.Argument(..., help="Protocol JSON file to validate."),
) -> None:
    if not input_path.is_file():
        console.print(f"[red]File not found:[/] {input_path}")
        raise typer.Exit(code=1)
    _, document = _load_documents(input_path)[0]
    unknown = [element.element_id for element in document.elements if element.element_type is None]
    if unknown:
        console.print(f"[yellow]Unknown element types, rendered as text:[/] {', '.join(unknown)}")
    count = len(document.elements)
    console.print(f"[green]Valid protocol file:[/] {input_path} ({count} elements)")


if __name__ == "__main__":
    app()
