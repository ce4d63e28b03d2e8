"""CLI helpers for the crop command."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from ...core.model import PdfSource
from ...tools.common.context import ExecutionContext
from ...tools.common.exceptions import TaskParameterError
from ...tools.common.outputs import ExistingOutputPolicy
from ...tools.common.service import TaskExecutionService
from ...tools.components.acroform import AcroFormPolicy
from ...tools.cropper import CropParameters

console = Console()


@click.command(name="crop")
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--crop-area", "-c", "crop_areas",
    multiple=True,
    required=True,
    help="Area to keep as 'left,bottom,right,top' in points, repeat for several areas",
)
@click.option(
    "--output-dir", "-o",
    default="./output",
    help="Output directory for the cropped documents",
    type=click.Path(file_okay=False),
)
@click.option("--prefix", "-p", default="", help="Output name prefix, supports [BASENAME], [FILENUMBER] and [TIMESTAMP]")
@click.option("--exclude-pages", default=None, help="Pages to leave out, e.g. '1,3,5-7'")
@click.option("--uncropped-pages", default=None, help="Pages to copy without cropping, e.g. '1,3,5-7'")
@click.option(
    "--existing-output",
    type=click.Choice([policy.value for policy in ExistingOutputPolicy]),
    default=ExistingOutputPolicy.FAIL.value,
    show_default=True,
    help="What to do when an output file already exists",
)
@click.option(
    "--acroform",
    type=click.Choice([policy.value for policy in AcroFormPolicy]),
    default=AcroFormPolicy.MERGE.value,
    show_default=True,
    help="Keep or discard the interactive forms",
)
@click.option("--discard-outline", is_flag=True, help="Do not copy the bookmarks")
@click.option("--pdf-version", default=None, help="PDF version of the outputs, e.g. 1.7")
@click.option("--compress", is_flag=True, help="Merge identical objects in the outputs")
@click.option("--password", default=None, help="Password used to open encrypted inputs")
@click.option("--lenient", is_flag=True, help="Skip broken inputs and structures with a warning")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Number of documents processed in parallel")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def command(
    inputs,
    crop_areas,
    output_dir,
    prefix,
    exclude_pages,
    uncropped_pages,
    existing_output,
    acroform,
    discard_outline,
    pdf_version,
    compress,
    password,
    lenient,
    workers,
    verbose,
):
    """
    Crop the pages of one or more PDF files.

    Every page produces one output page per crop area.

    Examples:

        pdfreshape crop input.pdf -c 0,0,298,842 -c 298,0,595,842

        pdfreshape crop *.pdf -c 20,20,575,822 --exclude-pages 1 -o cropped
    """
    if verbose:
        logging.getLogger("pdfreshape").setLevel(logging.DEBUG)

    try:
        parameters = CropParameters(
            sources=[PdfSource(Path(path), password=password) for path in inputs],
            output=Path(output_dir),
            crop_areas=list(crop_areas),
            excluded_pages=exclude_pages,
            uncropped_pages=uncropped_pages,
            output_prefix=prefix,
            existing_output_policy=existing_output,
            acroform_policy=acroform,
            lenient=lenient,
            discard_outline=discard_outline,
            version=pdf_version,
            compress=compress,
            max_workers=workers,
        )
        parameters.validate()
    except TaskParameterError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)

    console.print(f"\n[bold cyan]Cropping {len(parameters.sources)} document(s)...[/bold cyan]")
    context = ExecutionContext(lenient=lenient)
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Cropping pages", total=None)

        def update_progress(current, total):
            progress.update(task, completed=current, total=total)

        context.add_progress_listener(update_progress)
        outcome = TaskExecutionService().execute(parameters, context)

    if outcome.warnings:
        warnings_table = Table(title="Warnings", show_header=False)
        warnings_table.add_column("Warning", style="yellow")
        for warning in outcome.warnings:
            warnings_table.add_row(str(warning))
        console.print(warnings_table)

    if not outcome.succeeded:
        console.print(f"\n[bold red]✗ Error:[/bold red] {outcome.error}")
        sys.exit(1)

    console.print(f"\n[bold green]✓ Successfully written {len(outcome.artifacts)} file(s)[/bold green]")
    console.print(f"[dim]Output directory: {os.path.abspath(output_dir)}[/dim]")
    for file_path in outcome.artifacts:
        console.print(f"  • {os.path.basename(file_path)}")
    console.print()
