"""Command line interface for pdfreshape."""

from __future__ import annotations

from typing import Sequence

import click

from .. import __version__
from ..tools import load_builtin_plugins
from .commands import crop

COMMAND_MODULES = [crop]


@click.group()
@click.version_option(version=__version__, prog_name="pdfreshape")
def cli():
    """
    pdfreshape - Transform the pages of PDF files while keeping their forms,
    annotations and bookmarks.
    """
    load_builtin_plugins()


for module in COMMAND_MODULES:
    cli.add_command(module.command)


def main(argv: Sequence[str] | None = None) -> None:
    cli.main(args=list(argv) if argv is not None else None, prog_name="pdfreshape")


if __name__ == "__main__":  # pragma: no cover
    main()
