#!/usr/bin/env python3
"""
attest - Chunked message index checksums

Main entrypoint for the attest command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import archive, service

app = typer.Typer(
    name="attest",
    help="Generate, inspect and serve message index checksums",
    add_completion=False,
)

console = Console()

app.add_typer(archive.app, name="archive", help="Checksum archive inspection")

app.command(name="run")(service.run_command)


@app.command()
def version():
    """Show version information."""
    from cli import __version__
    from attestation import __version__ as engine_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]attest CLI[/bold]", f"v{__version__}")
    table.add_row("Attestation", f"v{engine_version}")
    table.add_row("Digest", "SHA3-256 over cid-ordered records")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
