"""
Archive commands: gaps, get, exists, ranges
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from attestation.api.read_api import ReadAPI
from attestation.archive.sqlite_store import REPO_DB, SQLiteChecksumArchive
from attestation.core.config import DEFAULT_CHUNK_SIZE
from attestation.core.errors import StoreError, ValidationError
from attestation.log.sqlite_store import SQLiteSourceLog

app = typer.Typer()
console = Console()

REPO_OPTION = typer.Option(
    ..., "--checksum-db-directory", "-r", envvar="CHECKSUM_DB_DIRECTORY", help=f"Directory containing {REPO_DB}"
)
CHUNK_OPTION = typer.Option(
    DEFAULT_CHUNK_SIZE, "--checksum-chunk-size", envvar="CHECKSUM_CHUNK_SIZE", help="Epochs per checksum"
)


def _fail(message: str, json_output: bool, code: int = 2) -> None:
    if json_output:
        print(json.dumps({"error": message}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)


def _gap_table(title: str, gaps) -> Table:
    table = Table(title=title)
    table.add_column("Gap start", style="cyan")
    table.add_column("Gap stop", style="cyan")
    table.add_column("Epochs", style="yellow")
    for gap_start, gap_stop in gaps:
        table.add_row(str(gap_start), str(gap_stop), str(gap_stop - gap_start + 1))
    return table


@app.command()
def gaps(
    repo_dir: str = REPO_OPTION,
    src_dir: Optional[str] = typer.Option(
        None, "--msgindex-db-directory", "-m", help="Also report gaps in the source msgindex.db"
    ),
    start: int = typer.Option(-1, "--start", help="Lower bound epoch (-1 = unbounded)"),
    stop: int = typer.Option(-1, "--stop", help="Upper bound epoch (-1 = unbounded)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Report gaps in the checksum archive (and optionally the source log).

    Examples:
        attest archive gaps -r ./repo
        attest archive gaps -r ./repo -m ./lotus --start 0 --stop 100000
        attest archive gaps -r ./repo --json
    """
    report = {}
    try:
        archive = SQLiteChecksumArchive(repo_dir, create=False)
        try:
            report["archive"] = archive.find_gaps(start, stop)
        finally:
            archive.close()

        if src_dir:
            source = SQLiteSourceLog(src_dir)
            try:
                report["source"] = source.find_gaps(start, stop)
            finally:
                source.close()
    except (StoreError, ValueError) as e:
        _fail(str(e), json_output)

    if json_output:
        print(json.dumps({name: [list(g) for g in found] for name, found in report.items()}, indent=2))
        return

    for name, found in report.items():
        if not found:
            console.print(f"[green]No gaps in {name}[/green]")
            continue
        console.print(_gap_table(f"Gaps in {name}", found))
        console.print(f"\n[bold]Total gaps:[/bold] {len(found)}")


@app.command()
def get(
    start: int = typer.Option(..., "--start", help="First epoch of the chunk"),
    stop: int = typer.Option(..., "--stop", help="Last epoch of the chunk (inclusive)"),
    repo_dir: str = REPO_OPTION,
    chunk_size: int = CHUNK_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Look up the published checksum for one chunk.

    Examples:
        attest archive get --start 0 --stop 2879 -r ./repo
    """
    try:
        archive = SQLiteChecksumArchive(repo_dir, chunk_size, create=False)
        try:
            digest = ReadAPI(archive).get_checksum(start, stop)
        finally:
            archive.close()
    except (ValidationError, StoreError) as e:
        _fail(str(e), json_output)

    if json_output:
        print(json.dumps({"start": start, "stop": stop, "digest": digest}))
    elif digest is None:
        console.print(f"[yellow]No checksum published for {start}-{stop}[/yellow]")
    else:
        console.print(digest)
    if digest is None:
        raise typer.Exit(1)


@app.command()
def exists(
    digest: str = typer.Argument(..., help="Checksum to look for"),
    repo_dir: str = REPO_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Check whether a checksum is published for any range.

    Exits 0 when found, 1 otherwise.
    """
    try:
        archive = SQLiteChecksumArchive(repo_dir, create=False)
        try:
            found = ReadAPI(archive).checksum_exists(digest)
        finally:
            archive.close()
    except StoreError as e:
        _fail(str(e), json_output)

    if json_output:
        print(json.dumps({"hash": digest, "exists": found}))
    elif found:
        console.print(f"[green]✓ {digest} is published[/green]")
    else:
        console.print(f"[yellow]{digest} is not published[/yellow]")
    if not found:
        raise typer.Exit(1)


@app.command()
def ranges(
    repo_dir: str = REPO_OPTION,
    start: int = typer.Option(-1, "--start", help="Lower bound epoch (-1 = unbounded)"),
    stop: int = typer.Option(-1, "--stop", help="Upper bound epoch (-1 = unbounded)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List published checksum ranges.

    Examples:
        attest archive ranges -r ./repo --start 0 --stop 28800
    """
    try:
        archive = SQLiteChecksumArchive(repo_dir, create=False)
        try:
            published = archive.list_ranges(start, stop)
        finally:
            archive.close()
    except (StoreError, ValueError) as e:
        _fail(str(e), json_output)

    if json_output:
        print(json.dumps({"ranges": [r.to_dict() for r in published], "count": len(published)}, indent=2))
        return

    if not published:
        console.print("[yellow]No checksums published[/yellow]")
        return

    table = Table(title=f"Checksums: {repo_dir}")
    table.add_column("Start", style="cyan")
    table.add_column("Stop", style="cyan")
    table.add_column("Digest (prefix)", style="dim")
    for r in published:
        table.add_row(str(r.start), str(r.stop), r.digest[:16])
    console.print(table)
    console.print(f"\n[bold]Total ranges:[/bold] {len(published)}")
