"""
Tests for the attest archive commands.
"""

import json
import logging
import os
import socket
import tempfile

import pytest
from typer.testing import CliRunner

from attestation.archive.sqlite_store import SQLiteChecksumArchive
from attestation.tests.fakes import make_msgindex, records_for_epochs
from cli.main import app

runner = CliRunner()


@pytest.fixture
def restore_logging():
    """attest run reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _seed_archive(repo_dir, starts=(0, 200)):
    archive = SQLiteChecksumArchive(repo_dir, 100)
    try:
        for start in starts:
            archive.publish_checksum(start, start + 99, f"d{start}")
    finally:
        archive.close()


def test_archive_gaps_json():
    with tempfile.TemporaryDirectory() as repo_dir, tempfile.TemporaryDirectory() as src_dir:
        _seed_archive(repo_dir)
        make_msgindex(src_dir, records_for_epochs([e for e in range(0, 50) if e != 10]))

        result = runner.invoke(app, ["archive", "gaps", "-r", repo_dir, "-m", src_dir, "--json"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report == {"archive": [[100, 199]], "source": [[10, 10]]}


def test_archive_gaps_table():
    with tempfile.TemporaryDirectory() as repo_dir:
        _seed_archive(repo_dir, starts=(0, 100))

        result = runner.invoke(app, ["archive", "gaps", "-r", repo_dir])

        assert result.exit_code == 0
        assert "No gaps in archive" in result.stdout


def test_archive_get():
    with tempfile.TemporaryDirectory() as repo_dir:
        _seed_archive(repo_dir)

        found = runner.invoke(
            app, ["archive", "get", "--start", "0", "--stop", "99", "-r", repo_dir, "--checksum-chunk-size", "100", "--json"]
        )
        missing = runner.invoke(
            app, ["archive", "get", "--start", "100", "--stop", "199", "-r", repo_dir, "--checksum-chunk-size", "100", "--json"]
        )

        assert found.exit_code == 0
        assert json.loads(found.stdout) == {"start": 0, "stop": 99, "digest": "d0"}
        assert missing.exit_code == 1
        assert json.loads(missing.stdout)["digest"] is None


def test_archive_get_invalid_range():
    with tempfile.TemporaryDirectory() as repo_dir:
        _seed_archive(repo_dir)

        result = runner.invoke(
            app, ["archive", "get", "--start", "10", "--stop", "50", "-r", repo_dir, "--checksum-chunk-size", "100", "--json"]
        )

        assert result.exit_code == 2
        assert "interval of size 100" in json.loads(result.stdout)["error"]


def test_archive_exists():
    with tempfile.TemporaryDirectory() as repo_dir:
        _seed_archive(repo_dir)

        found = runner.invoke(app, ["archive", "exists", "d200", "-r", repo_dir, "--json"])
        missing = runner.invoke(app, ["archive", "exists", "nope", "-r", repo_dir, "--json"])

        assert found.exit_code == 0
        assert json.loads(found.stdout) == {"hash": "d200", "exists": True}
        assert missing.exit_code == 1


def test_archive_ranges():
    with tempfile.TemporaryDirectory() as repo_dir:
        _seed_archive(repo_dir, starts=(0, 100, 200))

        result = runner.invoke(app, ["archive", "ranges", "-r", repo_dir, "--start", "150", "--json"])

        assert result.exit_code == 0
        listing = json.loads(result.stdout)
        assert listing["count"] == 2
        assert [r["start"] for r in listing["ranges"]] == [100, 200]


def test_run_requires_a_mode(restore_logging):
    with tempfile.TemporaryDirectory() as repo_dir:
        result = runner.invoke(
            app, ["run", "--checksum-db-directory", repo_dir, "--checksum-off", "--server-off"]
        )

        assert result.exit_code == 2
        assert "nothing to do" in result.stdout


def test_run_offline_checksums_then_exits(restore_logging):
    with tempfile.TemporaryDirectory() as repo_dir, tempfile.TemporaryDirectory() as src_dir:
        make_msgindex(src_dir, records_for_epochs(range(0, 250)))

        result = runner.invoke(
            app,
            [
                "run",
                "--checksum-db-directory", repo_dir,
                "--msgindex-db-directory", src_dir,
                "--checksum-chunk-size", "100",
                "--checksum-on",
                "--server-off",
                "--no-follow",
                "--metrics-off",
            ],
        )

        assert result.exit_code == 0
        archive = SQLiteChecksumArchive(repo_dir, 100)
        try:
            assert archive.find_next_checksum() == 200
        finally:
            archive.close()


def test_archive_commands_reject_missing_archive():
    """A mistyped archive path is an error, never an empty archive."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_dir = os.path.join(tmpdir, "no-such-repo")

        for args in (
            ["archive", "gaps", "-r", repo_dir, "--json"],
            ["archive", "get", "--start", "0", "--stop", "99", "-r", repo_dir, "--checksum-chunk-size", "100", "--json"],
            ["archive", "exists", "d0", "-r", repo_dir, "--json"],
            ["archive", "ranges", "-r", repo_dir, "--json"],
        ):
            result = runner.invoke(app, args)

            assert result.exit_code == 2, args
            assert "does not exist" in json.loads(result.stdout)["error"]

        assert not os.path.exists(repo_dir)


def test_run_serve_only_exits_when_port_taken(restore_logging):
    with tempfile.TemporaryDirectory() as repo_dir, socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        result = runner.invoke(
            app,
            [
                "run",
                "--checksum-db-directory", repo_dir,
                "--checksum-off",
                "--server-on",
                "--server-host", "127.0.0.1",
                "--server-port", str(port),
                "--metrics-off",
            ],
        )

        assert result.exit_code == 1
        assert "failed to start" in result.stdout
