"""Tests for the output formatter and console reporter."""

import io
import json
from datetime import datetime, timezone

from rich.console import Console

from treesync.cli_progress import ConsoleReporter, display_summary
from treesync.output import OutputFormatter
from treesync.sync.executor import create_empty_stats
from treesync.sync.models import FileEntry, SyncPlan, TreeSnapshot
from treesync.sync.reporter import OperationKind

T1 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _formatter(**kwargs):
    stdout = io.StringIO()
    stderr = io.StringIO()
    out = OutputFormatter(
        console=Console(file=stdout, width=40),
        error_console=Console(file=stderr, width=40),
        **kwargs,
    )
    return out, stdout, stderr


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_info_and_success(self):
        out, stdout, _ = _formatter()
        out.info("hello")
        out.success("done")
        assert stdout.getvalue() == "hello\n✓ done\n"

    def test_long_lines_are_not_wrapped(self):
        out, stdout, _ = _formatter()
        path = "/very/long/" + "segment/" * 20 + "file.txt"
        out.info(f"copy {path}")
        assert stdout.getvalue() == f"copy {path}\n"

    def test_quiet_suppresses_info_but_not_errors(self):
        out, stdout, stderr = _formatter(quiet=True)
        out.info("hidden")
        out.warning("hidden")
        out.error("shown")
        assert stdout.getvalue() == ""
        assert "✗ shown" in stderr.getvalue()

    def test_json_mode(self):
        out, stdout, _ = _formatter(json_output=True)
        out.info("hidden")
        out.output_json({"a": 1})
        assert json.loads(stdout.getvalue()) == {"a": 1}

    def test_markup_is_not_interpreted(self):
        out, stdout, _ = _formatter()
        out.info("[bold]literal[/bold]")
        assert stdout.getvalue() == "[bold]literal[/bold]\n"


class TestConsoleReporter:
    """Tests for ConsoleReporter output."""

    def test_scan_complete(self):
        out, stdout, _ = _formatter()
        snapshot = TreeSnapshot.from_entries([], [FileEntry("a", T1, 2048)])

        ConsoleReporter(out).scan_complete("source", "/src", snapshot)

        assert "Found 1 file(s) (2.0 KB) in 0 director(ies)" in stdout.getvalue()

    def test_empty_plan(self):
        out, stdout, _ = _formatter()
        ConsoleReporter(out).plan_computed(SyncPlan())
        assert "everything is in sync" in stdout.getvalue()

    def test_plan_with_paths(self):
        out, stdout, _ = _formatter()
        plan = SyncPlan(
            files_to_delete={"old.txt"},
            files_to_copy={"new.txt": FileEntry("new.txt", T1, 5)},
        )

        ConsoleReporter(out, list_paths=True).plan_computed(plan)

        text = stdout.getvalue()
        assert "Delete files: 1" in text
        assert "Copy files: 1" in text
        assert "delete file  old.txt" in text
        assert "copy         new.txt" in text

    def test_progress_disabled_in_json_mode(self):
        out, _, _ = _formatter(json_output=True)
        with ConsoleReporter(out) as reporter:
            reporter.group_started(OperationKind.COPY_FILE, 2)
            reporter.operation_applied(OperationKind.COPY_FILE, "a")
            assert reporter._progress is None

    def test_progress_tracks_group(self):
        out, _, _ = _formatter()
        with ConsoleReporter(out) as reporter:
            reporter.group_started(OperationKind.COPY_FILE, 2)
            reporter.operation_applied(OperationKind.COPY_FILE, "a")
            task = reporter._progress.tasks[0]
            assert task.completed == 1
            assert task.total == 2
        assert reporter._progress is None


class TestDisplaySummary:
    """Tests for display_summary."""

    def test_sync_summary(self):
        out, stdout, _ = _formatter()
        stats = {"dry_run": False, **create_empty_stats(), "files_copied": 3}

        display_summary(out, stats)

        text = stdout.getvalue()
        assert "Sync complete!" in text
        assert "Total actions: 3" in text
        assert "Copied files: 3" in text

    def test_dry_run_summary(self):
        out, stdout, _ = _formatter()
        display_summary(out, {"dry_run": True})
        assert "Dry run complete!" in stdout.getvalue()
