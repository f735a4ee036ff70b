"""Tests for SyncEngine runs on local trees and mocked remote sessions."""

import io
import os
from unittest.mock import MagicMock, Mock

import pytest

from treesync.exceptions import (
    ConnectivityError,
    MisconfigurationError,
    SyncCancelledError,
    TreeAccessError,
)
from treesync.remote import CommandResult, RemoteSession
from treesync.sync.cancel import CancellationToken
from treesync.sync.contexts import LocalContext
from treesync.sync.engine import SyncEngine
from treesync.sync.modes import SyncMode
from treesync.sync.pair import SyncPair
from treesync.sync.reporter import SyncReporter
from treesync.sync.scanner import TreeScanner
from treesync.sync.transport import TransportSelector

T_OLD = 1600000000
T_NEW = 1700000000
T_NEW_NS = T_NEW * 1_000_000_000


class _PrefetchingReader(io.BytesIO):
    """BytesIO with the read-ahead hook of an SFTP file."""

    def prefetch(self):
        pass


def _write(path, content, mtime=T_NEW):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.utime(path, (mtime, mtime))


def _tree(root):
    """Map of relative path -> content ('/' suffix marks directories)."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
        prefix = "" if rel_dir == "." else rel_dir + "/"
        for name in dirnames:
            result[prefix + name + "/"] = None
        for name in filenames:
            with open(os.path.join(dirpath, name)) as f:
                result[prefix + name] = f.read()
    return result


@pytest.fixture
def roots(tmp_path):
    source = tmp_path / "source"
    destination = tmp_path / "destination"
    source.mkdir()
    destination.mkdir()
    return source, destination


@pytest.fixture
def engine():
    return SyncEngine(reporter=SyncReporter())


class TestLocalSync:
    """End-to-end local sync runs."""

    def test_new_directory_and_stale_file(self, roots, engine):
        """New subtree is created, stale destination file is deleted."""
        source, destination = roots
        _write(source / "sub" / "a.txt", "0123456789")
        _write(destination / "old.txt", "stale")

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(destination) == {"sub/": None, "sub/a.txt": "0123456789"}
        assert stats["directories_created"] == 1
        assert stats["files_copied"] == 1
        assert stats["files_deleted"] == 1
        assert stats["transfer_bytes"] == 10

    def test_changed_file_is_overwritten_with_source_time(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "new", mtime=T_NEW)
        _write(destination / "a.txt", "old", mtime=T_OLD)

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        assert (destination / "a.txt").read_text() == "new"
        assert int(os.stat(destination / "a.txt").st_mtime) == T_NEW
        assert stats["files_overwritten"] == 1

    def test_identical_file_is_left_alone(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "same")
        _write(destination / "a.txt", "SAME")

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        # Equal size and time: content is never compared
        assert (destination / "a.txt").read_text() == "SAME"
        assert stats["files_overwritten"] == 0
        assert stats["files_copied"] == 0

    def test_nested_stale_directories_are_removed(self, roots, engine):
        source, destination = roots
        _write(source / "keep.txt", "k")
        _write(destination / "gone" / "deeper" / "x.bin", "x")
        (destination / "gone" / "empty").mkdir()

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(destination) == {"keep.txt": "k"}
        assert stats["directories_deleted"] == 3

    def test_file_replaced_by_directory(self, roots, engine):
        source, destination = roots
        _write(source / "item" / "inner.txt", "i")
        _write(destination / "item", "was a file")

        engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(destination) == {"item/": None, "item/inner.txt": "i"}

    def test_convergence_and_idempotence(self, roots, engine):
        """After a run the trees match, and a second run does nothing."""
        source, destination = roots
        _write(source / "a" / "b" / "c.txt", "deep")
        _write(source / "top.txt", "top", mtime=T_OLD)
        (source / "empty").mkdir()
        _write(destination / "top.txt", "different", mtime=T_NEW)
        _write(destination / "z" / "stale.txt", "s")
        pair = SyncPair(str(source), str(destination))

        engine.sync_pair(pair)
        second = engine.sync_pair(pair)

        assert _tree(destination) == _tree(source)
        source_snapshot, destination_snapshot = TreeScanner().scan_pair(
            str(source), str(destination), LocalContext(), LocalContext()
        )
        assert source_snapshot == destination_snapshot
        for key in (
            "files_to_delete",
            "directories_to_delete",
            "directories_to_create",
            "files_to_copy",
            "files_to_overwrite",
        ):
            assert second[key] == 0

    def test_source_is_never_modified(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "a")
        _write(destination / "b.txt", "b")
        before = _tree(source)

        engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(source) == before

    def test_parallel_workers(self, roots):
        source, destination = roots
        for i in range(12):
            _write(source / f"d{i % 3}" / f"f{i}.txt", str(i))

        SyncEngine(reporter=SyncReporter(), max_workers=4).sync_pair(
            SyncPair(str(source), str(destination))
        )

        assert _tree(destination) == _tree(source)

    def test_subsecond_change_is_overwritten(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "new!")
        _write(destination / "a.txt", "old!")
        os.utime(source / "a.txt", ns=(T_NEW_NS + 700_000_000,) * 2)
        os.utime(destination / "a.txt", ns=(T_NEW_NS + 200_000_000,) * 2)
        pair = SyncPair(str(source), str(destination))

        stats = engine.sync_pair(pair)
        second = engine.sync_pair(pair)

        assert (destination / "a.txt").read_text() == "new!"
        assert stats["files_overwritten"] == 1
        assert os.stat(destination / "a.txt").st_mtime_ns == T_NEW_NS + 700_000_000
        assert second["files_to_overwrite"] == 0


class TestSymlinksInDestination:
    """Destination symlinks are replaced, never written through."""

    @pytest.fixture(autouse=True)
    def _require_symlinks(self, tmp_path):
        try:
            os.symlink(tmp_path, tmp_path / "check")
        except (AttributeError, NotImplementedError, OSError):
            pytest.skip("cannot create symlinks")
        os.remove(tmp_path / "check")

    def test_file_link_is_replaced_and_target_untouched(self, tmp_path, engine):
        source = tmp_path / "src"
        destination = tmp_path / "dst"
        _write(source / "a.txt", "from source")
        destination.mkdir()
        outside = tmp_path / "outside.txt"
        outside.write_text("precious data")
        os.symlink(outside, destination / "a.txt")
        pair = SyncPair(str(source), str(destination))

        stats = engine.sync_pair(pair)
        second = engine.sync_pair(pair)

        assert outside.read_text() == "precious data"
        assert not os.path.islink(destination / "a.txt")
        assert (destination / "a.txt").read_text() == "from source"
        assert stats["files_deleted"] == 1
        assert stats["files_copied"] == 1
        assert second["files_to_delete"] == 0
        assert second["files_to_copy"] == 0

    def test_directory_link_is_removed_not_followed(self, tmp_path, engine):
        source = tmp_path / "src"
        destination = tmp_path / "dst"
        _write(source / "keep.txt", "k")
        destination.mkdir()
        outside = tmp_path / "outside"
        _write(outside / "secret.txt", "s")
        os.symlink(outside, destination / "linked")

        engine.sync_pair(SyncPair(str(source), str(destination)))

        assert not os.path.lexists(destination / "linked")
        assert (outside / "secret.txt").read_text() == "s"
        assert _tree(destination) == {"keep.txt": "k"}

    def test_link_inside_stale_directory(self, tmp_path, engine):
        source = tmp_path / "src"
        destination = tmp_path / "dst"
        source.mkdir()
        _write(tmp_path / "target.txt", "t")
        (destination / "stale").mkdir(parents=True)
        os.symlink(tmp_path / "target.txt", destination / "stale" / "link")

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(destination) == {}
        assert stats["directories_deleted"] == 1
        assert (tmp_path / "target.txt").read_text() == "t"

    def test_source_links_are_skipped(self, tmp_path, engine):
        source = tmp_path / "src"
        destination = tmp_path / "dst"
        _write(source / "real.txt", "r")
        os.symlink(source / "real.txt", source / "alias.txt")
        destination.mkdir()

        engine.sync_pair(SyncPair(str(source), str(destination)))

        assert _tree(destination) == {"real.txt": "r"}


class TestRemoteSync:
    """Push and pull runs through a mocked SSH session."""

    @staticmethod
    def _session(*records):
        session = Mock(spec=RemoteSession)
        session.host = "nas"
        session.sftp = MagicMock()
        session.sftp.stat.return_value.st_mode = 0o040755
        session.run.return_value = CommandResult(
            exit_status=0,
            stdout=b"".join(r.encode("utf-8") + b"\0" for r in records),
            stderr="",
        )
        return session

    @staticmethod
    def _engine(session):
        return SyncEngine(
            reporter=SyncReporter(),
            selector=TransportSelector(session_factory=lambda pair: session),
        )

    def test_push(self, tmp_path):
        source = tmp_path / "src"
        _write(source / "a.txt", "hello")
        _write(source / "keep.txt", "k")
        # Whole seconds on the remote side still match
        os.utime(source / "keep.txt", ns=(T_NEW_NS + 400_000_000,) * 2)
        session = self._session(
            f"f\t{T_NEW}.0000000000\t1\t/srv/b/keep.txt",
            f"f\t{T_OLD}.0000000000\t5\t/srv/b/stale.txt",
        )
        written = io.BytesIO()
        handle = session.sftp.open.return_value.__enter__.return_value
        handle.write.side_effect = written.write
        pair = SyncPair(str(source), "/srv/b", SyncMode.PUSH_TO_REMOTE, host="nas")

        stats = self._engine(session).sync_pair(pair)

        session.connect.assert_called_once()
        session.close.assert_called_once()
        assert "find '/srv/b'" in session.run.call_args[0][0]
        session.sftp.remove.assert_called_once_with("/srv/b/stale.txt")
        session.sftp.open.assert_called_once_with("/srv/b/a.txt", "wb")
        session.sftp.utime.assert_called_once_with("/srv/b/a.txt", (T_NEW, T_NEW))
        assert written.getvalue() == b"hello"
        assert stats["mode"] == "pushToRemote"
        assert stats["files_copied"] == 1
        assert stats["files_deleted"] == 1
        assert stats["files_overwritten"] == 0

    def test_pull(self, roots):
        _, destination = roots
        session = self._session(
            f"d\t{T_NEW}.0000000000\t4096\t/srv/a/docs",
            f"f\t{T_NEW}.5000000000\t6\t/srv/a/docs/r.txt",
        )
        session.sftp.open.return_value = _PrefetchingReader(b"remote")
        pair = SyncPair(
            "/srv/a", str(destination), SyncMode.PULL_FROM_REMOTE, host="nas"
        )

        stats = self._engine(session).sync_pair(pair)

        session.sftp.open.assert_called_once_with("/srv/a/docs/r.txt", "rb")
        assert _tree(destination) == {"docs/": None, "docs/r.txt": "remote"}
        mtime_ns = os.stat(destination / "docs" / "r.txt").st_mtime_ns
        assert mtime_ns == T_NEW_NS + 500_000_000
        assert stats["directories_created"] == 1
        session.close.assert_called_once()
        session.sftp.utime.assert_not_called()


class TestDryRunAndPlan:
    """Tests for dry runs and plan computation."""

    def test_dry_run_changes_nothing(self, roots, engine):
        source, destination = roots
        _write(source / "new.txt", "n")
        _write(destination / "old.txt", "o")

        stats = engine.sync_pair(SyncPair(str(source), str(destination)), dry_run=True)

        assert _tree(destination) == {"old.txt": "o"}
        assert stats["dry_run"] is True
        assert stats["files_to_copy"] == 1
        assert stats["files_to_delete"] == 1
        assert stats["files_copied"] == 0

    def test_plan_pair(self, roots, engine):
        source, destination = roots
        _write(source / "x" / "y.txt", "y")

        plan = engine.plan_pair(SyncPair(str(source), str(destination)))

        assert plan.directories_to_create == {"x"}
        assert set(plan.files_to_copy) == {"x/y.txt"}
        assert _tree(destination) == {}

    def test_stats_describe_pair(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "abc")

        stats = engine.sync_pair(SyncPair(str(source), str(destination)))

        assert stats["mode"] == "local"
        assert stats["pair"] == f"{source} -> {destination}"
        assert stats["source_files"] == 1
        assert stats["destination_files"] == 0

    def test_reporter_sees_plan(self, roots):
        source, destination = roots
        _write(source / "a.txt", "abc")
        reporter = Mock(spec=SyncReporter)

        SyncEngine(reporter=reporter).sync_pair(SyncPair(str(source), str(destination)))

        plan = reporter.plan_computed.call_args[0][0]
        assert set(plan.files_to_copy) == {"a.txt"}
        assert reporter.operation_applied.call_count == 1


class TestErrors:
    """Tests for error propagation."""

    def test_missing_source_root(self, roots, engine):
        source, destination = roots
        _write(destination / "keep.txt", "k")

        with pytest.raises(TreeAccessError):
            engine.sync_pair(SyncPair(str(source / "missing"), str(destination)))

        assert _tree(destination) == {"keep.txt": "k"}

    def test_missing_destination_root(self, roots, engine):
        source, destination = roots
        with pytest.raises(TreeAccessError, match="does not exist"):
            engine.sync_pair(SyncPair(str(source), str(destination / "missing")))

    def test_misconfiguration_before_any_io(self):
        factory = Mock()
        engine = SyncEngine(
            reporter=SyncReporter(), selector=TransportSelector(session_factory=factory)
        )

        with pytest.raises(MisconfigurationError):
            engine.sync_pair(SyncPair("/a", "/b", SyncMode.PUSH_TO_REMOTE))

        factory.assert_not_called()

    def test_connectivity_error_before_scanning(self, roots):
        source, destination = roots
        session = MagicMock()
        session.connect.side_effect = ConnectivityError("nas", "Cannot connect")
        engine = SyncEngine(
            reporter=Mock(spec=SyncReporter),
            selector=TransportSelector(session_factory=lambda pair: session),
        )

        with pytest.raises(ConnectivityError):
            engine.sync_pair(
                SyncPair(str(source), "/srv/b", SyncMode.PUSH_TO_REMOTE, host="nas")
            )

        engine.reporter.scan_started.assert_not_called()

    def test_cancelled_token(self, roots, engine):
        source, destination = roots
        _write(source / "a.txt", "a")
        token = CancellationToken()
        token.cancel()

        with pytest.raises(SyncCancelledError):
            engine.sync_pair(
                SyncPair(str(source), str(destination)), cancel_token=token
            )

        assert _tree(destination) == {}


class TestSyncPairs:
    """Tests for syncing several pairs."""

    def test_pairs_run_in_order(self, tmp_path, engine):
        pairs = []
        for name in ("one", "two"):
            source = tmp_path / f"{name}_src"
            destination = tmp_path / f"{name}_dst"
            _write(source / f"{name}.txt", name)
            destination.mkdir()
            pairs.append(SyncPair(str(source), str(destination)))

        results = engine.sync_pairs(pairs)

        assert [r["files_copied"] for r in results] == [1, 1]
        assert (tmp_path / "two_dst" / "two.txt").read_text() == "two"

    def test_first_failure_stops_remaining_pairs(self, tmp_path, engine):
        good_src = tmp_path / "good_src"
        good_dst = tmp_path / "good_dst"
        _write(good_src / "f.txt", "f")
        good_dst.mkdir()
        pairs = [
            SyncPair(str(tmp_path / "missing"), str(tmp_path)),
            SyncPair(str(good_src), str(good_dst)),
        ]

        with pytest.raises(TreeAccessError):
            engine.sync_pairs(pairs)

        assert not (good_dst / "f.txt").exists()
