"""Core sync engine that orchestrates a sync run."""

import logging
import time
from typing import Any, Optional

from .cancel import CancellationToken
from .comparator import SnapshotComparator
from .executor import PlanExecutor, create_empty_stats
from .models import SyncPlan
from .pair import SyncPair
from .reporter import LoggingReporter, SyncReporter
from .scanner import TreeScanner
from .transport import TransportSelector

logger = logging.getLogger(__name__)


class SyncEngine:
    """Runs one-direction syncs: scan both trees, compare, execute.

    The phases are strictly sequential. Any error aborts the run and
    propagates to the caller unchanged.
    """

    def __init__(
        self,
        reporter: Optional[SyncReporter] = None,
        selector: Optional[TransportSelector] = None,
        max_workers: int = 1,
    ):
        """Initialize sync engine.

        Args:
            reporter: Receives progress notifications (defaults to logging)
            selector: Opens execution contexts for each pair
            max_workers: Parallel workers within an operation group
        """
        self.reporter = reporter or LoggingReporter()
        self.selector = selector or TransportSelector()
        self.scanner = TreeScanner(self.reporter)
        self.comparator = SnapshotComparator()
        self.executor = PlanExecutor(self.reporter, max_workers=max_workers)

    def sync_pair(
        self,
        pair: SyncPair,
        dry_run: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> dict[str, Any]:
        """Sync a single sync pair.

        Args:
            pair: Sync pair to synchronize
            dry_run: If True, compute and report the plan without executing it
            cancel_token: Checked between scans and before each operation

        Returns:
            Dictionary with sync statistics

        Raises:
            MisconfigurationError: If the pair is invalid
            ConnectivityError: If a remote session cannot be established
            TreeAccessError: If either tree cannot be scanned
            TransferError: If an operation fails
            SyncCancelledError: If the token is cancelled

        Examples:
            >>> engine = SyncEngine()
            >>> pair = SyncPair("/data", "/backup", SyncMode.LOCAL)  # doctest: +SKIP
            >>> stats = engine.sync_pair(pair, dry_run=True)  # doctest: +SKIP
            >>> print(f"Would copy {stats['files_to_copy']} files")  # doctest: +SKIP
        """
        _, stats = self._run(pair, dry_run, cancel_token or CancellationToken())
        return stats

    def plan_pair(
        self, pair: SyncPair, cancel_token: Optional[CancellationToken] = None
    ) -> SyncPlan:
        """Compute the plan for a pair without executing it."""
        plan, _ = self._run(pair, True, cancel_token or CancellationToken())
        return plan

    def _run(
        self, pair: SyncPair, dry_run: bool, token: CancellationToken
    ) -> tuple[SyncPlan, dict[str, Any]]:
        start = time.time()
        logger.debug("Starting sync of %s (dry_run=%s)", pair.display_name, dry_run)

        with self.selector.open(pair) as (source_context, destination_context):
            source, destination = self.scanner.scan_pair(
                pair.source,
                pair.destination,
                source_context,
                destination_context,
                token,
            )

            # Times written over SFTP only keep whole seconds
            whole_seconds = source_context.is_remote or destination_context.is_remote
            plan = self.comparator.compare(source, destination, whole_seconds)
            self.reporter.plan_computed(plan)

            applied = create_empty_stats()
            if not dry_run and not plan.is_empty:
                applied = self.executor.execute(
                    plan,
                    pair.source,
                    pair.destination,
                    source_context,
                    destination_context,
                    token,
                )

        stats: dict[str, Any] = {
            "pair": pair.display_name,
            "mode": pair.mode.value,
            "dry_run": dry_run,
            "source_files": len(source.files),
            "source_directories": len(source.directories),
            "destination_files": len(destination.files),
            "destination_directories": len(destination.directories),
            "transfer_bytes": plan.transfer_bytes,
        }
        stats.update(plan.summary())
        stats.update(applied)

        logger.debug(
            "Sync of %s finished in %.2fs", pair.display_name, time.time() - start
        )
        return plan, stats

    def sync_pairs(
        self,
        pairs: list[SyncPair],
        dry_run: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[dict[str, Any]]:
        """Sync several pairs in order, stopping at the first failure.

        Returns:
            Statistics for each pair
        """
        token = cancel_token or CancellationToken()
        results = []
        for pair in pairs:
            token.raise_if_cancelled()
            results.append(self.sync_pair(pair, dry_run=dry_run, cancel_token=token))
        return results
