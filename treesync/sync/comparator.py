"""Snapshot comparison logic for sync operations."""

import logging

from .models import SyncPlan, TreeSnapshot

logger = logging.getLogger(__name__)


class SnapshotComparator:
    """Compares a source and a destination snapshot to build a sync plan.

    Comparison is keyed by relative path, so it runs in time linear in
    the size of both snapshots. Files are matched by path and then by
    fingerprint (modification time and size); directories only by path.
    Directory metadata is never compared. Symlinks and special files in
    the destination are always deleted, so transfers never write through
    a link.

    Examples:
        >>> plan = SnapshotComparator().compare(source, destination)  # doctest: +SKIP
        >>> plan.ordered_directories_to_create()  # doctest: +SKIP
        ['x', 'x/y']
    """

    def compare(
        self,
        source: TreeSnapshot,
        destination: TreeSnapshot,
        whole_seconds: bool = False,
    ) -> SyncPlan:
        """Compare two snapshots.

        Args:
            source: Snapshot of the tree to copy from
            destination: Snapshot of the tree to converge
            whole_seconds: Compare modification times at whole-second
                granularity (used when either tree is remote)

        Returns:
            SyncPlan with the five operation groups
        """
        plan = SyncPlan()

        plan.files_to_delete = {
            path for path in destination.files if path not in source.files
        }
        plan.files_to_delete.update(destination.other_entries)
        plan.directories_to_delete = {
            path for path in destination.directories if path not in source.directories
        }
        plan.directories_to_create = {
            path for path in source.directories if path not in destination.directories
        }

        for path, source_file in source.files.items():
            destination_file = destination.files.get(path)
            if destination_file is None:
                plan.files_to_copy[path] = source_file
            elif not source_file.is_equivalent(destination_file, whole_seconds):
                logger.debug(
                    "Changed: %s (%s, %d B -> %s, %d B)",
                    path,
                    destination_file.last_modified_utc.isoformat(),
                    destination_file.size_bytes,
                    source_file.last_modified_utc.isoformat(),
                    source_file.size_bytes,
                )
                plan.files_to_overwrite[path] = source_file

        logger.debug("Computed plan: %s", plan.summary())
        return plan
