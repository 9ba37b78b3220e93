"""Merge newly extracted entries with the persisted index."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from refsheet.indexer.extractor import IndexEntry
from refsheet.indexer.table import read_table, write_table

console = Console(stderr=True)


def reconcile(
    prior: Iterable[IndexEntry] | None, new_entries: Iterable[IndexEntry]
) -> list[IndexEntry]:
    """Union prior and new entries and return them in index order.

    Entries collapse on the (file, kind, name) triple. Order is by file,
    then name, then kind.

    Args:
        prior: Previously persisted entries, or None when there are none.
        new_entries: Entries found by the current scan.

    Returns:
        The merged entries, sorted and free of duplicates.
    """
    merged: set[IndexEntry] = set(prior or ())
    merged.update(new_entries)
    return sorted(merged, key=IndexEntry.sort_key)


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Counts describing one reconciliation.

    Attributes:
        prior_count: Unique entries read from the previous table (0 in full mode).
        new_count: Unique entries supplied by the current scan.
        written: Rows written to the table.
    """

    prior_count: int
    new_count: int
    written: int


class IndexReconciler:
    """Sole reader and writer of one persisted index table."""

    def __init__(self, output: Path) -> None:
        self._output = output

    @property
    def output(self) -> Path:
        return self._output

    def load(self) -> set[IndexEntry] | None:
        """Read the existing table into a set.

        Returns:
            The stored entries, or None if no table exists yet.

        Raises:
            ReconciliationError: If the table exists but is not valid.
        """
        if not self._output.exists():
            return None
        return set(read_table(self._output))

    def commit(self, new_entries: Iterable[IndexEntry], incremental: bool = True) -> ReconcileResult:
        """Merge new entries with the stored table and rewrite it wholesale.

        Args:
            new_entries: Entries found by the current scan.
            incremental: When False the stored table is not read and is
                replaced by the new entries alone.

        Raises:
            ReconciliationError: If the prior table is corrupt or the output
                cannot be written. Nothing is modified in either case.
        """
        fresh = set(new_entries)
        prior = self.load() if incremental else None
        if not incremental:
            console.print("[green]Reconciler[/green] full rebuild; existing index is replaced")
        elif prior is None:
            console.print("[green]Reconciler[/green] no existing index; starting fresh")
        else:
            console.print(
                f"[green]Reconciler[/green] read [bold]{len(prior)}[/bold] existing entries "
                f"from {self._output}"
            )

        ordered = reconcile(prior, fresh)
        written = write_table(self._output, ordered)
        return ReconcileResult(
            prior_count=len(prior) if prior is not None else 0,
            new_count=len(fresh),
            written=written,
        )
