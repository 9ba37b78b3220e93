"""Scan, extract and reconcile in one batch pass."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from refsheet.config import RefsheetConfig
from refsheet.exceptions import ExtractionError
from refsheet.indexer.extractor import DeclarationExtractor, IndexEntry
from refsheet.indexer.reconciler import IndexReconciler
from refsheet.indexer.scanner import TraversalPolicy, TreeScanner

console = Console(stderr=True)


@dataclass
class BuildReport:
    """Tallies for one build.

    Attributes:
        output: Location of the written table.
        files_scanned: Candidate files handed to the extractor.
        files_failed: Candidate files that contributed nothing because of an error.
        traversal_errors: Directory entries the scanner could not visit.
        entries_found: Unique entries extracted by this run.
        prior_entries: Unique entries read from the previous table.
        entries_written: Rows in the written table.
        diagnostics: (path, message) pairs for every recoverable failure.
    """

    output: Path
    files_scanned: int = 0
    files_failed: int = 0
    traversal_errors: int = 0
    entries_found: int = 0
    prior_entries: int = 0
    entries_written: int = 0
    diagnostics: list[tuple[str, str]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """True if some files or directories could not be indexed."""
        return bool(self.files_failed or self.traversal_errors)


class IndexBuilder:
    """Runs the scanner, extractor and reconciler for one configuration."""

    def __init__(self, config: RefsheetConfig) -> None:
        self._config = config
        self._extractor = DeclarationExtractor()
        self._reconciler = IndexReconciler(config.output)

    def build(self, full: bool = False) -> BuildReport:
        """Scan the tree and persist the reconciled index.

        Args:
            full: Rebuild from this scan alone instead of merging with the
                existing table.

        Returns:
            Counts and diagnostics for the run.

        Raises:
            ScanError: If the root directory is missing.
            ReconciliationError: If the prior table is corrupt or the output
                cannot be written.
        """
        config = self._config
        policy = TraversalPolicy(
            follow_links=config.follow_links,
            exclude=frozenset(config.exclude),
            extensions=frozenset(config.extensions),
        )
        scanner = TreeScanner(config.root, policy)
        report = BuildReport(output=config.output)

        mode = "full rebuild" if full else "incremental update"
        console.print(f"[bold blue]Indexer[/bold blue] scanning {scanner.root} ({mode})...")
        if scanner.root_excluded:
            console.print(
                f"[yellow]Warning[/yellow]: {scanner.root} contains an excluded path "
                "segment; no files will be scanned"
            )

        found: set[IndexEntry] = set()
        if config.workers > 1:
            with ThreadPoolExecutor(max_workers=config.workers) as executor:
                pending: list[tuple[str, Future[list[IndexEntry]]]] = []
                for path, label in self._candidates(scanner, report):
                    future = executor.submit(self._extractor.extract_file, path, label)
                    pending.append((label, future))
                for label, future in pending:
                    self._collect(label, future.result, report, found)
        else:
            for path, label in self._candidates(scanner, report):
                self._collect(
                    label,
                    lambda p=path, f=label: self._extractor.extract_file(p, f),
                    report,
                    found,
                )

        report.entries_found = len(found)
        result = self._reconciler.commit(found, incremental=not full)
        report.prior_entries = result.prior_count
        report.entries_written = result.written

        console.print(
            f"[green]Indexer[/green] wrote [bold]{result.written}[/bold] entries "
            f"from [bold]{report.files_scanned}[/bold] files to {self._reconciler.output}"
        )
        return report

    def _candidates(
        self, scanner: TreeScanner, report: BuildReport
    ) -> Iterator[tuple[str, str]]:
        """Yield (path, label) pairs, recording traversal errors on the report.

        The label is the UTF-8 text stored in the index and shown in messages.
        """
        for entry in scanner.scan():
            if not entry.ok:
                report.traversal_errors += 1
                report.diagnostics.append((entry.label, f"traversal error: {entry.error}"))
                console.print(f"[yellow]Warning[/yellow]: Cannot visit {entry.label}: {entry.error}")
                continue
            report.files_scanned += 1
            if self._config.verbose:
                console.print(f"[dim]Processing {entry.label}[/dim]")
            yield entry.path, entry.label

    def _collect(
        self,
        path: str,
        extract: Callable[[], list[IndexEntry]],
        report: BuildReport,
        found: set[IndexEntry],
    ) -> None:
        """Fold one file's outcome into the shared result set."""
        try:
            entries = extract()
        except ExtractionError as exc:
            report.files_failed += 1
            report.diagnostics.append((path, f"{exc.kind.value}: {exc.detail}"))
            console.print(f"[yellow]Warning[/yellow]: Skipping {path}: {exc.detail}")
            return
        if self._config.verbose:
            console.print(f"[dim]  Found {len(entries)} items in {path}[/dim]")
        found.update(entries)
