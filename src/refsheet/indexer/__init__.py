"""Declaration indexer: file discovery, tree-sitter extraction, and table reconciliation."""

from __future__ import annotations

from refsheet.indexer.builder import BuildReport, IndexBuilder
from refsheet.indexer.extractor import DeclarationExtractor, DeclKind, IndexEntry
from refsheet.indexer.reconciler import IndexReconciler, reconcile
from refsheet.indexer.scanner import ScanEntry, TraversalPolicy, TreeScanner

__all__ = [
    "BuildReport",
    "DeclKind",
    "DeclarationExtractor",
    "IndexBuilder",
    "IndexEntry",
    "IndexReconciler",
    "ScanEntry",
    "TraversalPolicy",
    "TreeScanner",
    "reconcile",
]
